"""Provider-neutral LLM client shared by the drafting agents."""

import json
import logging
import os
from typing import Any, Literal

from anthropic import Anthropic
import openai

from revision_bot.agents.exceptions import AgentError, ProviderConfigError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
OPENAI_DEFAULT_MODEL = "gpt-4o-mini"
MAX_API_TOKENS = 8000


class LLMClient:
    """Calls Anthropic or OpenAI with an optional fallback provider.

    There is no automatic retry: one attempt per provider in the chain, and
    the fallback provider is only tried when ``allow_fallback`` is set.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        llm_provider: str = "auto",
        llm_fallback_provider: str | None = None,
        allow_fallback: bool = False,
        max_tokens: int = MAX_API_TOKENS,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Anthropic API key. Falls back to ANTHROPIC_API_KEY env var.
            model: Model ID to use.
            llm_provider: "auto", "anthropic" or "openai".
            llm_fallback_provider: Provider tried after the primary one fails.
            allow_fallback: Whether the fallback provider may be used.
            max_tokens: Response token limit.

        Raises:
            ProviderConfigError: If no API key is found.
        """
        self.model: str = model
        self.max_tokens: int = max_tokens
        self.api_key: str | None = (
            api_key
            or os.getenv("ANTHROPIC_API_KEY")
            or os.getenv("CLAUDE_CODE_OAUTH_TOKEN")
        )
        self.openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
        self._anthropic_client: Anthropic | None = None
        self._openai_client: openai.OpenAI | None = None

        if self.api_key:
            self._anthropic_client = Anthropic(api_key=self.api_key)
        if self.openai_api_key:
            self._openai_client = openai.OpenAI(api_key=self.openai_api_key)

        if not (self._anthropic_client or self._openai_client):
            raise ProviderConfigError(
                "No Anthropic or OpenAI API key found. "
                "Provide via parameter, ANTHROPIC_API_KEY, CLAUDE_CODE_OAUTH_TOKEN, "
                "or OPENAI_API_KEY env vars."
            )
        self.set_provider_config(
            llm_provider=llm_provider,
            llm_fallback_provider=llm_fallback_provider,
            allow_fallback=allow_fallback,
        )

    def _normalize_provider(
        self,
        value: str,
    ) -> Literal["anthropic", "openai", "auto"]:
        if value not in {"auto", "anthropic", "openai"}:
            raise ProviderConfigError(f"Unsupported provider: {value}")
        return value

    def set_provider_config(
        self,
        llm_provider: str = "auto",
        llm_fallback_provider: str | None = None,
        allow_fallback: bool = False,
    ) -> None:
        self.llm_provider = self._normalize_provider(llm_provider)
        self.llm_fallback_provider = (
            self._normalize_provider(llm_fallback_provider)
            if llm_fallback_provider
            else None
        )
        self.allow_fallback = bool(allow_fallback)

        if self.llm_provider == "anthropic" and self._anthropic_client is None:
            raise ProviderConfigError(
                "No Anthropic API key found for --llm-provider=anthropic."
            )
        if self.llm_provider == "openai" and self._openai_client is None:
            raise ProviderConfigError("No OpenAI API key found for --llm-provider=openai.")
        if self.allow_fallback and self.llm_fallback_provider:
            if self.llm_fallback_provider == "anthropic" and self._anthropic_client is None:
                raise ProviderConfigError(
                    "Fallback provider requested as anthropic but ANTHROPIC_API_KEY is not set."
                )
            if self.llm_fallback_provider == "openai" and self._openai_client is None:
                raise ProviderConfigError(
                    "Fallback provider requested as openai but OPENAI_API_KEY is not set."
                )

    def _primary_provider(self) -> Literal["anthropic", "openai"]:
        if self.llm_provider == "auto":
            if self._anthropic_client is not None:
                return "anthropic"
            return "openai"
        return self.llm_provider

    def _resolve_model(self, provider: str) -> str:
        if provider == "openai" and self.model.startswith("claude-"):
            return OPENAI_DEFAULT_MODEL
        return self.model

    def provider_chain(self) -> list[str]:
        chain: list[str] = [self._primary_provider()]
        if self.allow_fallback and self.llm_fallback_provider:
            fallback = self.llm_fallback_provider
            if fallback != chain[0]:
                chain.append(fallback)
        return chain

    def _call_chain(self, call) -> tuple[str, Any]:
        """Run ``call(provider)`` along the provider chain.

        Returns:
            (provider, raw response) of the first provider that answered.

        Raises:
            AgentError: Wrapping the last provider error.
        """
        last_error: Exception | None = None
        for provider in self.provider_chain():
            try:
                return provider, call(provider)
            except Exception as error:
                last_error = error
                logger.warning(
                    "LLM call via %s failed: %s: %s",
                    provider,
                    type(error).__name__,
                    error,
                )
        raise AgentError(f"Failed to call LLM: {last_error}") from last_error

    def complete_text(self, system_prompt: str, user_prompt: str) -> str:
        """Return the text reply for a single-turn conversation.

        Raises:
            AgentError: If every provider fails or the reply has no text.
        """

        def call(provider: str) -> Any:
            if provider == "anthropic":
                if not self._anthropic_client:
                    raise AgentError("Anthropic client unavailable")
                return self._anthropic_client.messages.create(
                    model=self._resolve_model("anthropic"),
                    max_tokens=self.max_tokens,
                    system=system_prompt,
                    messages=[{"role": "user", "content": user_prompt}],
                )
            if not self._openai_client:
                raise AgentError("OpenAI client unavailable")
            return self._openai_client.chat.completions.create(
                model=self._resolve_model("openai"),
                max_tokens=self.max_tokens,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )

        provider, response = self._call_chain(call)
        if provider == "openai":
            text = response.choices[0].message.content
        else:
            text = None
            for block in response.content:
                if block.type == "text":
                    text = block.text
                    break
        if not isinstance(text, str):
            raise AgentError(f"Unexpected response type from {provider}")
        return text

    def call_tool(
        self,
        system_prompt: str,
        user_prompt: str,
        tool_schema: dict[str, Any],
    ) -> dict[str, Any]:
        """Force a single tool call and return its input arguments.

        Raises:
            AgentError: If every provider fails or no tool call is returned.
        """

        def call(provider: str) -> Any:
            if provider == "anthropic":
                if not self._anthropic_client:
                    raise AgentError("Anthropic client unavailable")
                return self._anthropic_client.messages.create(
                    model=self._resolve_model("anthropic"),
                    max_tokens=self.max_tokens,
                    system=system_prompt,
                    tools=[tool_schema],
                    tool_choice={"type": "tool", "name": tool_schema["name"]},
                    messages=[{"role": "user", "content": user_prompt}],
                )
            if not self._openai_client:
                raise AgentError("OpenAI client unavailable")
            return self._openai_client.chat.completions.create(
                model=self._resolve_model("openai"),
                max_tokens=self.max_tokens,
                tools=[self._get_openai_tool_schema(tool_schema)],
                tool_choice={
                    "type": "function",
                    "function": {"name": tool_schema["name"]},
                },
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )

        provider, response = self._call_chain(call)
        if provider == "openai":
            return self._parse_openai_tool_payload(response)

        for block in response.content:
            if block.type == "tool_use" and block.name == tool_schema["name"]:
                if not isinstance(block.input, dict):
                    raise AgentError("Tool input was not a JSON object")
                return block.input
        raise AgentError(f"No tool_use block named {tool_schema['name']} in response")

    def _get_openai_tool_schema(self, schema: dict[str, Any]) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": schema["name"],
                "description": schema.get("description", ""),
                "parameters": schema.get("input_schema", {}),
            },
        }

    def _parse_openai_tool_payload(self, response: Any) -> dict[str, Any]:
        message = response.choices[0].message
        tool_calls = getattr(message, "tool_calls", None)
        if not tool_calls:
            raise AgentError("No tool call found in OpenAI response")
        call = tool_calls[0]
        if getattr(call, "type", "function") != "function":
            raise AgentError("OpenAI tool call type is not function")
        try:
            args = json.loads(call.function.arguments or "{}")
        except json.JSONDecodeError as exc:
            raise AgentError(f"OpenAI tool arguments were not valid JSON: {exc}") from exc
        if not isinstance(args, dict):
            raise AgentError("OpenAI tool arguments were not a valid JSON object")
        return args
