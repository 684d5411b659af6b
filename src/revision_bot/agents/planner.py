"""Planner agent that turns a planning conversation into a document plan."""

import logging
from typing import Any

from pydantic import ValidationError

from revision_bot.agents.exceptions import AgentError, PlanGenerationError
from revision_bot.agents.llm_client import LLMClient
from revision_bot.models import ConversationMessage, GeneratedPlan, PlannedDocument
from revision_bot.storage import InvalidDocumentNameError
from revision_bot.storage.document_store import DOCUMENT_SUFFIX, sanitize_filename

logger = logging.getLogger(__name__)

MAX_TRANSCRIPT_MESSAGES = 50
MAX_PLANNED_DOCUMENTS = 20

SYSTEM_PROMPT = """You are an expert software architect and technical writer. \
Your task is to analyze the conversation and generate detailed PRDs (Product \
Requirements Documents) for the project.

For each distinct feature or component that needs to be built, create a separate \
PRD in markdown with these sections: Overview, Goals, Target Directory, User Stories, \
Technical Requirements, Acceptance Criteria (as checkboxes), Out of Scope (v1), \
Priority, Estimated Complexity.

Guidelines:
1. Break down complex projects into separate PRDs
2. Be specific - include actual file paths, component names, API endpoints
3. If PRD B depends on PRD A, list A's id in B's dependencies
4. Keep scope manageable - each PRD should be completable in reasonable time

Return the plan with the submit_plan tool."""


def planned_filename(filename: str) -> str:
    """Turn a generated filename into a storable markdown document name."""
    cleaned = filename.strip() or "document"
    if not cleaned.endswith(DOCUMENT_SUFFIX):
        cleaned += DOCUMENT_SUFFIX
    return sanitize_filename(cleaned)


class Planner:
    """Generates a multi-document plan from a conversation transcript."""

    def __init__(self, client: LLMClient) -> None:
        self.client = client

    def generate_plan(
        self,
        transcript: list[ConversationMessage],
        user_request: str | None = None,
    ) -> GeneratedPlan:
        """Generate a plan of documents for a planning conversation.

        Args:
            transcript: Conversation so far; only the last 50 messages are sent.
            user_request: Optional extra request appended to the prompt.

        Returns:
            GeneratedPlan with sanitized filenames and a validated order.

        Raises:
            PlanGenerationError: On empty transcript, call failure or bad payload.
        """
        if not transcript:
            raise PlanGenerationError("Conversation messages are required")

        prompt = self._build_prompt(transcript, user_request)
        try:
            payload = self.client.call_tool(SYSTEM_PROMPT, prompt, self._get_tool_schema())
        except AgentError as exc:
            raise PlanGenerationError(f"Plan generation failed: {exc}") from exc

        plan = self._parse_plan(payload)
        logger.info("Generated plan '%s' with %d documents", plan.title, len(plan.documents))
        return plan

    def _build_prompt(
        self,
        transcript: list[ConversationMessage],
        user_request: str | None,
    ) -> str:
        conversation = "\n\n".join(
            f"{'User' if message.role == 'user' else 'Assistant'}: {message.content}"
            for message in transcript[-MAX_TRANSCRIPT_MESSAGES:]
        )
        prompt = f"## Conversation to Analyze\n\n{conversation}\n\n"
        if user_request:
            prompt += f"## Additional User Request\n\n{user_request}\n\n"
        prompt += (
            "## Your Task\n\nBased on this planning conversation, generate comprehensive "
            "PRDs that capture what the user wants to build. Break it down into logical, "
            "implementable features."
        )
        return prompt

    def _get_tool_schema(self) -> dict[str, Any]:
        return {
            "name": "submit_plan",
            "description": "Submit the generated plan of PRD documents",
            "input_schema": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "summary": {"type": "string"},
                    "documents": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "id": {"type": "string"},
                                "filename": {"type": "string"},
                                "title": {"type": "string"},
                                "content": {
                                    "type": "string",
                                    "description": "Full PRD markdown content",
                                },
                                "priority": {
                                    "type": "string",
                                    "enum": ["high", "medium", "low"],
                                },
                                "dependencies": {
                                    "type": "array",
                                    "items": {"type": "string"},
                                },
                                "estimated_iterations": {"type": "integer"},
                            },
                            "required": ["id", "filename", "title", "content"],
                        },
                    },
                    "complexity": {
                        "type": "string",
                        "enum": ["simple", "medium", "complex"],
                    },
                    "suggested_order": {
                        "type": "array",
                        "items": {"type": "integer"},
                    },
                },
                "required": ["title", "summary", "documents"],
            },
        }

    def _parse_plan(self, payload: dict[str, Any]) -> GeneratedPlan:
        """Validate the tool payload into a GeneratedPlan.

        Raises:
            PlanGenerationError: If the payload does not match the schema.
        """
        raw_documents = payload.get("documents") or []
        if not raw_documents:
            raise PlanGenerationError("Plan contains no documents")
        if len(raw_documents) > MAX_PLANNED_DOCUMENTS:
            raise PlanGenerationError(
                f"Too many documents in plan ({len(raw_documents)} > {MAX_PLANNED_DOCUMENTS})"
            )

        try:
            documents = [PlannedDocument.model_validate(item) for item in raw_documents]
            for document in documents:
                document.filename = planned_filename(document.filename)

            order = self._validate_order(payload.get("suggested_order"), len(documents))
            return GeneratedPlan(
                title=payload["title"],
                summary=payload["summary"],
                documents=documents,
                complexity=payload.get("complexity") or "medium",
                suggested_order=order,
            )
        except (KeyError, TypeError, ValidationError, InvalidDocumentNameError) as exc:
            raise PlanGenerationError(f"Invalid plan payload: {exc}") from exc

    def _validate_order(self, order: Any, count: int) -> list[int]:
        """Return the suggested order, or document order if it is unusable."""
        if (
            isinstance(order, list)
            and all(isinstance(idx, int) for idx in order)
            and sorted(order) == list(range(count))
        ):
            return order
        if order:
            logger.warning("Ignoring invalid suggested_order %r", order)
        return list(range(count))
