"""Drafting agents for the revision bot."""

from revision_bot.agents.drafter import Drafter
from revision_bot.agents.exceptions import (
    AgentError,
    GenerationFailedError,
    PlanGenerationError,
    ProviderConfigError,
)
from revision_bot.agents.llm_client import LLMClient
from revision_bot.agents.planner import Planner

__all__ = [
    "AgentError",
    "Drafter",
    "GenerationFailedError",
    "LLMClient",
    "PlanGenerationError",
    "Planner",
    "ProviderConfigError",
]
