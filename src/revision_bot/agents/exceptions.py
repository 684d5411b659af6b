"""Exceptions for drafting agent operations."""


class AgentError(Exception):
    """Base exception for all drafting agent operations."""


class ProviderConfigError(AgentError):
    """Raised when no usable LLM provider is configured."""


class GenerationFailedError(AgentError):
    """Raised when the drafting capability errors or returns empty content."""


class PlanGenerationError(AgentError):
    """Raised when a plan cannot be generated or parsed."""
