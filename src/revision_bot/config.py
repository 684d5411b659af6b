"""Runtime settings for the revision engine."""

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from revision_bot.utils.diff_generator import DEFAULT_MAX_DIFF_CELLS

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_ALLOWED_BASE = str(Path.home() / "claude-managers")

ENV_PREFIX = "REVISION_"


class RevisionSettings(BaseModel):
    """Limits and provider options shared by the engine, agents and CLI."""

    model_config = ConfigDict(frozen=True)

    allowed_base: str = DEFAULT_ALLOWED_BASE
    model: str = DEFAULT_MODEL
    llm_provider: Literal["auto", "anthropic", "openai"] = "auto"
    llm_fallback_provider: Literal["anthropic", "openai"] | None = None
    allow_llm_fallback: bool = False
    max_tokens: int = Field(default=8000, gt=0)
    max_content_length: int = Field(default=200_000, gt=0)
    max_instruction_length: int = Field(default=1000, gt=0)
    max_message_length: int = Field(default=500, gt=0)
    max_batch_documents: int = Field(default=10, gt=0)
    max_diff_cells: int = Field(default=DEFAULT_MAX_DIFF_CELLS, gt=0)
    undo_depth: int = Field(default=100, gt=0)

    @classmethod
    def from_env(cls, **overrides) -> "RevisionSettings":
        """Build settings from REVISION_* environment variables.

        Unset variables keep their defaults; keyword overrides win over both.
        Values are validated by pydantic, so a malformed integer raises
        ``pydantic.ValidationError``.
        """
        values: dict[str, str] = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
