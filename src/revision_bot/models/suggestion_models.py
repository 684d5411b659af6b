"""Suggestion models for drafted edits."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from revision_bot.models.diff_models import DiffLine, DiffLineType, DiffStats


class SuggestionStatus(str, Enum):
    """Lifecycle state of a suggestion."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    REFINED = "refined"  # Replaced by a refinement
    SUPERSEDED = "superseded"  # Replaced by an explicit re-propose


class SelectionRange(BaseModel):
    """Character offsets of a highlighted sub-range of the document."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(ge=0)
    end: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "SelectionRange":
        if self.end < self.start:
            raise ValueError("selection end must not precede start")
        return self


class DraftResult(BaseModel):
    """Reply of the drafting capability for one edit request."""

    model_config = ConfigDict(frozen=True)

    updated_content: str
    explanation: str


class Suggestion(BaseModel):
    """A drafted edit awaiting accept / reject / refine."""

    model_config = ConfigDict(frozen=False)

    id: str
    instance_id: str
    filename: str
    command: str
    original_content: str  # Fixed for the whole refine chain
    suggested_content: str
    explanation: str
    diff: list[DiffLine] = Field(default_factory=list)
    selection: SelectionRange | None = None
    status: SuggestionStatus = SuggestionStatus.PENDING
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_changes(self) -> bool:
        """False when the draft is identical to the original content."""
        return any(line.type != DiffLineType.UNCHANGED for line in self.diff)

    @property
    def is_pending(self) -> bool:
        return self.status == SuggestionStatus.PENDING

    @property
    def stats(self) -> DiffStats:
        # utils.diff_generator imports this package
        from revision_bot.utils.diff_generator import diff_stats

        return diff_stats(self.diff)
