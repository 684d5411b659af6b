"""Batch edit result models."""

from pydantic import BaseModel, ConfigDict, Field

from revision_bot.models.diff_models import DiffLine


class BatchEditResult(BaseModel):
    model_config = ConfigDict(frozen=False)

    filename: str
    position: int  # Index of the document in the batch request
    success: bool
    diff: list[DiffLine] | None = None
    explanation: str | None = None
    error: str | None = None
    error_type: str | None = None  # Exception class name on failure
    no_changes: bool = False
    new_version_id: str | None = None  # Set when auto-save created a version
    suggestion_id: str | None = None  # Pending suggestion left for review


class BatchEditSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    successful: int = 0
    failed: int = 0


class BatchEditReport(BaseModel):
    model_config = ConfigDict(frozen=False)

    instruction: str
    auto_save: bool = False
    results: list[BatchEditResult] = Field(default_factory=list)
    summary: BatchEditSummary = Field(default_factory=BatchEditSummary)
