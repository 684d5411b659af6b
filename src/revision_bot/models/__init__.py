"""Data models for the revision bot."""

from revision_bot.models.batch_models import (
    BatchEditReport,
    BatchEditResult,
    BatchEditSummary,
)
from revision_bot.models.diff_models import DiffLine, DiffLineType, DiffStats
from revision_bot.models.document_models import (
    Document,
    DocumentKey,
    QueueItem,
    QueueStatus,
    Version,
    VersionAuthor,
)
from revision_bot.models.plan_models import (
    ConversationMessage,
    GeneratedPlan,
    PlannedDocument,
)
from revision_bot.models.suggestion_models import (
    DraftResult,
    SelectionRange,
    Suggestion,
    SuggestionStatus,
)

__all__ = [
    "BatchEditReport",
    "BatchEditResult",
    "BatchEditSummary",
    "ConversationMessage",
    "DiffLine",
    "DiffLineType",
    "DiffStats",
    "Document",
    "DocumentKey",
    "DraftResult",
    "GeneratedPlan",
    "PlannedDocument",
    "QueueItem",
    "QueueStatus",
    "SelectionRange",
    "Suggestion",
    "SuggestionStatus",
    "Version",
    "VersionAuthor",
]
