"""Revision engine: suggestions, version history and batch edits."""

from revision_bot.engine.batch import BatchEditCoordinator, build_batch_graph
from revision_bot.engine.exceptions import (
    BatchGraphError,
    BatchValidationError,
    ContentValidationError,
    NoPendingSuggestionError,
    ProposalCancelledError,
    RevisionError,
    SuggestionAlreadyPendingError,
    SuggestionError,
    UndoStackEmptyError,
    VersionConflictError,
    VersionError,
    VersionNotFoundError,
)
from revision_bot.engine.state import BatchEditState, make_initial_state
from revision_bot.engine.suggestions import (
    CommandAction,
    CommandOutcome,
    EditSession,
    SuggestionManager,
    UndoStack,
)
from revision_bot.engine.versions import VersionStore

__all__ = [
    "BatchEditCoordinator",
    "BatchEditState",
    "BatchGraphError",
    "BatchValidationError",
    "CommandAction",
    "CommandOutcome",
    "ContentValidationError",
    "EditSession",
    "NoPendingSuggestionError",
    "ProposalCancelledError",
    "RevisionError",
    "SuggestionAlreadyPendingError",
    "SuggestionError",
    "SuggestionManager",
    "UndoStack",
    "UndoStackEmptyError",
    "VersionConflictError",
    "VersionError",
    "VersionNotFoundError",
    "VersionStore",
    "build_batch_graph",
    "make_initial_state",
]
