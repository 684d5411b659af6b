"""Exceptions for revision engine operations.

Note: names carry an Error suffix to avoid collisions with pydantic and stdlib names.
"""


class RevisionError(Exception):
    """Base exception for all revision engine operations."""


class ContentValidationError(RevisionError):
    """Raised when content, instructions or messages exceed configured limits."""


class SuggestionError(RevisionError):
    """Base exception for suggestion lifecycle operations."""


class SuggestionAlreadyPendingError(SuggestionError):
    """Raised when proposing while another suggestion is pending for the document."""


class NoPendingSuggestionError(SuggestionError):
    """Raised when resolving a suggestion that is not the pending one."""


class ProposalCancelledError(SuggestionError):
    """Raised when a proposal is cancelled before its reply is registered."""


class UndoStackEmptyError(RevisionError):
    """Raised when undoing with nothing left to undo."""


class VersionError(RevisionError):
    """Base exception for version history operations."""


class VersionNotFoundError(VersionError):
    """Raised when a version id does not exist for the document."""


class VersionConflictError(VersionError):
    """Raised when the document head moved since the caller last read it."""


class BatchValidationError(RevisionError):
    """Raised when a batch edit request is invalid as a whole."""


class BatchGraphError(RevisionError):
    """Raised when the batch edit graph cannot be built."""
