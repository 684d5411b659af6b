"""Exceptions for document persistence."""


class StorageError(Exception):
    """Base exception for document persistence operations."""


class PathNotAllowedError(StorageError):
    """Raised when an instance path resolves outside the allowed base directory."""


class InvalidDocumentNameError(StorageError):
    """Raised when a document filename is not an acceptable markdown name."""


class DocumentNotFoundError(StorageError):
    """Raised when a document file does not exist."""


class CorruptHistoryError(StorageError):
    """Raised when a version history file cannot be parsed."""


class HeadMovedError(StorageError):
    """Raised when the stored head version differs from the caller's expectation."""

    def __init__(self, expected: str | None, actual: str | None) -> None:
        super().__init__(f"Expected head version {expected}, found {actual}")
        self.expected = expected
        self.actual = actual
