"""Document persistence for the revision bot."""

from revision_bot.storage.document_store import (
    DocumentStore,
    atomic_write_text,
    sanitize_filename,
)
from revision_bot.storage.exceptions import (
    CorruptHistoryError,
    DocumentNotFoundError,
    HeadMovedError,
    InvalidDocumentNameError,
    PathNotAllowedError,
    StorageError,
)
from revision_bot.storage.queue_store import QueueStore

__all__ = [
    "CorruptHistoryError",
    "DocumentNotFoundError",
    "DocumentStore",
    "HeadMovedError",
    "InvalidDocumentNameError",
    "PathNotAllowedError",
    "QueueStore",
    "StorageError",
    "atomic_write_text",
    "sanitize_filename",
]
