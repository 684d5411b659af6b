"""Document, version and queue models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VersionAuthor(str, Enum):
    """Who produced a saved version."""

    HUMAN = "human"
    ASSISTANT = "assistant"


# Author values written by older dashboards
_LEGACY_AUTHORS = {
    "user": VersionAuthor.HUMAN,
    "ai-command": VersionAuthor.ASSISTANT,
}


class QueueStatus(str, Enum):
    """Scheduling status kept by the external work queue."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class DocumentKey(BaseModel):
    """Identity of a document: (instance identifier, filename)."""

    model_config = ConfigDict(frozen=True)

    instance_id: str
    filename: str

    def __str__(self) -> str:
        return f"{self.instance_id}::{self.filename}"


class Version(BaseModel):
    """Immutable snapshot of a document's content."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    timestamp: datetime
    content: str
    commit_message: str = Field(alias="commitMessage")
    author: VersionAuthor = VersionAuthor.HUMAN

    @field_validator("author", mode="before")
    @classmethod
    def _map_legacy_author(cls, value: Any) -> Any:
        if isinstance(value, str) and value in _LEGACY_AUTHORS:
            return _LEGACY_AUTHORS[value]
        return value


class QueueItem(BaseModel):
    model_config = ConfigDict(frozen=False, populate_by_name=True)

    id: str
    filename: str
    title: str = ""
    priority: int = 0
    status: QueueStatus = QueueStatus.PENDING
    added_at: datetime | None = Field(default=None, alias="addedAt")
    estimated_iterations: int | None = Field(default=None, alias="estimatedIterations")


class Document(BaseModel):
    """A document under revision.

    ``versions`` is ordered newest-first. After any save ``current_content``
    equals ``versions[0].content``.
    """

    model_config = ConfigDict(frozen=False)

    instance_id: str
    filename: str
    current_content: str = ""
    versions: list[Version] = Field(default_factory=list)
    queue_status: QueueStatus | None = None

    @property
    def key(self) -> DocumentKey:
        return DocumentKey(instance_id=self.instance_id, filename=self.filename)

    @property
    def head(self) -> Version | None:
        return self.versions[0] if self.versions else None

    @property
    def is_dirty(self) -> bool:
        """True when current content differs from the latest saved version."""
        head = self.head
        if head is None:
            return bool(self.current_content)
        return head.content != self.current_content
