"""Append-only version history with history-preserving revert."""

import logging
import uuid
from datetime import datetime, timezone

from revision_bot.config import RevisionSettings
from revision_bot.engine.exceptions import (
    ContentValidationError,
    VersionConflictError,
    VersionNotFoundError,
)
from revision_bot.models import Document, Version, VersionAuthor
from revision_bot.storage import DocumentStore, HeadMovedError

logger = logging.getLogger(__name__)

DEFAULT_SAVE_MESSAGE = "Manual save"
_NO_HEAD_CHECK = object()


class VersionStore:
    """Saves, lists and reverts document versions.

    History is only ever appended to: ``revert`` writes the old content back
    as a new head version.
    """

    def __init__(self, store: DocumentStore, settings: RevisionSettings | None = None) -> None:
        self.store = store
        self.settings = settings or RevisionSettings()

    def save(
        self,
        document: Document,
        content: str,
        message: str | None = None,
        author: VersionAuthor = VersionAuthor.HUMAN,
        expected_head_id: object = _NO_HEAD_CHECK,
    ) -> Version:
        """Append a new version and make ``content`` current.

        Args:
            document: Document to save; updated in place on success.
            content: Content of the new version.
            message: Commit message, "Manual save" when empty.
            author: Who produced the content.
            expected_head_id: When given (None meaning "no versions yet"),
                the save fails if the stored head is a different version.

        Returns:
            The new head Version.

        Raises:
            ContentValidationError: If content exceeds the configured limit.
            VersionConflictError: If the stored head moved.
        """
        if len(content) > self.settings.max_content_length:
            raise ContentValidationError(
                f"Content exceeds maximum length of {self.settings.max_content_length} characters"
            )
        message = (message or "").strip() or DEFAULT_SAVE_MESSAGE
        message = message[: self.settings.max_message_length]

        version = Version(
            id=uuid.uuid4().hex,
            timestamp=datetime.now(timezone.utc),
            content=content,
            commit_message=message,
            author=author,
        )
        check_head = expected_head_id is not _NO_HEAD_CHECK
        try:
            stored = self.store.append_version(
                document.key,
                version,
                expected_head_id=expected_head_id if check_head else None,
                check_head=check_head,
            )
        except HeadMovedError as exc:
            raise VersionConflictError(
                f"{document.filename} changed since it was loaded "
                f"(expected {exc.expected}, found {exc.actual})"
            ) from exc

        document.versions = self.store.read_versions(document.key)
        document.current_content = stored.content
        logger.info(
            "Saved %s version %s of %s",
            stored.author.value,
            stored.id[:8],
            document.filename,
        )
        return stored

    def list(self, document: Document) -> list[Version]:
        """Return the document's versions newest-first, refreshing the document."""
        document.versions = self.store.read_versions(document.key)
        return list(document.versions)

    def get(self, document: Document, version_id: str) -> Version:
        """Look up one version.

        Raises:
            VersionNotFoundError: If the id is unknown for this document.
        """
        for version in self.list(document):
            if version.id == version_id:
                return version
        raise VersionNotFoundError(
            f"Version {version_id} not found for {document.filename}"
        )

    def revert(self, document: Document, version_id: str) -> Version:
        """Restore an old version's content as a new head version.

        Raises:
            VersionNotFoundError: If the id is unknown for this document.
        """
        target = self.get(document, version_id)
        return self.save(
            document,
            target.content,
            message=f"Reverted to version {version_id[:8]}",
            author=VersionAuthor.HUMAN,
        )
