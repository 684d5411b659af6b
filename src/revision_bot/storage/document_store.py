"""Filesystem persistence for documents and their version histories.

Layout inside an instance directory::

    prds/<name>.md                          current document content
    .prd-versions/<name>.md.versions.json   {"versions": [...]}, newest first
    planning/prd-queue.json                 external scheduling queue
"""

import json
import logging
import os
import re
import tempfile
import threading
from datetime import timedelta
from pathlib import Path

from pydantic import ValidationError

from revision_bot.models import Document, DocumentKey, Version
from revision_bot.storage.exceptions import (
    CorruptHistoryError,
    DocumentNotFoundError,
    HeadMovedError,
    InvalidDocumentNameError,
    PathNotAllowedError,
    StorageError,
)

logger = logging.getLogger(__name__)

PRDS_DIR = "prds"
VERSIONS_DIR = ".prd-versions"
VERSIONS_SUFFIX = ".versions.json"
DOCUMENT_SUFFIX = ".md"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9_\-.]")


def sanitize_filename(filename: str) -> str:
    """Replace unsafe characters and require a markdown extension.

    Raises:
        InvalidDocumentNameError: If the result is not a usable .md name.
    """
    sanitized = _UNSAFE_FILENAME_CHARS.sub("_", filename)
    if not sanitized.endswith(DOCUMENT_SUFFIX) or sanitized.strip(".") == "md":
        raise InvalidDocumentNameError(
            f"Document '{filename}' must be a file with {DOCUMENT_SUFFIX} extension"
        )
    return sanitized


def atomic_write_text(path: Path, text: str) -> None:
    """Write text to a temp file beside ``path`` and rename it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class DocumentStore:
    """Reads and appends document content and version histories on disk.

    Appends for one document are serialized by a per-document lock and each
    file is replaced atomically, so a partially written version is never
    visible to readers.
    """

    def __init__(self, allowed_base: str | Path) -> None:
        self.allowed_base = Path(allowed_base).expanduser().resolve()
        self._locks: dict[DocumentKey, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def resolve_instance(self, instance_id: str) -> Path:
        """Resolve an instance id (its directory path) inside the allowed base.

        Raises:
            PathNotAllowedError: If the path escapes the allowed base.
        """
        resolved = Path(instance_id).expanduser().resolve()
        if not resolved.is_relative_to(self.allowed_base):
            raise PathNotAllowedError(f"Instance path '{instance_id}' is not allowed")
        return resolved

    def key_for(self, instance_id: str, filename: str) -> DocumentKey:
        instance_path = self.resolve_instance(instance_id)
        return DocumentKey(
            instance_id=str(instance_path),
            filename=sanitize_filename(filename),
        )

    def document_path(self, key: DocumentKey) -> Path:
        return Path(key.instance_id) / PRDS_DIR / key.filename

    def versions_path(self, key: DocumentKey) -> Path:
        return Path(key.instance_id) / VERSIONS_DIR / f"{key.filename}{VERSIONS_SUFFIX}"

    def lock_for(self, key: DocumentKey) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    def _require_instance(self, key: DocumentKey) -> None:
        if not Path(key.instance_id).is_dir():
            raise StorageError(f"Instance not found: {key.instance_id}")

    def open_document(
        self,
        instance_id: str,
        filename: str,
        create: bool = False,
    ) -> Document:
        """Load a document with its full version history.

        Args:
            instance_id: Instance directory path.
            filename: Document filename (sanitized).
            create: Return an empty document instead of failing when missing.

        Raises:
            DocumentNotFoundError: If the file is missing and ``create`` is False.
        """
        key = self.key_for(instance_id, filename)
        self._require_instance(key)
        path = self.document_path(key)
        with self.lock_for(key):
            if path.is_file():
                with open(path, encoding="utf-8", newline="") as handle:
                    content = handle.read()
            elif create:
                content = ""
            else:
                raise DocumentNotFoundError(f"Document not found: {key.filename}")
            versions = self.read_versions(key)

        return Document(
            instance_id=key.instance_id,
            filename=key.filename,
            current_content=content,
            versions=versions,
        )

    def list_documents(self, instance_id: str) -> list[str]:
        prds_dir = self.resolve_instance(instance_id) / PRDS_DIR
        if not prds_dir.is_dir():
            return []
        return sorted(
            path.name
            for path in prds_dir.iterdir()
            if path.is_file() and path.suffix == DOCUMENT_SUFFIX
        )

    def read_versions(self, key: DocumentKey) -> list[Version]:
        """Return the stored versions, newest first.

        Raises:
            CorruptHistoryError: If the history file exists but cannot be parsed.
        """
        path = self.versions_path(key)
        if not path.is_file():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return [Version.model_validate(item) for item in data.get("versions", [])]
        except (json.JSONDecodeError, AttributeError, ValidationError) as exc:
            raise CorruptHistoryError(f"Unreadable version history {path}: {exc}") from exc

    def append_version(
        self,
        key: DocumentKey,
        version: Version,
        expected_head_id: str | None = None,
        check_head: bool = False,
    ) -> Version:
        """Append a version and write its content as the current document.

        Args:
            key: Document identity.
            version: The new version.
            expected_head_id: Head id the caller based its change on.
            check_head: Enforce ``expected_head_id`` (None meaning "no versions yet").

        Returns:
            The stored version; its timestamp is bumped if needed so that
            timestamps strictly increase.

        Raises:
            HeadMovedError: If ``check_head`` is set and the head differs.
        """
        self._require_instance(key)
        with self.lock_for(key):
            versions = self.read_versions(key)
            head = versions[0] if versions else None
            if check_head and (head.id if head else None) != expected_head_id:
                raise HeadMovedError(
                    expected=expected_head_id,
                    actual=head.id if head else None,
                )

            if head is not None and version.timestamp <= head.timestamp:
                version = version.model_copy(
                    update={"timestamp": head.timestamp + timedelta(microseconds=1)}
                )

            payload = {
                "versions": [
                    item.model_dump(mode="json", by_alias=True)
                    for item in [version, *versions]
                ]
            }
            versions_path = self.versions_path(key)
            previous_history = (
                versions_path.read_text(encoding="utf-8") if versions_path.is_file() else None
            )
            atomic_write_text(versions_path, json.dumps(payload, indent=2))
            try:
                atomic_write_text(self.document_path(key), version.content)
            except Exception:
                # History must not get ahead of the document file.
                if previous_history is None:
                    versions_path.unlink(missing_ok=True)
                else:
                    atomic_write_text(versions_path, previous_history)
                raise

        logger.info(
            "Appended version %s to %s (%d total)",
            version.id[:8],
            key.filename,
            len(versions) + 1,
        )
        return version

