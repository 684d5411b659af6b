"""Read-only access to the external document work queue."""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from revision_bot.models import Document, QueueItem, QueueStatus
from revision_bot.storage.document_store import DocumentStore

logger = logging.getLogger(__name__)

QUEUE_FILE = Path("planning") / "prd-queue.json"


class QueueStore:
    """Exposes queue status records without interpreting them."""

    def __init__(self, documents: DocumentStore) -> None:
        self.documents = documents

    def list_items(self, instance_id: str) -> list[QueueItem]:
        """Return queue items for an instance; a missing or unreadable queue is empty."""
        path = self.documents.resolve_instance(instance_id) / QUEUE_FILE
        if not path.is_file():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return [QueueItem.model_validate(item) for item in data.get("queue", [])]
        except (json.JSONDecodeError, AttributeError, ValidationError) as exc:
            # Owned by the external scheduler
            logger.warning("Ignoring unreadable queue file %s: %s", path, exc)
            return []

    def status_for(self, instance_id: str, filename: str) -> QueueStatus | None:
        for item in self.list_items(instance_id):
            if item.filename == filename:
                return item.status
        return None

    def annotate(self, document: Document) -> Document:
        """Copy the queue status onto ``document.queue_status``."""
        document.queue_status = self.status_for(document.instance_id, document.filename)
        return document
