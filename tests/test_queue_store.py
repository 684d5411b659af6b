"""Tests for the read-only queue store."""

import json

from revision_bot.models import QueueStatus
from revision_bot.storage import QueueStore


def _write_queue(instance_dir, payload):
    planning = instance_dir / "planning"
    planning.mkdir(exist_ok=True)
    (planning / "prd-queue.json").write_text(
        payload if isinstance(payload, str) else json.dumps(payload)
    )


def test_missing_queue_is_empty(store, instance_dir):
    queue = QueueStore(store)
    assert queue.list_items(str(instance_dir)) == []
    assert queue.status_for(str(instance_dir), "login.md") is None


def test_status_for_document(store, instance_dir):
    _write_queue(
        instance_dir,
        {
            "queue": [
                {"id": "1", "filename": "login.md", "status": "in_progress", "priority": 1},
                {"id": "2", "filename": "billing.md", "status": "pending", "priority": 2},
            ]
        },
    )
    queue = QueueStore(store)
    assert queue.status_for(str(instance_dir), "login.md") == QueueStatus.IN_PROGRESS
    assert len(queue.list_items(str(instance_dir))) == 2


def test_annotate_sets_queue_status(store, instance_dir, document):
    _write_queue(
        instance_dir,
        {"queue": [{"id": "1", "filename": "login.md", "status": "completed"}]},
    )
    QueueStore(store).annotate(document)
    assert document.queue_status == QueueStatus.COMPLETED


def test_unreadable_queue_is_empty(store, instance_dir):
    _write_queue(instance_dir, "{broken")
    assert QueueStore(store).list_items(str(instance_dir)) == []
