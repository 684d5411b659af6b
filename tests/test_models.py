"""Tests for revision_bot data models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from revision_bot.models import (
    BatchEditReport,
    DiffLine,
    DiffLineType,
    Document,
    DocumentKey,
    QueueItem,
    QueueStatus,
    SelectionRange,
    Suggestion,
    SuggestionStatus,
    Version,
    VersionAuthor,
)
from revision_bot.utils.diff_generator import compute_line_diff


def make_version(version_id: str = "v1", content: str = "text\n") -> Version:
    return Version(
        id=version_id,
        timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
        content=content,
        commit_message="Manual save",
    )


class TestDiffLine:
    def test_defaults(self):
        line = DiffLine(type=DiffLineType.ADD, line_number=1, content="x")
        assert line.eol == ""
        assert line.old_content is None

    def test_frozen(self):
        line = DiffLine(type=DiffLineType.ADD, line_number=1, content="x")
        with pytest.raises(ValidationError):
            line.content = "y"


class TestSelectionRange:
    def test_valid_range(self):
        selection = SelectionRange(start=2, end=5)
        assert (selection.start, selection.end) == (2, 5)

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError):
            SelectionRange(start=5, end=2)

    def test_negative_offset_rejected(self):
        with pytest.raises(ValidationError):
            SelectionRange(start=-1, end=2)


class TestVersion:
    def test_reads_stored_aliases(self):
        version = Version.model_validate(
            {
                "id": "abc",
                "timestamp": "2025-01-01T10:00:00Z",
                "content": "# Doc\n",
                "commitMessage": "Initial",
                "author": "human",
            }
        )
        assert version.commit_message == "Initial"
        assert version.author == VersionAuthor.HUMAN

    @pytest.mark.parametrize(
        "stored, expected",
        [("user", VersionAuthor.HUMAN), ("ai-command", VersionAuthor.ASSISTANT)],
    )
    def test_legacy_author_values(self, stored, expected):
        version = Version.model_validate(
            {
                "id": "abc",
                "timestamp": "2025-01-01T10:00:00Z",
                "content": "",
                "commitMessage": "m",
                "author": stored,
            }
        )
        assert version.author == expected

    def test_dump_uses_stored_aliases(self):
        dumped = make_version().model_dump(mode="json", by_alias=True)
        assert dumped["commitMessage"] == "Manual save"
        assert dumped["author"] == "human"


class TestDocument:
    def test_head_is_newest(self):
        document = Document(
            instance_id="/i",
            filename="a.md",
            current_content="new\n",
            versions=[make_version("v2", "new\n"), make_version("v1", "old\n")],
        )
        assert document.head.id == "v2"
        assert document.is_dirty is False

    def test_dirty_without_versions(self):
        assert Document(instance_id="/i", filename="a.md", current_content="x").is_dirty
        assert not Document(instance_id="/i", filename="a.md").is_dirty

    def test_key_is_hashable(self):
        key = Document(instance_id="/i", filename="a.md").key
        assert key == DocumentKey(instance_id="/i", filename="a.md")
        assert {key: 1}[DocumentKey(instance_id="/i", filename="a.md")] == 1
        assert str(key) == "/i::a.md"


class TestSuggestion:
    def _make(self, original: str, suggested: str) -> Suggestion:
        return Suggestion(
            id="s1",
            instance_id="/i",
            filename="a.md",
            command="tighten",
            original_content=original,
            suggested_content=suggested,
            explanation="done",
            diff=compute_line_diff(original, suggested),
        )

    def test_pending_by_default(self):
        suggestion = self._make("a\n", "b\n")
        assert suggestion.status == SuggestionStatus.PENDING
        assert suggestion.is_pending

    def test_has_changes_and_stats(self):
        suggestion = self._make("a\n", "b\nc\n")
        assert suggestion.has_changes
        assert suggestion.stats.additions == 2
        assert suggestion.stats.deletions == 1

    def test_no_changes(self):
        assert self._make("a\n", "a\n").has_changes is False

    def test_timestamp_is_utc(self):
        assert self._make("a\n", "b\n").timestamp.tzinfo == timezone.utc


def test_queue_item_reads_stored_aliases():
    item = QueueItem.model_validate(
        {
            "id": "q1",
            "filename": "login.md",
            "status": "in_progress",
            "addedAt": "2025-01-01T00:00:00Z",
            "estimatedIterations": 3,
        }
    )
    assert item.status == QueueStatus.IN_PROGRESS
    assert item.estimated_iterations == 3


def test_batch_report_defaults():
    report = BatchEditReport(instruction="fix typos")
    assert report.results == []
    assert report.summary.total == 0
    assert report.auto_save is False
