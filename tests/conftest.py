from pathlib import Path
from unittest.mock import MagicMock

import pytest

from revision_bot.config import RevisionSettings
from revision_bot.engine.suggestions import SuggestionManager
from revision_bot.engine.versions import VersionStore
from revision_bot.models import DraftResult
from revision_bot.storage import DocumentStore

SAMPLE_PRD = "# Login\n\n## Goals\n\n- Email login\n- Password reset\n"


@pytest.fixture
def allowed_base(tmp_path) -> Path:
    base = tmp_path / "managers"
    base.mkdir()
    return base


@pytest.fixture
def instance_dir(allowed_base) -> Path:
    instance = allowed_base / "project"
    (instance / "prds").mkdir(parents=True)
    return instance


@pytest.fixture
def write_document(instance_dir):
    """Write a document file into the instance and return its path."""

    def _write(filename: str = "login.md", content: str = SAMPLE_PRD) -> Path:
        path = instance_dir / "prds" / filename
        with open(path, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        return path

    return _write


@pytest.fixture
def settings(allowed_base) -> RevisionSettings:
    return RevisionSettings(allowed_base=str(allowed_base))


@pytest.fixture
def store(settings) -> DocumentStore:
    return DocumentStore(settings.allowed_base)


@pytest.fixture
def version_store(store, settings) -> VersionStore:
    return VersionStore(store, settings)


@pytest.fixture
def document(store, instance_dir, write_document):
    write_document()
    return store.open_document(str(instance_dir), "login.md")


@pytest.fixture
def mock_drafter():
    """Drafter double that appends a line to whatever content it is given."""
    drafter = MagicMock()

    def generate_edit(current_content, instruction, **kwargs):
        return DraftResult(
            updated_content=current_content + f"- {instruction}\n",
            explanation=f"Applied: {instruction}",
        )

    drafter.generate_edit.side_effect = generate_edit
    return drafter


@pytest.fixture
def manager(mock_drafter, settings) -> SuggestionManager:
    return SuggestionManager(mock_drafter, settings)
