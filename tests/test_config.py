"""Tests for RevisionSettings."""

import pytest
from pydantic import ValidationError

from revision_bot.config import DEFAULT_MODEL, RevisionSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in RevisionSettings.model_fields:
        monkeypatch.delenv(f"REVISION_{name.upper()}", raising=False)


def test_defaults():
    settings = RevisionSettings()
    assert settings.model == DEFAULT_MODEL
    assert settings.max_content_length == 200_000
    assert settings.max_instruction_length == 1000
    assert settings.max_message_length == 500
    assert settings.max_batch_documents == 10
    assert settings.undo_depth == 100
    assert settings.llm_provider == "auto"


def test_from_env_reads_prefixed_variables(monkeypatch):
    monkeypatch.setenv("REVISION_MAX_BATCH_DOCUMENTS", "5")
    monkeypatch.setenv("REVISION_LLM_PROVIDER", "openai")
    settings = RevisionSettings.from_env()
    assert settings.max_batch_documents == 5
    assert settings.llm_provider == "openai"


def test_from_env_ignores_empty_values(monkeypatch):
    monkeypatch.setenv("REVISION_MODEL", "")
    assert RevisionSettings.from_env().model == DEFAULT_MODEL


def test_overrides_win_over_env(monkeypatch):
    monkeypatch.setenv("REVISION_MODEL", "from-env")
    assert RevisionSettings.from_env(model="from-cli").model == "from-cli"
    assert RevisionSettings.from_env(model=None).model == "from-env"


def test_invalid_values_rejected(monkeypatch):
    monkeypatch.setenv("REVISION_UNDO_DEPTH", "lots")
    with pytest.raises(ValidationError):
        RevisionSettings.from_env()


def test_settings_are_frozen():
    settings = RevisionSettings()
    with pytest.raises(ValidationError):
        settings.model = "other"
