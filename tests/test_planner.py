"""Tests for Planner agent."""

from unittest.mock import MagicMock

import pytest

from revision_bot.agents.exceptions import AgentError, PlanGenerationError
from revision_bot.agents.planner import (
    MAX_PLANNED_DOCUMENTS,
    MAX_TRANSCRIPT_MESSAGES,
    Planner,
    planned_filename,
)
from revision_bot.models import ConversationMessage


@pytest.fixture
def transcript():
    return [
        ConversationMessage(role="user", content="I want a login page with SSO"),
        ConversationMessage(role="assistant", content="Which providers?"),
        ConversationMessage(role="user", content="Google and GitHub"),
    ]


def _document(index: int, **overrides) -> dict:
    data = {
        "id": f"prd-{index}",
        "filename": f"feature-{index}.md",
        "title": f"Feature {index}",
        "content": f"# Feature {index}\n",
    }
    data.update(overrides)
    return data


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.call_tool.return_value = {
        "title": "Login",
        "summary": "Login with SSO",
        "documents": [
            _document(0, filename="sso login"),
            _document(1, priority="high", dependencies=["prd-0"]),
        ],
        "complexity": "medium",
        "suggested_order": [1, 0],
    }
    return client


def test_planned_filename():
    assert planned_filename("sso login") == "sso_login.md"
    assert planned_filename("api.md") == "api.md"
    assert planned_filename("../etc/passwd") == ".._etc_passwd.md"


def test_generate_plan(mock_client, transcript):
    plan = Planner(mock_client).generate_plan(transcript)
    assert plan.title == "Login"
    assert [doc.filename for doc in plan.documents] == ["sso_login.md", "feature-1.md"]
    assert plan.documents[1].priority == "high"
    assert plan.documents[1].dependencies == ["prd-0"]
    assert plan.suggested_order == [1, 0]


def test_prompt_contains_conversation_and_request(mock_client, transcript):
    Planner(mock_client).generate_plan(transcript, user_request="Keep it small")
    system_prompt, prompt, schema = mock_client.call_tool.call_args.args
    assert "User: I want a login page with SSO" in prompt
    assert "Assistant: Which providers?" in prompt
    assert "Keep it small" in prompt
    assert schema["name"] == "submit_plan"


def test_only_recent_messages_sent(mock_client):
    transcript = [
        ConversationMessage(role="user", content=f"message {index}")
        for index in range(MAX_TRANSCRIPT_MESSAGES + 5)
    ]
    Planner(mock_client).generate_plan(transcript)
    prompt = mock_client.call_tool.call_args.args[1]
    assert "message 4\n" not in prompt
    assert "message 5" in prompt


def test_empty_transcript_rejected(mock_client):
    with pytest.raises(PlanGenerationError):
        Planner(mock_client).generate_plan([])
    mock_client.call_tool.assert_not_called()


def test_invalid_order_falls_back_to_document_order(mock_client, transcript):
    mock_client.call_tool.return_value["suggested_order"] = [0, 0]
    plan = Planner(mock_client).generate_plan(transcript)
    assert plan.suggested_order == [0, 1]


def test_missing_order_defaults(mock_client, transcript):
    del mock_client.call_tool.return_value["suggested_order"]
    assert Planner(mock_client).generate_plan(transcript).suggested_order == [0, 1]


def test_no_documents_rejected(mock_client, transcript):
    mock_client.call_tool.return_value["documents"] = []
    with pytest.raises(PlanGenerationError):
        Planner(mock_client).generate_plan(transcript)


def test_too_many_documents_rejected(mock_client, transcript):
    mock_client.call_tool.return_value["documents"] = [
        _document(index) for index in range(MAX_PLANNED_DOCUMENTS + 1)
    ]
    with pytest.raises(PlanGenerationError):
        Planner(mock_client).generate_plan(transcript)


def test_malformed_document_rejected(mock_client, transcript):
    mock_client.call_tool.return_value["documents"] = [{"id": "x"}]
    with pytest.raises(PlanGenerationError):
        Planner(mock_client).generate_plan(transcript)


def test_unusable_filename_rejected(mock_client, transcript):
    mock_client.call_tool.return_value["documents"] = [_document(0, filename=".md")]
    with pytest.raises(PlanGenerationError):
        Planner(mock_client).generate_plan(transcript)


def test_missing_title_rejected(mock_client, transcript):
    del mock_client.call_tool.return_value["title"]
    with pytest.raises(PlanGenerationError):
        Planner(mock_client).generate_plan(transcript)


def test_client_failure_wrapped(mock_client, transcript):
    mock_client.call_tool.side_effect = AgentError("Failed to call LLM: boom")
    with pytest.raises(PlanGenerationError, match="boom"):
        Planner(mock_client).generate_plan(transcript)
