"""Tests for SuggestionManager and UndoStack."""

import threading

import pytest

from revision_bot.agents.exceptions import GenerationFailedError
from revision_bot.engine.exceptions import (
    ContentValidationError,
    NoPendingSuggestionError,
    ProposalCancelledError,
    SuggestionAlreadyPendingError,
    UndoStackEmptyError,
)
from revision_bot.engine.suggestions import UndoStack
from revision_bot.models import DiffLineType, DraftResult, SelectionRange, SuggestionStatus
from revision_bot.utils.diff_generator import reconstruct_new, reconstruct_old


class TestUndoStack:
    def test_lifo(self):
        stack = UndoStack()
        stack.push("a")
        stack.push("b")
        assert stack.peek() == "b"
        assert stack.pop() == "b"
        assert stack.pop() == "a"
        assert len(stack) == 0

    def test_pop_empty_raises(self):
        with pytest.raises(UndoStackEmptyError):
            UndoStack().pop()

    def test_depth_limit_drops_oldest(self):
        stack = UndoStack(max_depth=2)
        for content in ("a", "b", "c"):
            stack.push(content)
        assert len(stack) == 2
        assert stack.pop() == "c"
        assert stack.pop() == "b"
        assert not stack

    def test_clear(self):
        stack = UndoStack()
        stack.push("a")
        stack.clear()
        assert stack.peek() is None


class TestPropose:
    def test_creates_pending_suggestion(self, manager, document, mock_drafter):
        original = document.current_content
        suggestion = manager.propose(document, "Add SSO")

        assert suggestion.status == SuggestionStatus.PENDING
        assert suggestion.original_content == original
        assert suggestion.suggested_content == original + "- Add SSO\n"
        assert suggestion.explanation == "Applied: Add SSO"
        assert document.current_content == original
        assert manager.pending_for(document) is suggestion
        assert [line.type for line in suggestion.diff if line.type != DiffLineType.UNCHANGED] == [
            DiffLineType.ADD
        ]
        mock_drafter.generate_edit.assert_called_once_with(
            original, "Add SSO", selection=None, filename="login.md"
        )

    def test_passes_selection(self, manager, document, mock_drafter):
        selection = SelectionRange(start=0, end=7)
        suggestion = manager.propose(document, "Rename", selection=selection)
        assert suggestion.selection == selection
        assert mock_drafter.generate_edit.call_args.kwargs["selection"] == selection

    def test_second_proposal_rejected(self, manager, document, mock_drafter):
        manager.propose(document, "one")
        with pytest.raises(SuggestionAlreadyPendingError):
            manager.propose(document, "two")
        assert mock_drafter.generate_edit.call_count == 1

    def test_replace_supersedes(self, manager, document):
        first = manager.propose(document, "one")
        second = manager.propose(document, "two", replace=True)
        assert first.status == SuggestionStatus.SUPERSEDED
        assert manager.pending_for(document) is second

    def test_generation_failure_leaves_nothing(self, manager, document, mock_drafter):
        original = document.current_content
        mock_drafter.generate_edit.side_effect = GenerationFailedError("Drafting failed")
        with pytest.raises(GenerationFailedError):
            manager.propose(document, "Add SSO")
        assert manager.pending_for(document) is None
        assert document.current_content == original

    def test_no_changes_is_flagged(self, manager, document, mock_drafter):
        mock_drafter.generate_edit.side_effect = None
        mock_drafter.generate_edit.return_value = DraftResult(
            updated_content=document.current_content, explanation="Nothing to do"
        )
        suggestion = manager.propose(document, "Fix typos")
        assert suggestion.has_changes is False
        assert manager.pending_for(document) is suggestion

    @pytest.mark.parametrize("instruction", ["", "   ", "x" * 1001])
    def test_invalid_instruction(self, manager, document, instruction):
        with pytest.raises(ContentValidationError):
            manager.propose(document, instruction)

    def test_oversized_document(self, manager, document, settings):
        document.current_content = "x" * (settings.max_content_length + 1)
        with pytest.raises(ContentValidationError):
            manager.propose(document, "shorten")


class TestCancellation:
    def test_cancelled_before_drafting(self, manager, document, mock_drafter):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(ProposalCancelledError):
            manager.propose(document, "Add SSO", cancel_event=cancel)
        mock_drafter.generate_edit.assert_not_called()

    def test_cancelled_while_drafting(self, manager, document, mock_drafter):
        cancel = threading.Event()

        def slow_edit(current_content, instruction, **kwargs):
            cancel.set()
            return DraftResult(updated_content="late\n", explanation="late")

        mock_drafter.generate_edit.side_effect = slow_edit
        original = document.current_content
        with pytest.raises(ProposalCancelledError):
            manager.propose(document, "Add SSO", cancel_event=cancel)
        assert manager.pending_for(document) is None
        assert document.current_content == original


class TestAcceptReject:
    def test_accept_replaces_content_and_pushes_undo(self, manager, document):
        original = document.current_content
        suggestion = manager.propose(document, "Add SSO")
        undo = UndoStack()

        result = manager.accept(suggestion, undo)

        assert result is document
        assert document.current_content == suggestion.suggested_content
        assert suggestion.status == SuggestionStatus.ACCEPTED
        assert manager.pending_for(document) is None
        assert undo.pop() == original

    def test_accept_twice_rejected(self, manager, document):
        suggestion = manager.propose(document, "Add SSO")
        manager.accept(suggestion)
        with pytest.raises(NoPendingSuggestionError):
            manager.accept(suggestion)

    def test_reject_keeps_document(self, manager, document):
        original = document.current_content
        suggestion = manager.propose(document, "Add SSO")
        manager.reject(suggestion)
        assert suggestion.status == SuggestionStatus.REJECTED
        assert document.current_content == original
        assert manager.pending_for(document) is None

    def test_superseded_suggestion_cannot_be_accepted(self, manager, document):
        first = manager.propose(document, "one")
        manager.propose(document, "two", replace=True)
        with pytest.raises(NoPendingSuggestionError):
            manager.accept(first)

    def test_discard(self, manager, document):
        suggestion = manager.propose(document, "Add SSO")
        assert manager.discard(document) is suggestion
        assert manager.pending_for(document) is None
        assert manager.discard(document) is None


class TestRefine:
    def test_refine_diffs_against_original(self, manager, document, mock_drafter):
        original = document.current_content
        first = manager.propose(document, "Add SSO")
        refined = manager.refine(first, "Mention GitHub")

        assert first.status == SuggestionStatus.REFINED
        assert refined.command == "Add SSO → Mention GitHub"
        assert refined.original_content == original
        assert refined.suggested_content == first.suggested_content + "- Mention GitHub\n"
        assert reconstruct_old(refined.diff) == original
        assert reconstruct_new(refined.diff) == refined.suggested_content
        assert manager.pending_for(document) is refined

        args, kwargs = mock_drafter.generate_edit.call_args
        assert args == (first.suggested_content, "Mention GitHub")
        assert kwargs["previous_instruction"] == "Add SSO"

    def test_refine_chain_keeps_original(self, manager, document):
        original = document.current_content
        suggestion = manager.propose(document, "a")
        suggestion = manager.refine(suggestion, "b")
        suggestion = manager.refine(suggestion, "c")
        assert suggestion.command == "a → b → c"
        assert reconstruct_old(suggestion.diff) == original

    def test_refine_failure_keeps_pending(self, manager, document, mock_drafter):
        first = manager.propose(document, "Add SSO")
        mock_drafter.generate_edit.side_effect = GenerationFailedError("Drafting failed")
        with pytest.raises(GenerationFailedError):
            manager.refine(first, "Mention GitHub")
        assert first.status == SuggestionStatus.PENDING
        assert manager.pending_for(document) is first

    def test_refine_resolved_suggestion_rejected(self, manager, document):
        suggestion = manager.propose(document, "Add SSO")
        manager.reject(suggestion)
        with pytest.raises(NoPendingSuggestionError):
            manager.refine(suggestion, "again")


def test_concurrent_proposals_register_one(manager, document, mock_drafter):
    barrier = threading.Barrier(2, timeout=5)

    def generate_edit(current_content, instruction, **kwargs):
        barrier.wait()
        return DraftResult(updated_content=current_content + instruction, explanation="x")

    mock_drafter.generate_edit.side_effect = generate_edit
    outcomes: list[object] = []

    def propose(instruction):
        try:
            outcomes.append(manager.propose(document, instruction))
        except SuggestionAlreadyPendingError as exc:
            outcomes.append(exc)

    threads = [threading.Thread(target=propose, args=(name,)) for name in ("one", "two")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    errors = [item for item in outcomes if isinstance(item, SuggestionAlreadyPendingError)]
    assert len(outcomes) == 2
    assert len(errors) == 1
    assert manager.pending_for(document).command in ("one", "two")
