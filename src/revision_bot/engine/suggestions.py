"""Suggestion lifecycle: propose, accept, reject and refine drafted edits."""

import logging
import threading
import uuid
from collections import deque
from enum import Enum
from typing import Protocol

from pydantic import BaseModel, ConfigDict

from revision_bot.config import RevisionSettings
from revision_bot.engine.exceptions import (
    ContentValidationError,
    NoPendingSuggestionError,
    ProposalCancelledError,
    SuggestionAlreadyPendingError,
    UndoStackEmptyError,
)
from revision_bot.engine.versions import VersionStore
from revision_bot.models import (
    Document,
    DocumentKey,
    DraftResult,
    SelectionRange,
    Suggestion,
    SuggestionStatus,
    Version,
    VersionAuthor,
)
from revision_bot.utils.diff_generator import compute_line_diff

logger = logging.getLogger(__name__)

REFINE_SEPARATOR = " → "
SAVE_MESSAGE_COMMANDS = 3


class DraftingCapability(Protocol):
    def generate_edit(
        self,
        current_content: str,
        instruction: str,
        selection: SelectionRange | None = None,
        previous_instruction: str | None = None,
        filename: str | None = None,
    ) -> DraftResult: ...


class UndoStack:
    """LIFO stack of prior document contents for one editing session.

    When ``max_depth`` is reached the oldest entry is dropped.
    """

    def __init__(self, max_depth: int = 100) -> None:
        self._items: deque[str] = deque(maxlen=max_depth)

    def push(self, content: str) -> None:
        self._items.append(content)

    def pop(self) -> str:
        if not self._items:
            raise UndoStackEmptyError("Nothing to undo")
        return self._items.pop()

    def peek(self) -> str | None:
        return self._items[-1] if self._items else None

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)


class SuggestionManager:
    """Holds at most one pending suggestion per document.

    The drafting call happens outside the lock; the pending slot is checked
    before the call and claimed after it, so two suggestions are never merged.
    """

    def __init__(
        self,
        drafter: DraftingCapability,
        settings: RevisionSettings | None = None,
    ) -> None:
        self.drafter = drafter
        self.settings = settings or RevisionSettings()
        self._pending: dict[DocumentKey, tuple[Suggestion, Document]] = {}
        self._lock = threading.Lock()

    def pending_for(self, document: Document) -> Suggestion | None:
        with self._lock:
            entry = self._pending.get(document.key)
        return entry[0] if entry else None

    def _validate_instruction(self, instruction: str) -> str:
        instruction = instruction.strip()
        if not instruction:
            raise ContentValidationError("Instruction is required")
        if len(instruction) > self.settings.max_instruction_length:
            raise ContentValidationError(
                f"Instruction exceeds maximum length of "
                f"{self.settings.max_instruction_length} characters"
            )
        return instruction

    def _validate_content(self, content: str) -> None:
        if len(content) > self.settings.max_content_length:
            raise ContentValidationError(
                f"Content exceeds maximum length of {self.settings.max_content_length} characters"
            )

    def _check_cancelled(self, cancel_event: threading.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise ProposalCancelledError("Proposal cancelled")

    def propose(
        self,
        document: Document,
        instruction: str,
        selection: SelectionRange | None = None,
        replace: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> Suggestion:
        """Draft an edit and register it as the document's pending suggestion.

        Args:
            document: Document to edit; never mutated here.
            instruction: Editing instruction.
            selection: Optional highlighted range the instruction targets.
            replace: Supersede an existing pending suggestion instead of failing.
            cancel_event: Set by the caller to abandon the proposal.

        Returns:
            The new pending Suggestion, diffed against the current content.

        Raises:
            SuggestionAlreadyPendingError: If one is pending and ``replace`` is False.
            GenerationFailedError: If drafting fails; nothing is registered.
            ProposalCancelledError: If cancelled before the reply is registered.
            ContentValidationError: On empty or over-long input.
        """
        instruction = self._validate_instruction(instruction)
        self._validate_content(document.current_content)
        if not replace and self.pending_for(document) is not None:
            raise SuggestionAlreadyPendingError(
                f"A suggestion is already pending for {document.filename}"
            )
        self._check_cancelled(cancel_event)

        original = document.current_content
        draft = self.drafter.generate_edit(
            original,
            instruction,
            selection=selection,
            filename=document.filename,
        )

        suggestion = Suggestion(
            id=uuid.uuid4().hex,
            instance_id=document.instance_id,
            filename=document.filename,
            command=instruction,
            original_content=original,
            suggested_content=draft.updated_content,
            explanation=draft.explanation,
            diff=compute_line_diff(original, draft.updated_content, self.settings.max_diff_cells),
            selection=selection,
        )

        with self._lock:
            self._check_cancelled(cancel_event)
            previous = self._pending.get(document.key)
            if previous is not None:
                if not replace:
                    raise SuggestionAlreadyPendingError(
                        f"A suggestion is already pending for {document.filename}"
                    )
                previous[0].status = SuggestionStatus.SUPERSEDED
            self._pending[document.key] = (suggestion, document)

        if not suggestion.has_changes:
            logger.info("No changes detected for '%s' on %s", instruction, document.filename)
        return suggestion

    def _claim(self, suggestion: Suggestion) -> Document:
        """Remove ``suggestion`` from the pending slot, returning its document."""
        key = DocumentKey(instance_id=suggestion.instance_id, filename=suggestion.filename)
        entry = self._pending.get(key)
        if entry is None or entry[0].id != suggestion.id:
            raise NoPendingSuggestionError(
                f"Suggestion {suggestion.id[:8]} is not pending for {suggestion.filename}"
            )
        del self._pending[key]
        return entry[1]

    def accept(self, suggestion: Suggestion, undo_stack: UndoStack | None = None) -> Document:
        """Make the suggested content current.

        The prior content is pushed to ``undo_stack`` when one is given.

        Raises:
            NoPendingSuggestionError: If the suggestion is not the pending one.
        """
        with self._lock:
            document = self._claim(suggestion)
            if undo_stack is not None:
                undo_stack.push(document.current_content)
            document.current_content = suggestion.suggested_content
            suggestion.status = SuggestionStatus.ACCEPTED
        logger.info("Accepted suggestion %s on %s", suggestion.id[:8], suggestion.filename)
        return document

    def reject(self, suggestion: Suggestion) -> None:
        """Discard the suggestion; the document is untouched.

        Raises:
            NoPendingSuggestionError: If the suggestion is not the pending one.
        """
        with self._lock:
            self._claim(suggestion)
            suggestion.status = SuggestionStatus.REJECTED
        logger.info("Rejected suggestion %s on %s", suggestion.id[:8], suggestion.filename)

    def refine(
        self,
        suggestion: Suggestion,
        instruction: str,
        cancel_event: threading.Event | None = None,
    ) -> Suggestion:
        """Redraft a pending suggestion with a follow-up instruction.

        The drafter works on the suggested content, but the new diff is taken
        against the original content so the whole refine chain shows the
        cumulative change. On failure the old suggestion stays pending.

        Raises:
            NoPendingSuggestionError: If the suggestion is not the pending one.
            GenerationFailedError: If drafting fails.
            ProposalCancelledError: If cancelled before the reply is registered.
        """
        instruction = self._validate_instruction(instruction)
        if self.pending_for_key(suggestion) is not suggestion:
            raise NoPendingSuggestionError(
                f"Suggestion {suggestion.id[:8]} is not pending for {suggestion.filename}"
            )
        self._check_cancelled(cancel_event)

        draft = self.drafter.generate_edit(
            suggestion.suggested_content,
            instruction,
            previous_instruction=suggestion.command,
            filename=suggestion.filename,
        )

        refined = Suggestion(
            id=uuid.uuid4().hex,
            instance_id=suggestion.instance_id,
            filename=suggestion.filename,
            command=f"{suggestion.command}{REFINE_SEPARATOR}{instruction}",
            original_content=suggestion.original_content,
            suggested_content=draft.updated_content,
            explanation=draft.explanation,
            diff=compute_line_diff(
                suggestion.original_content,
                draft.updated_content,
                self.settings.max_diff_cells,
            ),
            selection=suggestion.selection,
        )

        with self._lock:
            self._check_cancelled(cancel_event)
            document = self._claim(suggestion)
            suggestion.status = SuggestionStatus.REFINED
            self._pending[document.key] = (refined, document)
        return refined

    def pending_for_key(self, suggestion: Suggestion) -> Suggestion | None:
        key = DocumentKey(instance_id=suggestion.instance_id, filename=suggestion.filename)
        with self._lock:
            entry = self._pending.get(key)
        return entry[0] if entry else None

    def discard(self, document: Document) -> Suggestion | None:
        """Drop any pending suggestion for the document (session end)."""
        with self._lock:
            entry = self._pending.pop(document.key, None)
        if entry is None:
            return None
        entry[0].status = SuggestionStatus.REJECTED
        return entry[0]


class CommandAction(str, Enum):
    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    UNDONE = "undone"


class CommandOutcome(BaseModel):
    """Result of one command typed into an editing session."""

    model_config = ConfigDict(frozen=True)

    action: CommandAction
    content: str
    suggestion: Suggestion | None = None


class EditSession:
    """One editor session on one document.

    Owns the session's undo stack and command history, both discarded when
    the session closes.
    """

    def __init__(
        self,
        document: Document,
        manager: SuggestionManager,
        versions: VersionStore,
        undo_depth: int | None = None,
    ) -> None:
        self.document = document
        self.manager = manager
        self.versions = versions
        self.undo_stack = UndoStack(undo_depth or manager.settings.undo_depth)
        self.command_history: list[str] = []

    @property
    def pending(self) -> Suggestion | None:
        return self.manager.pending_for(self.document)

    @property
    def content(self) -> str:
        return self.document.current_content

    def propose(
        self,
        instruction: str,
        selection: SelectionRange | None = None,
        replace: bool = False,
        cancel_event: threading.Event | None = None,
    ) -> Suggestion:
        suggestion = self.manager.propose(
            self.document,
            instruction,
            selection=selection,
            replace=replace,
            cancel_event=cancel_event,
        )
        self.command_history.append(suggestion.command)
        return suggestion

    def accept(self) -> Document:
        pending = self._require_pending()
        return self.manager.accept(pending, self.undo_stack)

    def reject(self) -> None:
        self.manager.reject(self._require_pending())

    def refine(
        self,
        instruction: str,
        cancel_event: threading.Event | None = None,
    ) -> Suggestion:
        refined = self.manager.refine(self._require_pending(), instruction, cancel_event)
        self.command_history.append(instruction.strip())
        return refined

    def undo(self) -> str:
        """Restore the content from before the last replacement.

        Raises:
            UndoStackEmptyError: If there is nothing to undo.
        """
        previous = self.undo_stack.pop()
        self.document.current_content = previous
        return previous

    def replace_content(self, content: str) -> None:
        """Replace the content directly (scripted edit), keeping it undoable."""
        if content == self.document.current_content:
            return
        self.undo_stack.push(self.document.current_content)
        self.document.current_content = content

    def save(self, message: str | None = None) -> Version:
        """Persist the current content as a new human-authored version."""
        if not message:
            recent = self.command_history[-SAVE_MESSAGE_COMMANDS:]
            message = ", ".join(recent) if recent else None
        return self.versions.save(
            self.document,
            self.document.current_content,
            message=message,
            author=VersionAuthor.HUMAN,
        )

    def handle_command(
        self,
        text: str,
        selection: SelectionRange | None = None,
        cancel_event: threading.Event | None = None,
    ) -> CommandOutcome:
        """Route typed text: "yes" / "no" / "undo" shortcuts, else propose.

        The shortcuts only apply when there is something to act on; otherwise
        the text is treated as an ordinary instruction.
        """
        command = text.strip().lower()
        pending = self.pending

        if command == "yes" and pending is not None:
            self.accept()
            return CommandOutcome(
                action=CommandAction.ACCEPTED, content=self.content, suggestion=pending
            )
        if command == "no" and pending is not None:
            self.reject()
            return CommandOutcome(
                action=CommandAction.REJECTED, content=self.content, suggestion=pending
            )
        if command == "undo" and self.undo_stack:
            self.undo()
            return CommandOutcome(action=CommandAction.UNDONE, content=self.content)

        suggestion = self.propose(text, selection=selection, cancel_event=cancel_event)
        return CommandOutcome(
            action=CommandAction.PROPOSED, content=self.content, suggestion=suggestion
        )

    def close(self) -> None:
        """End the session, dropping its pending suggestion and undo history."""
        self.manager.discard(self.document)
        self.undo_stack.clear()

    def _require_pending(self) -> Suggestion:
        pending = self.pending
        if pending is None:
            raise NoPendingSuggestionError(
                f"No suggestion is pending for {self.document.filename}"
            )
        return pending
