"""State definitions for the batch edit graph."""

import operator
from typing import Annotated, TypedDict

from revision_bot.models import BatchEditReport, BatchEditResult, Document


class BatchEditState(TypedDict):
    """State for one batch edit run.

    ``results`` accumulates one entry per document branch; all other fields
    use default overwrite semantics.
    """

    # Input
    instruction: str
    auto_save: bool
    documents: list[Document]
    head_ids: list[str | None]  # Head version id per document at batch start

    # Per-document branches (accumulating reducer)
    results: Annotated[list[BatchEditResult], operator.add]

    # Output
    report: BatchEditReport | None


class DocumentTask(TypedDict):
    """Payload sent to each ``edit_document`` branch."""

    document: Document
    position: int
    instruction: str
    auto_save: bool
    expected_head_id: str | None


def make_initial_state(
    documents: list[Document],
    instruction: str,
    auto_save: bool = False,
) -> BatchEditState:
    """Create the initial state for a batch run.

    Head ids are captured here so that auto-saves can detect documents that
    changed while the batch was drafting.
    """
    return {
        "instruction": instruction,
        "auto_save": auto_save,
        "documents": list(documents),
        "head_ids": [document.head.id if document.head else None for document in documents],
        "results": [],
        "report": None,
    }
