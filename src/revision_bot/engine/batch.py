"""LangGraph batch edit graph: one instruction applied to several documents.

Each document runs in its own ``edit_document`` branch (fanned out with
``Send``); a failure in one branch is recorded as that document's result and
never stops the others.
"""

import logging
from typing import Callable

from langgraph.graph import END, START, StateGraph
from langgraph.types import Send

from revision_bot.config import RevisionSettings
from revision_bot.engine.exceptions import BatchGraphError, BatchValidationError
from revision_bot.engine.state import BatchEditState, DocumentTask, make_initial_state
from revision_bot.engine.suggestions import SuggestionManager
from revision_bot.engine.versions import VersionStore
from revision_bot.models import (
    BatchEditReport,
    BatchEditResult,
    BatchEditSummary,
    Document,
    VersionAuthor,
)

logger = logging.getLogger(__name__)


def fan_out(state: BatchEditState) -> list[Send]:
    """Route each document to its own ``edit_document`` branch."""
    return [
        Send(
            "edit_document",
            {
                "document": document,
                "position": position,
                "instruction": state["instruction"],
                "auto_save": state["auto_save"],
                "expected_head_id": state["head_ids"][position],
            },
        )
        for position, document in enumerate(state["documents"])
    ]


def make_edit_document_node(
    manager: SuggestionManager,
    versions: VersionStore,
) -> Callable[[DocumentTask], dict]:
    """Factory: returns a node closure that edits one document of the batch.

    The closure:
    1. Proposes the instruction on the document
    2. With auto_save, accepts the suggestion and saves an assistant version
       based on the head captured at batch start
    3. Returns {"results": [BatchEditResult]}

    On error: returns a failed result for the document. The document keeps
    its last-known-good content.
    """

    def edit_document(task: DocumentTask) -> dict:
        document = task["document"]
        position = task["position"]
        try:
            suggestion = manager.propose(document, task["instruction"])
            result = BatchEditResult(
                filename=document.filename,
                position=position,
                success=True,
                diff=suggestion.diff,
                explanation=suggestion.explanation,
                no_changes=not suggestion.has_changes,
                suggestion_id=suggestion.id,
            )
            if not task["auto_save"]:
                return {"results": [result]}

            previous_content = document.current_content
            manager.accept(suggestion)
            result.suggestion_id = None
            if result.no_changes:
                return {"results": [result]}
            try:
                version = versions.save(
                    document,
                    document.current_content,
                    message=task["instruction"],
                    author=VersionAuthor.ASSISTANT,
                    expected_head_id=task["expected_head_id"],
                )
            except Exception:
                document.current_content = previous_content
                raise
            result.new_version_id = version.id
            return {"results": [result]}
        except Exception as exc:
            logger.warning("Batch edit failed for %s: %s", document.filename, exc)
            return {
                "results": [
                    BatchEditResult(
                        filename=document.filename,
                        position=position,
                        success=False,
                        error=str(exc),
                        error_type=type(exc).__name__,
                    )
                ]
            }

    return edit_document


def summarize_node(state: BatchEditState) -> dict:
    """Order the branch results by input position and build the report."""
    results = sorted(state["results"], key=lambda result: result.position)
    successful = sum(1 for result in results if result.success)
    return {
        "report": BatchEditReport(
            instruction=state["instruction"],
            auto_save=state["auto_save"],
            results=results,
            summary=BatchEditSummary(
                total=len(results),
                successful=successful,
                failed=len(results) - successful,
            ),
        )
    }


def build_batch_graph(manager: SuggestionManager, versions: VersionStore):
    """Build and compile the batch edit StateGraph.

    Edge topology:
      START -> fan_out -> edit_document (one branch per document)
      edit_document -> summarize_node -> END

    Returns:
        CompiledStateGraph ready to invoke.

    Raises:
        BatchGraphError: If graph construction fails.
    """
    try:
        graph = StateGraph(BatchEditState)

        graph.add_node("edit_document", make_edit_document_node(manager, versions))
        graph.add_node("summarize_node", summarize_node)

        graph.add_conditional_edges(START, fan_out, ["edit_document"])
        graph.add_edge("edit_document", "summarize_node")
        graph.add_edge("summarize_node", END)

        return graph.compile()

    except Exception as exc:
        raise BatchGraphError(f"Failed to build batch edit graph: {exc}") from exc


class BatchEditCoordinator:
    """Applies one instruction to several documents and reports per document."""

    def __init__(
        self,
        manager: SuggestionManager,
        versions: VersionStore,
        settings: RevisionSettings | None = None,
    ) -> None:
        self.manager = manager
        self.versions = versions
        self.settings = settings or manager.settings
        self.graph = build_batch_graph(manager, versions)

    def validate(self, documents: list[Document], instruction: str) -> str:
        """Check the batch as a whole, returning the trimmed instruction.

        Raises:
            BatchValidationError: On an empty or oversized batch, a repeated
                document, or a missing or over-long instruction.
        """
        if not documents:
            raise BatchValidationError("At least one document is required")
        if len(documents) > self.settings.max_batch_documents:
            raise BatchValidationError(
                f"Maximum {self.settings.max_batch_documents} documents per batch"
            )
        keys = [document.key for document in documents]
        if len(set(keys)) != len(keys):
            raise BatchValidationError("A document appears more than once in the batch")

        instruction = instruction.strip()
        if not instruction:
            raise BatchValidationError("Instruction is required")
        if len(instruction) > self.settings.max_instruction_length:
            raise BatchValidationError(
                f"Instruction exceeds maximum length of "
                f"{self.settings.max_instruction_length} characters"
            )
        return instruction

    def apply_batch(
        self,
        documents: list[Document],
        instruction: str,
        auto_save: bool = False,
    ) -> BatchEditReport:
        """Apply ``instruction`` to every document.

        Args:
            documents: Documents to edit, in reporting order.
            instruction: Editing instruction shared by all documents.
            auto_save: Accept and save each successful edit as an assistant
                version instead of leaving it pending.

        Returns:
            BatchEditReport with one result per document, in input order.

        Raises:
            BatchValidationError: If the batch is invalid as a whole.
        """
        instruction = self.validate(documents, instruction)
        state = make_initial_state(documents, instruction, auto_save)
        final_state = self.graph.invoke(state)

        report = final_state["report"]
        logger.info(
            "Batch edit finished: %d/%d documents succeeded",
            report.summary.successful,
            report.summary.total,
        )
        return report
