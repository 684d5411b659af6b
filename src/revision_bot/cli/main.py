"""CLI entry point for the document revision bot."""
import argparse
from dotenv import load_dotenv
import json
import logging
import sys
import traceback
from pathlib import Path

from pydantic import ValidationError

from revision_bot.agents.exceptions import AgentError
from revision_bot.config import RevisionSettings
from revision_bot.engine.batch import BatchEditCoordinator
from revision_bot.engine.exceptions import (
    BatchValidationError,
    ContentValidationError,
    RevisionError,
)
from revision_bot.engine.suggestions import CommandAction, EditSession, SuggestionManager
from revision_bot.engine.versions import VersionStore
from revision_bot.models import ConversationMessage, DiffLineType, Version, VersionAuthor
from revision_bot.storage import DocumentStore, QueueStore
from revision_bot.storage.exceptions import (
    InvalidDocumentNameError,
    PathNotAllowedError,
    StorageError,
)
from revision_bot.utils.diff_generator import (
    compact_modifications,
    compute_line_diff,
    diff_stats,
    generate_unified_diff,
    only_changes,
)

load_dotenv()

# Exit codes
EXIT_SUCCESS = 0
EXIT_INVALID_INPUT = 1
EXIT_AGENT_ERROR = 2
EXIT_REVISION_ERROR = 3
EXIT_BATCH_FAILURES = 4
EXIT_UNEXPECTED = 5
EXIT_KEYBOARD_INTERRUPT = 130

STDIN_PATH = "-"
PLAN_COMMIT_PREFIX = "Generated from plan"
INTERACTIVE_PROMPT = "[yes / no / undo / save / quit, or a refinement] > "

_DIFF_MARKERS = {
    DiffLineType.UNCHANGED: " ",
    DiffLineType.ADD: "+",
    DiffLineType.REMOVE: "-",
}

_INVALID_INPUT_ERRORS = (
    BatchValidationError,
    ContentValidationError,
    InvalidDocumentNameError,
    PathNotAllowedError,
    ValidationError,
    FileNotFoundError,
    json.JSONDecodeError,
)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="revision-bot",
        description="Draft, review and version markdown documents with an LLM",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--output-json", action="store_true", help="Output results as JSON"
    )
    parser.add_argument(
        "--allowed-base",
        type=str,
        default=None,
        help="Directory instance paths must live under (default: ~/claude-managers)",
    )
    parser.add_argument("--model", type=str, default=None, help="Model ID to use")
    parser.add_argument(
        "--llm-provider",
        type=str,
        default=None,
        choices=("auto", "anthropic", "openai"),
        help="LLM provider: auto (default), anthropic, or openai",
    )
    parser.add_argument(
        "--llm-fallback-provider",
        type=str,
        default=None,
        choices=("anthropic", "openai"),
        help="Optional fallback provider when the primary provider fails",
    )
    parser.add_argument(
        "--allow-llm-fallback",
        action="store_true",
        help="Allow fallback to the alternate provider when the primary one fails",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    diff_parser = subparsers.add_parser("diff", help="Line diff of two files")
    diff_parser.add_argument("old", help="File before the edit")
    diff_parser.add_argument("new", help="File after the edit")
    diff_parser.add_argument(
        "--unified", action="store_true", help="Print a git-style unified diff"
    )
    diff_parser.add_argument(
        "--compact",
        action="store_true",
        help="Collapse single-line replacements into modifications",
    )

    history_parser = subparsers.add_parser("history", help="List saved versions")
    history_parser.add_argument("instance", help="Instance directory")
    history_parser.add_argument("file", help="Document filename")

    save_parser = subparsers.add_parser("save", help="Save a file as a new version")
    save_parser.add_argument("instance", help="Instance directory")
    save_parser.add_argument("file", help="Document filename")
    save_parser.add_argument("source", help=f"File with the new content ('{STDIN_PATH}' for stdin)")
    save_parser.add_argument("-m", "--message", default=None, help="Commit message")

    revert_parser = subparsers.add_parser("revert", help="Restore an earlier version")
    revert_parser.add_argument("instance", help="Instance directory")
    revert_parser.add_argument("file", help="Document filename")
    revert_parser.add_argument("version", help="Version id or unique id prefix")

    edit_parser = subparsers.add_parser("edit", help="Draft an edit and review it")
    edit_parser.add_argument("instance", help="Instance directory")
    edit_parser.add_argument("file", help="Document filename")
    edit_parser.add_argument("instruction", help="Editing instruction")
    edit_parser.add_argument(
        "--yes", action="store_true", help="Accept and save without prompting"
    )

    batch_parser = subparsers.add_parser("batch", help="Apply one instruction to many files")
    batch_parser.add_argument("instance", help="Instance directory")
    batch_parser.add_argument("instruction", help="Editing instruction")
    batch_parser.add_argument("files", nargs="+", help="Document filenames")
    batch_parser.add_argument(
        "--auto-save",
        action="store_true",
        help="Accept and save every successful edit as an assistant version",
    )

    plan_parser = subparsers.add_parser("plan", help="Generate documents from a conversation")
    plan_parser.add_argument("transcript", help="JSON file with the conversation messages")
    plan_parser.add_argument("--request", default=None, help="Additional request for the planner")
    plan_parser.add_argument(
        "--write",
        metavar="INSTANCE",
        default=None,
        help="Save the generated documents into this instance",
    )
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def load_settings(args: argparse.Namespace) -> RevisionSettings:
    """Merge REVISION_* environment settings with CLI overrides."""
    return RevisionSettings.from_env(
        allowed_base=args.allowed_base,
        model=args.model,
        llm_provider=args.llm_provider,
        llm_fallback_provider=args.llm_fallback_provider,
        allow_llm_fallback=args.allow_llm_fallback or None,
    )


def create_engine(settings: RevisionSettings, with_drafter: bool = True) -> dict:
    """Create the storage, version and suggestion components.

    The LLM client is only built with ``with_drafter``, so commands that never
    draft need no API key.

    Returns:
        Dict with keys: store, queue, versions, and (with_drafter) manager, client.
    """
    store = DocumentStore(settings.allowed_base)
    components = {
        "store": store,
        "queue": QueueStore(store),
        "versions": VersionStore(store, settings),
    }
    if with_drafter:
        from revision_bot.agents.drafter import Drafter

        client = create_client(settings)
        components["client"] = client
        components["manager"] = SuggestionManager(Drafter(client), settings)
    return components


def create_client(settings: RevisionSettings):
    from revision_bot.agents.llm_client import LLMClient

    return LLMClient(
        model=settings.model,
        llm_provider=settings.llm_provider,
        llm_fallback_provider=settings.llm_fallback_provider,
        allow_fallback=settings.allow_llm_fallback,
        max_tokens=settings.max_tokens,
    )


def read_text(path: str) -> str:
    """Read a file (or stdin for '-') without newline translation."""
    if path == STDIN_PATH:
        return sys.stdin.read()
    with open(Path(path).expanduser(), encoding="utf-8", newline="") as handle:
        return handle.read()


def format_result_json(result: dict) -> str:
    """Serialize result dict to JSON string.

    Calls .model_dump() on Pydantic model values (and lists of them). Falls
    back to str() for anything else json cannot encode.
    """

    def _serialize(obj):
        if hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json", by_alias=True)
        if isinstance(obj, list):
            return [_serialize(item) for item in obj]
        return obj

    prepared = {k: _serialize(v) for k, v in result.items()}
    return json.dumps(prepared, indent=2, default=str)


def format_diff_lines(diff: list) -> list[str]:
    """Render DiffLines with +/-/space markers; modifications take two lines."""
    rendered: list[str] = []
    for line in diff:
        if line.type == DiffLineType.MODIFY:
            rendered.append(f"-{line.old_content}")
            rendered.append(f"+{line.content}")
        else:
            rendered.append(f"{_DIFF_MARKERS[line.type]}{line.content}")
    return rendered


def format_version(version: Version) -> str:
    timestamp = version.timestamp.isoformat(timespec="seconds")
    return f"{version.id[:8]}  {timestamp}  {version.author.value:<9}  {version.commit_message}"


def resolve_version_id(versions: list[Version], prefix: str) -> str:
    """Expand a unique id prefix to the full version id.

    Unknown or ambiguous prefixes are returned unchanged so that the version
    store reports them.
    """
    matches = [version.id for version in versions if version.id.startswith(prefix)]
    return matches[0] if len(matches) == 1 else prefix


def print_suggestion(suggestion) -> None:
    stats = suggestion.stats
    print(f"\nCommand: {suggestion.command}")
    print(f"Explanation: {suggestion.explanation}")
    if not suggestion.has_changes:
        print("No changes detected.")
        return
    print(f"Changes: +{stats.additions} -{stats.deletions}\n")
    for rendered in format_diff_lines(only_changes(suggestion.diff)):
        print(rendered)


def run_diff(args: argparse.Namespace) -> int:
    old_text = read_text(args.old)
    new_text = read_text(args.new)

    if args.unified:
        unified = generate_unified_diff(Path(args.new).name, old_text, new_text)
        if args.output_json:
            print(format_result_json({"unified_diff": unified}))
        elif unified:
            print(unified)
        return EXIT_SUCCESS

    diff = compute_line_diff(old_text, new_text)
    if args.compact:
        diff = compact_modifications(diff)

    if args.output_json:
        print(format_result_json({"diff": diff, "stats": diff_stats(diff)}))
    else:
        for rendered in format_diff_lines(diff):
            print(rendered)
    return EXIT_SUCCESS


def run_history(args: argparse.Namespace, settings: RevisionSettings) -> int:
    engine = create_engine(settings, with_drafter=False)
    document = engine["store"].open_document(args.instance, args.file)
    engine["queue"].annotate(document)
    versions = engine["versions"].list(document)

    if args.output_json:
        print(
            format_result_json(
                {
                    "filename": document.filename,
                    "queue_status": document.queue_status,
                    "dirty": document.is_dirty,
                    "versions": versions,
                }
            )
        )
        return EXIT_SUCCESS

    print(f"{document.filename}: {len(versions)} version(s)")
    if document.queue_status is not None:
        print(f"Queue status: {document.queue_status.value}")
    if document.is_dirty:
        print("Current content differs from the latest version.")
    for version in versions:
        print(f"  {format_version(version)}")
    return EXIT_SUCCESS


def run_save(args: argparse.Namespace, settings: RevisionSettings) -> int:
    engine = create_engine(settings, with_drafter=False)
    content = read_text(args.source)
    document = engine["store"].open_document(args.instance, args.file, create=True)
    version = engine["versions"].save(document, content, message=args.message)

    if args.output_json:
        print(format_result_json({"version": version}))
    else:
        print(f"Saved {document.filename}: {format_version(version)}")
    return EXIT_SUCCESS


def run_revert(args: argparse.Namespace, settings: RevisionSettings) -> int:
    engine = create_engine(settings, with_drafter=False)
    document = engine["store"].open_document(args.instance, args.file)
    version_id = resolve_version_id(document.versions, args.version)
    version = engine["versions"].revert(document, version_id)

    if args.output_json:
        print(format_result_json({"version": version}))
    else:
        print(f"Reverted {document.filename}: {format_version(version)}")
    return EXIT_SUCCESS


def run_edit(args: argparse.Namespace, settings: RevisionSettings) -> int:
    """Propose one edit, then review it interactively or accept it with --yes."""
    engine = create_engine(settings)
    document = engine["store"].open_document(args.instance, args.file)
    session = EditSession(document, engine["manager"], engine["versions"])
    suggestion = session.propose(args.instruction)

    if args.yes:
        version = None
        if suggestion.has_changes:
            session.accept()
            version = session.save()
        else:
            session.reject()
        session.close()
        if args.output_json:
            print(format_result_json({"suggestion": suggestion, "version": version}))
        else:
            print_suggestion(suggestion)
            if version is not None:
                print(f"\nSaved: {format_version(version)}")
        return EXIT_SUCCESS

    print_suggestion(suggestion)
    try:
        _review_loop(session)
    finally:
        if session.document.is_dirty:
            print("Unsaved changes discarded.", file=sys.stderr)
        session.close()
    return EXIT_SUCCESS


def _is_session_command(command: str, session) -> bool:
    """True when ``command`` is a shortcut rather than a refinement instruction."""
    if command in ("yes", "no"):
        return True
    return command == "undo" and bool(session.undo_stack)


def _review_loop(session) -> None:
    while True:
        try:
            reply = input(INTERACTIVE_PROMPT).strip()
        except EOFError:
            return
        command = reply.lower()
        if not reply:
            continue
        if command in ("quit", "exit"):
            return

        try:
            if command == "save":
                version = session.save()
                print(f"Saved: {format_version(version)}")
            elif session.pending is not None and not _is_session_command(command, session):
                print_suggestion(session.refine(reply))
            else:
                outcome = session.handle_command(reply)
                if outcome.action == CommandAction.PROPOSED:
                    print_suggestion(outcome.suggestion)
                else:
                    print(f"{outcome.action.value.capitalize()}.")
        except (AgentError, RevisionError) as exc:
            print(f"Error: {exc}", file=sys.stderr)


def run_batch(args: argparse.Namespace, settings: RevisionSettings) -> int:
    engine = create_engine(settings)
    documents = [engine["store"].open_document(args.instance, name) for name in args.files]
    coordinator = BatchEditCoordinator(engine["manager"], engine["versions"], settings)
    report = coordinator.apply_batch(documents, args.instruction, auto_save=args.auto_save)

    if args.output_json:
        print(format_result_json({"report": report}))
    else:
        print(f"\nInstruction: {report.instruction}")
        for result in report.results:
            if not result.success:
                print(f"  FAILED     {result.filename}: {result.error_type}: {result.error}")
            elif result.no_changes:
                print(f"  unchanged  {result.filename}")
            elif result.new_version_id:
                print(f"  saved      {result.filename} ({result.new_version_id[:8]})")
            else:
                print(f"  drafted    {result.filename}: {result.explanation}")
        summary = report.summary
        print(f"\n{summary.successful}/{summary.total} succeeded, {summary.failed} failed")

    return EXIT_BATCH_FAILURES if report.summary.failed else EXIT_SUCCESS


def load_transcript(path: str) -> list:
    """Load conversation messages from a JSON list or {"messages": [...]}."""
    data = json.loads(read_text(path))
    if isinstance(data, dict):
        data = data.get("messages", [])
    return [ConversationMessage.model_validate(item) for item in data]


def run_plan(args: argparse.Namespace, settings: RevisionSettings) -> int:
    from revision_bot.agents.planner import Planner

    transcript = load_transcript(args.transcript)
    plan = Planner(create_client(settings)).generate_plan(transcript, args.request)

    saved: list[Version] = []
    if args.write:
        engine = create_engine(settings, with_drafter=False)
        for index in plan.suggested_order:
            planned = plan.documents[index]
            document = engine["store"].open_document(args.write, planned.filename, create=True)
            saved.append(
                engine["versions"].save(
                    document,
                    planned.content,
                    message=f"{PLAN_COMMIT_PREFIX}: {plan.title}",
                    author=VersionAuthor.ASSISTANT,
                )
            )

    if args.output_json:
        print(format_result_json({"plan": plan, "saved": saved}))
        return EXIT_SUCCESS

    print(f"\n{plan.title} ({plan.complexity})")
    print(plan.summary)
    for position, index in enumerate(plan.suggested_order, 1):
        planned = plan.documents[index]
        print(f"  {position}. {planned.filename} [{planned.priority}] {planned.title}")
    if saved:
        print(f"\nWrote {len(saved)} document(s) to {args.write}")
    return EXIT_SUCCESS


def _handle_error(label: str, exc: BaseException, verbose: bool, exit_code: int) -> int:
    """Print error message to stderr and return the exit code."""
    print(f"{label}: {exc}", file=sys.stderr)
    if verbose:
        traceback.print_exc(file=sys.stderr)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code integer.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        if args.command == "diff":
            return run_diff(args)

        settings = load_settings(args)
        handlers = {
            "history": run_history,
            "save": run_save,
            "revert": run_revert,
            "edit": run_edit,
            "batch": run_batch,
            "plan": run_plan,
        }
        return handlers[args.command](args, settings)

    except _INVALID_INPUT_ERRORS as exc:
        return _handle_error("Invalid input", exc, args.verbose, EXIT_INVALID_INPUT)

    except AgentError as exc:
        return _handle_error("Agent error", exc, args.verbose, EXIT_AGENT_ERROR)

    except (RevisionError, StorageError) as exc:
        return _handle_error("Revision error", exc, args.verbose, EXIT_REVISION_ERROR)

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_KEYBOARD_INTERRUPT

    except Exception as exc:
        return _handle_error("Unexpected error", exc, args.verbose, EXIT_UNEXPECTED)


if __name__ == "__main__":
    sys.exit(main())
