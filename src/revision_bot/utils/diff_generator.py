"""Utilities for computing and rendering line diffs."""

import difflib

from revision_bot.models.diff_models import DiffLine, DiffLineType, DiffStats

# Largest dp table (rows * cols) built before falling back to whole replacement
DEFAULT_MAX_DIFF_CELLS = 4_000_000


def split_lines(text: str) -> list[str]:
    """Split text into lines, keeping each line's terminator.

    Only "\\n" ends a line (a preceding "\\r" stays with it). Empty text has
    zero lines and a trailing unterminated fragment is its own line.

    Args:
        text: The text to split.

    Returns:
        List of raw lines whose concatenation equals ``text``.
    """
    if not text:
        return []
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def _split_eol(raw_line: str) -> tuple[str, str]:
    if raw_line.endswith("\r\n"):
        return raw_line[:-2], "\r\n"
    if raw_line.endswith("\n"):
        return raw_line[:-1], "\n"
    return raw_line, ""


def longest_common_subsequence(a: list[str], b: list[str]) -> list[str]:
    """Return the longest common subsequence of two line lists.

    Builds the full ``(m+1) x (n+1)`` table, O(m*n) time and memory, then
    backtracks from ``dp[m][n]``. On ties the walk steps back in ``b`` first.

    Args:
        a: Old lines.
        b: New lines.

    Returns:
        The shared lines in order.
    """
    m = len(a)
    n = len(b)
    dp = [[0] * (n + 1) for _ in range(m + 1)]

    for i in range(1, m + 1):
        row = dp[i]
        prev = dp[i - 1]
        a_line = a[i - 1]
        for j in range(1, n + 1):
            if a_line == b[j - 1]:
                row[j] = prev[j - 1] + 1
            else:
                row[j] = max(prev[j], row[j - 1])

    lcs: list[str] = []
    i, j = m, n
    while i > 0 and j > 0:
        if a[i - 1] == b[j - 1]:
            lcs.append(a[i - 1])
            i -= 1
            j -= 1
        elif dp[i - 1][j] > dp[i][j - 1]:
            i -= 1
        else:
            j -= 1

    lcs.reverse()
    return lcs


def _walk_lcs(
    a: list[str],
    b: list[str],
    lcs: list[str],
) -> list[tuple[DiffLineType, str]]:
    """Classify every line of ``a`` and ``b`` against a common subsequence."""
    ops: list[tuple[DiffLineType, str]] = []
    i = j = k = 0
    while i < len(a) or j < len(b):
        if (
            k < len(lcs)
            and i < len(a)
            and j < len(b)
            and a[i] == lcs[k]
            and b[j] == lcs[k]
        ):
            ops.append((DiffLineType.UNCHANGED, a[i]))
            i += 1
            j += 1
            k += 1
        elif i < len(a) and (k >= len(lcs) or a[i] != lcs[k]):
            ops.append((DiffLineType.REMOVE, a[i]))
            i += 1
        else:
            ops.append((DiffLineType.ADD, b[j]))
            j += 1
    return ops


def compute_line_diff(
    old_text: str,
    new_text: str,
    max_cells: int = DEFAULT_MAX_DIFF_CELLS,
) -> list[DiffLine]:
    """Compute a classified line-by-line diff between two revisions.

    Shared leading and trailing lines are matched directly; the LCS table is
    only built for the differing middle. When that middle would need more
    than ``max_cells`` table cells it is reported as a whole replacement
    (every old line removed, then every new line added).

    Replaying the ADD/UNCHANGED lines (content + eol) reproduces ``new_text``
    and replaying the REMOVE/UNCHANGED lines reproduces ``old_text``.

    Args:
        old_text: Content before the edit.
        new_text: Content after the edit.
        max_cells: Size cap for the LCS table.

    Returns:
        Ordered DiffLines with 1-based sequential line numbers.
    """
    a = split_lines(old_text)
    b = split_lines(new_text)

    prefix = 0
    while prefix < len(a) and prefix < len(b) and a[prefix] == b[prefix]:
        prefix += 1

    suffix = 0
    while (
        suffix < len(a) - prefix
        and suffix < len(b) - prefix
        and a[len(a) - 1 - suffix] == b[len(b) - 1 - suffix]
    ):
        suffix += 1

    a_mid = a[prefix:len(a) - suffix]
    b_mid = b[prefix:len(b) - suffix]

    ops: list[tuple[DiffLineType, str]] = [
        (DiffLineType.UNCHANGED, line) for line in a[:prefix]
    ]
    if len(a_mid) * len(b_mid) > max_cells:
        ops.extend((DiffLineType.REMOVE, line) for line in a_mid)
        ops.extend((DiffLineType.ADD, line) for line in b_mid)
    else:
        lcs = longest_common_subsequence(a_mid, b_mid)
        ops.extend(_walk_lcs(a_mid, b_mid, lcs))
    ops.extend((DiffLineType.UNCHANGED, line) for line in a[len(a) - suffix:])

    diff: list[DiffLine] = []
    for line_number, (line_type, raw_line) in enumerate(ops, 1):
        content, eol = _split_eol(raw_line)
        diff.append(
            DiffLine(type=line_type, line_number=line_number, content=content, eol=eol)
        )
    return diff


def compact_modifications(diff: list[DiffLine]) -> list[DiffLine]:
    """Collapse isolated remove+add pairs into MODIFY lines for display.

    Only a run of exactly one REMOVE immediately followed by exactly one ADD
    is collapsed; longer change blocks are left as they are. Line numbers are
    reassigned sequentially.

    Args:
        diff: Output of compute_line_diff.

    Returns:
        A new list of DiffLines.
    """
    compacted: list[DiffLine] = []
    idx = 0
    while idx < len(diff):
        line = diff[idx]
        is_pair = (
            line.type == DiffLineType.REMOVE
            and idx + 1 < len(diff)
            and diff[idx + 1].type == DiffLineType.ADD
            and (idx == 0 or diff[idx - 1].type not in (DiffLineType.REMOVE, DiffLineType.ADD))
            and (
                idx + 2 >= len(diff)
                or diff[idx + 2].type not in (DiffLineType.REMOVE, DiffLineType.ADD)
            )
        )
        if is_pair:
            added = diff[idx + 1]
            compacted.append(
                DiffLine(
                    type=DiffLineType.MODIFY,
                    content=added.content,
                    eol=added.eol,
                    old_content=line.content,
                    old_eol=line.eol,
                )
            )
            idx += 2
        else:
            compacted.append(line)
            idx += 1

    return [
        line.model_copy(update={"line_number": number})
        for number, line in enumerate(compacted, 1)
    ]


def reconstruct_old(diff: list[DiffLine]) -> str:
    """Replay the old side of a diff."""
    parts: list[str] = []
    for line in diff:
        if line.type in (DiffLineType.UNCHANGED, DiffLineType.REMOVE):
            parts.append(line.content + line.eol)
        elif line.type == DiffLineType.MODIFY:
            parts.append((line.old_content or "") + (line.old_eol or ""))
    return "".join(parts)


def reconstruct_new(diff: list[DiffLine]) -> str:
    """Replay the new side of a diff."""
    return "".join(
        line.content + line.eol
        for line in diff
        if line.type != DiffLineType.REMOVE
    )


def only_changes(diff: list[DiffLine]) -> list[DiffLine]:
    return [line for line in diff if line.type != DiffLineType.UNCHANGED]


def has_changes(diff: list[DiffLine]) -> bool:
    return any(line.type != DiffLineType.UNCHANGED for line in diff)


def diff_stats(diff: list[DiffLine]) -> DiffStats:
    """Count lines per classification."""
    counts = {line_type: 0 for line_type in DiffLineType}
    for line in diff:
        counts[line.type] += 1
    return DiffStats(
        additions=counts[DiffLineType.ADD],
        deletions=counts[DiffLineType.REMOVE],
        modifications=counts[DiffLineType.MODIFY],
        unchanged=counts[DiffLineType.UNCHANGED],
    )


def generate_unified_diff(
    file_path: str,
    original_content: str,
    modified_content: str,
) -> str:
    """Generate a git-style unified diff for display.

    Args:
        file_path: Name shown in the a/ b/ headers.
        original_content: Content before the edit.
        modified_content: Content after the edit.

    Returns:
        Unified diff string. Empty string if no changes.
    """
    if original_content == modified_content:
        return ""

    diff_gen = difflib.unified_diff(
        original_content.splitlines(keepends=True),
        modified_content.splitlines(keepends=True),
        fromfile=f"a/{file_path}",
        tofile=f"b/{file_path}",
        lineterm="",
    )

    # keepends=True leaves a newline on body lines; headers have none
    return "\n".join(line[:-1] if line.endswith("\n") else line for line in diff_gen)
