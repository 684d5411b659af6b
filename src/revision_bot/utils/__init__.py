"""Utilities for the revision bot."""

from revision_bot.utils.diff_generator import (
    compact_modifications,
    compute_line_diff,
    diff_stats,
    generate_unified_diff,
    has_changes,
    longest_common_subsequence,
    only_changes,
    reconstruct_new,
    reconstruct_old,
    split_lines,
)

__all__ = [
    "compact_modifications",
    "compute_line_diff",
    "diff_stats",
    "generate_unified_diff",
    "has_changes",
    "longest_common_subsequence",
    "only_changes",
    "reconstruct_new",
    "reconstruct_old",
    "split_lines",
]
