"""Models for representing line diffs."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class DiffLineType(str, Enum):
    """Classification of a single diff line."""

    UNCHANGED = "unchanged"
    ADD = "add"
    REMOVE = "remove"
    MODIFY = "modify"


class DiffLine(BaseModel):
    """One classified line of a computed difference.

    ``content`` and ``old_content`` never include the line terminator; it is
    carried separately in ``eol`` / ``old_eol`` so both sides of a diff can be
    replayed byte-for-byte.
    """

    model_config = ConfigDict(frozen=True)

    type: DiffLineType
    line_number: int | None = None  # 1-based position in the diff output
    content: str
    old_content: str | None = None  # Only set on MODIFY lines
    eol: str = ""  # "\n", "\r\n" or "" for a final unterminated line
    old_eol: str | None = None  # Terminator of old_content on MODIFY lines


class DiffStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    additions: int = 0
    deletions: int = 0
    modifications: int = 0
    unchanged: int = 0
