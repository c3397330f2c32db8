"""Unified-diff parsing into addressable new-file lines."""

from __future__ import annotations

import re

from todobot.models import DiffLine, LineKind

_HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_PREAMBLE_PREFIXES = (
    "diff --git ",
    "index ",
    "--- ",
    "+++ ",
    "new file mode",
    "deleted file mode",
    "old mode",
    "new mode",
    "similarity index",
    "rename from",
    "rename to",
    "Binary files",
)


class ParseError(ValueError):
    """Raised when a patch cannot be mapped onto new-file line numbers."""


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` only, dropping one trailing ``\\r`` per line.

    ``str.splitlines`` also breaks on form feeds, U+2028 and similar characters, which
    would shift every following line number.
    """
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def parse_hunk_start(header: str) -> int:
    """Return the new-file starting line of a ``@@ -a,b +c,d @@`` header."""
    match = _HUNK_HEADER_RE.match(header)
    if not match:
        raise ParseError(f"Malformed hunk header: {header!r}")
    return int(match.group(3))


def parse_patch(patch: str | None) -> list[DiffLine]:
    """Parse a per-file patch as returned by the commit API.

    Binary or oversized files come without a patch; they yield no lines.
    """
    if not patch:
        return []

    lines: list[DiffLine] = []
    current: int | None = None
    for raw in split_lines(patch):
        if raw.startswith("@@"):
            current = parse_hunk_start(raw)
            continue
        if current is None:
            if raw.startswith(_PREAMBLE_PREFIXES):
                continue
            raise ParseError(f"Unexpected content before first hunk header: {raw[:80]!r}")
        if raw.startswith("\\"):
            # "\ No newline at end of file"
            continue
        if raw.startswith("+"):
            lines.append(DiffLine(line_number=current, kind=LineKind.ADDED, text=raw[1:]))
            current += 1
        elif raw.startswith("-"):
            lines.append(DiffLine(line_number=current, kind=LineKind.DELETED, text=raw[1:]))
        else:
            lines.append(DiffLine(line_number=current, kind=LineKind.CONTEXT, text=raw[1:] if raw.startswith(" ") else raw))
            current += 1
    return lines
