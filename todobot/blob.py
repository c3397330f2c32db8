"""Bounded source-context windows around a marker line."""

from __future__ import annotations

from todobot.models import BlobContext, BlobLine
from todobot.patch import split_lines


def blob_bounds(line_number: int, window: int, line_count: int) -> tuple[int, int] | None:
    """Clamp ``[line - window, line + window]`` to ``[1, line_count]``."""
    if window < 0:
        raise ValueError(f"window must be non-negative, got {window}")
    if line_number < 1 or line_number > line_count:
        return None
    return max(1, line_number - window), min(line_count, line_number + window)


def extract_blob_context(content: str, line_number: int, window: int, *, path: str = "") -> BlobContext | None:
    """Return the lines surrounding ``line_number``; None if the line is not in ``content``."""
    source_lines = split_lines(content)
    bounds = blob_bounds(line_number, window, len(source_lines))
    if bounds is None:
        return None
    start, end = bounds
    return BlobContext(
        path=path,
        marker_line=line_number,
        lines=[
            BlobLine(line_number=number, text=source_lines[number - 1], is_marker=number == line_number)
            for number in range(start, end + 1)
        ],
    )
