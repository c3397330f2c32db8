"""Detection and decoding of TODO-style markers on added lines."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from functools import lru_cache

from todobot.config import TodoConfig
from todobot.models import DiffLine, LineKind, Marker

TITLE_MAX_LENGTH = 80
TITLE_ELLIPSIS = "..."

# Leading comment syntax for the languages we expect to see in diffs.
_COMMENT_PREFIX = r"(?:<!--|/\*+|//+|#+|\*+|--+|;+|%+)?"
_SEPARATOR = r"(?:\s*:\s*|\s*-\s+|\s+)"
_CLOSER_SUFFIX = r"\s*(?:\*/|-->)?\s*$"


def truncate_title(title: str, max_length: int = TITLE_MAX_LENGTH) -> str:
    """Shorten ``title`` to ``max_length`` characters ending in an ellipsis.

    Titles that already fit are returned unchanged, so applying this twice gives the
    same result as applying it once.
    """
    if len(title) <= max_length:
        return title
    keep = max(0, max_length - len(TITLE_ELLIPSIS))
    return title[:keep] + TITLE_ELLIPSIS


def _alternation(keywords: Iterable[str]) -> str:
    cleaned = sorted({keyword.strip() for keyword in keywords if keyword.strip()}, key=len, reverse=True)
    return "|".join(re.escape(keyword) for keyword in cleaned)


@lru_cache(maxsize=32)
def _marker_pattern(keywords: tuple[str, ...], case_sensitive: bool) -> re.Pattern[str]:
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile(
        rf"^\s*{_COMMENT_PREFIX}\s*(?P<keyword>{_alternation(keywords)})(?!\w)"
        rf"{_SEPARATOR}(?P<title>\S.*?){_CLOSER_SUFFIX}",
        flags,
    )


@lru_cache(maxsize=32)
def _body_pattern(keywords: tuple[str, ...] | None, case_sensitive: bool) -> re.Pattern[str]:
    flags = 0 if case_sensitive else re.IGNORECASE
    if keywords is None:
        return re.compile(rf"^\s*{_COMMENT_PREFIX}\s*(?P<body>.*?){_CLOSER_SUFFIX}", flags)
    return re.compile(
        rf"^\s*{_COMMENT_PREFIX}\s*(?:{_alternation(keywords)})(?!\w)"
        rf"{_SEPARATOR}(?P<body>\S.*?){_CLOSER_SUFFIX}",
        flags,
    )


class MarkerMatcher:
    """Finds markers in the added lines of one file's diff."""

    def __init__(self, config: TodoConfig) -> None:
        self.config = config
        self._marker_re = _marker_pattern(tuple(config.keyword), config.case_sensitive)
        body_keywords = tuple(config.body_keyword) if config.body_keyword else None
        self._body_re = _body_pattern(body_keywords, config.case_sensitive)

    def match_line(self, text: str) -> tuple[str, str] | None:
        """Return ``(keyword, title)`` when ``text`` carries a marker."""
        match = self._marker_re.match(text)
        if not match:
            return None
        return match.group("keyword"), match.group("title")

    def match_body(self, text: str) -> str | None:
        if self.match_line(text) is not None:
            return None
        match = self._body_re.match(text)
        if not match:
            return None
        body = match.group("body").strip()
        return body or None

    def find(self, lines: Sequence[DiffLine], path: str) -> list[Marker]:
        added = {line.line_number: line for line in lines if line.kind == LineKind.ADDED}
        markers: list[Marker] = []
        for line in lines:
            if line.kind != LineKind.ADDED:
                continue
            decoded = self.match_line(line.text)
            if decoded is None:
                continue
            keyword, raw_title = decoded
            title = truncate_title(raw_title)

            body = None
            following = added.get(line.line_number + 1)
            if following is not None:
                body = self.match_body(following.text)

            markers.append(
                Marker(
                    path=path,
                    line_number=line.line_number,
                    keyword=keyword,
                    title=title,
                    raw_title=raw_title,
                    body=body,
                    truncated=title != raw_title,
                )
            )
        return markers


def find_markers(lines: Sequence[DiffLine], path: str, config: TodoConfig) -> list[Marker]:
    return MarkerMatcher(config).find(lines, path)
