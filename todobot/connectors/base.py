"""Connector interfaces for the content source and the issue tracker."""

from __future__ import annotations

from typing import Protocol

from todobot.models import Commit, TrackedIssue


class TrackerError(RuntimeError):
    """A search, create or reopen call against the issue tracker failed."""


class FetchError(RuntimeError):
    """Commit or file content could not be retrieved from the hosting platform."""


class ContentFetcher(Protocol):
    def get_commit(self, sha: str) -> Commit: ...

    def get_file_text(self, path: str, ref: str) -> str | None: ...


class IssueTracker(Protocol):
    def search_by_title(self, title: str) -> list[TrackedIssue]: ...

    def create(self, title: str, body: str, assignees: list[str], labels: list[str] | None = None) -> TrackedIssue: ...

    def reopen_and_comment(self, issue: TrackedIssue, comment_body: str) -> None: ...
