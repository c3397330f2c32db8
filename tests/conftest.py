from __future__ import annotations

import pytest

from todobot.connectors.base import FetchError, TrackerError
from todobot.models import Commit, FileChange, IssueState, PushEvent, TrackedIssue

EXAMPLE_TITLE = "I am an example title"

BASIC_PATCH = """@@ -1,4 +1,5 @@
 module.exports = app => {
+  // TODO: I am an example title
   app.log('Yay, the app was loaded!')
 
 }"""

BASIC_CONTENT = """module.exports = app => {
  // TODO: I am an example title
  app.log('Yay, the app was loaded!')

}
"""


class FakeTracker:
    """Search returns every known issue; exact-title filtering is the reconciler's job."""

    def __init__(self, issues: list[TrackedIssue] | None = None, fail_titles: set[str] | None = None) -> None:
        self.issues = list(issues or [])
        self.fail_titles = set(fail_titles or ())
        self.searches: list[str] = []
        self.created: list[dict] = []
        self.reopened: list[tuple[TrackedIssue, str]] = []

    def search_by_title(self, title: str) -> list[TrackedIssue]:
        self.searches.append(title)
        if title in self.fail_titles:
            raise TrackerError(f"search failed for {title}")
        return list(self.issues)

    def create(self, title: str, body: str, assignees: list[str], labels: list[str] | None = None) -> TrackedIssue:
        issue = TrackedIssue(title=title, state=IssueState.OPEN, number=100 + len(self.created))
        self.issues.append(issue)
        self.created.append({"title": title, "body": body, "assignees": assignees, "labels": labels or []})
        return issue

    def reopen_and_comment(self, issue: TrackedIssue, comment_body: str) -> None:
        self.reopened.append((issue, comment_body))
        self.issues = [
            existing.model_copy(update={"state": IssueState.OPEN}) if existing.number == issue.number else existing
            for existing in self.issues
        ]


class FakeFetcher:
    def __init__(self, commits: dict[str, Commit] | None = None, files: dict[str, str] | None = None) -> None:
        self.commits = dict(commits or {})
        self.files = dict(files or {})
        self.commit_calls: list[str] = []
        self.file_calls: list[tuple[str, str]] = []

    def get_commit(self, sha: str) -> Commit:
        self.commit_calls.append(sha)
        if sha not in self.commits:
            raise FetchError(f"unknown commit {sha}")
        return self.commits[sha]

    def get_file_text(self, path: str, ref: str) -> str | None:
        self.file_calls.append((path, ref))
        return self.files.get(path)


def make_event(
    files: list[FileChange],
    *,
    ref: str = "refs/heads/master",
    parent_count: int = 1,
    author: str | None = "hiimbex",
) -> PushEvent:
    return PushEvent(
        repo="JasonEtco/test",
        ref=ref,
        default_branch="master",
        head_sha="e06c237a0c041f5a0a61f1c361f7a1d6f3d669af",
        pusher="JasonEtco",
        commits=[
            Commit(
                sha="e06c237a0c041f5a0a61f1c361f7a1d6f3d669af",
                parent_count=parent_count,
                author=author,
                files=files,
            )
        ],
    )


@pytest.fixture
def tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher(files={"index.js": BASIC_CONTENT})
