"""GitHub connectors backed by gh CLI for commit content and issue tracking."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
import subprocess
import threading
import time
from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from todobot.connectors.base import ContentFetcher, FetchError, IssueTracker, TrackerError
from todobot.models import Commit, FileChange, IssueState, PushEvent, TrackedIssue

_RATE_LIMIT_RE = re.compile(r"(?:api|secondary) rate limit", re.IGNORECASE)
_HTTP_STATUS_RE = re.compile(r"HTTP (\d{3})")
_ABSOLUTE_PREFIXES = ("repos/", "search/")
logger = logging.getLogger(__name__)


class GithubUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    login: str
    type: str | None = None


class GithubCommitFile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    filename: str
    status: str = "modified"
    patch: str | None = None


class GithubCommit(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sha: str
    parents: list[dict[str, Any]] = Field(default_factory=list)
    files: list[GithubCommitFile] = Field(default_factory=list)
    author: GithubUser | None = None
    commit: dict[str, Any] = Field(default_factory=dict)


class GithubContent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str = "file"
    encoding: str | None = None
    content: str | None = None


class GithubIssueItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    number: int
    title: str
    state: str = "open"
    html_url: str | None = None
    pull_request: dict[str, Any] | None = None


class GithubSearchResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total_count: int = 0
    items: list[GithubIssueItem] = Field(default_factory=list)


class GithubRepository(BaseModel):
    model_config = ConfigDict(extra="ignore")

    full_name: str
    default_branch: str | None = None
    master_branch: str | None = None


class GithubPushAuthor(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    username: str | None = None


class GithubPushCommit(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    message: str = ""
    author: GithubPushAuthor | None = None


class GithubPushPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ref: str
    after: str | None = None
    repository: GithubRepository
    commits: list[GithubPushCommit] = Field(default_factory=list)
    head_commit: GithubPushCommit | None = None
    pusher: GithubPushAuthor | None = None


class GithubApiError(RuntimeError):
    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class GithubRateLimitError(GithubApiError):
    def __init__(self, message: str, *, retry_after_seconds: float | None = None) -> None:
        super().__init__(message, status=403)
        self.retry_after_seconds = retry_after_seconds


class GithubGhClient:
    def __init__(
        self,
        repo: str,
        gh_bin: str = "gh",
        *,
        rate_limit_retries: int = 2,
        secondary_backoff_base_seconds: float = 5.0,
        rate_limit_max_sleep_seconds: float = 90.0,
    ) -> None:
        self.repo = repo
        self.gh_bin = gh_bin
        self.rate_limit_retries = max(0, rate_limit_retries)
        self.secondary_backoff_base_seconds = max(1.0, secondary_backoff_base_seconds)
        self.rate_limit_max_sleep_seconds = max(1.0, rate_limit_max_sleep_seconds)
        self._rate_limit_lock = threading.Lock()
        self._global_backoff_until = 0.0

    def resolve_endpoint(self, endpoint: str) -> str:
        trimmed = endpoint.lstrip("/")
        if trimmed.startswith(_ABSOLUTE_PREFIXES):
            return trimmed
        return f"repos/{self.repo}/{trimmed}"

    def api_json(self, endpoint: str, method: str = "GET", body: dict[str, Any] | None = None) -> Any:
        cmd = [self.gh_bin, "api", self.resolve_endpoint(endpoint), "-X", method, "-H", "Accept: application/vnd.github+json"]
        if body is not None:
            cmd.extend(["--input", "-"])

        for attempt in range(self.rate_limit_retries + 1):
            self._wait_for_global_backoff()
            proc = subprocess.run(
                cmd,
                input=json.dumps(body) if body is not None else None,
                text=True,
                capture_output=True,
                check=False,
            )
            if proc.returncode == 0:
                output = proc.stdout.strip()
                try:
                    return json.loads(output) if output else None
                except ValueError as exc:
                    raise GithubApiError(f"gh api returned non-JSON output for {endpoint}: {exc}") from exc

            stderr = proc.stderr.strip()
            if not _RATE_LIMIT_RE.search(stderr):
                status_match = _HTTP_STATUS_RE.search(stderr)
                raise GithubApiError(
                    f"gh api failed: {' '.join(cmd)}\n{stderr}",
                    status=int(status_match.group(1)) if status_match else None,
                )

            wait_seconds = min(self.rate_limit_max_sleep_seconds, self.secondary_backoff_base_seconds * (2**attempt))
            self._set_global_backoff(wait_seconds)
            logger.warning(
                "GitHub rate limit hit for %s (attempt %s/%s). backoff=%.1fs",
                endpoint,
                attempt + 1,
                self.rate_limit_retries + 1,
                wait_seconds,
            )
            if attempt < self.rate_limit_retries:
                continue
            raise GithubRateLimitError(f"gh api failed: {' '.join(cmd)}\n{stderr}", retry_after_seconds=wait_seconds)
        raise GithubApiError(f"gh api failed unexpectedly after retries for endpoint={endpoint}")

    def _wait_for_global_backoff(self) -> None:
        while True:
            with self._rate_limit_lock:
                wait_seconds = self._global_backoff_until - time.monotonic()
            if wait_seconds <= 0:
                return
            time.sleep(wait_seconds)

    def _set_global_backoff(self, wait_seconds: float) -> None:
        target = time.monotonic() + max(0.0, wait_seconds)
        with self._rate_limit_lock:
            self._global_backoff_until = max(self._global_backoff_until, target)


class GithubGhContentFetcher(ContentFetcher):
    def __init__(
        self,
        repo: str,
        gh_bin: str = "gh",
        *,
        rate_limit_retries: int = 2,
        secondary_backoff_base_seconds: float = 5.0,
        rate_limit_max_sleep_seconds: float = 90.0,
    ) -> None:
        self.repo = repo
        self.client = GithubGhClient(
            repo=repo,
            gh_bin=gh_bin,
            rate_limit_retries=rate_limit_retries,
            secondary_backoff_base_seconds=secondary_backoff_base_seconds,
            rate_limit_max_sleep_seconds=rate_limit_max_sleep_seconds,
        )

    def get_commit(self, sha: str) -> Commit:
        try:
            commit = GithubCommit.model_validate(self.client.api_json(f"commits/{sha}"))
        except (GithubApiError, ValidationError) as exc:
            raise FetchError(f"Could not fetch commit {sha}: {exc}") from exc
        return Commit(
            sha=commit.sha,
            parent_count=max(1, len(commit.parents)),
            author=commit.author.login if commit.author else None,
            message=(commit.commit.get("message") or ""),
            files=[FileChange(path=item.filename, patch=item.patch, status=item.status) for item in commit.files],
        )

    def get_file_text(self, path: str, ref: str) -> str | None:
        endpoint = f"contents/{quote(path)}?ref={quote(ref, safe='')}"
        try:
            payload = self.client.api_json(endpoint)
        except GithubApiError as exc:
            if exc.status == 404:
                return None
            raise FetchError(f"Could not fetch {path}@{ref}: {exc}") from exc
        if not isinstance(payload, dict):
            # Directory listings come back as arrays.
            return None
        try:
            content = GithubContent.model_validate(payload)
        except ValidationError as exc:
            raise FetchError(f"Unexpected content payload for {path}@{ref}: {exc}") from exc
        return _decode_content(content)


class GithubGhIssueTracker(IssueTracker):
    def __init__(
        self,
        repo: str,
        gh_bin: str = "gh",
        dry_run: bool = True,
        *,
        rate_limit_retries: int = 2,
        secondary_backoff_base_seconds: float = 5.0,
        rate_limit_max_sleep_seconds: float = 90.0,
    ) -> None:
        self.repo = repo
        self.client = GithubGhClient(
            repo=repo,
            gh_bin=gh_bin,
            rate_limit_retries=rate_limit_retries,
            secondary_backoff_base_seconds=secondary_backoff_base_seconds,
            rate_limit_max_sleep_seconds=rate_limit_max_sleep_seconds,
        )
        self.dry_run = dry_run

    def search_by_title(self, title: str) -> list[TrackedIssue]:
        query = f"{build_title_query(title)} repo:{self.repo} in:title is:issue"
        try:
            payload = self.client.api_json(f"search/issues?q={quote(query, safe='')}&per_page=100")
            result = GithubSearchResult.model_validate(payload or {})
        except (GithubApiError, ValidationError) as exc:
            raise TrackerError(f"Issue search failed for {title!r}: {exc}") from exc
        return [_tracked_issue(item) for item in result.items if not item.pull_request]

    def create(self, title: str, body: str, assignees: list[str], labels: list[str] | None = None) -> TrackedIssue:
        if self.dry_run:
            logger.info("[dry-run] Would create issue %r (assignees=%s labels=%s)", title, assignees, labels or [])
            return TrackedIssue(title=title, state=IssueState.OPEN)
        request: dict[str, Any] = {"title": title, "body": body, "assignees": assignees}
        if labels:
            request["labels"] = labels
        try:
            created = GithubIssueItem.model_validate(self.client.api_json("issues", method="POST", body=request))
        except (GithubApiError, ValidationError) as exc:
            raise TrackerError(f"Issue creation failed for {title!r}: {exc}") from exc
        return _tracked_issue(created)

    def reopen_and_comment(self, issue: TrackedIssue, comment_body: str) -> None:
        if issue.number is None:
            raise TrackerError(f"Cannot reopen issue without a number: {issue.title!r}")
        if self.dry_run:
            logger.info("[dry-run] Would reopen issue #%s %r", issue.number, issue.title)
            return
        try:
            self.client.api_json(f"issues/{issue.number}", method="PATCH", body={"state": "open"})
            self.client.api_json(f"issues/{issue.number}/comments", method="POST", body={"body": comment_body})
        except GithubApiError as exc:
            raise TrackerError(f"Reopening issue #{issue.number} failed: {exc}") from exc


def build_title_query(title: str) -> str:
    # Search syntax has no escape for embedded quotes.
    return '"' + title.replace('"', " ").strip() + '"'


def push_event_from_payload(payload: dict[str, Any]) -> PushEvent:
    """Normalize a GitHub ``push`` webhook payload; commit files are fetched later."""
    push = GithubPushPayload.model_validate(payload)
    pushed = push.commits or ([push.head_commit] if push.head_commit else [])
    pusher = push.pusher.username or push.pusher.name if push.pusher else None
    return PushEvent(
        repo=push.repository.full_name,
        ref=push.ref,
        default_branch=push.repository.default_branch or push.repository.master_branch or "main",
        head_sha=push.head_commit.id if push.head_commit else push.after,
        pusher=pusher,
        commits=[
            Commit(
                sha=item.id,
                author=item.author.username if item.author else None,
                message=item.message,
            )
            for item in pushed
        ],
    )


def _tracked_issue(item: GithubIssueItem) -> TrackedIssue:
    state = IssueState.CLOSED if item.state.lower() == "closed" else IssueState.OPEN
    return TrackedIssue(title=item.title, state=state, number=item.number, html_url=item.html_url)


def _decode_content(content: GithubContent) -> str | None:
    if content.type != "file" or content.content is None:
        return None
    if content.encoding != "base64":
        return content.content
    try:
        raw = base64.b64decode(content.content)
    except (binascii.Error, ValueError) as exc:
        raise FetchError(f"Invalid base64 file content: {exc}") from exc
    return raw.decode("utf-8", errors="replace")
