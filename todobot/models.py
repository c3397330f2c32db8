"""Core Pydantic domain models for todobot."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LineKind(str, Enum):
    ADDED = "added"
    CONTEXT = "context"
    DELETED = "deleted"


class IssueState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class ReconcileAction(str, Enum):
    CREATE = "create"
    REOPEN = "reopen"
    SKIP = "skip"


class DiffLine(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    line_number: int
    kind: LineKind
    text: str = ""


class FileChange(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str
    patch: str | None = None
    status: str = "modified"


class Commit(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sha: str
    parent_count: int = Field(default=1, ge=1)
    author: str | None = None
    message: str = ""
    files: list[FileChange] | None = None

    @property
    def is_merge(self) -> bool:
        return self.parent_count > 1


class PushEvent(BaseModel):
    model_config = ConfigDict(extra="forbid")

    repo: str
    ref: str
    default_branch: str = "main"
    head_sha: str | None = None
    pusher: str | None = None
    commits: list[Commit] = Field(default_factory=list)

    @property
    def targets_default_branch(self) -> bool:
        return self.ref == f"refs/heads/{self.default_branch}"


class Marker(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str
    line_number: int
    keyword: str
    title: str
    raw_title: str
    body: str | None = None
    truncated: bool = False


class BlobLine(BaseModel):
    model_config = ConfigDict(extra="forbid")

    line_number: int
    text: str
    is_marker: bool = False


class BlobContext(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str
    marker_line: int
    lines: list[BlobLine] = Field(default_factory=list)

    @property
    def start(self) -> int:
        return self.lines[0].line_number if self.lines else self.marker_line

    @property
    def end(self) -> int:
        return self.lines[-1].line_number if self.lines else self.marker_line


class TrackedIssue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    state: IssueState = IssueState.OPEN
    number: int | None = None
    html_url: str | None = None


class IssueDraft(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str
    body: str
    assignees: list[str] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)


class ReconcileDecision(BaseModel):
    model_config = ConfigDict(extra="forbid")

    action: ReconcileAction
    marker: Marker
    reason: str = ""
    issue: TrackedIssue | None = None
    draft: IssueDraft | None = None
    comment: str | None = None


class MarkerOutcome(BaseModel):
    model_config = ConfigDict(extra="forbid")

    commit_sha: str
    marker: Marker
    decision: ReconcileDecision | None = None
    issue: TrackedIssue | None = None
    error: str | None = None

    @property
    def action(self) -> ReconcileAction | None:
        if self.error is not None or self.decision is None:
            return None
        return self.decision.action


class EventReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    repo: str
    ref: str
    skipped_reason: str | None = None
    commits_scanned: int = 0
    merge_commits_skipped: int = 0
    files_scanned: int = 0
    files_excluded: int = 0
    files_unparseable: int = 0
    markers_found: int = 0
    outcomes: list[MarkerOutcome] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    def count(self, action: ReconcileAction) -> int:
        return sum(1 for outcome in self.outcomes if outcome.action == action)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.error is not None)
