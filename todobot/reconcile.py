"""Create/reopen/skip reconciliation of markers against tracked issues."""

from __future__ import annotations

import logging
import threading

from todobot.config import TodoConfig
from todobot.connectors.base import IssueTracker
from todobot.models import (
    BlobContext,
    Commit,
    IssueDraft,
    IssueState,
    Marker,
    MarkerOutcome,
    ReconcileAction,
    ReconcileDecision,
    TrackedIssue,
)
from todobot.rendering import GITHUB_WEB_URL, render_issue_body, render_reopen_comment

logger = logging.getLogger(__name__)


def first_exact_match(title: str, candidates: list[TrackedIssue]) -> TrackedIssue | None:
    """Return the first candidate whose title equals ``title`` exactly.

    Tracker search is token based, so candidates with merely similar titles are dropped.
    When several issues share the title only the first returned one is considered.
    """
    for issue in candidates:
        if issue.title == title:
            return issue
    return None


class IssueReconciler:
    """Decides and applies exactly one tracker effect per marker.

    One instance serves one event. ``reconcile`` holds an instance lock across the
    search-then-act sequence so two markers with the same title cannot both observe
    "no match" and create duplicates.
    """

    def __init__(
        self,
        tracker: IssueTracker,
        config: TodoConfig,
        *,
        repo: str,
        pusher: str | None = None,
        base_url: str = GITHUB_WEB_URL,
    ) -> None:
        self.tracker = tracker
        self.config = config
        self.repo = repo
        self.pusher = pusher
        self.base_url = base_url
        self._lock = threading.Lock()

    def build_draft(self, marker: Marker, commit: Commit, blob: BlobContext | None = None) -> IssueDraft:
        assignees = self.config.auto_assign.resolve(commit.author, self.pusher)
        body = render_issue_body(
            marker,
            repo=self.repo,
            commit=commit,
            blob=blob,
            assignees=assignees,
            base_url=self.base_url,
        )
        return IssueDraft(title=marker.title, body=body, assignees=assignees, labels=list(self.config.labels))

    def decide(self, marker: Marker, commit: Commit, blob: BlobContext | None = None) -> ReconcileDecision:
        existing = first_exact_match(marker.title, self.tracker.search_by_title(marker.title))
        if existing is None:
            return ReconcileDecision(
                action=ReconcileAction.CREATE,
                marker=marker,
                reason="no issue with this title",
                draft=self.build_draft(marker, commit, blob),
            )
        if existing.state == IssueState.OPEN:
            return ReconcileDecision(action=ReconcileAction.SKIP, marker=marker, reason="open issue exists", issue=existing)
        if not self.config.reopen_closed:
            return ReconcileDecision(
                action=ReconcileAction.SKIP,
                marker=marker,
                reason="closed issue exists and reopenClosed is disabled",
                issue=existing,
            )
        return ReconcileDecision(
            action=ReconcileAction.REOPEN,
            marker=marker,
            reason="closed issue exists",
            issue=existing,
            comment=render_reopen_comment(marker, repo=self.repo, commit=commit, base_url=self.base_url),
        )

    def apply(self, decision: ReconcileDecision) -> TrackedIssue | None:
        if decision.action == ReconcileAction.CREATE and decision.draft is not None:
            draft = decision.draft
            issue = self.tracker.create(draft.title, draft.body, list(draft.assignees), list(draft.labels))
            logger.info("Created issue #%s %r", issue.number, draft.title)
            return issue
        if decision.action == ReconcileAction.REOPEN and decision.issue is not None:
            self.tracker.reopen_and_comment(decision.issue, decision.comment or "")
            logger.info("Reopened issue #%s %r", decision.issue.number, decision.issue.title)
            return decision.issue.model_copy(update={"state": IssueState.OPEN})
        logger.debug("Skipping %r: %s", decision.marker.title, decision.reason)
        return decision.issue

    def reconcile(self, marker: Marker, commit: Commit, blob: BlobContext | None = None) -> MarkerOutcome:
        """Search, decide and act for one marker; TrackerError propagates to the caller."""
        with self._lock:
            decision = self.decide(marker, commit, blob)
            issue = self.apply(decision)
        return MarkerOutcome(commit_sha=commit.sha, marker=marker, decision=decision, issue=issue)
