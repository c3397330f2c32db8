"""Per-event orchestration: branch and merge gating, file fan-out and reconciliation."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from todobot.blob import extract_blob_context
from todobot.config import DEFAULT_CONFIG_PATH, TodoConfig, load_repo_config
from todobot.connectors.base import ContentFetcher, FetchError, IssueTracker, TrackerError
from todobot.exclusion import should_scan
from todobot.hooks import HookManager, HookName
from todobot.markers import MarkerMatcher
from todobot.models import BlobContext, Commit, EventReport, FileChange, Marker, MarkerOutcome, PushEvent, ReconcileAction
from todobot.patch import ParseError, parse_patch
from todobot.reconcile import IssueReconciler
from todobot.rendering import GITHUB_WEB_URL

logger = logging.getLogger(__name__)


@dataclass
class FileScan:
    change: FileChange
    excluded: bool = False
    parse_error: str | None = None
    markers: list[Marker] = field(default_factory=list)
    blobs: dict[int, BlobContext] = field(default_factory=dict)


def resolve_event_config(
    fetcher: ContentFetcher,
    event: PushEvent,
    *,
    config_path: str = DEFAULT_CONFIG_PATH,
    defaults: dict[str, Any] | None = None,
    runtime_override: dict[str, Any] | None = None,
) -> TodoConfig:
    """Load the repository config as of the pushed head commit."""
    ref = event.head_sha or event.ref

    def _read(path: str) -> str | None:
        try:
            return fetcher.get_file_text(path, ref)
        except FetchError as exc:
            logger.warning("Could not fetch %s at %s, using defaults: %s", path, ref, exc)
            return None

    return load_repo_config(_read, config_path=config_path, defaults=defaults, runtime_override=runtime_override)


class EventGate:
    def __init__(
        self,
        config: TodoConfig,
        tracker: IssueTracker,
        fetcher: ContentFetcher,
        *,
        hooks: HookManager | None = None,
        workers: int = 1,
        base_url: str = GITHUB_WEB_URL,
    ) -> None:
        self.config = config
        self.tracker = tracker
        self.fetcher = fetcher
        self.hooks = hooks or HookManager()
        self.workers = max(1, workers)
        self.base_url = base_url
        self.matcher = MarkerMatcher(config)

    @classmethod
    def for_event(
        cls,
        event: PushEvent,
        tracker: IssueTracker,
        fetcher: ContentFetcher,
        *,
        config_path: str = DEFAULT_CONFIG_PATH,
        defaults: dict[str, Any] | None = None,
        runtime_override: dict[str, Any] | None = None,
        hooks: HookManager | None = None,
        workers: int = 1,
    ) -> EventGate:
        if event.targets_default_branch:
            config = resolve_event_config(
                fetcher,
                event,
                config_path=config_path,
                defaults=defaults,
                runtime_override=runtime_override,
            )
        else:
            config = TodoConfig(config_file_path=config_path)
        return cls(config, tracker, fetcher, hooks=hooks, workers=workers)

    def handle(self, event: PushEvent) -> EventReport:
        start = time.perf_counter()
        report = EventReport(repo=event.repo, ref=event.ref)
        context = {"repo": event.repo, "ref": event.ref}
        self.hooks.emit(HookName.BEFORE_EVENT, context, {"commits": len(event.commits)})

        if not event.targets_default_branch:
            report.skipped_reason = f"{event.ref} is not refs/heads/{event.default_branch}"
            logger.info("Ignoring push to %s for %s", event.ref, event.repo)
            self.hooks.emit(HookName.AFTER_EVENT, context, {"skipped": report.skipped_reason})
            return report

        reconciler = IssueReconciler(
            self.tracker,
            self.config,
            repo=event.repo,
            pusher=event.pusher,
            base_url=self.base_url,
        )
        for pushed in event.commits:
            try:
                commit = self._hydrate(pushed)
            except FetchError as exc:
                logger.warning("Skipping commit %s: %s", pushed.sha, exc)
                report.errors.append(f"{pushed.sha}: {exc}")
                continue
            if commit.is_merge:
                logger.debug("Skipping merge commit %s (%s parents)", commit.sha, commit.parent_count)
                report.merge_commits_skipped += 1
                continue

            report.commits_scanned += 1
            self.hooks.emit(HookName.BEFORE_COMMIT, {**context, "sha": commit.sha}, {"files": len(commit.files or [])})
            for scan in self._scan_commit(commit):
                if scan.excluded:
                    report.files_excluded += 1
                    continue
                report.files_scanned += 1
                if scan.parse_error is not None:
                    report.files_unparseable += 1
                else:
                    self.hooks.emit(
                        HookName.AFTER_FILE_SCAN,
                        {**context, "sha": commit.sha, "path": scan.change.path},
                        {"markers": len(scan.markers)},
                    )
                report.markers_found += len(scan.markers)
                for marker in scan.markers:
                    report.outcomes.append(self._reconcile(reconciler, marker, commit, scan.blobs.get(marker.line_number), context))

        elapsed = time.perf_counter() - start
        logger.info(
            "Processed push %s for %s: commits=%s merges_skipped=%s files=%s markers=%s created=%s reopened=%s skipped=%s failed=%s (%.2fs)",
            event.ref,
            event.repo,
            report.commits_scanned,
            report.merge_commits_skipped,
            report.files_scanned,
            report.markers_found,
            report.count(ReconcileAction.CREATE),
            report.count(ReconcileAction.REOPEN),
            report.count(ReconcileAction.SKIP),
            report.failed,
            elapsed,
        )
        self.hooks.emit(HookName.AFTER_EVENT, context, {"markers": report.markers_found, "failed": report.failed})
        return report

    def _hydrate(self, commit: Commit) -> Commit:
        if commit.files is not None:
            return commit
        fetched = self.fetcher.get_commit(commit.sha)
        return commit.model_copy(
            update={
                "parent_count": fetched.parent_count,
                "files": list(fetched.files or []),
                "author": commit.author or fetched.author,
                "message": commit.message or fetched.message,
            }
        )

    def _scan_commit(self, commit: Commit) -> list[FileScan]:
        files = list(commit.files or [])
        scan = partial(self.scan_file, commit)
        if self.workers > 1 and len(files) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                return list(pool.map(scan, files))
        return [scan(change) for change in files]

    def scan_file(self, commit: Commit, change: FileChange) -> FileScan:
        """Exclusion, parsing, matching and blob lookup for one file; no tracker access or hooks."""
        if not should_scan(change.path, self.config):
            logger.debug("Excluded %s", change.path)
            return FileScan(change=change, excluded=True)

        try:
            lines = parse_patch(change.patch)
        except ParseError as exc:
            logger.warning("Could not parse patch for %s in %s: %s", change.path, commit.sha, exc)
            return FileScan(change=change, parse_error=str(exc))

        markers = self.matcher.find(lines, change.path)
        scan = FileScan(change=change, markers=markers)
        window = self.config.blob_window
        if markers and window is not None:
            scan.blobs = self._blobs_for(commit, change.path, markers, window)
        logger.debug("Scanned %s: %s added lines, %s markers", change.path, len(lines), len(markers))
        return scan

    def _blobs_for(self, commit: Commit, path: str, markers: list[Marker], window: int) -> dict[int, BlobContext]:
        try:
            content = self.fetcher.get_file_text(path, commit.sha)
        except FetchError as exc:
            logger.warning("Could not fetch %s at %s for context: %s", path, commit.sha, exc)
            return {}
        if content is None:
            return {}
        blobs: dict[int, BlobContext] = {}
        for marker in markers:
            blob = extract_blob_context(content, marker.line_number, window, path=path)
            if blob is not None:
                blobs[marker.line_number] = blob
        return blobs

    def _reconcile(
        self,
        reconciler: IssueReconciler,
        marker: Marker,
        commit: Commit,
        blob: BlobContext | None,
        context: dict[str, Any],
    ) -> MarkerOutcome:
        marker_context = {**context, "sha": commit.sha, "path": marker.path, "line": marker.line_number}
        self.hooks.emit(HookName.BEFORE_RECONCILE, marker_context, {"title": marker.title})
        try:
            outcome = reconciler.reconcile(marker, commit, blob)
        except TrackerError as exc:
            logger.exception("Tracker failure for %r at %s:%s", marker.title, marker.path, marker.line_number)
            self.hooks.emit_error(exc, marker_context)
            return MarkerOutcome(commit_sha=commit.sha, marker=marker, error=str(exc))
        self.hooks.emit(HookName.AFTER_RECONCILE, marker_context, {"action": outcome.action.value if outcome.action else None})
        return outcome
