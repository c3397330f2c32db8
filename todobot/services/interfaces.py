"""Factory interfaces used by command/runtime orchestration."""

from __future__ import annotations

from typing import Protocol

from todobot.connectors.base import ContentFetcher, IssueTracker


class ContentFetcherFactory(Protocol):
    def __call__(
        self,
        *,
        repo: str,
        gh_bin: str = "gh",
        rate_limit_retries: int = 2,
        secondary_backoff_base_seconds: float = 5.0,
        rate_limit_max_sleep_seconds: float = 90.0,
    ) -> ContentFetcher: ...


class IssueTrackerFactory(Protocol):
    def __call__(
        self,
        *,
        repo: str,
        gh_bin: str = "gh",
        dry_run: bool = True,
        rate_limit_retries: int = 2,
        secondary_backoff_base_seconds: float = 5.0,
        rate_limit_max_sleep_seconds: float = 90.0,
    ) -> IssueTracker: ...
