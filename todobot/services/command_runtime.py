"""Typed command runtime dependency container."""

from __future__ import annotations

from dataclasses import dataclass

from todobot.connectors.base import ContentFetcher, IssueTracker
from todobot.services.interfaces import ContentFetcherFactory, IssueTrackerFactory


@dataclass(frozen=True)
class GithubOptions:
    gh_bin: str = "gh"
    rate_limit_retries: int = 2
    secondary_backoff_base_seconds: float = 5.0
    rate_limit_max_sleep_seconds: float = 90.0


@dataclass(frozen=True)
class CommandRuntime:
    fetcher_cls: ContentFetcherFactory
    tracker_cls: IssueTrackerFactory

    def fetcher_for(self, repo: str, options: GithubOptions) -> ContentFetcher:
        return self.fetcher_cls(
            repo=repo,
            gh_bin=options.gh_bin,
            rate_limit_retries=options.rate_limit_retries,
            secondary_backoff_base_seconds=options.secondary_backoff_base_seconds,
            rate_limit_max_sleep_seconds=options.rate_limit_max_sleep_seconds,
        )

    def tracker_for(self, repo: str, options: GithubOptions, *, dry_run: bool) -> IssueTracker:
        return self.tracker_cls(
            repo=repo,
            gh_bin=options.gh_bin,
            dry_run=dry_run,
            rate_limit_retries=options.rate_limit_retries,
            secondary_backoff_base_seconds=options.secondary_backoff_base_seconds,
            rate_limit_max_sleep_seconds=options.rate_limit_max_sleep_seconds,
        )


def default_runtime() -> CommandRuntime:
    from todobot.connectors.github_gh import GithubGhContentFetcher, GithubGhIssueTracker

    return CommandRuntime(fetcher_cls=GithubGhContentFetcher, tracker_cls=GithubGhIssueTracker)
