"""Connector interfaces and implementations."""

from .github_gh import GithubGhContentFetcher, GithubGhIssueTracker, push_event_from_payload

__all__ = ["GithubGhContentFetcher", "GithubGhIssueTracker", "push_event_from_payload"]
