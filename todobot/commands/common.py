"""Shared helpers for CLI command modules."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

import yaml

from todobot.config import DEFAULT_CONFIG_PATH
from todobot.services.command_runtime import CommandRuntime, GithubOptions

__all__ = [
    "CommandRuntime",
    "add_config_flags",
    "add_github_flags",
    "github_options_from_args",
    "load_json_payload",
    "load_yaml_dict",
    "normalize_command",
]

ALIAS_TO_CANONICAL = {
    "handle": "handle-event",
    "scan-patch": "scan",
    "serve-webhook": "serve",
}


def normalize_command(name: str) -> str:
    return ALIAS_TO_CANONICAL.get(name, name)


def load_yaml_dict(path: str | None) -> dict | None:
    if not path:
        return None
    data = yaml.safe_load(Path(path).read_text())
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError(f"YAML at {path} must decode to a mapping")
    return data


def load_json_payload(path: str | Path) -> dict[str, Any]:
    raw = json.loads(Path(path).read_text())
    if not isinstance(raw, dict):
        raise ValueError(f"Event payload at {path} must be a JSON object")
    return raw


def add_config_flags(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--config-path", default=DEFAULT_CONFIG_PATH, help="Repository-relative config file path")
    cmd.add_argument("--defaults", help="Optional YAML with defaults applied beneath the repository config")
    cmd.add_argument("--runtime-override", help="Optional YAML applied on top of the repository config")


def add_github_flags(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--gh-bin", default="gh", help="Path/name of gh binary")
    cmd.add_argument(
        "--gh-rate-limit-retries",
        type=int,
        default=2,
        help="Retries per GitHub API call when rate-limited",
    )
    cmd.add_argument(
        "--gh-secondary-backoff-seconds",
        type=float,
        default=5.0,
        help="Base backoff for secondary limits (exponential per retry)",
    )
    cmd.add_argument(
        "--gh-rate-limit-max-sleep-seconds",
        type=float,
        default=90.0,
        help="Maximum automatic sleep before surfacing a rate-limit failure",
    )


def github_options_from_args(args: argparse.Namespace) -> GithubOptions:
    return GithubOptions(
        gh_bin=args.gh_bin,
        rate_limit_retries=args.gh_rate_limit_retries,
        secondary_backoff_base_seconds=args.gh_secondary_backoff_seconds,
        rate_limit_max_sleep_seconds=args.gh_rate_limit_max_sleep_seconds,
    )
