"""CLI parser construction."""

from __future__ import annotations

import argparse

from todobot.commands.common import add_config_flags, add_github_flags


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create and reopen issues from TODO markers in pushed commits")
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ERROR)")

    sub = parser.add_subparsers(dest="command", required=True)

    handle = sub.add_parser("handle-event", aliases=["handle"], help="Process a GitHub push event payload file")
    handle.add_argument("--event-path", help="Path to the push payload JSON (default: $GITHUB_EVENT_PATH)")
    handle.add_argument("--output-dir", help="Write todo_report.json/md into this directory")
    handle.add_argument(
        "--live-actions",
        action="store_true",
        help="Perform real issue writes (default is dry-run)",
    )
    handle.add_argument("--workers", type=int, default=1, help="Parallel workers for the per-file scan phase")
    handle.add_argument(
        "--strict",
        action="store_true",
        help="Exit non-zero when any marker failed to reconcile",
    )
    add_config_flags(handle)
    add_github_flags(handle)

    scan = sub.add_parser("scan", aliases=["scan-patch"], help="Print markers found in a patch file as JSON")
    scan.add_argument("--patch", required=True, help="Unified diff for one file ('-' reads stdin)")
    scan.add_argument("--path", required=True, help="Repository-relative path the patch applies to")
    scan.add_argument("--repo-path", default=".", help="Repository root used to locate the config file")
    add_config_flags(scan)

    serve = sub.add_parser("serve", aliases=["serve-webhook"], help="Run the push webhook receiver")
    serve.add_argument("--host", default="127.0.0.1", help="Bind host")
    serve.add_argument("--port", type=int, default=8765, help="Bind port")
    serve.add_argument(
        "--secret-env",
        default="TODOBOT_WEBHOOK_SECRET",
        help="Environment variable holding the webhook secret (unset disables signature checks)",
    )
    serve.add_argument(
        "--live-actions",
        action="store_true",
        help="Perform real issue writes (default is dry-run)",
    )
    serve.add_argument("--workers", type=int, default=1, help="Parallel workers for the per-file scan phase")
    add_config_flags(serve)
    add_github_flags(serve)

    return parser
