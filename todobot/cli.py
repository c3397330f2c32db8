"""CLI entrypoint for push-event processing, offline scans and the webhook server."""

from __future__ import annotations

import argparse

from todobot.commands import handle_event, scan, serve
from todobot.commands.common import normalize_command
from todobot.commands.parser import build_parser as _build_parser
from todobot.logging_utils import configure_logging
from todobot.services.command_runtime import CommandRuntime, default_runtime


COMMANDS = {
    "handle-event": handle_event.run,
    "scan": scan.run,
    "serve": serve.run,
}


def build_parser() -> argparse.ArgumentParser:
    return _build_parser()


def main(argv: list[str] | None = None, *, runtime: CommandRuntime | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    handler = COMMANDS.get(normalize_command(args.command))
    if handler is None:
        parser.print_help()
        return 1
    return handler(args, runtime=runtime or default_runtime())


if __name__ == "__main__":
    raise SystemExit(main())
