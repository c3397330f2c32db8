"""Offline patch scan command."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from todobot.commands.common import CommandRuntime, load_yaml_dict
from todobot.config import load_effective_config
from todobot.exclusion import should_scan
from todobot.markers import find_markers
from todobot.patch import ParseError, parse_patch

logger = logging.getLogger(__name__)


def run(args: argparse.Namespace, *, runtime: CommandRuntime) -> int:
    _ = runtime
    config = load_effective_config(
        repo_path=args.repo_path,
        config_path=args.config_path,
        system_defaults=load_yaml_dict(args.defaults),
        runtime_override=load_yaml_dict(args.runtime_override),
    )
    patch = sys.stdin.read() if args.patch == "-" else Path(args.patch).read_text()

    if not should_scan(args.path, config):
        logger.info("%s is excluded by configuration", args.path)
        print("[]")
        return 0
    try:
        lines = parse_patch(patch)
    except ParseError as exc:
        logger.error("Could not parse patch: %s", exc)
        return 2

    markers = find_markers(lines, args.path, config)
    print(json.dumps([marker.model_dump(mode="json") for marker in markers], indent=2))
    logger.info("Scan complete: %s marker(s) in %s", len(markers), args.path)
    return 0
