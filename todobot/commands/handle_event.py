"""Push event processing command."""

from __future__ import annotations

import argparse
import logging
import os

from todobot.commands.common import (
    CommandRuntime,
    github_options_from_args,
    load_json_payload,
    load_yaml_dict,
)
from todobot.connectors.github_gh import push_event_from_payload
from todobot.pipeline import EventGate
from todobot.reporting import write_report_bundle

logger = logging.getLogger(__name__)


def run(args: argparse.Namespace, *, runtime: CommandRuntime) -> int:
    event_path = args.event_path or os.environ.get("GITHUB_EVENT_PATH")
    if not event_path:
        raise ValueError("--event-path is required when GITHUB_EVENT_PATH is not set")

    event = push_event_from_payload(load_json_payload(event_path))
    options = github_options_from_args(args)
    tracker = runtime.tracker_for(event.repo, options, dry_run=not args.live_actions)
    fetcher = runtime.fetcher_for(event.repo, options)
    if not args.live_actions:
        logger.info("Dry-run mode: issues will not be created or reopened")

    gate = EventGate.for_event(
        event,
        tracker,
        fetcher,
        config_path=args.config_path,
        defaults=load_yaml_dict(args.defaults),
        runtime_override=load_yaml_dict(args.runtime_override),
        workers=args.workers,
    )
    report = gate.handle(event)
    if args.output_dir:
        write_report_bundle(report, args.output_dir)
        logger.info("Wrote report bundle to %s", args.output_dir)

    if args.strict and report.failed:
        logger.error("%s marker(s) failed to reconcile", report.failed)
        return 1
    return 0
