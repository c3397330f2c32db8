"""Serve webhook command."""

from __future__ import annotations

import argparse
import logging
import os

from todobot.commands.common import CommandRuntime, load_yaml_dict

logger = logging.getLogger(__name__)


def run(args: argparse.Namespace, *, runtime: CommandRuntime) -> int:
    try:
        import uvicorn

        from todobot.webhook import WebhookSettings, create_app
    except ImportError as exc:  # pragma: no cover - dependency/runtime
        raise RuntimeError("Missing optional server dependencies. Install with: pip install 'todobot[server]'") from exc

    secret = os.environ.get(args.secret_env) or None
    if secret is None:
        logger.warning("%s is not set; webhook signatures will not be verified", args.secret_env)

    settings = WebhookSettings(
        secret=secret,
        live_actions=args.live_actions,
        workers=args.workers,
        config_path=args.config_path,
        defaults=load_yaml_dict(args.defaults) or {},
        runtime_override=load_yaml_dict(args.runtime_override) or {},
        gh_bin=args.gh_bin,
        rate_limit_retries=args.gh_rate_limit_retries,
        secondary_backoff_base_seconds=args.gh_secondary_backoff_seconds,
        rate_limit_max_sleep_seconds=args.gh_rate_limit_max_sleep_seconds,
    )
    app = create_app(settings, runtime)
    logger.info("Starting webhook receiver on http://%s:%s (live_actions=%s)", args.host, args.port, args.live_actions)
    uvicorn.run(app, host=args.host, port=args.port, log_level=(args.log_level or "info").lower())
    return 0
