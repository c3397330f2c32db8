"""Logging configuration helpers."""

from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "TODOBOT_LOG_LEVEL"


def configure_logging(level: str | None = None) -> None:
    normalized = (level or os.environ.get(LOG_LEVEL_ENV) or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, normalized, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
