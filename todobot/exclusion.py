"""Path exclusion rules deciding which changed files get scanned."""

from __future__ import annotations

import logging

from todobot.config import TodoConfig

logger = logging.getLogger(__name__)


class ExclusionDecisionError(ValueError):
    """Raised when a path cannot be classified unambiguously."""


def _normalize(path: str) -> str:
    normalized = path.strip()
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.lstrip("/")


def _decide(path: str, config: TodoConfig) -> bool:
    normalized = _normalize(path)
    if not normalized:
        raise ExclusionDecisionError(f"Cannot classify empty path {path!r}")

    if normalized == _normalize(config.config_file_path):
        return False

    for prefix in config.exclude_paths:
        normalized_prefix = _normalize(prefix)
        if not normalized_prefix:
            raise ExclusionDecisionError(f"Empty exclude prefix {prefix!r} would match every path")
        if normalized.startswith(normalized_prefix):
            return False
    return True


def should_scan(path: str, config: TodoConfig) -> bool:
    """Return True when ``path`` is neither the config file nor under an excluded prefix."""
    try:
        return _decide(path, config)
    except ExclusionDecisionError as exc:
        logger.warning("Excluding %r: %s", path, exc)
        return False
