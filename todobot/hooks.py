"""Hook registry for event-processing lifecycle callbacks."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class HookName(str, Enum):
    BEFORE_EVENT = "before_event"
    AFTER_EVENT = "after_event"
    BEFORE_COMMIT = "before_commit"
    AFTER_FILE_SCAN = "after_file_scan"
    BEFORE_RECONCILE = "before_reconcile"
    AFTER_RECONCILE = "after_reconcile"
    ON_ERROR = "on_error"


HookCallback = Callable[[dict[str, Any], dict[str, Any]], dict[str, Any] | None]


class HookManager:
    """In-process hooks; callbacks run in registration order and may patch the envelope."""

    def __init__(self) -> None:
        self._callbacks: dict[HookName, list[HookCallback]] = defaultdict(list)

    def register(self, name: HookName, callback: HookCallback) -> None:
        self._callbacks[name].append(callback)

    def emit(self, name: HookName, context: dict[str, Any], envelope: dict[str, Any] | None = None) -> dict[str, Any]:
        result = dict(envelope or {})
        for callback in self._callbacks[name]:
            try:
                patch = callback(context, dict(result))
            except Exception as exc:  # noqa: BLE001 - error hook path
                logger.warning("Hook %s callback failed: %s", name.value, exc)
                self.emit_error(exc, {"hook": name.value, **context})
                continue
            if patch:
                result.update(patch)
        return result

    def emit_error(self, exc: Exception, context: dict[str, Any]) -> None:
        for callback in self._callbacks[HookName.ON_ERROR]:
            callback({"exception": exc, **context}, {})
