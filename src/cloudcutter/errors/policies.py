"""Pluggable policy points of the error pipeline: metrics and recovery.

// [LAW:locality-or-seam] The pipeline only decides WHETHER an error is eligible
//   for recovery. WHAT runs is whatever integrators register here.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from typing import Protocol

from cloudcutter.errors.types import ErrorCode, ViewError
from cloudcutter.io.log_fields import log_fields


RecoveryAction = Callable[[ViewError], None]


class MetricsRecorder(Protocol):
    def record(self, err: ViewError) -> None:
        ...


class NoOpMetricsRecorder:
    """Default recorder. Integrators swap in a real sink."""

    def record(self, err: ViewError) -> None:
        return None


class CountingMetricsRecorder:
    """In-process counters by code and severity."""

    def __init__(self):
        self.by_code: Counter[ErrorCode] = Counter()
        self.by_severity: Counter[str] = Counter()

    def record(self, err: ViewError) -> None:
        self.by_code[err.code] += 1
        self.by_severity[err.severity.name] += 1

    @property
    def total(self) -> int:
        return sum(self.by_code.values())


# Debug text logged when no recovery action is registered for a code.
_INTENT_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.RATE_LIMITED: "Rate limit error - recovery strategy could be implemented",
    ErrorCode.TIMEOUT: "Timeout error - recovery strategy could be implemented",
}
_DEFAULT_INTENT = "Recoverable error - no specific recovery strategy defined"


class RecoveryDispatcher:
    """Routes recoverable errors to per-code recovery actions."""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(__name__)
        self._actions: dict[ErrorCode, RecoveryAction] = {}

    def register(self, code: ErrorCode, action: RecoveryAction) -> None:
        self._actions[code] = action

    def unregister(self, code: ErrorCode) -> None:
        self._actions.pop(code, None)

    def has_action(self, code: ErrorCode) -> bool:
        return code in self._actions

    def attempt(self, err: ViewError) -> bool:
        """Run the action registered for err.code. Returns True if one ran."""
        action = self._actions.get(err.code)
        if action is None:
            log_fields(
                self._logger,
                logging.DEBUG,
                _INTENT_MESSAGES.get(err.code, _DEFAULT_INTENT),
                code=err.code.value,
                operation=err.context.operation,
            )
            return False
        log_fields(
            self._logger,
            logging.DEBUG,
            "Running recovery action",
            code=err.code.value,
            operation=err.context.operation,
        )
        action(err)
        return True
