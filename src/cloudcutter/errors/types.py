"""Classified-failure data model.

// [LAW:one-source-of-truth] ViewError is the canonical failure record. The code
//   is the discriminator; severity and recoverability are derived from it once,
//   at construction time, by cloudcutter.errors.handler.

This module is STABLE. Safe for `from` imports everywhere.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum


class ErrorCode(Enum):
    """Closed set of failure kinds."""

    NETWORK_FAILURE = "NETWORK_FAILURE"
    TIMEOUT = "TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"
    CONNECTION_REFUSED = "CONNECTION_REFUSED"

    DECODING_FAILURE = "DECODING_FAILURE"
    ENCODING_FAILURE = "ENCODING_FAILURE"

    VALIDATION_FAILURE = "VALIDATION_FAILURE"
    USER_INPUT_ERROR = "USER_INPUT_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    INITIALIZATION_ERROR = "INITIALIZATION_ERROR"

    STATE_INCONSISTENCY = "STATE_INCONSISTENCY"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UI_RENDER_ERROR = "UI_RENDER_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ErrorSeverity(IntEnum):
    """Impact level. Comparisons follow impact: CRITICAL > HIGH > ... > INFO."""

    INFO = 0      # informational, not really an error
    LOW = 1       # minor issue, graceful degradation
    MEDIUM = 2    # some functionality affected
    HIGH = 3      # major functionality affected
    CRITICAL = 4  # system cannot continue


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ErrorContext:
    """Where and when a failure happened.

    metadata is mutable on purpose: wrapping calls merge extra keys into it.
    """

    component: str = ""
    operation: str = ""
    timestamp: datetime = field(default_factory=_now)
    metadata: dict[str, object] = field(default_factory=dict)
    stack_trace: str = ""
    user_id: str = ""
    request_id: str = ""


class ViewError(Exception):
    """A failure that has been classified.

    Attributes:
        code: The failure kind.
        message: Internal message, for logs only.
        severity: Derived from code.
        cause: Underlying exception, also chained as __cause__.
        context: Capture-time context.
        recoverable: Whether recovery and retry may be attempted.
        user_message: Sanitized text that is safe to show to the user.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        severity: ErrorSeverity,
        *,
        cause: BaseException | None = None,
        context: ErrorContext | None = None,
        recoverable: bool = True,
        user_message: str = "",
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.severity = severity
        self.cause = cause
        self.context = context if context is not None else ErrorContext()
        self.recoverable = recoverable
        self.user_message = user_message
        self.__cause__ = cause

    def __str__(self) -> str:
        head = f"[{self.code.value}:{self.severity.name}] {self.message}"
        if self.cause is not None:
            return f"{head}: {self.cause}"
        return head

    def __repr__(self) -> str:
        return (
            f"ViewError(code={self.code.value}, severity={self.severity.name}, "
            f"message={self.message!r}, recoverable={self.recoverable})"
        )

    def is_code(self, code: ErrorCode) -> bool:
        return self.code is code
