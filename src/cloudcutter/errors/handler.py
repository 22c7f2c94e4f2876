"""Centralized error classification, logging, recovery and retry policy.

// [LAW:single-enforcer] Severity, recoverability and user messaging are decided
//   here and nowhere else. Everything that fails ends up in handle_error().
// [LAW:one-source-of-truth] The three lookup tables below are total: every
//   ErrorCode resolves through them, unlisted codes via an explicit default.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from cloudcutter.errors.policies import MetricsRecorder, NoOpMetricsRecorder, RecoveryDispatcher
from cloudcutter.errors.stack import StackSnapshot, TracebackStackSnapshot
from cloudcutter.errors.types import ErrorCode, ErrorContext, ErrorSeverity, ViewError
from cloudcutter.io.log_fields import log_fields

logger = logging.getLogger(__name__)


# ─── Classification tables ────────────────────────────────────────────────────

SEVERITY_BY_CODE: dict[ErrorCode, ErrorSeverity] = {
    ErrorCode.CONNECTION_REFUSED: ErrorSeverity.CRITICAL,
    ErrorCode.CONFIGURATION_ERROR: ErrorSeverity.CRITICAL,
    ErrorCode.INITIALIZATION_ERROR: ErrorSeverity.CRITICAL,
    ErrorCode.NETWORK_FAILURE: ErrorSeverity.HIGH,
    ErrorCode.TIMEOUT: ErrorSeverity.HIGH,
    ErrorCode.STATE_INCONSISTENCY: ErrorSeverity.HIGH,
    ErrorCode.INTERNAL_ERROR: ErrorSeverity.HIGH,
    ErrorCode.RATE_LIMITED: ErrorSeverity.MEDIUM,
    ErrorCode.DECODING_FAILURE: ErrorSeverity.MEDIUM,
    ErrorCode.VALIDATION_FAILURE: ErrorSeverity.MEDIUM,
    ErrorCode.UI_RENDER_ERROR: ErrorSeverity.MEDIUM,
    ErrorCode.USER_INPUT_ERROR: ErrorSeverity.LOW,
    ErrorCode.RESOURCE_NOT_FOUND: ErrorSeverity.LOW,
}
DEFAULT_SEVERITY = ErrorSeverity.MEDIUM

RECOVERABLE_BY_CODE: dict[ErrorCode, bool] = {
    ErrorCode.RATE_LIMITED: True,
    ErrorCode.TIMEOUT: True,
    ErrorCode.USER_INPUT_ERROR: True,
    ErrorCode.RESOURCE_NOT_FOUND: True,
    ErrorCode.CONNECTION_REFUSED: False,
    ErrorCode.CONFIGURATION_ERROR: False,
    ErrorCode.INITIALIZATION_ERROR: False,
    ErrorCode.INTERNAL_ERROR: False,
}
# Optimistic: anything not known to be fatal may be retried.
DEFAULT_RECOVERABLE = True

USER_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.NETWORK_FAILURE: "Unable to connect to the service. Please check your connection.",
    ErrorCode.TIMEOUT: "The operation timed out. Please try again.",
    ErrorCode.RATE_LIMITED: "Too many requests. Please wait a moment and try again.",
    ErrorCode.VALIDATION_FAILURE: "Please check your input and try again.",
    ErrorCode.RESOURCE_NOT_FOUND: "The requested resource was not found.",
    ErrorCode.PERMISSION_DENIED: "You don't have permission to perform this action.",
}
DEFAULT_USER_MESSAGE = (
    "An error occurred. Please try again or contact support if the problem persists."
)

# Seconds to wait before retrying a recoverable error.
RETRY_DELAYS: dict[ErrorCode, float] = {
    ErrorCode.RATE_LIMITED: 5.0,
    ErrorCode.TIMEOUT: 2.0,
    ErrorCode.NETWORK_FAILURE: 1.0,
    ErrorCode.USER_INPUT_ERROR: 0.0,
}
DEFAULT_RETRY_DELAY = 1.0

_LOG_LEVEL_BY_SEVERITY: dict[ErrorSeverity, int] = {
    ErrorSeverity.CRITICAL: logging.ERROR,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.LOW: logging.DEBUG,
    ErrorSeverity.INFO: logging.DEBUG,
}
# Context mapping keys copied onto ErrorContext fields of the same name.
_TRACED_CONTEXT_KEYS = ("request_id", "user_id")

_LOG_MESSAGE_BY_LEVEL: dict[int, str] = {
    logging.ERROR: "UI view error",
    logging.WARNING: "UI view warning",
    logging.DEBUG: "UI view info",
}


def determine_severity(code: ErrorCode) -> ErrorSeverity:
    return SEVERITY_BY_CODE.get(code, DEFAULT_SEVERITY)


def is_recoverable(code: ErrorCode) -> bool:
    return RECOVERABLE_BY_CODE.get(code, DEFAULT_RECOVERABLE)


def user_message_for(code: ErrorCode) -> str:
    return USER_MESSAGES.get(code, DEFAULT_USER_MESSAGE)


def log_level_for(severity: ErrorSeverity) -> int:
    return _LOG_LEVEL_BY_SEVERITY[severity]


def retryable_error(err: BaseException | None) -> tuple[bool, float]:
    """Return (retryable, delay_seconds) for a classified error.

    Pure: nothing waits and nothing is retried here. Foreign exceptions are
    never retryable because nothing is known about them.
    """
    if not isinstance(err, ViewError):
        return False, 0.0
    if not err.recoverable:
        return False, 0.0
    return True, RETRY_DELAYS.get(err.code, DEFAULT_RETRY_DELAY)


# ─── Handler ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ErrorHandlerConfig:
    """Error pipeline behavior. Read-only once a handler is built."""

    log_stack_trace: bool = True
    log_metadata: bool = True
    max_stack_depth: int = 10
    enable_user_metrics: bool = False
    component: str = "ui-view"


class ErrorHandler:
    """Builds ViewErrors and runs them through log → metrics → recovery."""

    def __init__(
        self,
        logger: logging.Logger | None = None,
        config: ErrorHandlerConfig | None = None,
        *,
        stack_snapshot: StackSnapshot | None = None,
        metrics: MetricsRecorder | None = None,
        recovery: RecoveryDispatcher | None = None,
    ):
        self._logger = logger or logging.getLogger(__name__)
        self.config = config or ErrorHandlerConfig()
        self._stack = stack_snapshot or TracebackStackSnapshot()
        self.metrics: MetricsRecorder = metrics or NoOpMetricsRecorder()
        self.recovery = recovery or RecoveryDispatcher(self._logger)

    # ─── Construction ─────────────────────────────────────────────────

    def new_error(
        self,
        code: ErrorCode,
        message: str,
        cause: BaseException | None = None,
    ) -> ViewError:
        return self.new_error_with_operation(code, "", message, cause)

    def new_error_with_operation(
        self,
        code: ErrorCode,
        operation: str,
        message: str,
        cause: BaseException | None = None,
    ) -> ViewError:
        return ViewError(
            code,
            message,
            determine_severity(code),
            cause=cause,
            context=self._capture_context(operation),
            recoverable=is_recoverable(code),
            user_message=user_message_for(code),
        )

    def new_error_with_metadata(
        self,
        code: ErrorCode,
        operation: str,
        message: str,
        cause: BaseException | None = None,
        metadata: Mapping[str, object] | None = None,
    ) -> ViewError:
        err = self.new_error_with_operation(code, operation, message, cause)
        err.context.metadata.update(metadata or {})
        return err

    def _capture_context(self, operation: str) -> ErrorContext:
        context = ErrorContext(component=self.config.component, operation=operation)
        if self.config.log_stack_trace:
            context.stack_trace = self._stack.capture(self.config.max_stack_depth)
        return context

    # ─── Convenience wrappers ─────────────────────────────────────────

    def wrap_network_error(self, operation: str, cause: BaseException | None) -> ViewError:
        """Classify a network failure from its cause text."""
        code = ErrorCode.NETWORK_FAILURE
        message = f"Network error during {operation}"
        if cause is not None:
            text = str(cause).lower()
            if "timeout" in text or "deadline" in text:
                code = ErrorCode.TIMEOUT
                message = f"Timeout during {operation}"
            elif "429" in text or "rate limit" in text:
                code = ErrorCode.RATE_LIMITED
                message = f"Rate limited during {operation}"
            elif "connection refused" in text:
                code = ErrorCode.CONNECTION_REFUSED
                message = f"Connection refused during {operation}"
        return self.new_error_with_operation(code, operation, message, cause)

    def wrap_decoding_error(
        self, operation: str, data_type: str, cause: BaseException | None
    ) -> ViewError:
        return self.new_error_with_metadata(
            ErrorCode.DECODING_FAILURE,
            operation,
            f"Failed to decode {data_type} during {operation}",
            cause,
            {"data_type": data_type, "operation": operation},
        )

    def wrap_encoding_error(
        self, operation: str, data_type: str, cause: BaseException | None
    ) -> ViewError:
        return self.new_error_with_metadata(
            ErrorCode.ENCODING_FAILURE,
            operation,
            f"Failed to encode {data_type} during {operation}",
            cause,
            {"data_type": data_type, "operation": operation},
        )

    def wrap_json_error(
        self, operation: str, action: str, err: BaseException | None
    ) -> ViewError | None:
        """Wrap a JSON (de)serialization failure; action names the direction."""
        if err is None:
            return None
        code = (
            ErrorCode.ENCODING_FAILURE
            if action in ("marshal", "encoding")
            else ErrorCode.DECODING_FAILURE
        )
        return self.new_error_with_metadata(
            code,
            operation,
            f"JSON {action} failed during {operation}",
            err,
            {"action": action, "operation": operation},
        )

    def wrap_validation_error(self, field: str, value: str, reason: str) -> ViewError:
        return self.new_error_with_metadata(
            ErrorCode.VALIDATION_FAILURE,
            "validation",
            f"Validation failed for field '{field}': {reason}",
            None,
            {"field": field, "value": value, "reason": reason},
        )

    def wrap_response_error(self, operation: str, err: BaseException | None) -> ViewError | None:
        if err is None:
            return None
        return self.new_error_with_operation(
            ErrorCode.NETWORK_FAILURE,
            operation,
            f"Failed to read response during {operation}",
            err,
        )

    def wrap_with_operation(self, operation: str, err: BaseException | None) -> ViewError | None:
        """Attach operation context to any error.

        An already-classified ViewError keeps its code, severity and
        recoverability; only context.operation changes.
        """
        if err is None:
            return None
        if isinstance(err, ViewError):
            err.context.operation = operation
            return err
        return self.new_error_with_operation(
            ErrorCode.UNKNOWN_ERROR, operation, "Operation failed", err
        )

    def with_context(
        self, err: BaseException | None, context: Mapping[str, object] | None
    ) -> ViewError | None:
        """Copy request and user identifiers from a context mapping onto the error."""
        if err is None:
            return None
        view_err = self._classify(err, "Error with context")
        for key in _TRACED_CONTEXT_KEYS:
            value = (context or {}).get(key)
            if value is not None:
                view_err.context.metadata[key] = value
                setattr(view_err.context, key, str(value))
        return view_err

    # ─── Pipeline ─────────────────────────────────────────────────────

    def _classify(self, err: BaseException, message: str) -> ViewError:
        if isinstance(err, ViewError):
            return err
        return self.new_error(ErrorCode.UNKNOWN_ERROR, message, err)

    def handle_error(self, err: BaseException | None) -> None:
        """Log, record and (when recoverable) try to recover from err."""
        if err is None:
            return
        view_err = self._classify(err, "Unhandled error occurred")

        self._log_error(view_err)

        if self.config.enable_user_metrics:
            self.metrics.record(view_err)

        if view_err.recoverable:
            self.recovery.attempt(view_err)

    def handle_and_log(self, err: BaseException | None) -> ViewError | None:
        """Run the pipeline and hand the classified error back to the caller."""
        if err is None:
            return None
        view_err = self._classify(err, "An error occurred")
        self.handle_error(view_err)
        return view_err

    def retryable_error(self, err: BaseException | None) -> tuple[bool, float]:
        return retryable_error(err)

    def _log_error(self, err: ViewError) -> None:
        fields: dict[str, object] = {
            "code": err.code.value,
            "severity": err.severity.name,
            "message": err.message,
            "component": err.context.component,
            "operation": err.context.operation,
            "recoverable": err.recoverable,
        }
        if err.cause is not None:
            fields["cause"] = str(err.cause)
        for key in _TRACED_CONTEXT_KEYS:
            if getattr(err.context, key):
                fields[key] = getattr(err.context, key)
        if self.config.log_metadata and err.context.metadata:
            fields["metadata"] = dict(err.context.metadata)
        if self.config.log_stack_trace and err.context.stack_trace:
            fields["stack_trace"] = err.context.stack_trace

        level = log_level_for(err.severity)
        log_fields(self._logger, level, _LOG_MESSAGE_BY_LEVEL[level], **fields)
