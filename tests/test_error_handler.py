"""Tests for error construction, wrapping and the handle_error pipeline."""

import logging
import os

import pytest

from cloudcutter.errors.handler import (
    DEFAULT_USER_MESSAGE,
    ErrorHandler,
    ErrorHandlerConfig,
    determine_severity,
    is_recoverable,
    user_message_for,
)
from cloudcutter.errors.policies import CountingMetricsRecorder, RecoveryDispatcher
from cloudcutter.errors.stack import NullStackSnapshot
from cloudcutter.errors.types import ErrorCode, ErrorSeverity, ViewError

LOGGER_NAME = "cloudcutter.test.errors"


def _records(caplog, message):
    return [r for r in caplog.records if r.getMessage().startswith(message)]


# ─── Classification tables ────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "code, severity",
    [
        (ErrorCode.CONNECTION_REFUSED, ErrorSeverity.CRITICAL),
        (ErrorCode.INITIALIZATION_ERROR, ErrorSeverity.CRITICAL),
        (ErrorCode.TIMEOUT, ErrorSeverity.HIGH),
        (ErrorCode.INTERNAL_ERROR, ErrorSeverity.HIGH),
        (ErrorCode.VALIDATION_FAILURE, ErrorSeverity.MEDIUM),
        (ErrorCode.UI_RENDER_ERROR, ErrorSeverity.MEDIUM),
        (ErrorCode.USER_INPUT_ERROR, ErrorSeverity.LOW),
        (ErrorCode.RESOURCE_NOT_FOUND, ErrorSeverity.LOW),
        # Unlisted codes fall back to MEDIUM.
        (ErrorCode.PERMISSION_DENIED, ErrorSeverity.MEDIUM),
        (ErrorCode.UNKNOWN_ERROR, ErrorSeverity.MEDIUM),
    ],
)
def test_determine_severity(code, severity):
    assert determine_severity(code) is severity


def test_every_code_resolves_through_tables():
    for code in ErrorCode:
        assert isinstance(determine_severity(code), ErrorSeverity)
        assert isinstance(is_recoverable(code), bool)
        assert user_message_for(code)


def test_recoverability_defaults_to_true():
    assert is_recoverable(ErrorCode.RATE_LIMITED)
    assert is_recoverable(ErrorCode.NETWORK_FAILURE)
    assert not is_recoverable(ErrorCode.CONNECTION_REFUSED)
    assert not is_recoverable(ErrorCode.INTERNAL_ERROR)


def test_user_messages_never_leak_internal_text():
    assert user_message_for(ErrorCode.INTERNAL_ERROR) == DEFAULT_USER_MESSAGE
    assert "permission" in user_message_for(ErrorCode.PERMISSION_DENIED)


# ─── Construction ─────────────────────────────────────────────────────────────


def test_new_error_derives_classification(error_handler):
    cause = RuntimeError("read: connection reset")
    err = error_handler.new_error(ErrorCode.TIMEOUT, "list instances", cause)
    assert err.code is ErrorCode.TIMEOUT
    assert err.severity is ErrorSeverity.HIGH
    assert err.recoverable is True
    assert err.user_message == "The operation timed out. Please try again."
    assert err.cause is cause
    assert err.context.component == "test-view"
    assert err.context.operation == ""


def test_new_error_with_metadata_merges_keys(error_handler):
    err = error_handler.new_error_with_metadata(
        ErrorCode.RESOURCE_NOT_FOUND, "describe", "no such table", None, {"table": "users"}
    )
    assert err.context.operation == "describe"
    assert err.context.metadata == {"table": "users"}


def test_stack_trace_captured_from_caller():
    handler = ErrorHandler(
        logging.getLogger(LOGGER_NAME), ErrorHandlerConfig(max_stack_depth=2)
    )
    err = handler.new_error(ErrorCode.INTERNAL_ERROR, "boom")
    lines = err.context.stack_trace.splitlines()
    assert len(lines) == 2
    assert os.path.basename(__file__) in lines[0]


def test_stack_trace_skipped_when_disabled():
    handler = ErrorHandler(
        logging.getLogger(LOGGER_NAME), ErrorHandlerConfig(log_stack_trace=False)
    )
    assert handler.new_error(ErrorCode.INTERNAL_ERROR, "boom").context.stack_trace == ""


# ─── Wrappers ─────────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "text, code, message",
    [
        ("dial tcp: i/o timeout", ErrorCode.TIMEOUT, "Timeout during list"),
        ("context deadline exceeded", ErrorCode.TIMEOUT, "Timeout during list"),
        ("HTTP 429 Too Many Requests", ErrorCode.RATE_LIMITED, "Rate limited during list"),
        ("Rate Limit exceeded", ErrorCode.RATE_LIMITED, "Rate limited during list"),
        ("dial tcp 10.0.0.1:443: connection refused", ErrorCode.CONNECTION_REFUSED,
         "Connection refused during list"),
        ("no route to host", ErrorCode.NETWORK_FAILURE, "Network error during list"),
        # Timeout wins over rate limit when both appear.
        ("timeout after 429", ErrorCode.TIMEOUT, "Timeout during list"),
    ],
)
def test_wrap_network_error_classifies_by_cause_text(error_handler, text, code, message):
    cause = OSError(text)
    err = error_handler.wrap_network_error("list", cause)
    assert err.code is code
    assert err.message == message
    assert err.context.operation == "list"
    assert err.cause is cause


def test_wrap_network_error_without_cause(error_handler):
    err = error_handler.wrap_network_error("list", None)
    assert err.code is ErrorCode.NETWORK_FAILURE
    assert err.cause is None


def test_connection_refused_is_not_recoverable(error_handler):
    err = error_handler.wrap_network_error("connect", OSError("connection refused"))
    assert err.severity is ErrorSeverity.CRITICAL
    assert not err.recoverable


def test_wrap_decoding_and_encoding_errors(error_handler):
    decoded = error_handler.wrap_decoding_error("load", "Instance", ValueError("bad"))
    assert decoded.code is ErrorCode.DECODING_FAILURE
    assert decoded.message == "Failed to decode Instance during load"
    assert decoded.context.metadata == {"data_type": "Instance", "operation": "load"}

    encoded = error_handler.wrap_encoding_error("save", "Instance", ValueError("bad"))
    assert encoded.code is ErrorCode.ENCODING_FAILURE
    assert encoded.message == "Failed to encode Instance during save"


@pytest.mark.parametrize(
    "action, code",
    [
        ("marshal", ErrorCode.ENCODING_FAILURE),
        ("encoding", ErrorCode.ENCODING_FAILURE),
        ("unmarshal", ErrorCode.DECODING_FAILURE),
        ("decoding", ErrorCode.DECODING_FAILURE),
    ],
)
def test_wrap_json_error_picks_direction(error_handler, action, code):
    err = error_handler.wrap_json_error("sync", action, ValueError("bad json"))
    assert err.code is code
    assert err.message == f"JSON {action} failed during sync"
    assert err.context.metadata["action"] == action


def test_wrappers_pass_none_through(error_handler):
    assert error_handler.wrap_json_error("sync", "marshal", None) is None
    assert error_handler.wrap_response_error("get", None) is None
    assert error_handler.wrap_with_operation("op", None) is None
    assert error_handler.with_context(None, {"request_id": "r-1"}) is None


def test_wrap_validation_error_records_field(error_handler):
    err = error_handler.wrap_validation_error("filter", "   ", "filter is blank")
    assert err.code is ErrorCode.VALIDATION_FAILURE
    assert err.message == "Validation failed for field 'filter': filter is blank"
    assert err.context.operation == "validation"
    assert err.context.metadata == {"field": "filter", "value": "   ", "reason": "filter is blank"}
    assert err.user_message == "Please check your input and try again."


def test_wrap_response_error(error_handler):
    err = error_handler.wrap_response_error("get", EOFError("short read"))
    assert err.code is ErrorCode.NETWORK_FAILURE
    assert err.message == "Failed to read response during get"


def test_wrap_with_operation_keeps_existing_classification(error_handler):
    original = error_handler.new_error(ErrorCode.RATE_LIMITED, "slow down")
    wrapped = error_handler.wrap_with_operation("refresh", original)
    assert wrapped is original
    assert wrapped.code is ErrorCode.RATE_LIMITED
    assert wrapped.severity is ErrorSeverity.MEDIUM
    assert wrapped.context.operation == "refresh"


def test_wrap_with_operation_classifies_foreign_errors(error_handler):
    cause = KeyError("x")
    err = error_handler.wrap_with_operation("refresh", cause)
    assert err.code is ErrorCode.UNKNOWN_ERROR
    assert err.message == "Operation failed"
    assert err.cause is cause


def test_with_context_copies_request_id(error_handler):
    err = error_handler.with_context(RuntimeError("x"), {"request_id": "req-42", "other": 1})
    assert err.code is ErrorCode.UNKNOWN_ERROR
    assert err.message == "Error with context"
    assert err.context.request_id == "req-42"
    assert err.context.metadata == {"request_id": "req-42"}


def test_with_context_copies_user_id(error_handler):
    original = error_handler.new_error(ErrorCode.PERMISSION_DENIED, "forbidden")
    err = error_handler.with_context(original, {"user_id": 7, "request_id": "req-1"})
    assert err is original
    assert err.context.user_id == "7"
    assert err.context.request_id == "req-1"
    assert err.context.metadata == {"request_id": "req-1", "user_id": 7}


def test_traced_ids_are_logged(error_handler, caplog):
    err = error_handler.with_context(RuntimeError("x"), {"user_id": "u-9"})
    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        error_handler.handle_error(err)
    (record,) = _records(caplog, "UI view warning")
    assert record.fields["user_id"] == "u-9"
    assert "request_id" not in record.fields


def test_with_context_without_request_id_leaves_error_alone(error_handler):
    original = error_handler.new_error(ErrorCode.TIMEOUT, "slow")
    assert error_handler.with_context(original, {}) is original
    assert original.context.request_id == ""


# ─── Pipeline ─────────────────────────────────────────────────────────────────


def test_handle_error_none_is_noop(error_handler, metrics, caplog):
    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        error_handler.handle_error(None)
    assert caplog.records == []
    assert metrics.total == 0


@pytest.mark.parametrize(
    "code, level, message",
    [
        (ErrorCode.CONNECTION_REFUSED, logging.ERROR, "UI view error"),
        (ErrorCode.TIMEOUT, logging.ERROR, "UI view error"),
        (ErrorCode.VALIDATION_FAILURE, logging.WARNING, "UI view warning"),
        (ErrorCode.USER_INPUT_ERROR, logging.DEBUG, "UI view info"),
    ],
)
def test_handle_error_logs_at_severity_level(error_handler, caplog, code, level, message):
    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        error_handler.handle_error(error_handler.new_error_with_operation(code, "op", "failed"))
    records = _records(caplog, message)
    assert len(records) == 1
    assert records[0].levelno == level


def test_handle_error_log_fields(error_handler, caplog):
    err = error_handler.wrap_validation_error("filter", "x" * 80, "too long")
    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        error_handler.handle_error(err)
    (record,) = _records(caplog, "UI view warning")
    assert record.fields["code"] == "VALIDATION_FAILURE"
    assert record.fields["severity"] == "MEDIUM"
    assert record.fields["component"] == "test-view"
    assert record.fields["operation"] == "validation"
    assert record.fields["recoverable"] is True
    assert record.fields["metadata"]["field"] == "filter"
    assert "cause" not in record.fields
    assert "code=VALIDATION_FAILURE" in record.getMessage()


def test_handle_error_omits_metadata_when_disabled(caplog):
    handler = ErrorHandler(
        logging.getLogger(LOGGER_NAME),
        ErrorHandlerConfig(log_metadata=False),
        stack_snapshot=NullStackSnapshot(),
    )
    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        handler.handle_error(handler.wrap_validation_error("f", "v", "r"))
    (record,) = _records(caplog, "UI view warning")
    assert "metadata" not in record.fields


def test_handle_error_classifies_foreign_exception(error_handler, caplog):
    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        error_handler.handle_error(ValueError("raw"))
    (record,) = _records(caplog, "UI view warning")
    assert record.fields["code"] == "UNKNOWN_ERROR"
    assert record.fields["message"] == "Unhandled error occurred"
    assert record.fields["cause"] == "raw"


def test_metrics_recorded_only_when_enabled(error_handler, metrics):
    error_handler.handle_error(error_handler.new_error(ErrorCode.TIMEOUT, "slow"))
    assert metrics.total == 0

    recorder = CountingMetricsRecorder()
    enabled = ErrorHandler(
        logging.getLogger(LOGGER_NAME),
        ErrorHandlerConfig(enable_user_metrics=True),
        stack_snapshot=NullStackSnapshot(),
        metrics=recorder,
    )
    enabled.handle_error(enabled.new_error(ErrorCode.TIMEOUT, "slow"))
    enabled.handle_error(enabled.new_error(ErrorCode.TIMEOUT, "slow again"))
    assert recorder.by_code[ErrorCode.TIMEOUT] == 2
    assert recorder.by_severity["HIGH"] == 2


def test_recovery_runs_only_for_recoverable_errors(error_handler):
    recovered = []
    error_handler.recovery.register(ErrorCode.TIMEOUT, recovered.append)
    error_handler.recovery.register(ErrorCode.CONNECTION_REFUSED, recovered.append)

    timeout = error_handler.new_error(ErrorCode.TIMEOUT, "slow")
    refused = error_handler.new_error(ErrorCode.CONNECTION_REFUSED, "refused")
    error_handler.handle_error(timeout)
    error_handler.handle_error(refused)

    assert recovered == [timeout]


def test_recovery_without_action_logs_intent(error_handler, caplog):
    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        error_handler.handle_error(error_handler.new_error(ErrorCode.RATE_LIMITED, "slow down"))
    assert _records(caplog, "Rate limit error - recovery strategy could be implemented")


def test_handle_and_log_returns_classified_error(error_handler, caplog):
    cause = ValueError("bad")
    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        err = error_handler.handle_and_log(cause)
    assert isinstance(err, ViewError)
    assert err.code is ErrorCode.UNKNOWN_ERROR
    assert err.message == "An error occurred"
    assert err.cause is cause
    assert len(_records(caplog, "UI view warning")) == 1


def test_handle_and_log_passes_view_errors_through(error_handler):
    original = error_handler.new_error(ErrorCode.TIMEOUT, "slow")
    assert error_handler.handle_and_log(original) is original
    assert error_handler.handle_and_log(None) is None
