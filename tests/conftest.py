"""Shared fixtures for cloudcutter dispatch and error pipeline tests."""

import logging

import pytest

from cloudcutter.errors.handler import ErrorHandler, ErrorHandlerConfig
from cloudcutter.errors.policies import CountingMetricsRecorder, RecoveryDispatcher
from cloudcutter.errors.stack import NullStackSnapshot
from cloudcutter.tui.resolver import WidgetComponentResolver
from tests.harness.fakes import FakeView, FakeWidget


@pytest.fixture
def widgets():
    return [FakeWidget("left"), FakeWidget("primary"), FakeWidget("detail")]


@pytest.fixture
def view(widgets):
    """FakeView whose resolver maps widgets[i] to component type i + 1."""
    resolver = WidgetComponentResolver()
    for component_type, widget in enumerate(widgets, start=1):
        resolver.register(component_type, widget)
    return FakeView(resolver=resolver)


@pytest.fixture
def metrics():
    return CountingMetricsRecorder()


@pytest.fixture
def error_handler(metrics):
    log = logging.getLogger("cloudcutter.test.errors")
    return ErrorHandler(
        log,
        ErrorHandlerConfig(component="test-view"),
        stack_snapshot=NullStackSnapshot(),
        metrics=metrics,
        recovery=RecoveryDispatcher(log),
    )
