"""Textual in-process test harness for cloudcutter.

Re-exports the public API for convenient imports:
    from tests.harness import run_app, press_and_settle, focused_component
"""

from tests.harness.app_runner import run_app, focused_component
from tests.harness.fakes import FakeManager, FakeView, FakeWidget, key_event
from tests.harness.interactions import (
    press_and_settle,
    press_sequence,
)

__all__ = [
    "run_app",
    "focused_component",
    "press_and_settle",
    "press_sequence",
    "FakeManager",
    "FakeView",
    "FakeWidget",
    "key_event",
]
