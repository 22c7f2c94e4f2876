"""Sample inventory view: a resource list, two tables and a filter prompt.

Exercises every piece of the dispatch core inside a real Textual layout:
component handlers per region, tab navigation in an explicit order, a
declarative keymap, and validation failures routed through the error pipeline.
"""

from __future__ import annotations

from enum import IntEnum

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widget import Widget
from textual.widgets import DataTable, Input, Label, ListItem, ListView

from cloudcutter.tui.event_types import ActionType, KeyAction, KeyMapping
from cloudcutter.tui.resolver import WidgetComponentResolver

MAX_FILTER_LENGTH = 64

RESOURCES: list[tuple[str, str, str]] = [
    ("i-0a1b2c", "running", "t3.micro"),
    ("i-0d4e5f", "stopped", "t3.small"),
    ("i-0f9e8d", "running", "m5.large"),
    ("table-users", "active", "dynamodb"),
    ("table-orders", "active", "dynamodb"),
]


class SampleComponent(IntEnum):
    LEFT_PANEL = 1
    PRIMARY_TABLE = 2
    DETAIL_TABLE = 3
    FILTER_PROMPT = 4


# [LAW:one-source-of-truth] Keys for this view. Component handlers cover the rest.
SAMPLE_KEYMAP: list[KeyMapping] = [
    KeyMapping("slash", KeyAction(ActionType.FILTER), character="/"),
    KeyMapping("ctrl+l", KeyAction(ActionType.CLEAR)),
    KeyMapping("1", KeyAction(ActionType.FOCUS, {"component": SampleComponent.LEFT_PANEL}), character="1"),
    KeyMapping("2", KeyAction(ActionType.FOCUS, {"component": SampleComponent.PRIMARY_TABLE}), character="2"),
    KeyMapping("3", KeyAction(ActionType.FOCUS, {"component": SampleComponent.DETAIL_TABLE}), character="3"),
]


class SampleView(Widget):
    """Resource browser hosting the dispatch core's collaborators."""

    DEFAULT_CSS = """
    SampleView {
        height: 1fr;
    }
    SampleView #left-panel {
        width: 30;
        border-right: solid $accent;
    }
    SampleView DataTable {
        height: 1fr;
    }
    """

    def __init__(self):
        super().__init__(name="sample")
        self.left_panel = ListView(*(ListItem(Label(r[0])) for r in RESOURCES), id="left-panel")
        self.primary_table = DataTable(id="primary-table")
        self.detail_table = DataTable(id="detail-table")
        self.filter_prompt = Input(placeholder="filter (enter to apply, esc to clear)", id="filter-prompt")
        self.active_filter = ""

        self._resolver = WidgetComponentResolver(SampleComponent)
        self._resolver.register(SampleComponent.LEFT_PANEL, self.left_panel)
        self._resolver.register(SampleComponent.PRIMARY_TABLE, self.primary_table)
        self._resolver.register(SampleComponent.DETAIL_TABLE, self.detail_table)
        self._resolver.register(SampleComponent.FILTER_PROMPT, self.filter_prompt)
        # The prompt is reached with "/", not tab.
        self._resolver.set_navigation_order([self.left_panel, self.primary_table, self.detail_table])

    @property
    def component_resolver(self) -> WidgetComponentResolver:
        return self._resolver

    @property
    def manager(self):
        return self.app

    def compose(self) -> ComposeResult:
        with Horizontal():
            yield self.left_panel
            with Vertical():
                yield self.filter_prompt
                yield self.primary_table
                yield self.detail_table

    def on_mount(self) -> None:
        self.primary_table.add_columns("Resource", "State", "Kind")
        self.detail_table.add_columns("Field", "Value")
        self.detail_table.add_row("region", "us-west-2")
        self._populate_primary()

    def _populate_primary(self) -> None:
        self.primary_table.clear()
        needle = self.active_filter.lower()
        for row in RESOURCES:
            if not needle or any(needle in cell.lower() for cell in row):
                self.primary_table.add_row(*row)

    # ─── Filter prompt ─────────────────────────────────────────────────

    def apply_filter(self, text: str) -> None:
        """Filter the primary table. Raises ValueError for unusable text."""
        if len(text) > MAX_FILTER_LENGTH:
            raise ValueError(f"filter longer than {MAX_FILTER_LENGTH} characters")
        if text and not text.strip():
            raise ValueError("filter is blank")
        self.active_filter = text.strip()
        self._populate_primary()

    def clear_filter(self) -> None:
        self.filter_prompt.value = ""
        self.active_filter = ""
        self._populate_primary()

    # ─── ActionExecutor ────────────────────────────────────────────────

    def execute_action(self, action: KeyAction, event):
        if action.type == ActionType.FOCUS:
            target = self._resolver.get_components().get(action.payload.get("component"))
            if target is None:
                return event
            self.manager.set_focus(target)
            return None
        if action.type == ActionType.FILTER:
            self.manager.set_focus(self.filter_prompt)
            return None
        if action.type == ActionType.CLEAR:
            self.clear_filter()
            return None
        return event
