"""Textual host for the dispatch core.

// [LAW:single-enforcer] on_key is the sole key dispatcher. Every key the focused
//   widget did not consume itself goes through EventManager.process_event; a
//   None result stops Textual's own bindings from running.
"""

from __future__ import annotations

import logging

from rich.markup import escape
from textual.app import App, ComposeResult

from cloudcutter.errors.types import ErrorSeverity, ViewError
from cloudcutter.systems import SystemsFactory
from cloudcutter.tui.event_bus import EventBus, EventBusConfig
from cloudcutter.tui.event_manager import EventManager
from cloudcutter.tui.event_types import EventContext, EventResult
from cloudcutter.tui.handlers import (
    DefaultGlobalShortcutHandler,
    FilterPromptHandler,
    ListNavigationHandler,
    TableCellHandler,
)
from cloudcutter.tui.keymap import KeymapResolver
from cloudcutter.tui.sample_view import SAMPLE_KEYMAP, SampleComponent, SampleView

logger = logging.getLogger(__name__)

_NOTIFY_SEVERITY: dict[ErrorSeverity, str] = {
    ErrorSeverity.CRITICAL: "error",
    ErrorSeverity.HIGH: "error",
    ErrorSeverity.MEDIUM: "warning",
    ErrorSeverity.LOW: "information",
    ErrorSeverity.INFO: "information",
}


class CloudcutterApp(App):
    """Hosts one SampleView and routes its keys through the dispatch core."""

    TITLE = "cloudcutter"

    def __init__(self, factory: SystemsFactory | None = None):
        super().__init__()
        self.factory = factory or SystemsFactory()
        self.view = SampleView()
        self.error_handler = self.factory.create_error_handler(self.view.name)
        self.status_messages: list[str] = []

        self.bus = EventBus(EventBusConfig(
            view=self.view,
            error_handler=self.error_handler,
            logger=logger,
            global_handler=DefaultGlobalShortcutHandler(),
        ))
        self._register_handlers()

        self.event_manager = EventManager(
            logger,
            self.factory.create_event_config(),
            component_resolver=self.view.component_resolver,
            action_executor=self.view,
            key_resolver=KeymapResolver(self.view.component_resolver, SAMPLE_KEYMAP),
            handler_manager=self.bus,
            error_handler=self.error_handler,
        )
        self.event_manager.add_middleware(self._surface_errors)

    def _register_handlers(self) -> None:
        view = self.view
        self.bus.register_handler(
            SampleComponent.LEFT_PANEL,
            ListNavigationHandler(SampleComponent.LEFT_PANEL, view),
        )
        for component in (SampleComponent.PRIMARY_TABLE, SampleComponent.DETAIL_TABLE):
            self.bus.register_handler(component, TableCellHandler(component, view))
        self.bus.register_handler(
            SampleComponent.FILTER_PROMPT,
            FilterPromptHandler(
                SampleComponent.FILTER_PROMPT,
                view,
                on_confirm=view.apply_filter,
                return_focus=lambda: view.primary_table,
            ),
        )

    def compose(self) -> ComposeResult:
        yield self.view

    def on_mount(self) -> None:
        self.set_focus(self.view.left_panel)

    # ─── Manager ───────────────────────────────────────────────────────

    def stop(self) -> None:
        self.exit()

    def update_status(self, message: str, severity: str = "warning") -> None:
        self.status_messages.append(message)
        self.notify(escape(message), severity=severity)

    def _surface_errors(self, ctx: EventContext, next_fn):
        result = next_fn(ctx)
        if ctx.result is EventResult.ERROR and isinstance(ctx.error, ViewError):
            self.update_status(ctx.error.user_message, _NOTIFY_SEVERITY[ctx.error.severity])
        return result

    # ─── Key dispatch ──────────────────────────────────────────────────

    def on_key(self, event) -> None:
        if self.event_manager.process_event(event, self.focused) is None:
            event.prevent_default()
            event.stop()
