"""Per-view key dispatch: component handler → global shortcut → tab navigation.

// [LAW:single-enforcer] process_event is the sole place the dispatch order is decided.
// [LAW:dataflow-not-control-flow] Every stage speaks the same contract: None
//   consumes the event, anything else hands it to the next stage.

The priority order is fixed. A component handler that claims a key always wins
over a global shortcut for the same key, which always wins over built-in focus
navigation. Unclaimed events come back unchanged so the hosting runtime can
apply its own defaults.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from cloudcutter.errors.handler import ErrorHandler
from cloudcutter.io.log_fields import log_fields
from cloudcutter.tui.event_types import ComponentType
from cloudcutter.tui.protocols import (
    ComponentHandler,
    GlobalShortcutHandler,
    View,
    validate_handler_protocol,
)

logger = logging.getLogger(__name__)

FORWARD_KEYS = frozenset({"tab"})
BACKWARD_KEYS = frozenset({"shift+tab", "backtab"})


@dataclass
class HandlerContext:
    """What a component handler gets to work with for one event."""

    view: View
    component: object
    component_type: ComponentType | None
    error_handler: ErrorHandler | None
    logger: logging.Logger


@dataclass
class EventBusConfig:
    view: View
    error_handler: ErrorHandler | None = None
    logger: logging.Logger | None = None
    global_handler: GlobalShortcutHandler | None = None


class EventBus:
    """Owns one view's handler registry and runs its dispatch chain.

    Register handlers during setup, before the first event; registering while
    events are being dispatched is not supported.
    """

    def __init__(self, config: EventBusConfig):
        self.view = config.view
        self.error_handler = config.error_handler
        self.logger = config.logger or logger
        self.global_handler = config.global_handler
        self.component_resolver = config.view.component_resolver
        self._handlers: dict[ComponentType, ComponentHandler] = {}

    def register_handler(self, component_type: ComponentType, handler: ComponentHandler) -> None:
        validate_handler_protocol(handler)
        self._handlers[component_type] = handler
        log_fields(
            self.logger,
            logging.DEBUG,
            "Registered handler",
            component_type=int(component_type),
            view=self.view.name,
        )

    def get_handler(self, component_type: ComponentType) -> ComponentHandler | None:
        return self._handlers.get(component_type)

    @property
    def handlers(self) -> dict[ComponentType, ComponentHandler]:
        return dict(self._handlers)

    # ─── Dispatch ──────────────────────────────────────────────────────

    def process_event(self, event, current_focus):
        """Run event through the dispatch chain. Returns None when consumed."""
        component_type = self.component_resolver.get_component_type(current_focus)
        if component_type is not None:
            handler = self._handlers.get(component_type)
            if handler is not None and handler.can_handle(event, current_focus):
                ctx = HandlerContext(
                    view=self.view,
                    component=current_focus,
                    component_type=component_type,
                    error_handler=self.error_handler,
                    logger=self.logger,
                )
                if handler.handle_event(event, ctx) is None:
                    return None

        if self.global_handler is not None:
            if self.global_handler.handle_global_shortcut(event, current_focus, self.view) is None:
                return None

        if self._handle_common_shortcuts(event, current_focus) is None:
            return None

        return event

    # HandlerManager protocol: lets an EventManager drive this bus.
    handle_event = process_event

    def _handle_common_shortcuts(self, event, current_focus):
        key = getattr(event, "key", None)
        if key in FORWARD_KEYS:
            self.navigate(current_focus, forward=True)
            return None
        if key in BACKWARD_KEYS:
            self.navigate(current_focus, forward=False)
            return None
        return event

    # ─── Built-in navigation ───────────────────────────────────────────

    def navigation_targets(self) -> list:
        """Explicit navigation order if the view has one, else all components."""
        order = self.component_resolver.get_navigation_order()
        if order:
            return list(order)
        components = self.component_resolver.get_components()
        return [component for component in components.values() if component is not None]

    def navigate(self, current_focus, *, forward: bool):
        """Move focus one step and return the new target (None when nothing to focus)."""
        targets = self.navigation_targets()
        if not targets:
            return None

        # Identity match. An unknown focus sits just before the first target,
        # so forward lands on index 0 and backward on the last index.
        current_index = next(
            (idx for idx, target in enumerate(targets) if target is current_focus),
            -1,
        )
        count = len(targets)
        if forward:
            next_index = (current_index + 1) % count
        elif current_index < 0:
            next_index = count - 1
        else:
            next_index = (current_index - 1) % count

        target = targets[next_index]
        self.view.manager.set_focus(target)
        return target
