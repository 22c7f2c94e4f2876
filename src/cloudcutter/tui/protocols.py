"""Protocol definitions for the collaborators of the key dispatch core.

This module defines the contracts views, handlers and the hosting app must
satisfy. It has no dependencies on other project modules beyond event_types.

Dispatch contract shared by every handler below: return None to consume the
event (dispatch stops), return an event to hand it on to the next stage.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from cloudcutter.tui.event_types import ComponentType, KeyAction

if TYPE_CHECKING:
    import logging

    from cloudcutter.errors.handler import ErrorHandler


class Manager(Protocol):
    """Process-level collaborator: focus, shutdown and status line."""

    def set_focus(self, target) -> None:
        ...

    def stop(self) -> None:
        ...

    def update_status(self, message: str) -> None:
        ...


class ComponentResolver(Protocol):
    """Maps focus targets to component types. Implemented per view."""

    def get_component_type(self, focus) -> ComponentType | None:
        ...

    def get_components(self) -> dict[ComponentType, object]:
        ...

    def get_navigation_order(self) -> list:
        ...

    def format_component(self, component: ComponentType | None) -> str:
        ...


class View(Protocol):
    name: str

    @property
    def component_resolver(self) -> ComponentResolver:
        ...

    @property
    def manager(self) -> Manager:
        ...


class HandlerContext(Protocol):
    view: View
    component: object
    component_type: ComponentType | None
    error_handler: ErrorHandler | None
    logger: logging.Logger


class ComponentHandler(Protocol):
    """Per-component key handler.

    Handlers do not need to inherit from this protocol; any object with
    these methods can be registered (structural typing).
    """

    def get_component_type(self) -> ComponentType:
        ...

    def can_handle(self, event, component) -> bool:
        ...

    def handle_event(self, event, ctx: HandlerContext):
        ...


class GlobalShortcutHandler(Protocol):
    def handle_global_shortcut(self, event, current_focus, view: View):
        ...


class HandlerManager(Protocol):
    """Anything that can take a key event through a dispatch chain."""

    def handle_event(self, event, current_focus):
        ...


class KeyMappingResolver(Protocol):
    def resolve_key_event(self, event, current_focus) -> KeyAction | None:
        ...


class ActionExecutor(Protocol):
    def execute_action(self, action: KeyAction, event):
        ...


def validate_handler_protocol(handler) -> None:
    """Validate that a handler implements the ComponentHandler protocol.

    Raises:
        TypeError: If handler is missing required methods or they're not callable
    """
    required_methods = ["get_component_type", "can_handle", "handle_event"]

    for method_name in required_methods:
        if not hasattr(handler, method_name):
            raise TypeError(
                f"Handler {type(handler).__name__} does not implement ComponentHandler protocol: "
                f"missing method '{method_name}()'"
            )

        method = getattr(handler, method_name)
        if not callable(method):
            raise TypeError(
                f"Handler {type(handler).__name__} does not implement ComponentHandler protocol: "
                f"'{method_name}' exists but is not callable"
            )
