"""Identity-based component resolver shared by views.

// [LAW:one-source-of-truth] A view registers each widget once; type lookup,
//   component enumeration and tab order all derive from that registration.
"""

from __future__ import annotations

from enum import IntEnum

from cloudcutter.tui.event_types import ComponentType


class WidgetComponentResolver:
    """Maps widget instances to component types by identity.

    Widgets are matched with `is`, never `==`, so two equal-looking widgets
    stay distinct components.
    """

    def __init__(self, names: type[IntEnum] | None = None):
        self._names = names
        self._components: dict[ComponentType, object] = {}
        self._navigation_order: list = []

    def register(self, component_type: ComponentType, widget) -> None:
        self._components[component_type] = widget

    def set_navigation_order(self, widgets: list) -> None:
        self._navigation_order = list(widgets)

    def get_component_type(self, focus) -> ComponentType | None:
        if focus is None:
            return None
        for component_type, widget in self._components.items():
            if widget is focus:
                return component_type
        return None

    def get_components(self) -> dict[ComponentType, object]:
        return dict(self._components)

    def get_navigation_order(self) -> list:
        return list(self._navigation_order)

    def format_component(self, component: ComponentType | None) -> str:
        if component is None:
            return "none"
        if self._names is not None:
            try:
                return self._names(component).name.lower()
            except ValueError:
                pass
        return f"component_{int(component)}"
