"""Key → action resolution from declarative KeyMapping tables.

// [LAW:one-source-of-truth] A view's bindings live in one list of KeyMapping.
// [LAW:dataflow-not-control-flow] Scope is data: component-scoped mappings are
//   consulted before global ones, first registered wins within a scope.
"""

from __future__ import annotations

from collections.abc import Iterable

from cloudcutter.tui.event_types import ComponentType, KeyAction, KeyMapping
from cloudcutter.tui.protocols import ComponentResolver


class KeymapResolver:
    """Resolves key events against a list of KeyMapping."""

    def __init__(self, component_resolver: ComponentResolver, mappings: Iterable[KeyMapping] = ()):
        self._component_resolver = component_resolver
        self._mappings: list[KeyMapping] = list(mappings)

    def add(self, mapping: KeyMapping) -> None:
        self._mappings.append(mapping)

    @property
    def mappings(self) -> list[KeyMapping]:
        return list(self._mappings)

    def mappings_for(self, component: ComponentType | None) -> list[KeyMapping]:
        """Mappings visible while `component` has focus, scoped first."""
        scoped = [m for m in self._mappings if component is not None and m.component == component]
        return scoped + [m for m in self._mappings if m.is_global]

    def resolve_key_event(self, event, current_focus) -> KeyAction | None:
        component = self._component_resolver.get_component_type(current_focus)
        for mapping in self.mappings_for(component):
            if mapping.matches(event):
                return mapping.action
        return None
