"""Component handlers and the default global shortcut handler.

// [LAW:one-type-per-behavior] BaseHandler owns the "is this my component?" gate;
//   subclasses only add key predicates and the handling itself.

Handlers drive widgets through their public action methods (cursor moves,
selection), so any widget exposing the same methods works, not only the
Textual ones the sample view uses.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from cloudcutter.errors.types import ViewError
from cloudcutter.tui.event_bus import HandlerContext
from cloudcutter.tui.event_types import ComponentType
from cloudcutter.tui.protocols import View

logger = logging.getLogger(__name__)


class BaseHandler:
    """Binds a handler to one component type.

    The default can_handle matches only when the view's resolver maps the
    focused widget to exactly this handler's component type. Subclasses that
    narrow can_handle must keep that check.
    """

    # Keys this handler claims; None claims every key.
    keys: frozenset[str] | None = None

    def __init__(self, component_type: ComponentType, view: View):
        self.component_type = component_type
        self.view = view

    def get_component_type(self) -> ComponentType:
        return self.component_type

    def can_handle(self, event, component) -> bool:
        resolved = self.view.component_resolver.get_component_type(component)
        if resolved is None or resolved != self.component_type:
            return False
        return self.keys is None or getattr(event, "key", None) in self.keys

    def handle_event(self, event, ctx: HandlerContext):
        return event


def _call_action(widget, name: str) -> bool:
    action = getattr(widget, name, None)
    if not callable(action):
        return False
    action()
    return True


class ListNavigationHandler(BaseHandler):
    """Vim-style movement and selection for list widgets."""

    ACTIONS: dict[str, str] = {
        "j": "action_cursor_down",
        "down": "action_cursor_down",
        "k": "action_cursor_up",
        "up": "action_cursor_up",
        "enter": "action_select_cursor",
    }
    keys = frozenset(ACTIONS)

    def handle_event(self, event, ctx: HandlerContext):
        if _call_action(ctx.component, self.ACTIONS[event.key]):
            return None
        return event


class TableCellHandler(BaseHandler):
    """Cell cursor movement and selection for data tables."""

    ACTIONS: dict[str, str] = {
        "h": "action_cursor_left",
        "left": "action_cursor_left",
        "j": "action_cursor_down",
        "down": "action_cursor_down",
        "k": "action_cursor_up",
        "up": "action_cursor_up",
        "l": "action_cursor_right",
        "right": "action_cursor_right",
        "enter": "action_select_cursor",
    }
    keys = frozenset(ACTIONS)

    def handle_event(self, event, ctx: HandlerContext):
        if _call_action(ctx.component, self.ACTIONS[event.key]):
            return None
        return event


class FilterPromptHandler(BaseHandler):
    """Confirms or clears a filter prompt.

    enter passes the prompt text to on_confirm and returns focus to
    return_focus (when given). on_confirm may raise ValueError to reject the
    text; the rejection goes through the error pipeline as a validation
    failure and focus stays on the prompt. escape clears the prompt.
    """

    keys = frozenset({"enter", "escape"})

    def __init__(
        self,
        component_type: ComponentType,
        view: View,
        *,
        on_confirm: Callable[[str], None],
        return_focus: Callable[[], object] | None = None,
    ):
        super().__init__(component_type, view)
        self.on_confirm = on_confirm
        self.return_focus = return_focus

    def handle_event(self, event, ctx: HandlerContext):
        if event.key == "escape":
            ctx.component.value = ""
            return None

        value = str(getattr(ctx.component, "value", "") or "")
        try:
            self.on_confirm(value)
        except ValueError as exc:
            self._reject(ctx, value, exc)
            return None

        if self.return_focus is not None:
            target = self.return_focus()
            if target is not None:
                ctx.view.manager.set_focus(target)
        return None

    def _reject(self, ctx: HandlerContext, value: str, exc: ValueError) -> None:
        if ctx.error_handler is None:
            ctx.logger.warning("filter rejected value=%r reason=%s", value, exc)
            return
        err: ViewError = ctx.error_handler.wrap_validation_error("filter", value, str(exc))
        ctx.error_handler.handle_error(err)
        ctx.view.manager.update_status(err.user_message)


class DefaultGlobalShortcutHandler:
    """ctrl+c stops the whole application; everything else propagates."""

    def handle_global_shortcut(self, event, current_focus, view: View):
        if getattr(event, "key", None) == "ctrl+c":
            logger.info("stop requested view=%s", view.name)
            view.manager.stop()
            return None
        return event
