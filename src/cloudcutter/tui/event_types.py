"""Type-safe records for key dispatch.

// [LAW:one-source-of-truth] Action kinds, dispatch outcomes and metric records
//   are defined once here and shared by the bus, the keymap and the manager.

This module is STABLE. Safe for `from` imports everywhere.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum, IntEnum


# A logical UI region. Each view defines its own IntEnum of these.
ComponentType = int

# Schema-less payload carried by a KeyAction. Only the executing view reads it.
ActionPayload = dict[str, object]


class ActionType(IntEnum):
    """Built-in semantic actions. Views extend with plain ints >= ACTION_CUSTOM_BASE."""

    FOCUS = 0
    TOGGLE = 1
    NAVIGATE = 2
    FILTER = 3
    DOCUMENT = 4
    EDIT = 5
    CLEAR = 6
    DELETE = 7
    MOVE = 8


ACTION_CUSTOM_BASE = 1000


def is_custom_action(action_type: int) -> bool:
    return action_type >= ACTION_CUSTOM_BASE


def format_action(action_type: int) -> str:
    if is_custom_action(action_type):
        return f"custom_{action_type - ACTION_CUSTOM_BASE}"
    try:
        return ActionType(action_type).name.lower()
    except ValueError:
        return f"action_{action_type}"


class EventResult(Enum):
    """Outcome of one dispatch."""

    HANDLED = "handled"
    UNHANDLED = "unhandled"
    PROPAGATED = "propagated"
    CANCELLED = "cancelled"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class KeyAction:
    """An action to execute. payload shape is action-specific."""

    type: int
    payload: ActionPayload = field(default_factory=dict)


@dataclass(frozen=True)
class KeyMapping:
    """Binds a key to an action, optionally scoped to one component.

    key is the terminal key name, modifiers included ("ctrl+f", "shift+tab").
    character, when set, matches the printed rune instead ("/" vs "slash").
    component=None makes the binding global.
    """

    key: str
    action: KeyAction
    character: str | None = None
    component: ComponentType | None = None

    def matches(self, event) -> bool:
        if self.character is not None:
            return getattr(event, "character", None) == self.character
        return getattr(event, "key", None) == self.key

    @property
    def is_global(self) -> bool:
        return self.component is None


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class EventContext:
    """Per-dispatch record. Built fresh for every key event, never persisted."""

    event: object
    current_focus: object = None
    component: ComponentType | None = None
    timestamp: datetime = field(default_factory=_now)
    trace_id: str = ""
    session_id: str = ""
    metadata: dict[str, object] = field(default_factory=dict)
    action: KeyAction | None = None
    result: EventResult = EventResult.UNHANDLED
    duration: float = 0.0
    error: BaseException | None = None

    def snapshot(self) -> EventContext:
        """Copy for history/metrics: drops the live event and focus references."""
        return EventContext(
            event=None,
            component=self.component,
            timestamp=self.timestamp,
            trace_id=self.trace_id,
            session_id=self.session_id,
            metadata=dict(self.metadata),
            action=self.action,
            result=self.result,
            duration=self.duration,
            error=self.error,
        )


# ─── Metrics ──────────────────────────────────────────────────────────────────


def _running_average(average: float, count: int, sample: float) -> float:
    if count <= 1:
        return sample
    return (average * (count - 1) + sample) / count


@dataclass
class ComponentMetrics:
    event_count: int = 0
    average_duration: float = 0.0
    last_event: datetime | None = None
    error_count: int = 0

    def observe(self, ctx: EventContext) -> None:
        self.event_count += 1
        self.last_event = ctx.timestamp
        if ctx.result is EventResult.ERROR:
            self.error_count += 1
        self.average_duration = _running_average(self.average_duration, self.event_count, ctx.duration)


@dataclass
class ActionMetrics:
    execution_count: int = 0
    average_duration: float = 0.0
    success_count: int = 0
    error_count: int = 0

    def observe(self, ctx: EventContext) -> None:
        self.execution_count += 1
        if ctx.result is EventResult.HANDLED:
            self.success_count += 1
        elif ctx.result is EventResult.ERROR:
            self.error_count += 1
        self.average_duration = _running_average(
            self.average_duration, self.execution_count, ctx.duration
        )


@dataclass
class KeyMetrics:
    press_count: int = 0
    average_duration: float = 0.0
    last_pressed: datetime | None = None

    def observe(self, ctx: EventContext) -> None:
        self.press_count += 1
        self.last_pressed = ctx.timestamp
        self.average_duration = _running_average(self.average_duration, self.press_count, ctx.duration)


@dataclass
class EventMetrics:
    """Aggregate dispatch counters plus a bounded history (oldest evicted first)."""

    max_history: int = 1000
    total_events: int = 0
    handled_events: int = 0
    unhandled_events: int = 0
    error_count: int = 0
    average_duration: float = 0.0
    component_metrics: dict[ComponentType, ComponentMetrics] = field(default_factory=dict)
    action_metrics: dict[int, ActionMetrics] = field(default_factory=dict)
    key_metrics: dict[str, KeyMetrics] = field(default_factory=dict)
    event_history: deque[EventContext] = field(init=False)

    def __post_init__(self):
        self.event_history = deque(maxlen=max(self.max_history, 0))

    def observe(self, ctx: EventContext, key_label: str) -> None:
        self.total_events += 1
        if ctx.result is EventResult.HANDLED:
            self.handled_events += 1
        elif ctx.result is EventResult.UNHANDLED:
            self.unhandled_events += 1
        elif ctx.result is EventResult.ERROR:
            self.error_count += 1
        self.average_duration = _running_average(self.average_duration, self.total_events, ctx.duration)

        if ctx.component is not None:
            self.component_metrics.setdefault(ctx.component, ComponentMetrics()).observe(ctx)
        if ctx.action is not None:
            self.action_metrics.setdefault(ctx.action.type, ActionMetrics()).observe(ctx)
        self.key_metrics.setdefault(key_label, KeyMetrics()).observe(ctx)

    def remember(self, ctx: EventContext) -> None:
        self.event_history.append(ctx.snapshot())

    def copy(self) -> EventMetrics:
        """Independent copy: per-key records and history entries are duplicated."""
        clone = EventMetrics(
            max_history=self.max_history,
            total_events=self.total_events,
            handled_events=self.handled_events,
            unhandled_events=self.unhandled_events,
            error_count=self.error_count,
            average_duration=self.average_duration,
            component_metrics={k: replace(v) for k, v in self.component_metrics.items()},
            action_metrics={k: replace(v) for k, v in self.action_metrics.items()},
            key_metrics={k: replace(v) for k, v in self.key_metrics.items()},
        )
        clone.event_history.extend(ctx.snapshot() for ctx in self.event_history)
        return clone
