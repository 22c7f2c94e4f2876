"""Event manager: interceptors, middleware and metrics around a dispatch chain.

// [LAW:single-enforcer] process_event is the only entry point the hosting app
//   calls per key press. Logging, metrics and tracing are middleware, not
//   special cases inside the core.
// [LAW:locality-or-seam] The manager never decides what a key does. That is the
//   keymap + action executor, then the handler manager (an EventBus).

Core resolution order:
1. Key mapping resolver → action executor (None = handled, else propagated).
2. Handler manager (None = handled, same event = unhandled, else propagated).
3. Neither configured: unhandled.

A collaborator that raises is classified through the error pipeline, the
dispatch is marked as an error, and the event is consumed.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from cloudcutter.errors.handler import ErrorHandler
from cloudcutter.io.log_fields import log_fields
from cloudcutter.tui.event_types import EventContext, EventMetrics, EventResult, format_action
from cloudcutter.tui.protocols import (
    ActionExecutor,
    ComponentResolver,
    HandlerManager,
    KeyMappingResolver,
)

logger = logging.getLogger(__name__)

NextFn = Callable[[EventContext], object]
EventMiddleware = Callable[[EventContext, NextFn], object]
# Returns False to cancel the event before any handling.
EventInterceptor = Callable[[EventContext], bool]


@dataclass(frozen=True)
class EventManagerConfig:
    enable_logging: bool = True
    enable_metrics: bool = True
    enable_tracing: bool = False
    log_unhandled_events: bool = True
    max_event_history: int = 1000
    debug_mode: bool = False


def format_event_key(event) -> str:
    """Human label for a key event: quoted rune for printables, else key name."""
    if event is None:
        return "none"
    character = getattr(event, "character", None)
    key = str(getattr(event, "key", "") or "")
    if character and len(character) == 1 and character.isprintable() and not character.isspace():
        return f"'{character}'"
    if not key:
        return "unknown"
    return "+".join(part.capitalize() for part in key.split("+"))


class EventManager:
    """Runs key events through interceptors, middleware and the core resolver."""

    def __init__(
        self,
        logger: logging.Logger | None = None,
        config: EventManagerConfig | None = None,
        *,
        component_resolver: ComponentResolver | None = None,
        action_executor: ActionExecutor | None = None,
        key_resolver: KeyMappingResolver | None = None,
        handler_manager: HandlerManager | None = None,
        error_handler: ErrorHandler | None = None,
    ):
        self._logger = logger or logging.getLogger(__name__)
        self.config = config or EventManagerConfig()
        self.component_resolver = component_resolver
        self.action_executor = action_executor
        self.key_resolver = key_resolver
        self.handler_manager = handler_manager
        self.error_handler = error_handler
        self.session_id = f"session_{uuid.uuid4().hex[:12]}"
        self._middleware: list[EventMiddleware] = []
        self._interceptors: list[EventInterceptor] = []
        self._metrics = EventMetrics(max_history=self.config.max_event_history)

        if self.config.enable_logging:
            self.add_middleware(self._logging_middleware)
        if self.config.enable_metrics:
            self.add_middleware(self._metrics_middleware)
        if self.config.enable_tracing:
            self.add_middleware(self._tracing_middleware)

    def add_middleware(self, middleware: EventMiddleware) -> None:
        self._middleware.append(middleware)

    def add_interceptor(self, interceptor: EventInterceptor) -> None:
        self._interceptors.append(interceptor)

    # ─── Processing ────────────────────────────────────────────────────

    def process_event(self, event, current_focus):
        """Dispatch one key event. Returns None when consumed."""
        start = time.perf_counter()
        ctx = EventContext(
            event=event,
            current_focus=current_focus,
            trace_id=f"evt_{time.time_ns()}",
            session_id=self.session_id,
        )
        if self.component_resolver is not None:
            ctx.component = self.component_resolver.get_component_type(current_focus)

        for interceptor in self._interceptors:
            if not interceptor(ctx):
                ctx.result = EventResult.CANCELLED
                ctx.duration = time.perf_counter() - start
                self._record_event(ctx)
                return None

        result = self._process_with_middleware(ctx, 0, start)

        ctx.duration = time.perf_counter() - start
        self._record_event(ctx)
        return result

    def _process_with_middleware(self, ctx: EventContext, index: int, start: float):
        if index >= len(self._middleware):
            result = self._core_event_handler(ctx)
            # Middleware running after next() sees the final duration.
            ctx.duration = time.perf_counter() - start
            return result
        return self._middleware[index](
            ctx, lambda c: self._process_with_middleware(c, index + 1, start)
        )

    def _core_event_handler(self, ctx: EventContext):
        try:
            return self._resolve(ctx)
        except Exception as exc:
            ctx.result = EventResult.ERROR
            ctx.error = self._report_failure(exc)
            return None

    def _resolve(self, ctx: EventContext):
        if self.key_resolver is not None:
            action = self.key_resolver.resolve_key_event(ctx.event, ctx.current_focus)
            if action is not None:
                ctx.action = action
                result = None
                if self.action_executor is not None:
                    result = self.action_executor.execute_action(action, ctx.event)
                ctx.result = EventResult.HANDLED if result is None else EventResult.PROPAGATED
                return result

        if self.handler_manager is not None:
            result = self.handler_manager.handle_event(ctx.event, ctx.current_focus)
            if result is None:
                ctx.result = EventResult.HANDLED
            elif result is ctx.event:
                ctx.result = EventResult.UNHANDLED
            else:
                ctx.result = EventResult.PROPAGATED
            return result

        ctx.result = EventResult.UNHANDLED
        return ctx.event

    def _report_failure(self, exc: Exception) -> BaseException:
        if self.error_handler is None:
            self._logger.exception("Event handler raised")
            return exc
        return self.error_handler.handle_and_log(
            self.error_handler.wrap_with_operation("process_event", exc)
        )

    # ─── Built-in middleware ───────────────────────────────────────────

    def _logging_middleware(self, ctx: EventContext, next_fn: NextFn):
        if self.config.debug_mode:
            log_fields(
                self._logger,
                logging.DEBUG,
                "Processing event",
                key=format_event_key(ctx.event),
                component=self._format_component(ctx),
                trace_id=ctx.trace_id,
            )

        result = next_fn(ctx)

        level = logging.DEBUG
        if ctx.result is EventResult.ERROR:
            level = logging.ERROR
        elif ctx.result is EventResult.UNHANDLED and self.config.log_unhandled_events:
            level = logging.INFO

        fields: dict[str, object] = {
            "key": format_event_key(ctx.event),
            "component": self._format_component(ctx),
            "result": str(ctx.result),
            "duration_ms": round(ctx.duration * 1000, 3),
            "trace_id": ctx.trace_id,
        }
        if ctx.action is not None:
            fields["action"] = format_action(ctx.action.type)
        if ctx.error is not None:
            fields["error"] = str(ctx.error)

        message = "Event processing failed" if level == logging.ERROR else "Event processed"
        log_fields(self._logger, level, message, **fields)
        return result

    def _metrics_middleware(self, ctx: EventContext, next_fn: NextFn):
        result = next_fn(ctx)
        self._metrics.observe(ctx, format_event_key(ctx.event))
        return result

    def _tracing_middleware(self, ctx: EventContext, next_fn: NextFn):
        ctx.metadata["trace_start"] = ctx.timestamp
        result = next_fn(ctx)
        action = format_action(ctx.action.type) if ctx.action is not None else "none"
        ctx.metadata["trace_context"] = f"component={self._format_component(ctx)},action={action}"
        ctx.metadata["trace_end"] = datetime.now(timezone.utc)
        ctx.metadata["trace_duration"] = ctx.duration
        return result

    def _format_component(self, ctx: EventContext) -> str:
        if self.component_resolver is not None:
            return self.component_resolver.format_component(ctx.component)
        if ctx.component is None:
            return "none"
        return f"component_{int(ctx.component)}"

    # ─── Metrics ───────────────────────────────────────────────────────

    def _record_event(self, ctx: EventContext) -> None:
        if not self.config.enable_metrics:
            return
        self._metrics.remember(ctx)

    def get_metrics(self) -> EventMetrics:
        """Deep copy of the current metrics; safe to keep and mutate."""
        return self._metrics.copy()

    def format_metrics_summary(self) -> str:
        metrics = self._metrics
        lines = ["Event Manager Metrics Summary:", f"Total Events: {metrics.total_events}"]
        if metrics.total_events > 0:
            total = metrics.total_events
            lines.append(f"Handled: {metrics.handled_events} ({metrics.handled_events / total * 100:.1f}%)")
            lines.append(
                f"Unhandled: {metrics.unhandled_events} ({metrics.unhandled_events / total * 100:.1f}%)"
            )
            lines.append(f"Errors: {metrics.error_count} ({metrics.error_count / total * 100:.1f}%)")
        lines.append(f"Average Duration: {metrics.average_duration * 1000:.3f}ms")
        return "\n".join(lines) + "\n"
