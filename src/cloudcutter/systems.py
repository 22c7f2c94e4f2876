"""Factory for the shared error pipeline, event manager and logging configuration.

// [LAW:one-source-of-truth] Default configs live here; the settings file only
//   overlays known keys on top of them.

Views get a factory instead of importing each other, so every view builds its
own ErrorHandler (tagged with its component name) from the same defaults.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping

import cloudcutter.io.settings
from cloudcutter.errors.handler import ErrorHandler, ErrorHandlerConfig
from cloudcutter.errors.policies import MetricsRecorder, RecoveryDispatcher
from cloudcutter.io.logging_setup import LoggingConfig
from cloudcutter.tui.event_manager import EventManagerConfig

logger = logging.getLogger(__name__)

ERROR_SECTION = "error_handler"
EVENT_SECTION = "event_manager"
LOGGING_SECTION = "logging"


def _accepts(current, value) -> bool:
    # bool is an int subclass; keep the two apart.
    if isinstance(current, bool) or isinstance(value, bool):
        return isinstance(current, bool) and isinstance(value, bool)
    if isinstance(current, float):
        return isinstance(value, (int, float))
    return isinstance(value, type(current))


def overlay_config(config, overrides: Mapping[str, object]):
    """Return a copy of a dataclass config with known keys replaced.

    Unknown keys and values whose type does not match the default are
    dropped with a warning.
    """
    known = {f.name for f in dataclasses.fields(config)}
    accepted: dict[str, object] = {}
    for key, value in overrides.items():
        if key not in known:
            logger.warning("ignoring unknown setting %s.%s", type(config).__name__, key)
            continue
        if not _accepts(getattr(config, key), value):
            logger.warning("ignoring setting %s.%s with wrong type", type(config).__name__, key)
            continue
        accepted[key] = value
    return dataclasses.replace(config, **accepted)


class SystemsFactory:
    """Creates error handlers, event configs and the logging config from shared defaults."""

    def __init__(
        self,
        logger: logging.Logger | None = None,
        settings: Mapping[str, object] | None = None,
        *,
        metrics: MetricsRecorder | None = None,
        recovery: RecoveryDispatcher | None = None,
    ):
        self._logger = logger or logging.getLogger("cloudcutter")
        if settings is None:
            settings = cloudcutter.io.settings.load_settings()
        section = cloudcutter.io.settings.load_section
        self.error_config = overlay_config(ErrorHandlerConfig(), section(ERROR_SECTION, settings))
        self.event_config = overlay_config(EventManagerConfig(), section(EVENT_SECTION, settings))
        self.logging_config = overlay_config(LoggingConfig(), section(LOGGING_SECTION, settings))
        self._metrics = metrics
        self._recovery = recovery

    def create_error_handler(self, component: str) -> ErrorHandler:
        config = dataclasses.replace(self.error_config, component=component)
        return ErrorHandler(
            self._logger.getChild("errors"),
            config,
            metrics=self._metrics,
            recovery=self._recovery,
        )

    def create_event_config(self) -> EventManagerConfig:
        return dataclasses.replace(self.event_config)

    def update_error_config(self, config: ErrorHandlerConfig) -> None:
        self.error_config = config

    def update_event_config(self, config: EventManagerConfig) -> None:
        self.event_config = config
