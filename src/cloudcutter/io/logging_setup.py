"""Logging bootstrap for the cloudcutter runtime.

// [LAW:single-enforcer] Handler wiring for the `cloudcutter` logger happens here only.
// [LAW:one-source-of-truth] LoggingConfig comes from the "logging" settings
//   section; CLOUDCUTTER_LOG_* environment variables override it per run.

The log file is JSON lines: one object per record carrying the structured
pairs that log_fields() attached, so dispatch traces and error reports can be
filtered by trace_id, code or component after the fact. The optional stderr
stream stays human readable.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path


ROOT_LOGGER_NAME = "cloudcutter"

_ENV_OVERRIDES = {
    "CLOUDCUTTER_LOG_LEVEL": "level",
    "CLOUDCUTTER_LOG_FILE": "file",
    "CLOUDCUTTER_LOG_DIR": "directory",
}


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    directory: str = "~/.local/share/cloudcutter/logs"
    # Empty: a fresh timestamped file under directory.
    file: str = ""
    max_bytes: int = 20 * 1024 * 1024
    backup_count: int = 5


@dataclass(frozen=True)
class LoggingRuntime:
    """What configure() actually installed."""

    level_name: str
    level: int
    file_path: str


_RUNTIME: LoggingRuntime | None = None


def with_env_overrides(config: LoggingConfig, environ: Mapping[str, str] = os.environ) -> LoggingConfig:
    overrides = {
        field: environ[name]
        for name, field in _ENV_OVERRIDES.items()
        if environ.get(name)
    }
    return replace(config, **overrides)


def _parse_level(raw: str) -> tuple[str, int]:
    level = logging.getLevelName(str(raw or "INFO").strip().upper())
    # getLevelName maps unknown names to "Level X" strings.
    if not isinstance(level, int):
        level = logging.INFO
    return logging.getLevelName(level), level


def _safe_name(value: str) -> str:
    candidate = "".join(ch if (ch.isalnum() or ch in {"-", "_"}) else "-" for ch in value)
    return candidate.strip("-_") or "session"


def _log_path(config: LoggingConfig, session_name: str) -> Path:
    if config.file:
        return Path(config.file).expanduser()
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    name = f"{_safe_name(session_name)}-{stamp}-{os.getpid()}.log"
    return Path(config.directory).expanduser() / name


class JsonFieldsFormatter(logging.Formatter):
    """One JSON object per record; log_fields() pairs land under "fields"."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "event": getattr(record, "log_event", None) or record.getMessage(),
        }
        fields = getattr(record, "fields", None)
        if fields:
            entry["fields"] = fields
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure(
    config: LoggingConfig | None = None,
    *,
    session_name: str = "cloudcutter",
    stream: bool = True,
) -> LoggingRuntime:
    """Install the JSON file handler (and optionally stderr) on the cloudcutter logger.

    Pass stream=False while a full-screen terminal app owns stderr. Only the
    first call installs handlers; later calls return the same runtime.
    """
    global _RUNTIME
    if _RUNTIME is not None:
        return _RUNTIME

    config = with_env_overrides(config or LoggingConfig())
    level_name, level = _parse_level(config.level)
    path = _log_path(config, session_name)
    path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(
        path, maxBytes=config.max_bytes, backupCount=config.backup_count, encoding="utf-8"
    )
    file_handler.setFormatter(JsonFieldsFormatter())
    handlers: list[logging.Handler] = [file_handler]
    if stream:
        stderr = logging.StreamHandler()
        stderr.setFormatter(logging.Formatter("[%(name)s] %(levelname)s %(message)s"))
        handlers.append(stderr)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False
    logger.handlers[:] = handlers
    logging.captureWarnings(True)

    _RUNTIME = LoggingRuntime(level_name=level_name, level=level, file_path=str(path))
    return _RUNTIME
