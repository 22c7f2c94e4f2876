"""Structured key/value logging on top of stdlib logging.

Collaborators log as `message k=v k=v`; the raw pairs ride along on the record
as `record.fields` and the bare message as `record.log_event`, so the JSON
file formatter and tests can use them without parsing.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping


def format_fields(fields: Mapping[str, object]) -> str:
    # Insertion order is kept: callers list the most useful keys first.
    return " ".join(f"{key}={value}" for key, value in fields.items())


def log_fields(logger: logging.Logger, level: int, msg: str, /, **fields: object) -> None:
    """Log msg with trailing key=value pairs at the given level."""
    if not logger.isEnabledFor(level):
        return
    extra = {"fields": fields, "log_event": msg}
    if fields:
        logger.log(level, "%s %s", msg, format_fields(fields), extra=extra)
    else:
        logger.log(level, "%s", msg, extra=extra)
