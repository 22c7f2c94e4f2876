"""Settings file reader for cloudcutter.

Settings live in XDG_CONFIG_HOME/cloudcutter/settings.json as one JSON object
whose sections ("error_handler", "event_manager", "logging") are overlaid on
the dataclass defaults by SystemsFactory. The app never writes this file.

This module is a STABLE BOUNDARY.
Import as: import cloudcutter.io.settings
"""

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def get_config_path() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME") or os.path.expanduser("~/.config")
    return Path(config_home) / "cloudcutter" / "settings.json"


def load_settings() -> dict:
    """Read the settings object. Missing, unreadable or non-object files read as {}."""
    path = get_config_path()
    # [LAW:dataflow-not-control-flow] Always attempt read; empty dict is the "no data" value.
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("ignoring unreadable settings file path=%s error=%s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("ignoring settings file path=%s: top level is not an object", path)
        return {}
    return data


def load_section(key: str, settings: dict | None = None) -> dict:
    """One settings section. Non-object values count as absent."""
    if settings is None:
        settings = load_settings()
    section = settings.get(key, {})
    return section if isinstance(section, dict) else {}
