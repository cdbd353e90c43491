"""
Engine settings management.

Tracks preferences the command line and builder layers read: the default
timezone for events built without one, the step passed in when searching for
alternative slots, density thresholds, and logging preferences.
Settings are persisted as JSON under ~/.config/eventix (or the path in
EVENTIX_SETTINGS_FILE) so they survive across runs.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional, TypedDict

from eventix.logging_helper import LEVELS, Log
from eventix.timezone_service import resolve_zone


class SettingsSchema(TypedDict, total=False):
    default_timezone: str
    suggestion_step_minutes: int
    busy_threshold_percent: float
    light_threshold_percent: float
    log_level: str
    log_dir: Optional[str]


SETTINGS_DIR = Path.home() / ".config" / "eventix"

DEFAULT_SETTINGS: SettingsSchema = {
    "default_timezone": "UTC",
    "suggestion_step_minutes": 15,
    "busy_threshold_percent": 60.0,
    "light_threshold_percent": 30.0,
    "log_level": "warn",
    "log_dir": None,
}


def settings_file() -> Path:
    override = os.environ.get("EVENTIX_SETTINGS_FILE")
    if override:
        return Path(override).expanduser()
    return SETTINGS_DIR / "settings.json"


def _ensure_settings_dir(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as err:
        Log.warn(f"Unable to create settings directory {path.parent}: {err}")


def load_settings() -> SettingsSchema:
    """
    Load settings from disk, falling back to defaults if anything fails.
    """
    path = settings_file()
    if not path.exists():
        Log.debug(f"Settings file not found, using defaults: {path}")
        return DEFAULT_SETTINGS.copy()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("Settings data is not a JSON object")
    except (OSError, ValueError) as err:
        Log.warn(f"Failed to read settings file ({path}): {err}")
        return DEFAULT_SETTINGS.copy()

    merged: SettingsSchema = DEFAULT_SETTINGS.copy()
    # Merge only known keys
    for key in DEFAULT_SETTINGS:
        if key in data:
            merged[key] = data[key]  # type: ignore[literal-required]
    return merged


def save_settings(settings: SettingsSchema) -> None:
    """
    Persist settings to disk.
    """
    path = settings_file()
    _ensure_settings_dir(path)
    try:
        path.write_text(
            json.dumps(settings, indent=2, sort_keys=True),
            encoding="utf-8",
        )
    except OSError as err:
        Log.warn(f"Failed to write settings file ({path}): {err}")


def get_default_timezone() -> str:
    settings = load_settings()
    zone = settings.get("default_timezone", DEFAULT_SETTINGS["default_timezone"])
    if not isinstance(zone, str) or not zone.strip():
        Log.warn(f"Invalid default_timezone value '{zone}', defaulting to UTC")
        zone = DEFAULT_SETTINGS["default_timezone"]
    return zone


def set_default_timezone(value: str) -> None:
    resolve_zone(value)
    settings = load_settings()
    settings["default_timezone"] = value
    save_settings(settings)
    Log.info(f"Saved default timezone setting: {value}")


def get_suggestion_step_minutes() -> int:
    settings = load_settings()
    step = settings.get("suggestion_step_minutes", DEFAULT_SETTINGS["suggestion_step_minutes"])
    if isinstance(step, bool) or not isinstance(step, int) or step <= 0:
        Log.warn(f"Invalid suggestion_step_minutes value '{step}', defaulting to 15")
        step = DEFAULT_SETTINGS["suggestion_step_minutes"]
    return step


def set_suggestion_step_minutes(value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"Invalid suggestion step: {value}")
    settings = load_settings()
    settings["suggestion_step_minutes"] = value
    save_settings(settings)
    Log.info(f"Saved suggestion step setting: {value} min")


def _get_percent(key: str) -> float:
    settings = load_settings()
    value = settings.get(key, DEFAULT_SETTINGS[key])  # type: ignore[literal-required]
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 <= value <= 100:
        Log.warn(f"Invalid {key} value '{value}', defaulting to {DEFAULT_SETTINGS[key]}")  # type: ignore[literal-required]
        value = DEFAULT_SETTINGS[key]  # type: ignore[literal-required]
    return float(value)


def get_busy_threshold() -> float:
    return _get_percent("busy_threshold_percent")


def get_light_threshold() -> float:
    return _get_percent("light_threshold_percent")


def get_log_level() -> str:
    settings = load_settings()
    level = settings.get("log_level", DEFAULT_SETTINGS["log_level"])
    if not isinstance(level, str) or level.lower() not in LEVELS:
        Log.warn(f"Invalid log_level value '{level}', defaulting to warn")
        level = DEFAULT_SETTINGS["log_level"]
    return level.lower()


def set_log_level(value: str) -> None:
    if value.lower() not in LEVELS:
        raise ValueError(f"Invalid log level: {value}")
    settings = load_settings()
    settings["log_level"] = value.lower()
    save_settings(settings)
    Log.info(f"Saved log level setting: {value}")


def get_log_dir() -> Optional[str]:
    return load_settings().get("log_dir")
