"""
Application settings management.

Settings are merged from three layers: built-in defaults, a JSON settings file
in the user's config directory, and environment variables. The result is an
immutable AppConfig handed to the extraction client, the recurrence compiler
and the sync orchestrator at construction time.

The API key is only ever read from the environment; it is never written to the
settings file.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, TypedDict

from dateutil import tz as dateutil_tz

from schedcal.logging_helper import Log


class SettingsSchema(TypedDict, total=False):
    time_zone: str
    model: str
    request_timeout: float
    sync_workers: int
    calendar_id: str


DEFAULT_SETTINGS: SettingsSchema = {
    "time_zone": "America/New_York",
    "model": "gpt-4o-mini",
    "request_timeout": 30.0,
    "sync_workers": 4,
    "calendar_id": "primary",
}

SETTINGS_DIR = Path.home() / ".config" / "schedcal"


def settings_file() -> Path:
    override = os.environ.get("SCHEDCAL_SETTINGS_FILE")
    if override:
        return Path(override)
    return SETTINGS_DIR / "settings.json"


@dataclass(frozen=True)
class AppConfig:
    """
    Explicit configuration.

    api_key: vision model credential; None selects the sample-data client.
    time_zone: IANA zone used for every course's meeting times.
    """
    api_key: Optional[str] = None
    time_zone: str = DEFAULT_SETTINGS["time_zone"]
    model: str = DEFAULT_SETTINGS["model"]
    request_timeout: float = DEFAULT_SETTINGS["request_timeout"]
    sync_workers: int = DEFAULT_SETTINGS["sync_workers"]
    calendar_id: str = DEFAULT_SETTINGS["calendar_id"]

    def __post_init__(self):
        if dateutil_tz.gettz(self.time_zone) is None:
            raise ValueError(f"Unknown time zone: {self.time_zone}")
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.sync_workers < 1:
            raise ValueError(f"sync_workers must be at least 1, got {self.sync_workers}")


def load_settings(path: Optional[Path] = None) -> SettingsSchema:
    """
    Load settings from disk, falling back to defaults if anything fails.
    """
    path = path or settings_file()
    if not path.exists():
        Log.info(f"Settings file not found, using defaults: {path}")
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


def save_settings(settings: SettingsSchema, path: Optional[Path] = None) -> None:
    """
    Persist known settings keys to disk.
    """
    path = path or settings_file()
    known = {k: v for k, v in settings.items() if k in DEFAULT_SETTINGS}
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(known, indent=2, sort_keys=True),
            encoding="utf-8",
        )
    except OSError as err:
        Log.warn(f"Failed to write settings file ({path}): {err}")


def load_config(path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    Build the AppConfig from settings file and environment.

    Recognized environment variables:
        OPENAI_API_KEY (or apiKey): vision model key
        SCHEDCAL_TIME_ZONE: overrides the time zone setting

    Raises:
        ValueError: if the merged settings are invalid (e.g. unknown time zone)
    """
    env = os.environ if env is None else env
    settings = load_settings(path)

    api_key = env.get("OPENAI_API_KEY") or env.get("apiKey") or None
    time_zone = env.get("SCHEDCAL_TIME_ZONE") or settings["time_zone"]

    try:
        request_timeout = float(settings["request_timeout"])
        sync_workers = int(settings["sync_workers"])
    except (TypeError, ValueError):
        Log.warn("Invalid numeric settings, using defaults for timeout and workers")
        request_timeout = DEFAULT_SETTINGS["request_timeout"]
        sync_workers = DEFAULT_SETTINGS["sync_workers"]

    config = AppConfig(
        api_key=api_key,
        time_zone=str(time_zone),
        model=str(settings["model"]),
        request_timeout=request_timeout,
        sync_workers=sync_workers,
        calendar_id=str(settings["calendar_id"]),
    )
    Log.kv({
        "stage": "config",
        "api_key": "set" if config.api_key else "absent",
        "time_zone": config.time_zone,
        "model": config.model,
        "sync_workers": config.sync_workers,
    })
    return config


def set_time_zone(value: str, path: Optional[Path] = None) -> None:
    if dateutil_tz.gettz(value) is None:
        raise ValueError(f"Unknown time zone: {value}")
    settings = load_settings(path)
    settings["time_zone"] = value
    save_settings(settings, path)
    Log.info(f"Saved time zone setting: {value}")
