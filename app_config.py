"""Loading of the application's JSON configuration."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from timings_client import DEFAULT_BASE_URL, DEFAULT_CITY, DEFAULT_COUNTRY

LOGGER = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL_MS = 1000
DEFAULT_REFRESH_HOUR = 0
DEFAULT_REFRESH_MINUTE = 5
DEFAULT_LOG_LEVEL = "INFO"
CONFIG_FILENAME = "config.json"


@dataclass
class AppConfig:
    base_url: str = DEFAULT_BASE_URL
    city: str = DEFAULT_CITY
    country: str = DEFAULT_COUNTRY
    tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS
    refresh_enabled: bool = True
    refresh_hour: int = DEFAULT_REFRESH_HOUR
    refresh_minute: int = DEFAULT_REFRESH_MINUTE
    log_level: str = DEFAULT_LOG_LEVEL


def load_config(path: Path) -> AppConfig:
    """Read *path* into an :class:`AppConfig`; a missing file yields defaults."""
    raw: Dict[str, Any] = {}
    if path.exists():
        try:
            with path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, ValueError):
            LOGGER.exception("Failed to read config file %s; using defaults", path)
            raw = {}
    else:
        LOGGER.info("Config file %s not found; using defaults", path)

    if not isinstance(raw, dict):
        LOGGER.warning("Config root must be an object, got %s; using defaults", type(raw).__name__)
        raw = {}
    return build_config(raw)


def find_config_path(search_dirs: Iterable[Path]) -> Path:
    """First existing ``config.json`` in *search_dirs*; the first candidate otherwise."""
    candidates = [Path(directory) / CONFIG_FILENAME for directory in search_dirs]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return candidates[0]


def build_config(raw: Dict[str, Any]) -> AppConfig:
    backend_cfg = _section(raw, "backend")
    location_cfg = _section(raw, "location")
    refresh_cfg = _section(raw, "refresh")

    config = AppConfig(
        base_url=_string(backend_cfg.get("base_url"), DEFAULT_BASE_URL),
        city=_string(location_cfg.get("city"), DEFAULT_CITY),
        country=_string(location_cfg.get("country"), DEFAULT_COUNTRY),
        tick_interval_ms=_bounded_int(raw.get("tick_interval_ms"), DEFAULT_TICK_INTERVAL_MS, 1, None),
        refresh_enabled=_flag(refresh_cfg.get("enabled"), True),
        refresh_hour=_bounded_int(refresh_cfg.get("hour"), DEFAULT_REFRESH_HOUR, 0, 23),
        refresh_minute=_bounded_int(refresh_cfg.get("minute"), DEFAULT_REFRESH_MINUTE, 0, 59),
        log_level=_string(raw.get("log_level"), DEFAULT_LOG_LEVEL).upper(),
    )
    LOGGER.debug("Loaded config: %s", config)
    return config


def _section(raw: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        LOGGER.warning("Config section '%s' must be an object; ignoring it", key)
        return {}
    return value


def _flag(value: Optional[object], default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        LOGGER.warning("Invalid boolean config value %r; using %s", value, default)
        return default
    return value


def _string(value: Optional[object], default: str) -> str:
    if value in (None, ""):
        return default
    return str(value)


def _bounded_int(value: Optional[object], default: int, low: int, high: Optional[int]) -> int:
    if value in (None, ""):
        return default
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        LOGGER.warning("Invalid integer config value %r; using %d", value, default)
        return default
    if number < low or (high is not None and number > high):
        LOGGER.warning("Config value %d out of range; using %d", number, default)
        return default
    return number
