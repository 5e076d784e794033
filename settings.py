from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_STATION_NAME_ENV = "STATION_NAME"
_LATITUDE_ENV = "STATION_LATITUDE"
_LONGITUDE_ENV = "STATION_LONGITUDE"
_AEMET_KEY_ENV = "AEMET_API_KEY"
_AEMET_STATION_ENV = "AEMET_STATION_ID"
_SOURCE_TIMEOUT_ENV = "SOURCE_TIMEOUT_SECONDS"
_HISTORY_DAYS_ENV = "HISTORY_DAYS"
_REFRESH_INTERVAL_ENV = "REFRESH_INTERVAL_SECONDS"
_MANUAL_COOLDOWN_ENV = "MANUAL_REFRESH_COOLDOWN_SECONDS"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    station_name: str
    latitude: float
    longitude: float
    aemet_api_key: Optional[str]
    aemet_station_id: str
    source_timeout: float
    history_days: int
    refresh_interval: float
    manual_refresh_cooldown: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        return float(candidate)
    except ValueError:
        return default


def _read_positive_float_env(name: str, default: float) -> float:
    parsed = _read_float_env(name, default)
    return parsed if parsed > 0 else default


def _read_positive_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        station_name=_read_str_env(_STATION_NAME_ENV, "Madrid Chamartín"),
        latitude=_read_float_env(_LATITUDE_ENV, 40.4729),
        longitude=_read_float_env(_LONGITUDE_ENV, -3.6797),
        aemet_api_key=_read_optional_env(_AEMET_KEY_ENV, None),
        aemet_station_id=_read_str_env(_AEMET_STATION_ENV, "3195"),
        source_timeout=_read_positive_float_env(_SOURCE_TIMEOUT_ENV, 15.0),
        history_days=_read_positive_int_env(_HISTORY_DAYS_ENV, 5),
        refresh_interval=_read_positive_float_env(_REFRESH_INTERVAL_ENV, 20 * 60.0),
        manual_refresh_cooldown=_read_positive_float_env(_MANUAL_COOLDOWN_ENV, 5 * 60.0),
        log_level=_read_log_level("INFO"),
    )
