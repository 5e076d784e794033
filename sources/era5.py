"""ERA5 reanalysis history via the Open-Meteo archive (baseline source)."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping

import httpx

from models.records import HistoricalDay, HistorySeriesResult, SourceStatus
from sources.base import SourceAdapter, SourceError, clean_value

ERA5_ARCHIVE_URL = "https://archive-api.open-meteo.com/v1/era5"

_HOURLY_VARIABLES = {
    "temperature_2m": "temperature",
    "relative_humidity_2m": "humidity",
    "precipitation": "precipitation",
    "wind_speed_10m": "wind_speed",
    "surface_pressure": "pressure",
}

# Accumulated over the day rather than averaged.
_SUMMED_FIELDS = frozenset({"precipitation"})


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class Era5HistorySource(SourceAdapter[HistorySeriesResult]):
    name = "Copernicus ERA5"

    def __init__(
        self,
        client: httpx.AsyncClient,
        latitude: float,
        longitude: float,
        days: int = 5,
        timeout: float = 15.0,
        timezone_name: str = "Europe/Madrid",
        today: Callable[[], date] = _utc_today,
        url: str = ERA5_ARCHIVE_URL,
    ) -> None:
        super().__init__(client, timeout=timeout)
        self.latitude = latitude
        self.longitude = longitude
        self.days = days
        self.timezone_name = timezone_name
        self.today = today
        self.url = url

    async def _fetch(self) -> HistorySeriesResult:
        today = self.today()
        params = {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "hourly": ",".join(_HOURLY_VARIABLES),
            "wind_speed_unit": "ms",
            "start_date": (today - timedelta(days=self.days)).isoformat(),
            "end_date": (today - timedelta(days=1)).isoformat(),
            "timezone": self.timezone_name,
        }
        payload = await self._get_json(self.url, params=params)
        hourly = payload.get("hourly") if isinstance(payload, Mapping) else None
        if not isinstance(hourly, Mapping):
            raise SourceError("no hourly data in ERA5 response")

        days = aggregate_daily(hourly)
        if not days:
            raise SourceError("ERA5 returned an empty series")

        self._log.info("Loaded %d days of history", len(days), extra={"source": self.name})
        return HistorySeriesResult(source_name=self.name, status=SourceStatus.success, days=days)

    def _failure(self, message: str) -> HistorySeriesResult:
        return HistorySeriesResult.failure(self.name, message)


def aggregate_daily(hourly: Mapping[str, Any]) -> tuple[HistoricalDay, ...]:
    """Collapse hourly ERA5 columns into per-day means (precipitation summed).

    Null hours are skipped; a day lacking any value for a field is dropped.
    """
    times = hourly.get("time") or []
    columns: Dict[str, List[Any]] = {
        field: list(hourly.get(variable) or []) for variable, field in _HOURLY_VARIABLES.items()
    }

    sums: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    counts: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
    for index, stamp in enumerate(times):
        day = str(stamp)[:10]
        for field, column in columns.items():
            value = clean_value(column[index]) if index < len(column) else None
            if value is None:
                continue
            sums[day][field] += value
            counts[day][field] += 1

    result: list[HistoricalDay] = []
    for day in sorted(sums):
        if any(counts[day][field] == 0 for field in columns):
            continue
        values = {
            field: sums[day][field] if field in _SUMMED_FIELDS else sums[day][field] / counts[day][field]
            for field in columns
        }
        try:
            parsed = date.fromisoformat(day)
        except ValueError:
            continue
        result.append(HistoricalDay(date=parsed, **values))
    return tuple(result)
