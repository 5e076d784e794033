"""NASA POWER daily point adapter (secondary source)."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple

import httpx

from models.records import SourceResult, SourceStatus
from sources.base import SourceAdapter, SourceError, clean_value

NASA_POWER_URL = "https://power.larc.nasa.gov/api/temporal/daily/point"
NASA_PARAMETERS = "PRECTOTCORR,T2M_MAX,T2M_MIN,WS2M,RH2M,PS"

# (start, end) in days before today, most recent window first. POWER data
# lags a few days behind real time, so the nearest days are often sentinels.
DEFAULT_WINDOWS: Tuple[Tuple[int, int], ...] = ((3, 10), (10, 17), (17, 30))


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class NasaPowerSource(SourceAdapter[SourceResult]):
    name = "NASA"

    def __init__(
        self,
        client: httpx.AsyncClient,
        latitude: float,
        longitude: float,
        timeout: float = 15.0,
        windows: Sequence[Tuple[int, int]] = DEFAULT_WINDOWS,
        today: Callable[[], date] = _utc_today,
        url: str = NASA_POWER_URL,
    ) -> None:
        super().__init__(client, timeout=timeout)
        self.latitude = latitude
        self.longitude = longitude
        self.windows = tuple(windows)
        self.today = today
        self.url = url

    async def _fetch(self) -> SourceResult:
        causes: list[str] = []
        for start_days, end_days in self.windows:
            label = f"{start_days}-{end_days}d"
            try:
                payload = await self._get_json(self.url, params=self._params(start_days, end_days))
                result = self._parse_window(payload)
            except (SourceError, httpx.HTTPError) as exc:
                reason = str(exc) or exc.__class__.__name__
                self._log.info("Window rejected", extra={"window": label, "reason": reason})
                causes.append(f"{label}: {reason}")
                continue
            self._log.info("Valid data found", extra={"window": label})
            return result

        raise SourceError("no valid data in any date window (" + "; ".join(causes) + ")")

    def _params(self, start_days: int, end_days: int) -> dict[str, Any]:
        today = self.today()
        start = today - timedelta(days=end_days)
        end = today - timedelta(days=start_days)
        return {
            "parameters": NASA_PARAMETERS,
            "community": "RE",
            "longitude": self.longitude,
            "latitude": self.latitude,
            "start": start.strftime("%Y%m%d"),
            "end": end.strftime("%Y%m%d"),
            "format": "JSON",
        }

    def _parse_window(self, payload: Any) -> SourceResult:
        properties = payload.get("properties") if isinstance(payload, Mapping) else None
        parameters = properties.get("parameter") if isinstance(properties, Mapping) else None
        if not isinstance(parameters, Mapping):
            raise SourceError("no data properties")

        temperatures = _series(parameters, "T2M_MAX")
        if not temperatures:
            raise SourceError("empty series")

        latest = sorted(temperatures)[-1]
        temperature = clean_value(temperatures.get(latest))
        humidity = clean_value(_series(parameters, "RH2M").get(latest))
        if temperature is None or humidity is None:
            raise SourceError(f"missing values (-999) for {latest}")

        precipitation = clean_value(_series(parameters, "PRECTOTCORR").get(latest))
        surface_pressure_kpa = clean_value(_series(parameters, "PS").get(latest))

        return SourceResult(
            source_name=self.name,
            status=SourceStatus.success,
            temperature=temperature,
            humidity=humidity,
            precipitation=max(0.0, precipitation) if precipitation is not None else None,
            wind_speed=clean_value(_series(parameters, "WS2M").get(latest)),
            pressure=surface_pressure_kpa * 10 if surface_pressure_kpa is not None else None,
            observed_at=_parse_day(latest),
        )


def _series(parameters: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    series = parameters.get(key)
    return series if isinstance(series, Mapping) else {}


def _parse_day(raw: str) -> Optional[datetime]:
    try:
        return datetime.strptime(raw, "%Y%m%d").replace(tzinfo=timezone.utc)
    except ValueError:
        return None
