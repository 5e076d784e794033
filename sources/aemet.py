"""AEMET OpenData conventional observation adapter (primary source)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import httpx

from models.records import SourceResult, SourceStatus
from sources.base import SourceAdapter, SourceError, clean_value

AEMET_BASE_URL = "https://opendata.aemet.es/opendata/api"

# AEMET observation keys mapped to reading fields.
_FIELD_MAP = {
    "ta": "temperature",
    "hr": "humidity",
    "prec": "precipitation",
    "vv": "wind_speed",
    "dv": "wind_direction",
    "pres": "pressure",
}


class AemetSource(SourceAdapter[SourceResult]):
    """Latest hourly observation of one AEMET station.

    AEMET answers in two steps: the observation endpoint returns an envelope
    whose ``datos`` member is a short-lived URL holding the actual records.
    """

    name = "AEMET"

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: Optional[str],
        station_id: str = "3195",
        timeout: float = 15.0,
        base_url: str = AEMET_BASE_URL,
    ) -> None:
        super().__init__(client, timeout=timeout)
        self.api_key = api_key
        self.station_id = station_id
        self.base_url = base_url.rstrip("/")

    async def _fetch(self) -> SourceResult:
        if not self.api_key:
            raise SourceError("AEMET API key not configured")

        url = f"{self.base_url}/observacion/convencional/datos/estacion/{self.station_id}"
        envelope = await self._get_json(url, headers={"api_key": self.api_key})
        if not isinstance(envelope, Mapping):
            raise SourceError("unexpected AEMET envelope")

        estado = envelope.get("estado")
        datos_url = envelope.get("datos")
        if estado != 200 or not datos_url:
            detail = envelope.get("descripcion") or "no data URL"
            raise SourceError(f"AEMET returned estado={estado}: {detail}")

        observations = await self._get_json(str(datos_url))
        if not isinstance(observations, list) or not observations:
            raise SourceError("no AEMET observations available")

        return self._parse_observation(observations[-1])

    def _parse_observation(self, latest: Any) -> SourceResult:
        if not isinstance(latest, Mapping):
            raise SourceError("malformed AEMET observation")

        values = {field: clean_value(latest.get(key)) for key, field in _FIELD_MAP.items()}
        if all(value is None for value in values.values()):
            raise SourceError("AEMET observation has no usable values")

        return SourceResult(
            source_name=self.name,
            status=SourceStatus.success,
            observed_at=_parse_timestamp(latest.get("fint")),
            **values,
        )


def _parse_timestamp(raw: Any) -> Optional[datetime]:
    if not isinstance(raw, str) or not raw.strip():
        return None
    candidate = raw.strip()
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
