from __future__ import annotations

import asyncio
import math
from datetime import date, datetime, timezone
from typing import Callable, List

import httpx
import pytest

from models.records import SourceStatus
from sources.aemet import AemetSource
from sources.base import clean_value
from sources.era5 import Era5HistorySource, aggregate_daily
from sources.nasa_power import NasaPowerSource

TODAY = date(2024, 10, 30)


def _fetch(build: Callable[[httpx.AsyncClient], object], handler):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await build(client).fetch()

    return asyncio.run(run())


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("12,5", 12.5),
        (" 7.25 ", 7.25),
        (0, 0.0),
        (-998.5, -998.5),
        (-999, None),
        ("-9999", None),
        ("", None),
        ("n/a", None),
        (None, None),
        (True, None),
        (math.nan, None),
    ],
)
def test_clean_value(raw, expected) -> None:
    assert clean_value(raw) == expected


def _aemet_handler(observations: List[dict], requests: List[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.host == "datos.test":
            return httpx.Response(200, json=observations)
        return httpx.Response(200, json={"estado": 200, "datos": "https://datos.test/obs/123"})

    return handler


def test_aemet_uses_latest_observation() -> None:
    requests: List[httpx.Request] = []
    observations = [
        {"fint": "2024-10-29T09:00:00", "ta": 11.0, "hr": 60, "prec": 0.0, "vv": 2.0, "dv": 90, "pres": 941.0},
        {"fint": "2024-10-29T10:00:00", "ta": 12.5, "hr": 70, "prec": 0.2, "vv": 3.1, "dv": 250, "pres": -9999},
    ]

    result = _fetch(
        lambda client: AemetSource(client, api_key="secret"),
        _aemet_handler(observations, requests),
    )

    assert result.ok
    assert result.temperature == 12.5
    assert result.humidity == 70.0
    assert result.wind_direction == 250.0
    assert result.pressure is None
    assert result.observed_at == datetime(2024, 10, 29, 10, tzinfo=timezone.utc)
    assert requests[0].url.path.endswith("/observacion/convencional/datos/estacion/3195")
    assert requests[0].headers["api_key"] == "secret"


def test_aemet_without_key_never_calls_out() -> None:
    requests: List[httpx.Request] = []

    result = _fetch(lambda client: AemetSource(client, api_key=None), _aemet_handler([], requests))

    assert result.status is SourceStatus.error
    assert result.error_message == "AEMET API key not configured"
    assert requests == []


def test_aemet_reports_envelope_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"estado": 401, "descripcion": "API key invalido"})

    result = _fetch(lambda client: AemetSource(client, api_key="bad"), handler)

    assert not result.ok
    assert result.error_message == "AEMET returned estado=401: API key invalido"


def test_aemet_quota_exhaustion() -> None:
    result = _fetch(
        lambda client: AemetSource(client, api_key="secret"),
        lambda request: httpx.Response(429),
    )

    assert result.error_message == "quota exceeded (HTTP 429)"


def test_aemet_rejects_empty_observation_list() -> None:
    result = _fetch(lambda client: AemetSource(client, api_key="secret"), _aemet_handler([], []))

    assert result.error_message == "no AEMET observations available"


def _nasa_payload(day: str, temperature: float, precipitation: float = 1.2) -> dict:
    return {
        "properties": {
            "parameter": {
                "T2M_MAX": {"20241019": 20.0, day: temperature},
                "RH2M": {"20241019": 50.0, day: 65.0},
                "PRECTOTCORR": {"20241019": 0.0, day: precipitation},
                "WS2M": {"20241019": 2.0, day: 4.5},
                "PS": {"20241019": 94.0, day: 94.1},
            }
        }
    }


def test_nasa_walks_back_until_a_window_has_data() -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if len(requests) == 1:
            return httpx.Response(200, json=_nasa_payload("20241027", -999.0))
        return httpx.Response(200, json=_nasa_payload("20241020", 23.5, precipitation=-0.01))

    result = _fetch(
        lambda client: NasaPowerSource(client, latitude=40.47, longitude=-3.68, today=lambda: TODAY),
        handler,
    )

    assert result.ok
    assert result.temperature == 23.5
    assert result.humidity == 65.0
    assert result.precipitation == 0.0
    assert result.pressure == pytest.approx(941.0)
    assert result.wind_direction is None
    assert len(requests) == 2
    assert requests[0].url.params["start"] == "20241020"
    assert requests[0].url.params["end"] == "20241027"
    assert requests[1].url.params["start"] == "20241013"


def test_nasa_fails_when_every_window_fails() -> None:
    result = _fetch(
        lambda client: NasaPowerSource(client, latitude=40.47, longitude=-3.68, today=lambda: TODAY),
        lambda request: httpx.Response(200, json={"messages": []}),
    )

    assert not result.ok
    assert result.error_message.startswith("no valid data in any date window")
    assert "3-10d: no data properties" in result.error_message


def test_adapter_timeout_becomes_error_result() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, json={})

    result = _fetch(
        lambda client: NasaPowerSource(client, latitude=40.47, longitude=-3.68, timeout=0.01),
        handler,
    )

    assert result.status is SourceStatus.error
    assert result.error_message == "timed out after 0.01s"


def test_aggregate_daily_means_and_sums() -> None:
    hourly = {
        "time": ["2024-10-28T00:00", "2024-10-28T01:00", "2024-10-29T00:00", "2024-10-29T01:00"],
        "temperature_2m": [10.0, 12.0, 14.0, None],
        "relative_humidity_2m": [70, 80, 60, 60],
        "precipitation": [0.5, 1.5, 0.0, 0.0],
        "wind_speed_10m": [2.0, 4.0, 3.0, 3.0],
        "surface_pressure": [940.0, 942.0, 945.0, 945.0],
    }

    days = aggregate_daily(hourly)

    assert [day.date for day in days] == [date(2024, 10, 28), date(2024, 10, 29)]
    first, second = days
    assert first.temperature == pytest.approx(11.0)
    assert first.humidity == pytest.approx(75.0)
    assert first.precipitation == pytest.approx(2.0)
    assert first.pressure == pytest.approx(941.0)
    assert second.temperature == pytest.approx(14.0)


def test_aggregate_daily_drops_days_without_a_field() -> None:
    hourly = {
        "time": ["2024-10-28T00:00"],
        "temperature_2m": [10.0],
        "relative_humidity_2m": [None],
        "precipitation": [0.0],
        "wind_speed_10m": [2.0],
        "surface_pressure": [940.0],
    }

    assert aggregate_daily(hourly) == ()


def test_era5_history_request_and_failure() -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"hourly": {"time": []}})

    result = _fetch(
        lambda client: Era5HistorySource(client, latitude=40.47, longitude=-3.68, today=lambda: TODAY),
        handler,
    )

    assert not result.ok
    assert result.error_message == "ERA5 returned an empty series"
    params = requests[0].url.params
    assert params["start_date"] == "2024-10-25"
    assert params["end_date"] == "2024-10-29"
    assert params["wind_speed_unit"] == "ms"
