import random
from datetime import datetime, timezone
from typing import Iterator, List

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.schemas import WeatherResponse
from models.records import (
    AnomalyLevel,
    DataQuality,
    FusedWeather,
    HistoricalBaseline,
    SourceResult,
    SourceStatus,
    WeatherReading,
)
from services.dashboard import DashboardService
from services.fusion import FUSION_STRATEGY
from services.pipeline import emergency_snapshot
from services.recommendations import OperationalContext

NOW = datetime(2024, 10, 30, 12, tzinfo=timezone.utc)

LIVE = FusedWeather(
    reading=WeatherReading(
        timestamp=NOW,
        temperature=16.0,
        humidity=60.0,
        precipitation=0.0,
        wind_speed=3.0,
        wind_direction=200.0,
        pressure=1015.0,
    ),
    sources=("AEMET", "Copernicus ERA5"),
    confidence=75,
    data_quality=DataQuality.partial,
    fusion_strategy=FUSION_STRATEGY,
    anomaly_level=AnomalyLevel.normal,
    baseline=HistoricalBaseline(
        averages={"temperature": 15.0, "humidity": 62.0, "precipitation": 0.1, "wind_speed": 3.5, "pressure": 1014.0},
        anomalies={"temperature": 1.0, "humidity": -2.0, "precipitation": -0.1, "wind_speed": -0.5, "pressure": 1.0},
        levels={},
        overall_level=AnomalyLevel.normal,
        confidence=95,
        days_analyzed=5,
        data_source="Open-Meteo ERA5",
        validated=True,
    ),
    raw_sources=(
        SourceResult(source_name="AEMET", status=SourceStatus.success, temperature=16.0),
        SourceResult.failure("NASA", "no valid data in any date window"),
    ),
    processing_ms=42,
    produced_at=NOW,
)


class StubPipeline:
    def __init__(self) -> None:
        self.calls = 0

    async def run(self) -> FusedWeather:
        self.calls += 1
        return LIVE


class FakeClock:
    def __init__(self) -> None:
        self.value = 5000.0

    def __call__(self) -> float:
        return self.value


@pytest.fixture
def services(monkeypatch) -> List[DashboardService]:
    built: List[DashboardService] = []

    def build_test_service() -> DashboardService:
        if not built:
            built.append(
                DashboardService(
                    StubPipeline(),  # type: ignore[arg-type]
                    clock=FakeClock(),
                    now=lambda: NOW,
                    context_factory=lambda now: OperationalContext(hour=12),
                )
            )
        return built[0]

    def cache_clear() -> None:
        built.clear()

    build_test_service.cache_clear = cache_clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_service", build_test_service)
    monkeypatch.setattr("app.api.build_default_service", build_test_service)
    monkeypatch.setattr("services.dashboard.build_default_service", build_test_service)
    return built


@pytest.fixture
def api_client(services) -> Iterator[TestClient]:
    app = create_app()
    with TestClient(app) as client:
        yield client


def test_lifespan_starts_and_clears_service(services) -> None:
    app = create_app()

    with TestClient(app):
        service = services[0]
        assert service.running

    assert not service.running
    assert services == []


def test_weather_payload_carries_fusion_metadata(api_client: TestClient) -> None:
    response = api_client.get("/weather")

    assert response.status_code == 200
    payload = response.json()
    assert payload["weather"]["windSpeed"] == 3.0
    metadata = payload["metadata"]
    assert metadata["fusionStrategy"] == FUSION_STRATEGY
    assert metadata["sourcesUsed"] == ["AEMET", "Copernicus ERA5"]
    assert metadata["confidence"] == 75
    assert metadata["anomalyLevel"] == "normal"
    assert metadata["era5Validation"]["similarDaysFound"] == 5
    assert metadata["era5Validation"]["dataSource"] == "Open-Meteo ERA5"
    assert metadata["historicalContext"]["temperature"] == 15.0
    assert metadata["processingTime"] == 42
    raw = {source["sourceName"]: source for source in metadata["rawSources"]}
    assert raw["AEMET"]["status"] == "success"
    assert raw["NASA"]["status"] == "error"
    assert raw["NASA"]["errorMessage"] == "no valid data in any date window"


def test_platforms_and_analysis(api_client: TestClient) -> None:
    api_client.get("/weather")

    platforms = api_client.get("/platforms").json()
    analysis = api_client.get("/analysis").json()

    assert len(platforms["platforms"]) == 8
    scores = {platform["id"]: platform["riskScore"] for platform in platforms["platforms"]}
    assert scores["P1"] == 0
    assert scores["P4"] == 14
    assert platforms["simulating"] is False
    assert analysis["analysis"]["warningLevel"] == "info"
    assert analysis["recommendations"] == []


def test_manual_refresh_cooldown(api_client: TestClient) -> None:
    first = api_client.post("/refresh")
    second = api_client.post("/refresh")

    assert first.status_code == 200
    assert first.json()["outcome"] == "completed"
    assert second.status_code == 429
    assert second.headers["Retry-After"] == "300"


def test_simulation_round_trip(api_client: TestClient) -> None:
    api_client.get("/weather")

    simulated = api_client.post(
        "/simulation",
        json={"temperature": 3.0, "humidity": 95, "precipitation": 30.0, "windSpeed": 28.0, "pressure": 990},
    )
    assert simulated.status_code == 200
    assert simulated.json()["metadata"]["dataQuality"] == "simulated"
    assert api_client.get("/status").json()["simulating"] is True
    assert api_client.post("/refresh").status_code == 409
    analysis = api_client.get("/analysis").json()
    assert analysis["recommendations"][0]["severity"] == "critical"

    restored = api_client.delete("/simulation")
    assert restored.status_code == 200
    assert restored.json()["metadata"]["sourcesUsed"] == ["AEMET", "Copernicus ERA5"]
    assert api_client.get("/status").json()["simulating"] is False


def test_out_of_bounds_simulation_is_rejected(api_client: TestClient) -> None:
    api_client.get("/weather")

    response = api_client.post(
        "/simulation",
        json={"temperature": 75.0, "humidity": 50, "precipitation": 0, "windSpeed": 2},
    )

    assert response.status_code == 400
    assert "temperature" in response.json()["detail"]
    assert api_client.get("/status").json()["simulating"] is False


def test_scenarios(api_client: TestClient) -> None:
    listed = api_client.get("/simulation/scenarios").json()
    assert set(listed) == {"severe-dana", "winter-storm", "heat-wave"}

    missing = api_client.post("/simulation/scenarios/volcano")
    assert missing.status_code == 404
    assert "volcano" in missing.json()["detail"]

    applied = api_client.post("/simulation/scenarios/heat-wave")
    assert applied.status_code == 200
    assert applied.json()["weather"]["temperature"] == 41.2


def test_status_and_health(api_client: TestClient) -> None:
    api_client.get("/weather")

    status = api_client.get("/status").json()

    assert status["station"] == "Madrid Chamartín"
    assert status["status"] == "good"
    assert status["secondsToNextUpdate"] == 1200
    assert api_client.get("/health").json() == {"status": "ok"}
    assert api_client.get("/").status_code == 200


def test_emergency_snapshot_reports_fallback_validation() -> None:
    payload = WeatherResponse.from_fused(emergency_snapshot(random.Random(1), NOW)).model_dump(by_alias=True)

    assert payload["metadata"]["era5Validation"] == {
        "anomalyLevel": AnomalyLevel.normal,
        "confidence": 20,
        "similarDaysFound": 0,
        "dataSource": "None - Emergency fallback",
        "validated": False,
        "errorMessage": None,
    }
    assert payload["metadata"]["historicalContext"] is None
