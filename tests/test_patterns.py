from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from models.records import AnomalyLevel, HistoricalBaseline, WarningLevel, WeatherReading
from services.patterns import (
    DEFAULT_TOLERANCES,
    NO_MATCH_CONTEXT,
    analyze,
    analyze_trends,
    combined_confidence,
    find_similar_event,
    tolerances_for,
    warning_level,
)


def _reading(temperature: float, precipitation: float, wind_speed: float, **overrides) -> WeatherReading:
    values = dict(
        timestamp=datetime(2024, 10, 29, 12, tzinfo=timezone.utc),
        temperature=temperature,
        humidity=overrides.pop("humidity", 70.0),
        precipitation=precipitation,
        wind_speed=wind_speed,
        wind_direction=230.0,
        pressure=overrides.pop("pressure", 1000.0),
    )
    return WeatherReading(**values)


def _baseline(level: AnomalyLevel, confidence: int = 95, **averages: float) -> HistoricalBaseline:
    base = {"temperature": 15.0, "humidity": 60.0, "precipitation": 1.0, "wind_speed": 5.0, "pressure": 1012.0}
    base.update(averages)
    return HistoricalBaseline(
        averages=base,
        anomalies={},
        levels={},
        overall_level=level,
        confidence=confidence,
        days_analyzed=5,
        data_source="Open-Meteo ERA5",
        validated=True,
    )


def test_most_recent_of_several_matches_wins() -> None:
    event = find_similar_event(_reading(temperature=18.4, precipitation=22.3, wind_speed=24.7))

    assert event is not None
    assert event.name == "DANA Valencia-Madrid"
    assert event.date == date(2024, 10, 29)


def test_heat_wave_reading_matches_heat_wave_event() -> None:
    event = find_similar_event(_reading(temperature=41.2, precipitation=0.0, wind_speed=14.3))

    assert event is not None
    assert event.name == "Extreme Heat Wave"


def test_unlike_conditions_match_nothing() -> None:
    weather = _reading(temperature=20.0, precipitation=50.0, wind_speed=90.0)

    assert find_similar_event(weather) is None
    analysis = analyze(weather, average_risk=10.0)
    assert analysis.matched_event is None
    assert analysis.context == NO_MATCH_CONTEXT


def test_tolerances_tighten_with_anomalies_down_to_floors() -> None:
    assert tolerances_for(None) == DEFAULT_TOLERANCES

    tightened = tolerances_for({"precipitation": 3.0, "wind_speed": -1.0, "temperature": 10.0})

    assert tightened.precipitation == pytest.approx(10.0)
    assert tightened.wind == pytest.approx(18.0)
    assert tightened.temperature == pytest.approx(5.0)


@pytest.mark.parametrize(
    ("score", "level", "matched", "expected"),
    [
        (29, AnomalyLevel.normal, True, WarningLevel.info),
        (30, AnomalyLevel.normal, True, WarningLevel.watch),
        (60, None, True, WarningLevel.advisory),
        (60, AnomalyLevel.high, True, WarningLevel.warning),
        (45, AnomalyLevel.normal, False, WarningLevel.info),
        (45, AnomalyLevel.high, False, WarningLevel.watch),
        (45, AnomalyLevel.extreme, False, WarningLevel.advisory),
        (95, AnomalyLevel.extreme, True, WarningLevel.warning),
    ],
)
def test_warning_levels(score, level, matched, expected) -> None:
    assert warning_level(score, level, matched) is expected


def test_trends_and_alerts_follow_large_departures() -> None:
    trends, alerts = analyze_trends(
        {"temperature": 6.0, "humidity": 0.0, "precipitation": 4.0, "wind_speed": -11.0, "pressure": -16.0}
    )

    assert trends == [
        "Temperature 6.0°C above the historical mean",
        "Precipitation 4.0mm/h above normal",
        "Wind weaker than the historical average",
        "Atmospheric pressure low: possible weather change",
    ]
    assert alerts == [
        "Anomalously high precipitation detected",
        "Significant pressure variation detected",
    ]
    assert analyze_trends(None) == ([], [])


def test_combined_confidence() -> None:
    assert combined_confidence(50, None) == 30
    assert combined_confidence(85, _baseline(AnomalyLevel.normal, confidence=95)) == 94


def test_analysis_with_baseline_context() -> None:
    weather = _reading(temperature=18.4, precipitation=22.3, wind_speed=24.7, pressure=998.0)
    baseline = _baseline(AnomalyLevel.extreme)

    analysis = analyze(weather, average_risk=80.0, baseline=baseline)

    assert analysis.matched_event is not None
    assert analysis.warning_level is WarningLevel.warning
    assert analysis.confidence == 90
    assert analysis.insights[0].startswith("Extreme conditions")
    assert "Anomalously high precipitation detected" in analysis.alerts
