from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from models.catalog import CLIMATOLOGY
from models.records import AnomalyLevel, HistoricalDay, WeatherReading
from services.baseline import BaselineEngine, analyze_parameter, classify_anomaly


def _day(day: int, temperature: float) -> HistoricalDay:
    return HistoricalDay(
        date=date(2024, 10, day),
        temperature=temperature,
        humidity=60.0,
        precipitation=1.0,
        wind_speed=4.0,
        pressure=1012.0,
    )


def _current(temperature: float) -> WeatherReading:
    return WeatherReading(
        timestamp=datetime(2024, 10, 30, 12, tzinfo=timezone.utc),
        temperature=temperature,
        humidity=60.0,
        precipitation=1.0,
        wind_speed=4.0,
        wind_direction=200.0,
        pressure=1012.0,
    )


@pytest.mark.parametrize(
    ("normalized", "expected"),
    [
        (0.0, AnomalyLevel.normal),
        (1.0, AnomalyLevel.normal),
        (1.0001, AnomalyLevel.moderate),
        (2.0, AnomalyLevel.moderate),
        (2.0001, AnomalyLevel.high),
        (3.0, AnomalyLevel.high),
        (3.0001, AnomalyLevel.extreme),
    ],
)
def test_classification_uses_strict_bounds(normalized: float, expected: AnomalyLevel) -> None:
    assert classify_anomaly(normalized) is expected


def test_flat_history_yields_zero_deviation() -> None:
    result = analyze_parameter(25.0, [20.0, 20.0, 20.0])

    assert result.mean == 20.0
    assert result.std_dev == 0.0
    assert result.anomaly == 5.0
    assert result.normalized == 0.0
    assert result.level is AnomalyLevel.normal


def test_evaluate_flags_the_most_severe_parameter() -> None:
    engine = BaselineEngine()
    days = [_day(27, 10.0), _day(28, 18.0)]  # mean 14, population std 4

    at_three_sigma = engine.evaluate(days, _current(26.0))
    beyond_three_sigma = engine.evaluate(days, _current(26.5))

    assert at_three_sigma.levels["temperature"] is AnomalyLevel.high
    assert at_three_sigma.overall_level is AnomalyLevel.high
    assert beyond_three_sigma.overall_level is AnomalyLevel.extreme
    assert at_three_sigma.averages["temperature"] == pytest.approx(14.0)
    assert at_three_sigma.anomalies["temperature"] == pytest.approx(12.0)
    # 50 + 10 per day + 5 per normal tracked parameter.
    assert at_three_sigma.confidence == 85
    assert at_three_sigma.days_analyzed == 2
    assert at_three_sigma.validated is True
    assert "humidity" not in at_three_sigma.levels


def test_confidence_is_capped() -> None:
    days = [_day(day, 15.0) for day in range(20, 25)]

    baseline = BaselineEngine().evaluate(days, _current(15.0))

    assert baseline.overall_level is AnomalyLevel.normal
    assert baseline.confidence == 95


def test_missing_history_falls_back_to_climatology() -> None:
    baseline = BaselineEngine().evaluate([], _current(20.0), error_message="HTTP 503")

    assert baseline.validated is False
    assert baseline.confidence == 30
    assert baseline.overall_level is AnomalyLevel.normal
    assert baseline.averages == CLIMATOLOGY
    assert baseline.anomalies["temperature"] == pytest.approx(4.5)
    assert baseline.error_message == "HTTP 503"
    assert baseline.days_analyzed == 0
