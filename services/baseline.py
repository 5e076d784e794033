"""Historical baseline and anomaly classification."""

from __future__ import annotations

from dataclasses import dataclass
from statistics import fmean, pstdev
from typing import Mapping, Optional, Sequence

from models.catalog import CLIMATOLOGY
from models.records import (
    BASELINE_PARAMETERS,
    TRACKED_PARAMETERS,
    AnomalyLevel,
    HistoricalBaseline,
    HistoricalDay,
    WeatherReading,
)

ERA5_DATA_SOURCE = "Open-Meteo ERA5"
FALLBACK_DATA_SOURCE = "Climatological fallback"
FALLBACK_CONFIDENCE = 30


@dataclass(frozen=True)
class ParameterAnomaly:
    mean: float
    std_dev: float
    anomaly: float
    normalized: float
    level: AnomalyLevel


def classify_anomaly(normalized: float) -> AnomalyLevel:
    """Bucket a deviation measured in standard deviations (strict bounds)."""
    if normalized > 3:
        return AnomalyLevel.extreme
    if normalized > 2:
        return AnomalyLevel.high
    if normalized > 1:
        return AnomalyLevel.moderate
    return AnomalyLevel.normal


def analyze_parameter(current: float, history: Sequence[float]) -> ParameterAnomaly:
    if not history:
        return ParameterAnomaly(0.0, 0.0, 0.0, 0.0, AnomalyLevel.normal)
    mean = fmean(history)
    std_dev = pstdev(history, mu=mean)
    anomaly = current - mean
    normalized = abs(anomaly) / std_dev if std_dev > 0 else 0.0
    return ParameterAnomaly(mean, std_dev, anomaly, normalized, classify_anomaly(normalized))


class BaselineEngine:
    """Compares the current reading against a short run of historical days."""

    def __init__(self, climatology: Optional[Mapping[str, float]] = None) -> None:
        self.climatology = dict(climatology or CLIMATOLOGY)

    def evaluate(
        self,
        days: Sequence[HistoricalDay],
        current: WeatherReading,
        error_message: Optional[str] = None,
    ) -> HistoricalBaseline:
        if not days:
            return self.fallback(current, error_message or "no historical data available")

        averages: dict[str, float] = {}
        anomalies: dict[str, float] = {}
        levels: dict[str, AnomalyLevel] = {}
        for name in BASELINE_PARAMETERS:
            result = analyze_parameter(
                getattr(current, name), [getattr(day, name) for day in days]
            )
            averages[name] = result.mean
            anomalies[name] = result.anomaly
            # Humidity only contributes its delta.
            if name in TRACKED_PARAMETERS:
                levels[name] = result.level

        normal_count = sum(1 for level in levels.values() if level is AnomalyLevel.normal)
        confidence = min(95, 50 + 10 * len(days) + 5 * normal_count)

        return HistoricalBaseline(
            averages=averages,
            anomalies=anomalies,
            levels=levels,
            overall_level=AnomalyLevel.most_severe(levels.values()),
            confidence=confidence,
            days_analyzed=len(days),
            data_source=ERA5_DATA_SOURCE,
            validated=True,
        )

    def fallback(self, current: WeatherReading, error_message: str) -> HistoricalBaseline:
        averages = dict(self.climatology)
        return HistoricalBaseline(
            averages=averages,
            anomalies={name: getattr(current, name) - averages[name] for name in BASELINE_PARAMETERS},
            levels={name: AnomalyLevel.normal for name in TRACKED_PARAMETERS},
            overall_level=AnomalyLevel.normal,
            confidence=FALLBACK_CONFIDENCE,
            days_analyzed=0,
            data_source=FALLBACK_DATA_SOURCE,
            validated=False,
            error_message=error_message,
        )
