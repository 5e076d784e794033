"""Historical event matching and warning-level derivation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from models.catalog import HISTORICAL_EVENTS
from models.records import (
    BASELINE_PARAMETERS,
    AnomalyLevel,
    HistoricalAnalysis,
    HistoricalBaseline,
    HistoricalEvent,
    WarningLevel,
    WeatherReading,
)

NO_MATCH_CONTEXT = "No similar historical pattern identified"


@dataclass(frozen=True)
class Tolerances:
    precipitation: float
    wind: float
    temperature: float


DEFAULT_TOLERANCES = Tolerances(precipitation=15.0, wind=20.0, temperature=8.0)

# Calibration constants: tolerances shrink by these slopes per unit of
# baseline anomaly and never go below the floors.
TOLERANCE_FLOORS = Tolerances(precipitation=10.0, wind=15.0, temperature=5.0)
TOLERANCE_SLOPES = Tolerances(precipitation=2.0, wind=2.0, temperature=0.5)

MATCH_BONUS: Dict[AnomalyLevel, int] = {
    AnomalyLevel.normal: 0,
    AnomalyLevel.moderate: 5,
    AnomalyLevel.high: 10,
    AnomalyLevel.extreme: 15,
}

# Applied when no historical event matches; deliberately differs from MATCH_BONUS.
NO_MATCH_BONUS: Dict[AnomalyLevel, int] = {
    AnomalyLevel.normal: 0,
    AnomalyLevel.moderate: 5,
    AnomalyLevel.high: 15,
    AnomalyLevel.extreme: 20,
}

MATCH_THRESHOLDS: Tuple[Tuple[int, WarningLevel], ...] = (
    (70, WarningLevel.warning),
    (50, WarningLevel.advisory),
    (30, WarningLevel.watch),
)

NO_MATCH_WATCH_THRESHOLD = 50


def context_anomalies(weather: WeatherReading, baseline: HistoricalBaseline) -> Dict[str, float]:
    """Deviation of ``weather`` from the baseline averages."""
    return {name: getattr(weather, name) - baseline.averages[name] for name in BASELINE_PARAMETERS}


def tolerances_for(anomalies: Optional[Mapping[str, float]]) -> Tolerances:
    if anomalies is None:
        return DEFAULT_TOLERANCES
    return Tolerances(
        precipitation=max(
            TOLERANCE_FLOORS.precipitation,
            DEFAULT_TOLERANCES.precipitation
            - abs(anomalies["precipitation"]) * TOLERANCE_SLOPES.precipitation,
        ),
        wind=max(
            TOLERANCE_FLOORS.wind,
            DEFAULT_TOLERANCES.wind - abs(anomalies["wind_speed"]) * TOLERANCE_SLOPES.wind,
        ),
        temperature=max(
            TOLERANCE_FLOORS.temperature,
            DEFAULT_TOLERANCES.temperature
            - abs(anomalies["temperature"]) * TOLERANCE_SLOPES.temperature,
        ),
    )


def matches_event(event: HistoricalEvent, weather: WeatherReading, tolerances: Tolerances) -> bool:
    """An event matches when at least two of its three conditions hold."""
    conditions = (
        abs(event.max_precipitation - weather.precipitation) < tolerances.precipitation,
        abs(event.max_wind_speed - weather.wind_speed) < tolerances.wind,
        event.min_temperature - tolerances.temperature
        <= weather.temperature
        <= event.max_temperature + tolerances.temperature,
    )
    return sum(conditions) >= 2


def find_similar_event(
    weather: WeatherReading,
    baseline: Optional[HistoricalBaseline] = None,
    catalog: Sequence[HistoricalEvent] = HISTORICAL_EVENTS,
) -> Optional[HistoricalEvent]:
    anomalies = context_anomalies(weather, baseline) if baseline is not None else None
    tolerances = tolerances_for(anomalies)
    candidates = [event for event in catalog if matches_event(event, weather, tolerances)]
    # Most recent event wins.
    return max(candidates, key=lambda event: event.date, default=None)


def warning_level(
    risk_score: float,
    anomaly_level: Optional[AnomalyLevel],
    matched: bool,
) -> WarningLevel:
    if matched:
        bonus = MATCH_BONUS[anomaly_level] if anomaly_level is not None else 0
        effective = min(100, risk_score + bonus)
        for threshold, level in MATCH_THRESHOLDS:
            if effective >= threshold:
                return level
        return WarningLevel.info

    bonus = NO_MATCH_BONUS[anomaly_level] if anomaly_level is not None else 0
    effective = min(100, risk_score + bonus)
    if effective >= NO_MATCH_WATCH_THRESHOLD:
        if anomaly_level is AnomalyLevel.extreme:
            return WarningLevel.advisory
        return WarningLevel.watch
    return WarningLevel.info


def _insights(baseline: HistoricalBaseline, anomalies: Mapping[str, float]) -> List[str]:
    level = baseline.overall_level
    if level is AnomalyLevel.extreme:
        insights = [
            f"Extreme conditions: unprecedented over the last {baseline.days_analyzed} days",
            f"Temperature anomaly: {anomalies['temperature']:+.1f}°C",
        ]
        if abs(anomalies["precipitation"]) > 5:
            insights.append(f"Precipitation anomaly: {anomalies['precipitation']:+.1f}mm/h")
        return insights
    if level is AnomalyLevel.high:
        return [
            "Highly anomalous conditions for the season",
            "Significant deviation from the recent historical average",
        ]
    if level is AnomalyLevel.moderate:
        return ["Moderately anomalous conditions"]
    return [
        "Conditions within normal ranges",
        "Typical weather pattern for this time of year",
    ]


def _analysis_confidence(baseline: Optional[HistoricalBaseline], matched: bool) -> int:
    confidence = 50
    if baseline is not None:
        level = baseline.overall_level
        if level is AnomalyLevel.extreme:
            confidence = max(confidence, 90)
        elif level is AnomalyLevel.high:
            confidence = max(confidence, 80)
        elif level is AnomalyLevel.moderate:
            confidence = max(confidence, 70)
        else:
            confidence = min(confidence + 10, 95)
    if matched:
        confidence = max(confidence, 85)
    return confidence


def analyze_trends(anomalies: Optional[Mapping[str, float]]) -> Tuple[List[str], List[str]]:
    """Describe large departures from the baseline; returns ``(trends, alerts)``."""
    trends: List[str] = []
    alerts: List[str] = []
    if anomalies is None:
        return trends, alerts

    temperature = anomalies["temperature"]
    if abs(temperature) > 5:
        direction = "above" if temperature > 0 else "below"
        trends.append(f"Temperature {abs(temperature):.1f}°C {direction} the historical mean")

    precipitation = anomalies["precipitation"]
    if precipitation > 3:
        trends.append(f"Precipitation {precipitation:.1f}mm/h above normal")
        alerts.append("Anomalously high precipitation detected")

    wind = anomalies["wind_speed"]
    if abs(wind) > 10:
        intensity = "stronger" if wind > 0 else "weaker"
        trends.append(f"Wind {intensity} than the historical average")

    pressure = anomalies["pressure"]
    if abs(pressure) > 15:
        direction = "high" if pressure > 0 else "low"
        trends.append(f"Atmospheric pressure {direction}: possible weather change")
        alerts.append("Significant pressure variation detected")

    return trends, alerts


def combined_confidence(analysis_confidence: int, baseline: Optional[HistoricalBaseline]) -> int:
    if baseline is None:
        return max(30, analysis_confidence - 20)
    combined = analysis_confidence * 0.6 + baseline.confidence * 0.4
    bonus = 5 if abs(analysis_confidence - baseline.confidence) < 20 else 0
    return min(95, math.floor(combined + bonus + 0.5))


def analyze(
    weather: WeatherReading,
    average_risk: float,
    baseline: Optional[HistoricalBaseline] = None,
) -> HistoricalAnalysis:
    """Match against past events and grade the situation for ``weather``."""
    event = find_similar_event(weather, baseline)
    anomalies = context_anomalies(weather, baseline) if baseline is not None else None
    level = baseline.overall_level if baseline is not None else None

    if event is not None:
        context = (
            f"Conditions similar to {event.name} ({event.date.isoformat()}): {event.description}"
        )
    else:
        context = NO_MATCH_CONTEXT

    confidence = _analysis_confidence(baseline, event is not None)
    trends, alerts = analyze_trends(anomalies)
    return HistoricalAnalysis(
        matched_event=event,
        context=context,
        warning_level=warning_level(average_risk, level, matched=event is not None),
        confidence=confidence,
        combined_confidence=combined_confidence(confidence, baseline),
        insights=tuple(_insights(baseline, anomalies)) if baseline is not None and anomalies else (),
        trends=tuple(trends),
        alerts=tuple(alerts),
    )
