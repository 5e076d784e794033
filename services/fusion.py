"""Weighted multi-source fusion with baseline-aware confidence."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional, Sequence

from models.records import (
    READING_FIELDS,
    AnomalyLevel,
    DataQuality,
    FusedWeather,
    HistoricalBaseline,
    SourceResult,
    WeatherReading,
)

FUSION_STRATEGY = "weighted_average_with_era5_validation"
BASELINE_SOURCE_NAME = "Copernicus ERA5"

# Primary first, then secondary.
DEFAULT_WEIGHTS = (0.6, 0.4)

# Used for a field no source could provide.
DEFAULT_VALUES: Dict[str, float] = {
    "temperature": 18.0,
    "humidity": 60.0,
    "precipitation": 0.0,
    "wind_speed": 5.0,
    "wind_direction": 180.0,
    "pressure": 1013.0,
}

ANOMALY_PENALTY: Dict[AnomalyLevel, int] = {
    AnomalyLevel.normal: 0,
    AnomalyLevel.moderate: -5,
    AnomalyLevel.high: -10,
    AnomalyLevel.extreme: -15,
}

MIN_CONFIDENCE = 30
MAX_CONFIDENCE = 95


def base_confidence(successful_sources: int) -> int:
    if successful_sources >= 2:
        return MAX_CONFIDENCE
    if successful_sources == 1:
        return 75
    return 50


def fusion_confidence(successful_sources: int, baseline: HistoricalBaseline) -> int:
    base = base_confidence(successful_sources)
    if baseline.validated:
        adjusted = baseline.confidence + ANOMALY_PENALTY[baseline.overall_level]
        return max(MIN_CONFIDENCE, min(base, adjusted))
    return max(MIN_CONFIDENCE, base - 10)


def _data_quality(successful_sources: int) -> DataQuality:
    if successful_sources >= 2:
        return DataQuality.high
    if successful_sources == 1:
        return DataQuality.partial
    return DataQuality.fallback


def preliminary_reading(
    results: Sequence[SourceResult], now: Optional[datetime] = None
) -> WeatherReading:
    """First available value per field in source priority order, else the default.

    This is what the baseline compares against before fusion runs.
    """
    values = {}
    for name in READING_FIELDS:
        candidates = (result.value(name) for result in results if result.ok)
        values[name] = next((value for value in candidates if value is not None), DEFAULT_VALUES[name])
    return WeatherReading(timestamp=now or datetime.now(timezone.utc), **values)


class FusionEngine:
    def __init__(
        self,
        weights: Sequence[float] = DEFAULT_WEIGHTS,
        defaults: Optional[Dict[str, float]] = None,
    ) -> None:
        self.weights = tuple(weights)
        self.defaults = {**DEFAULT_VALUES, **(defaults or {})}

    def fuse(
        self,
        results: Sequence[SourceResult],
        baseline: HistoricalBaseline,
        *,
        now: Optional[datetime] = None,
        processing_ms: int = 0,
    ) -> FusedWeather:
        """Merge source results, in priority order, into one snapshot."""
        if len(results) != len(self.weights):
            raise ValueError(
                f"expected {len(self.weights)} source results, got {len(results)}"
            )

        successful = [(result, weight) for result, weight in zip(results, self.weights) if result.ok]
        values = {name: self._fuse_field(name, successful) for name in READING_FIELDS}

        sources = [result.source_name for result, _ in successful]
        if baseline.validated:
            sources.append(BASELINE_SOURCE_NAME)

        timestamp = now or datetime.now(timezone.utc)
        return FusedWeather(
            reading=WeatherReading(timestamp=timestamp, **values),
            sources=tuple(sources),
            confidence=fusion_confidence(len(successful), baseline),
            data_quality=_data_quality(len(successful)),
            fusion_strategy=FUSION_STRATEGY,
            anomaly_level=baseline.overall_level,
            baseline=baseline,
            raw_sources=tuple(results),
            processing_ms=processing_ms,
            produced_at=timestamp,
        )

    def _fuse_field(self, name: str, successful: Sequence[tuple[SourceResult, float]]) -> float:
        total = 0.0
        weight_sum = 0.0
        for result, weight in successful:
            value = result.value(name)
            if value is None:
                continue
            total += value * weight
            weight_sum += weight
        if weight_sum > 0:
            return total / weight_sum
        return self.defaults[name]
