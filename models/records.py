"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Mapping, Optional, Tuple

READING_FIELDS = (
    "temperature",
    "humidity",
    "precipitation",
    "wind_speed",
    "wind_direction",
    "pressure",
)

# Parameters whose deviation from the baseline drives the anomaly level.
TRACKED_PARAMETERS = ("temperature", "precipitation", "wind_speed", "pressure")

BASELINE_PARAMETERS = ("temperature", "humidity", "precipitation", "wind_speed", "pressure")


class SourceStatus(str, Enum):
    success = "success"
    error = "error"


class AnomalyLevel(str, Enum):
    """Deviation from the historical baseline, least to most severe."""

    normal = "normal"
    moderate = "moderate"
    high = "high"
    extreme = "extreme"

    @property
    def severity(self) -> int:
        return _ANOMALY_SEVERITY[self]

    @classmethod
    def most_severe(cls, levels: Iterable["AnomalyLevel"]) -> "AnomalyLevel":
        return max(levels, key=lambda level: level.severity, default=cls.normal)


_ANOMALY_SEVERITY = {
    AnomalyLevel.normal: 1,
    AnomalyLevel.moderate: 2,
    AnomalyLevel.high: 3,
    AnomalyLevel.extreme: 4,
}


class WarningLevel(str, Enum):
    info = "info"
    watch = "watch"
    advisory = "advisory"
    warning = "warning"


class DataQuality(str, Enum):
    high = "high"
    partial = "partial"
    fallback = "fallback"
    estimated = "estimated"
    simulated = "simulated"


@dataclass(frozen=True, slots=True)
class WeatherReading:
    """A complete weather snapshot.

    Units: temperature in °C, humidity in %, precipitation in mm/h, wind speed
    in m/s, wind direction in degrees and pressure in hPa.
    """

    timestamp: datetime
    temperature: float
    humidity: float
    precipitation: float
    wind_speed: float
    wind_direction: float
    pressure: float


@dataclass(frozen=True, slots=True)
class SourceResult:
    """Outcome of one adapter call. Absent fields are ``None``, never sentinels."""

    source_name: str
    status: SourceStatus
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    precipitation: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    pressure: Optional[float] = None
    observed_at: Optional[datetime] = None
    error_message: Optional[str] = None

    @classmethod
    def failure(cls, source_name: str, message: str) -> "SourceResult":
        return cls(source_name=source_name, status=SourceStatus.error, error_message=message)

    @property
    def ok(self) -> bool:
        return self.status is SourceStatus.success

    def value(self, name: str) -> Optional[float]:
        return getattr(self, name)


@dataclass(frozen=True, slots=True)
class HistoricalDay:
    """Daily means of one retrospective day; precipitation is the daily sum."""

    date: date
    temperature: float
    humidity: float
    precipitation: float
    wind_speed: float
    pressure: float


@dataclass(frozen=True, slots=True)
class HistorySeriesResult:
    source_name: str
    status: SourceStatus
    days: Tuple[HistoricalDay, ...] = ()
    error_message: Optional[str] = None

    @classmethod
    def failure(cls, source_name: str, message: str) -> "HistorySeriesResult":
        return cls(source_name=source_name, status=SourceStatus.error, error_message=message)

    @property
    def ok(self) -> bool:
        return self.status is SourceStatus.success and bool(self.days)


@dataclass(frozen=True)
class HistoricalBaseline:
    averages: Mapping[str, float]
    anomalies: Mapping[str, float]
    levels: Mapping[str, AnomalyLevel]
    overall_level: AnomalyLevel
    confidence: int
    days_analyzed: int
    data_source: str
    validated: bool
    error_message: Optional[str] = None


@dataclass(frozen=True)
class FusedWeather:
    """The single weather estimate handed to scoring and to consumers."""

    reading: WeatherReading
    sources: Tuple[str, ...]
    confidence: int
    data_quality: DataQuality
    fusion_strategy: str
    anomaly_level: AnomalyLevel
    baseline: Optional[HistoricalBaseline] = None
    raw_sources: Tuple[SourceResult, ...] = ()
    processing_ms: int = 0
    produced_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class Platform:
    id: str
    name: str
    is_roofed: bool
    exposure: float
    risk_score: int = 0


@dataclass(frozen=True, slots=True)
class HistoricalEvent:
    name: str
    date: date
    location: str
    max_precipitation: float
    max_wind_speed: float
    min_temperature: float
    max_temperature: float
    min_pressure: float
    description: str
    impact: str


@dataclass(frozen=True, slots=True)
class SimulationScenario:
    key: str
    name: str
    description: str
    temperature: float
    humidity: float
    precipitation: float
    wind_speed: float
    wind_direction: float
    pressure: float


@dataclass(frozen=True)
class HistoricalAnalysis:
    """Pattern-matching verdict for the current snapshot."""

    matched_event: Optional[HistoricalEvent]
    context: str
    warning_level: WarningLevel
    confidence: int
    combined_confidence: int
    insights: Tuple[str, ...] = ()
    trends: Tuple[str, ...] = ()
    alerts: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Recommendation:
    id: str
    kind: str
    severity: str
    title: str
    description: str
    actions: Tuple[str, ...]
    timeframe: str
    passengers_affected: int
    confidence: int
    platforms: Tuple[str, ...] = field(default_factory=tuple)
