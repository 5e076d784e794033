"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import date as calendar_date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.records import (
    AnomalyLevel,
    DataQuality,
    FusedWeather,
    HistoricalAnalysis,
    HistoricalEvent,
    Platform,
    Recommendation,
    SourceResult,
    SourceStatus,
    WarningLevel,
)
from services.dashboard import RefreshOutcome, RefreshReport, RefreshTrigger, SystemStatus
from services.pipeline import EMERGENCY_DATA_SOURCE, EMERGENCY_STRATEGY


class ApiModel(BaseModel):
    """Serialized with camelCase keys; accepts either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Reading(ApiModel):
    timestamp: datetime
    temperature: float = Field(..., description="Air temperature in °C.")
    humidity: float = Field(..., description="Relative humidity in %.")
    precipitation: float = Field(..., description="Precipitation in mm/h.")
    wind_speed: float = Field(..., description="Wind speed in m/s.")
    wind_direction: float = Field(..., description="Wind direction in degrees.")
    pressure: float = Field(..., description="Surface pressure in hPa.")


class SimulationRequest(ApiModel):
    """Reading to inject. Bounds are enforced by the dashboard service."""

    temperature: float
    humidity: float
    precipitation: float
    wind_speed: float
    wind_direction: float = 0.0
    pressure: float = 1013.0


class RawSource(ApiModel):
    source_name: str
    status: SourceStatus
    error_message: Optional[str] = None
    observed_at: Optional[datetime] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    precipitation: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    pressure: Optional[float] = None

    @classmethod
    def from_result(cls, result: SourceResult) -> "RawSource":
        return cls(
            source_name=result.source_name,
            status=result.status,
            error_message=result.error_message,
            observed_at=result.observed_at,
            temperature=result.temperature,
            humidity=result.humidity,
            precipitation=result.precipitation,
            wind_speed=result.wind_speed,
            wind_direction=result.wind_direction,
            pressure=result.pressure,
        )


class Era5Validation(ApiModel):
    anomaly_level: AnomalyLevel
    confidence: int
    similar_days_found: int
    data_source: str
    validated: bool
    error_message: Optional[str] = None


class WeatherMetadata(ApiModel):
    fusion_strategy: str
    sources_used: List[str]
    confidence: int = Field(..., ge=0, le=100)
    data_quality: DataQuality
    era5_validation: Optional[Era5Validation] = None
    anomaly_level: AnomalyLevel
    historical_context: Optional[Dict[str, float]] = Field(
        default=None, description="Baseline averages the reading was compared against."
    )
    raw_sources: List[RawSource] = Field(default_factory=list)
    processing_time: int = Field(..., ge=0, description="Fusion duration in milliseconds.")


class WeatherResponse(ApiModel):
    weather: Reading
    metadata: WeatherMetadata
    produced_at: Optional[datetime] = None

    @classmethod
    def from_fused(cls, fused: FusedWeather) -> "WeatherResponse":
        baseline = fused.baseline
        validation = None
        if baseline is not None:
            validation = Era5Validation(
                anomaly_level=baseline.overall_level,
                confidence=baseline.confidence,
                similar_days_found=baseline.days_analyzed,
                data_source=baseline.data_source,
                validated=baseline.validated,
                error_message=baseline.error_message,
            )
        elif fused.fusion_strategy == EMERGENCY_STRATEGY:
            validation = Era5Validation(
                anomaly_level=AnomalyLevel.normal,
                confidence=fused.confidence,
                similar_days_found=0,
                data_source=EMERGENCY_DATA_SOURCE,
                validated=False,
            )
        reading = fused.reading
        return cls(
            weather=Reading(
                timestamp=reading.timestamp,
                temperature=reading.temperature,
                humidity=reading.humidity,
                precipitation=reading.precipitation,
                wind_speed=reading.wind_speed,
                wind_direction=reading.wind_direction,
                pressure=reading.pressure,
            ),
            metadata=WeatherMetadata(
                fusion_strategy=fused.fusion_strategy,
                sources_used=list(fused.sources),
                confidence=fused.confidence,
                data_quality=fused.data_quality,
                era5_validation=validation,
                anomaly_level=fused.anomaly_level,
                historical_context=dict(baseline.averages) if baseline is not None else None,
                raw_sources=[RawSource.from_result(result) for result in fused.raw_sources],
                processing_time=fused.processing_ms,
            ),
            produced_at=fused.produced_at,
        )


class PlatformRisk(ApiModel):
    id: str
    name: str
    is_roofed: bool
    exposure: float
    risk_score: int = Field(..., ge=0, le=100)

    @classmethod
    def from_platform(cls, platform: Platform) -> "PlatformRisk":
        return cls(
            id=platform.id,
            name=platform.name,
            is_roofed=platform.is_roofed,
            exposure=platform.exposure,
            risk_score=platform.risk_score,
        )


class PlatformsResponse(ApiModel):
    platforms: List[PlatformRisk]
    average_risk: float
    simulating: bool


class EventSummary(ApiModel):
    name: str
    date: calendar_date
    location: str
    description: str
    impact: str

    @classmethod
    def from_event(cls, event: HistoricalEvent) -> "EventSummary":
        return cls(
            name=event.name,
            date=event.date,
            location=event.location,
            description=event.description,
            impact=event.impact,
        )


class Analysis(ApiModel):
    matched_event: Optional[EventSummary] = None
    context: str
    warning_level: WarningLevel
    confidence: int
    combined_confidence: int
    insights: List[str] = Field(default_factory=list)
    trends: List[str] = Field(default_factory=list)
    alerts: List[str] = Field(default_factory=list)

    @classmethod
    def from_analysis(cls, analysis: HistoricalAnalysis) -> "Analysis":
        event = analysis.matched_event
        return cls(
            matched_event=EventSummary.from_event(event) if event is not None else None,
            context=analysis.context,
            warning_level=analysis.warning_level,
            confidence=analysis.confidence,
            combined_confidence=analysis.combined_confidence,
            insights=list(analysis.insights),
            trends=list(analysis.trends),
            alerts=list(analysis.alerts),
        )


class RecommendationItem(ApiModel):
    id: str
    type: str
    severity: str
    title: str
    description: str
    actions: List[str]
    timeframe: str
    passengers_affected: int
    confidence: int
    platforms: List[str] = Field(default_factory=list)

    @classmethod
    def from_recommendation(cls, item: Recommendation) -> "RecommendationItem":
        return cls(
            id=item.id,
            type=item.kind,
            severity=item.severity,
            title=item.title,
            description=item.description,
            actions=list(item.actions),
            timeframe=item.timeframe,
            passengers_affected=item.passengers_affected,
            confidence=item.confidence,
            platforms=list(item.platforms),
        )


class AnalysisResponse(ApiModel):
    analysis: Optional[Analysis] = None
    recommendations: List[RecommendationItem] = Field(default_factory=list)


class StatusResponse(ApiModel):
    station: str
    status: str
    description: str
    simulating: bool
    last_update: Optional[datetime] = None
    seconds_to_next_update: float
    seconds_to_next_manual_refresh: float
    cycles: int

    @classmethod
    def from_status(cls, status: SystemStatus) -> "StatusResponse":
        return cls(
            station=status.station,
            status=status.status,
            description=status.description,
            simulating=status.simulating,
            last_update=status.last_update,
            seconds_to_next_update=status.seconds_to_next_update,
            seconds_to_next_manual_refresh=status.seconds_to_next_manual_refresh,
            cycles=status.cycles,
        )


class RefreshResponse(ApiModel):
    outcome: RefreshOutcome
    trigger: RefreshTrigger
    weather: Optional[WeatherResponse] = None

    @classmethod
    def from_report(cls, report: RefreshReport) -> "RefreshResponse":
        return cls(
            outcome=report.outcome,
            trigger=report.trigger,
            weather=WeatherResponse.from_fused(report.fused) if report.fused is not None else None,
        )
