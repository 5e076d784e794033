"""One fusion cycle: fetch every source concurrently, baseline, fuse."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

import httpx

from models.records import (
    AnomalyLevel,
    DataQuality,
    FusedWeather,
    HistorySeriesResult,
    SourceResult,
    WeatherReading,
)
from services.baseline import BaselineEngine
from services.fusion import FusionEngine, preliminary_reading
from settings import Settings
from sources.aemet import AemetSource
from sources.base import SourceAdapter
from sources.era5 import Era5HistorySource
from sources.nasa_power import NasaPowerSource

logger = logging.getLogger(__name__)

EMERGENCY_STRATEGY = "emergency_fallback"
EMERGENCY_SOURCE = "Emergency Fallback"
EMERGENCY_CONFIDENCE = 20
EMERGENCY_DATA_SOURCE = "None - Emergency fallback"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def emergency_snapshot(
    rng: random.Random,
    now: datetime,
    raw_sources: Sequence[SourceResult] = (),
    processing_ms: int = 0,
) -> FusedWeather:
    """Plausible randomized reading used when nothing upstream is usable."""
    reading = WeatherReading(
        timestamp=now,
        temperature=18 + rng.random() * 8,
        humidity=50 + rng.random() * 30,
        precipitation=rng.random() * 3,
        wind_speed=3 + rng.random() * 12,
        wind_direction=rng.random() * 360,
        pressure=1010 + rng.random() * 10,
    )
    return FusedWeather(
        reading=reading,
        sources=(EMERGENCY_SOURCE,),
        confidence=EMERGENCY_CONFIDENCE,
        data_quality=DataQuality.estimated,
        fusion_strategy=EMERGENCY_STRATEGY,
        anomaly_level=AnomalyLevel.normal,
        baseline=None,
        raw_sources=tuple(raw_sources),
        processing_ms=processing_ms,
        produced_at=now,
    )


class FusionPipeline:
    """Runs the adapters, the baseline engine and the fusion engine.

    ``run`` always returns a snapshot; it never raises.
    """

    def __init__(
        self,
        primary: SourceAdapter[SourceResult],
        secondary: SourceAdapter[SourceResult],
        history: SourceAdapter[HistorySeriesResult],
        baseline_engine: Optional[BaselineEngine] = None,
        fusion_engine: Optional[FusionEngine] = None,
        rng: Optional[random.Random] = None,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.primary = primary
        self.secondary = secondary
        self.history = history
        self.baseline_engine = baseline_engine or BaselineEngine()
        self.fusion_engine = fusion_engine or FusionEngine()
        self.rng = rng or random.Random()
        self.now = now

    async def run(self) -> FusedWeather:
        started = time.perf_counter()
        results: Sequence[SourceResult] = ()
        try:
            primary, secondary, history = await asyncio.gather(
                self.primary.fetch(), self.secondary.fetch(), self.history.fetch()
            )
            results = (primary, secondary)
            now = self.now()

            if not any(result.ok for result in results) and not history.ok:
                logger.error(
                    "Every source failed, using emergency snapshot",
                    extra={"reason": "all sources unavailable"},
                )
                return emergency_snapshot(self.rng, now, results, _elapsed_ms(started))

            current = preliminary_reading(results, now)
            baseline = self.baseline_engine.evaluate(
                history.days if history.ok else (),
                current,
                error_message=history.error_message,
            )
            fused = self.fusion_engine.fuse(
                results, baseline, now=now, processing_ms=_elapsed_ms(started)
            )
        except Exception:  # noqa: BLE001 - callers must always get a snapshot
            logger.exception("Fusion cycle failed, using emergency snapshot")
            return emergency_snapshot(self.rng, self.now(), results, _elapsed_ms(started))

        logger.info(
            "Fusion complete",
            extra={
                "sources": fused.sources,
                "confidence": fused.confidence,
                "anomaly_level": fused.anomaly_level,
                "processing_ms": fused.processing_ms,
            },
        )
        return fused


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def build_pipeline(settings: Settings, client: httpx.AsyncClient) -> FusionPipeline:
    """Wire the station's adapters from settings around a shared HTTP client."""
    timeout = settings.source_timeout
    return FusionPipeline(
        primary=AemetSource(
            client,
            api_key=settings.aemet_api_key,
            station_id=settings.aemet_station_id,
            timeout=timeout,
        ),
        secondary=NasaPowerSource(
            client,
            latitude=settings.latitude,
            longitude=settings.longitude,
            timeout=timeout,
        ),
        history=Era5HistorySource(
            client,
            latitude=settings.latitude,
            longitude=settings.longitude,
            days=settings.history_days,
            timeout=timeout,
        ),
    )
