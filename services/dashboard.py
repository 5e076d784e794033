"""Station dashboard state and the serialized refresh loop."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from typing import Awaitable, Callable, List, Optional, Sequence, Set, Tuple
from zoneinfo import ZoneInfo

import httpx

from models.catalog import SIMULATION_SCENARIOS, STATION_PLATFORMS
from models.records import (
    AnomalyLevel,
    DataQuality,
    FusedWeather,
    HistoricalAnalysis,
    Platform,
    Recommendation,
    WeatherReading,
)
from services.patterns import analyze
from services.pipeline import EMERGENCY_STRATEGY, FusionPipeline, build_pipeline
from services.recommendations import OperationalContext, generate_recommendations
from services.risk import average_score, score_platforms
from settings import get_settings

logger = logging.getLogger(__name__)

SIMULATION_SOURCE = "Simulation"
SIMULATION_STRATEGY = "simulation"
SIMULATION_CONFIDENCE = 95

# Inclusive bounds a simulated reading must respect.
PLAUSIBLE_RANGES = {
    "temperature": (-40.0, 50.0),
    "humidity": (0.0, 100.0),
    "precipitation": (0.0, 100.0),
    "wind_speed": (0.0, 60.0),
    "wind_direction": (0.0, 360.0),
    "pressure": (950.0, 1050.0),
}

LOCAL_TIMEZONE = "Europe/Madrid"


class RefreshTrigger(str, Enum):
    automatic = "automatic"
    manual = "manual"


class RefreshOutcome(str, Enum):
    completed = "completed"
    throttled = "throttled"
    skipped = "skipped"


class InvalidReadingError(ValueError):
    """A simulated reading lies outside physically plausible bounds."""

    def __init__(self, violations: Sequence[str]) -> None:
        self.violations = tuple(violations)
        super().__init__("Reading failed validation: " + "; ".join(self.violations))


def validate_reading(reading: WeatherReading) -> None:
    violations = []
    for name, (low, high) in PLAUSIBLE_RANGES.items():
        value = getattr(reading, name)
        if not math.isfinite(value) or not low <= value <= high:
            violations.append(f"{name}={value} outside [{low:g}, {high:g}]")
    if violations:
        raise InvalidReadingError(violations)


@dataclass
class RefreshReport:
    outcome: RefreshOutcome
    trigger: RefreshTrigger
    fused: Optional[FusedWeather] = None
    retry_after: float = 0.0
    detail: str = ""


@dataclass
class SystemStatus:
    station: str
    status: str
    description: str
    simulating: bool
    last_update: Optional[datetime]
    seconds_to_next_update: float
    seconds_to_next_manual_refresh: float
    cycles: int


@dataclass
class DashboardState:
    """Everything the dashboard shows. One instance per process."""

    catalog: Tuple[Platform, ...] = STATION_PLATFORMS
    platforms: List[Platform] = field(default_factory=lambda: list(STATION_PLATFORMS))
    fused: Optional[FusedWeather] = None
    last_fused: Optional[FusedWeather] = None
    analysis: Optional[HistoricalAnalysis] = None
    recommendations: List[Recommendation] = field(default_factory=list)
    simulating: bool = False
    last_update: Optional[datetime] = None
    last_update_clock: Optional[float] = None
    last_manual_refresh: Optional[float] = None
    cycles: int = 0


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def default_context(now: datetime) -> OperationalContext:
    return OperationalContext(hour=now.astimezone(ZoneInfo(LOCAL_TIMEZONE)).hour)


class DashboardService:
    """Owns the dashboard state; every fusion cycle goes through one queue."""

    def __init__(
        self,
        pipeline: FusionPipeline,
        state: Optional[DashboardState] = None,
        *,
        station_name: str = "Madrid Chamartín",
        refresh_interval: float = 20 * 60.0,
        manual_cooldown: float = 5 * 60.0,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utc_now,
        context_factory: Callable[[datetime], OperationalContext] = default_context,
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        self.pipeline = pipeline
        self.state = state or DashboardState()
        self.station_name = station_name
        self.refresh_interval = refresh_interval
        self.manual_cooldown = manual_cooldown
        self.clock = clock
        self.now = now
        self.context_factory = context_factory
        self._on_close = on_close
        self._queue: Optional[asyncio.Queue[Tuple[RefreshTrigger, asyncio.Future[RefreshReport]]]] = None
        self._consumer: Optional[asyncio.Task[None]] = None
        self._ticker: Optional[asyncio.Task[None]] = None
        # Futures of every queued or running request, failed on stop().
        self._waiting: Set[asyncio.Future[RefreshReport]] = set()
        self._automatic_pending: Optional[asyncio.Future[RefreshReport]] = None

    # Lifecycle ----------------------------------------------------------
    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    async def start(self, periodic: bool = True) -> None:
        """Start the refresh consumer and, optionally, the periodic ticker."""
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._consumer = asyncio.create_task(self._consume(self._queue), name="dashboard-refresh")
        if periodic:
            self._ticker = asyncio.create_task(self._tick(), name="dashboard-ticker")

    async def stop(self) -> None:
        tasks = [task for task in (self._ticker, self._consumer) if task is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._ticker = None
        self._consumer = None
        self._queue = None
        self._automatic_pending = None
        for future in list(self._waiting):
            if not future.done():
                future.set_exception(RuntimeError("Dashboard service stopped."))
        self._waiting.clear()
        if self._on_close is not None:
            await self._on_close()

    # Queries ------------------------------------------------------------
    async def current(self) -> FusedWeather:
        """Current snapshot, running a first cycle if none has completed.

        Callers arriving while an automatic cycle is queued or running wait
        for that cycle instead of queueing another one.
        """
        if self.state.fused is None:
            pending = self._automatic_pending
            if pending is not None and not pending.done():
                await asyncio.shield(pending)
            else:
                await self.refresh(RefreshTrigger.automatic)
        if self.state.fused is None:
            raise RuntimeError("No weather snapshot is available.")
        return self.state.fused

    def status(self) -> SystemStatus:
        state = self.state
        label, description = self._describe(state.fused)
        return SystemStatus(
            station=self.station_name,
            status=label,
            description=description,
            simulating=state.simulating,
            last_update=state.last_update,
            seconds_to_next_update=self._remaining(state.last_update_clock, self.refresh_interval),
            seconds_to_next_manual_refresh=self._remaining(
                state.last_manual_refresh, self.manual_cooldown
            ),
            cycles=state.cycles,
        )

    # Refresh triggers -----------------------------------------------------
    async def refresh(self, trigger: RefreshTrigger = RefreshTrigger.automatic) -> RefreshReport:
        return await self._submit(trigger)

    def _submit(self, trigger: RefreshTrigger) -> asyncio.Future[RefreshReport]:
        if self._queue is None or not self.running:
            raise RuntimeError("Dashboard service is not running.")
        future: asyncio.Future[RefreshReport] = asyncio.get_running_loop().create_future()
        self._waiting.add(future)
        future.add_done_callback(self._waiting.discard)
        self._queue.put_nowait((trigger, future))
        if trigger is RefreshTrigger.automatic:
            self._automatic_pending = future
        return future

    async def request_manual_refresh(self) -> RefreshReport:
        """Manual refresh, rejected inside the cool-down and ignored while simulating."""
        trigger = RefreshTrigger.manual
        if self.state.simulating:
            logger.info("Manual refresh ignored during simulation", extra={"trigger": trigger})
            return RefreshReport(RefreshOutcome.skipped, trigger, self.state.fused, detail="simulation active")

        retry_after = self._remaining(self.state.last_manual_refresh, self.manual_cooldown)
        if retry_after > 0:
            logger.info("Manual refresh throttled", extra={"trigger": trigger, "retry_after": retry_after})
            return RefreshReport(
                RefreshOutcome.throttled,
                trigger,
                self.state.fused,
                retry_after=retry_after,
                detail="manual refresh cool-down active",
            )

        future = self._submit(trigger)
        self.state.last_manual_refresh = self.clock()
        return await future

    # Simulation -----------------------------------------------------------
    def simulate(self, reading: WeatherReading) -> FusedWeather:
        """Score an injected reading as if conditions were extreme."""
        validate_reading(reading)
        fused = FusedWeather(
            reading=reading,
            sources=(SIMULATION_SOURCE,),
            confidence=SIMULATION_CONFIDENCE,
            data_quality=DataQuality.simulated,
            fusion_strategy=SIMULATION_STRATEGY,
            anomaly_level=AnomalyLevel.extreme,
            produced_at=self.now(),
        )
        self.state.simulating = True
        self._apply(fused, genuine=False)
        logger.info("Simulation injected", extra={"sources": fused.sources})
        return fused

    def simulate_scenario(self, key: str) -> FusedWeather:
        try:
            scenario = SIMULATION_SCENARIOS[key]
        except KeyError:
            raise KeyError(f"Unknown simulation scenario {key!r}.") from None
        return self.simulate(
            WeatherReading(
                timestamp=self.now(),
                temperature=scenario.temperature,
                humidity=scenario.humidity,
                precipitation=scenario.precipitation,
                wind_speed=scenario.wind_speed,
                wind_direction=scenario.wind_direction,
                pressure=scenario.pressure,
            )
        )

    async def reset_simulation(self) -> Optional[FusedWeather]:
        """Leave simulation mode, restoring the last genuinely fused snapshot."""
        state = self.state
        if not state.simulating:
            return state.fused
        state.simulating = False
        if state.last_fused is None:
            await self.refresh(RefreshTrigger.automatic)
        else:
            self._apply(state.last_fused, genuine=True)
        logger.info("Simulation reset")
        return state.fused

    # Internals ----------------------------------------------------------
    async def _consume(self, queue: asyncio.Queue[Tuple[RefreshTrigger, asyncio.Future[RefreshReport]]]) -> None:
        while True:
            trigger, future = await queue.get()
            try:
                report = await self._run_cycle(trigger)
            except Exception as exc:  # noqa: BLE001 - handed back to the waiting caller
                logger.exception("Refresh cycle failed", extra={"trigger": trigger})
                if not future.done():
                    future.set_exception(exc)
            else:
                if not future.done():
                    future.set_result(report)
            finally:
                queue.task_done()

    async def _run_cycle(self, trigger: RefreshTrigger) -> RefreshReport:
        if self.state.simulating:
            return RefreshReport(RefreshOutcome.skipped, trigger, self.state.fused, detail="simulation active")
        logger.info("Refresh cycle started", extra={"trigger": trigger})
        fused = await self.pipeline.run()
        # A simulation may have started while the sources were being fetched.
        if self.state.simulating:
            self.state.last_fused = fused
            return RefreshReport(RefreshOutcome.skipped, trigger, self.state.fused, detail="simulation active")
        self._apply(fused, genuine=True)
        self.state.cycles += 1
        return RefreshReport(RefreshOutcome.completed, trigger, fused)

    async def _tick(self) -> None:
        while True:
            try:
                await self.refresh(RefreshTrigger.automatic)
            except Exception:  # noqa: BLE001 - keep ticking
                logger.exception("Periodic refresh failed")
            await asyncio.sleep(self.refresh_interval)

    def _apply(self, fused: FusedWeather, genuine: bool) -> None:
        state = self.state
        platforms = score_platforms(fused.reading, state.catalog, fused.anomaly_level)
        now = self.now()
        state.platforms = platforms
        state.analysis = analyze(fused.reading, average_score(platforms), fused.baseline)
        state.recommendations = generate_recommendations(
            fused.reading, platforms, self.context_factory(now)
        )
        state.fused = fused
        if genuine:
            state.last_fused = fused
        state.last_update = now
        state.last_update_clock = self.clock()

    def _remaining(self, since: Optional[float], interval: float) -> float:
        if since is None:
            return 0.0
        return max(0.0, interval - (self.clock() - since))

    @staticmethod
    def _describe(fused: Optional[FusedWeather]) -> Tuple[str, str]:
        if fused is None:
            return "loading", "Loading weather data..."
        if fused.fusion_strategy == EMERGENCY_STRATEGY:
            return "fallback", "Fallback mode - sources unavailable"
        count = len(fused.sources)
        if fused.confidence >= 80 and count >= 2:
            return "optimal", f"Operating optimally with {count} sources"
        if fused.confidence >= 60 and count >= 1:
            return "good", f"Normal operation with {count} source(s)"
        if count >= 1:
            return "degraded", "Limited operation - check sources"
        return "fallback", "Fallback mode - sources unavailable"


@lru_cache
def build_default_service() -> DashboardService:
    """Factory that wires the dashboard with live sources from settings."""
    settings = get_settings()
    client = httpx.AsyncClient(timeout=settings.source_timeout)
    return DashboardService(
        build_pipeline(settings, client),
        station_name=settings.station_name,
        refresh_interval=settings.refresh_interval,
        manual_cooldown=settings.manual_refresh_cooldown,
        on_close=client.aclose,
    )
