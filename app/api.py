"""HTTP route definitions for the service."""

from __future__ import annotations

import math

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas import (
    Analysis,
    AnalysisResponse,
    PlatformRisk,
    PlatformsResponse,
    RecommendationItem,
    RefreshResponse,
    SimulationRequest,
    StatusResponse,
    WeatherResponse,
)
from models.catalog import SIMULATION_SCENARIOS
from models.records import WeatherReading
from services.dashboard import DashboardService, RefreshOutcome, build_default_service
from services.risk import average_score

router = APIRouter()


def get_service() -> DashboardService:
    return build_default_service()


@router.get(
    "/weather",
    response_model=WeatherResponse,
    summary="Current fused weather snapshot with fusion metadata.",
)
async def get_weather(service: DashboardService = Depends(get_service)) -> WeatherResponse:
    fused = await service.current()
    return WeatherResponse.from_fused(fused)


@router.get(
    "/platforms",
    response_model=PlatformsResponse,
    summary="Platforms of the station with their current risk scores.",
)
async def get_platforms(service: DashboardService = Depends(get_service)) -> PlatformsResponse:
    platforms = service.state.platforms
    return PlatformsResponse(
        platforms=[PlatformRisk.from_platform(platform) for platform in platforms],
        average_risk=average_score(platforms),
        simulating=service.state.simulating,
    )


@router.get(
    "/analysis",
    response_model=AnalysisResponse,
    summary="Historical pattern analysis and operational recommendations.",
)
async def get_analysis(service: DashboardService = Depends(get_service)) -> AnalysisResponse:
    state = service.state
    return AnalysisResponse(
        analysis=Analysis.from_analysis(state.analysis) if state.analysis is not None else None,
        recommendations=[RecommendationItem.from_recommendation(item) for item in state.recommendations],
    )


@router.get(
    "/status",
    response_model=StatusResponse,
    summary="Operating status and refresh timers.",
)
async def get_status(service: DashboardService = Depends(get_service)) -> StatusResponse:
    return StatusResponse.from_status(service.status())


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    summary="Trigger a manual refresh, subject to the cool-down.",
)
async def manual_refresh(service: DashboardService = Depends(get_service)) -> RefreshResponse:
    report = await service.request_manual_refresh()
    if report.outcome is RefreshOutcome.throttled:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=report.detail,
            headers={"Retry-After": str(math.ceil(report.retry_after))},
        )
    if report.outcome is RefreshOutcome.skipped:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Refresh is disabled while a simulation is active.",
        )
    return RefreshResponse.from_report(report)


@router.post(
    "/simulation",
    response_model=WeatherResponse,
    summary="Inject a simulated reading.",
)
async def simulate(
    request: SimulationRequest,
    service: DashboardService = Depends(get_service),
) -> WeatherResponse:
    reading = WeatherReading(
        timestamp=service.now(),
        temperature=request.temperature,
        humidity=request.humidity,
        precipitation=request.precipitation,
        wind_speed=request.wind_speed,
        wind_direction=request.wind_direction,
        pressure=request.pressure,
    )
    try:
        fused = service.simulate(reading)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return WeatherResponse.from_fused(fused)


@router.get(
    "/simulation/scenarios",
    summary="Available simulation scenarios.",
)
async def list_scenarios() -> dict[str, str]:
    return {key: scenario.name for key, scenario in SIMULATION_SCENARIOS.items()}


@router.post(
    "/simulation/scenarios/{name}",
    response_model=WeatherResponse,
    summary="Inject one of the predefined simulation scenarios.",
)
async def simulate_scenario(
    name: str,
    service: DashboardService = Depends(get_service),
) -> WeatherResponse:
    try:
        fused = service.simulate_scenario(name)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.args[0],
        ) from exc
    return WeatherResponse.from_fused(fused)


@router.delete(
    "/simulation",
    response_model=WeatherResponse,
    summary="Leave simulation mode and restore live data.",
)
async def reset_simulation(service: DashboardService = Depends(get_service)) -> WeatherResponse:
    fused = await service.reset_simulation()
    if fused is None:
        fused = await service.current()
    return WeatherResponse.from_fused(fused)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
