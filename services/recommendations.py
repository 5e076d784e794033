"""Rule-based operational recommendations for station staff."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from models.records import Platform, Recommendation, WeatherReading

MAX_RECOMMENDATIONS = 5

_SEVERITY_ORDER = {"critical": 4, "high": 3, "medium": 2, "low": 1}
_KIND_ORDER = {"immediate": 3, "preventive": 2, "informational": 1}


@dataclass(frozen=True)
class OperationalContext:
    hour: int
    is_rush_hour: bool = False
    estimated_passengers: int = 200

    @property
    def is_night(self) -> bool:
        return self.hour >= 22 or self.hour <= 6


def _exposed(platforms: Sequence[Platform], limit: Optional[int] = None) -> tuple[str, ...]:
    names = [platform.name for platform in platforms if not platform.is_roofed]
    return tuple(names[:limit] if limit is not None else names)


def generate_recommendations(
    weather: WeatherReading,
    platforms: Sequence[Platform],
    context: OperationalContext,
) -> List[Recommendation]:
    """Evaluate every rule and return the most urgent recommendations first."""
    passengers = context.estimated_passengers
    exposed = _exposed(platforms)
    found: List[Recommendation] = []

    if weather.precipitation > 20:
        found.append(
            Recommendation(
                id="precipitation_extreme",
                kind="immediate",
                severity="critical",
                title="Extreme precipitation - immediate evacuation",
                description=f"Torrential rain of {weather.precipitation:.1f} mm/h exceeds safety thresholds",
                actions=(
                    "Evacuate uncovered platforms immediately",
                    "Suspend all services on exposed platforms",
                    "Activate the weather emergency protocol",
                    "Coordinate with local emergency services",
                ),
                timeframe="Immediate (0-5 minutes)",
                passengers_affected=round(passengers * 0.6),
                confidence=95,
                platforms=exposed,
            )
        )

    if weather.wind_speed > 25:
        found.append(
            Recommendation(
                id="wind_extreme",
                kind="immediate",
                severity="critical",
                title="Extreme winds - service suspension",
                description=f"Wind of {weather.wind_speed:.1f} m/s is an immediate safety risk",
                actions=(
                    "Suspend services on exposed platforms immediately",
                    "Mandatory shelter for passengers",
                    "Secure loose equipment and signage",
                    "Assess damage in real time",
                ),
                timeframe="Immediate (0-2 minutes)",
                passengers_affected=round(passengers * 0.8),
                confidence=90,
                platforms=exposed,
            )
        )

    if 8 < weather.precipitation <= 20:
        found.append(
            Recommendation(
                id="precipitation_high",
                kind="immediate",
                severity="high",
                title="Heavy rain - urgent preventive measures",
                description=f"Precipitation of {weather.precipitation:.1f} mm/h requires preventive action",
                actions=(
                    "Restrict access to uncovered platforms",
                    "Deploy additional assistance staff",
                    "Activate preventive drainage",
                    "Prepare post-rain cleaning crews",
                ),
                timeframe="15-30 minutes",
                passengers_affected=round(passengers * 0.4),
                confidence=85,
                platforms=_exposed(platforms, limit=2),
            )
        )

    if 15 < weather.wind_speed <= 25:
        found.append(
            Recommendation(
                id="wind_high",
                kind="immediate",
                severity="high",
                title="Strong wind - reinforced surveillance",
                description=f"Sustained wind of {weather.wind_speed:.1f} m/s requires active supervision",
                actions=(
                    "Increase surveillance on exposed platforms",
                    "Secure information panels and signage",
                    "Position security staff at key points",
                ),
                timeframe="10-20 minutes",
                passengers_affected=round(passengers * 0.3),
                confidence=80,
                platforms=exposed,
            )
        )

    if weather.temperature > 38:
        found.append(
            Recommendation(
                id="heat_extreme",
                kind="preventive",
                severity="high",
                title="Extreme heat - protective measures",
                description=(
                    f"Temperature of {weather.temperature:.1f}°C may cause discomfort and track expansion"
                ),
                actions=(
                    "Open all air-conditioned areas",
                    "Distribute water on exposed platforms",
                    "Check thermal expansion of track",
                ),
                timeframe="30-45 minutes",
                passengers_affected=round(passengers * 0.5),
                confidence=75,
                platforms=exposed,
            )
        )

    if weather.temperature < -2:
        found.append(
            Recommendation(
                id="frost_risk",
                kind="preventive",
                severity="high",
                title="Ice formation risk",
                description=f"Temperature of {weather.temperature:.1f}°C may leave slippery surfaces",
                actions=(
                    "Activate anti-ice systems on platforms",
                    "Spread de-icing salt in critical areas",
                    "Post slippery-surface warning signs",
                ),
                timeframe="20-40 minutes",
                passengers_affected=passengers,
                confidence=80,
                platforms=tuple(platform.name for platform in platforms),
            )
        )

    if 995 < weather.pressure < 1005:
        found.append(
            Recommendation(
                id="pressure_low",
                kind="preventive",
                severity="medium",
                title="Low pressure - possible deterioration",
                description=f"Pressure of {weather.pressure:.0f} hPa suggests worsening weather",
                actions=(
                    "Check the extended forecast",
                    "Prepare emergency equipment",
                    "Brief staff on possible escalation",
                ),
                timeframe="1-2 hours",
                passengers_affected=0,
                confidence=65,
            )
        )

    if context.is_rush_hour and (weather.precipitation > 2 or weather.wind_speed > 10):
        found.append(
            Recommendation(
                id="rush_hour_weather",
                kind="immediate",
                severity="high",
                title="Adverse conditions at rush hour",
                description="Bad weather combined with peak demand requires special handling",
                actions=(
                    "Reinforce staff on the main platforms",
                    "Communicate delays intensively",
                    "Open alternative routes",
                ),
                timeframe="Immediate",
                passengers_affected=round(passengers * 1.5),
                confidence=90,
                platforms=tuple(platform.name for platform in platforms),
            )
        )

    if context.is_night and (weather.precipitation > 5 or weather.wind_speed > 15):
        found.append(
            Recommendation(
                id="night_weather",
                kind="preventive",
                severity="medium",
                title="Adverse night-time conditions",
                description="Bad weather during night hours with reduced staff",
                actions=(
                    "Increase platform lighting",
                    "Continuous security rounds",
                    "Reinforced public-address announcements",
                ),
                timeframe="Continuous",
                passengers_affected=round(passengers * 0.3),
                confidence=70,
                platforms=exposed,
            )
        )

    found.sort(key=lambda item: (_SEVERITY_ORDER[item.severity], _KIND_ORDER[item.kind]), reverse=True)
    return found[:MAX_RECOMMENDATIONS]
