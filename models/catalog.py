"""Static reference data for the station: platforms, past events, scenarios."""

from __future__ import annotations

from datetime import date
from typing import Dict, Tuple

from models.records import HistoricalEvent, Platform, SimulationScenario

# Odd-numbered platforms are roofed.
STATION_PLATFORMS: Tuple[Platform, ...] = (
    Platform(id="P1", name="Platform 1", is_roofed=True, exposure=0.2, risk_score=25),
    Platform(id="P2", name="Platform 2", is_roofed=False, exposure=0.6, risk_score=45),
    Platform(id="P3", name="Platform 3", is_roofed=True, exposure=0.3, risk_score=35),
    Platform(id="P4", name="Platform 4", is_roofed=False, exposure=0.9, risk_score=70),
    Platform(id="P5", name="Platform 5", is_roofed=True, exposure=0.1, risk_score=20),
    Platform(id="P6", name="Platform 6", is_roofed=False, exposure=0.7, risk_score=55),
    Platform(id="P7", name="Platform 7", is_roofed=True, exposure=0.2, risk_score=30),
    Platform(id="P8", name="Platform 8", is_roofed=False, exposure=0.8, risk_score=65),
)

HISTORICAL_EVENTS: Tuple[HistoricalEvent, ...] = (
    HistoricalEvent(
        name="Storm Filomena",
        date=date(2021, 1, 9),
        location="Madrid - Chamartín",
        max_precipitation=45.2,
        max_wind_speed=38.5,
        min_temperature=-6.8,
        max_temperature=2.1,
        min_pressure=985.3,
        description="Historic snowfall that paralysed Madrid for days",
        impact="400,000 passengers affected, 72h of total service interruption",
    ),
    HistoricalEvent(
        name="DANA Valencia-Madrid",
        date=date(2024, 10, 29),
        location="Mediterranean corridor - Madrid",
        max_precipitation=78.4,
        max_wind_speed=42.1,
        min_temperature=12.3,
        max_temperature=18.7,
        min_pressure=992.1,
        description="Severe cut-off low with torrential rainfall",
        impact="250,000 passengers rerouted, 48h of limited service",
    ),
    HistoricalEvent(
        name="Extreme Heat Wave",
        date=date(2023, 7, 14),
        location="Madrid - Metropolitan area",
        max_precipitation=0.0,
        max_wind_speed=15.2,
        min_temperature=28.9,
        max_temperature=44.3,
        min_pressure=1018.7,
        description="Record temperatures that affected railway infrastructure",
        impact="Reduced speed on 15% of routes, thermal expansion of track",
    ),
    HistoricalEvent(
        name="Madrid Hailstorm",
        date=date(2022, 8, 30),
        location="Madrid Centre-North",
        max_precipitation=32.1,
        max_wind_speed=68.4,
        min_temperature=19.2,
        max_temperature=31.8,
        min_pressure=996.4,
        description="Severe storm with hailstones up to 4cm in diameter",
        impact="6h partial suspension, damage to outdoor signalling",
    ),
    HistoricalEvent(
        name="Storm Celia",
        date=date(2023, 12, 18),
        location="Madrid - Atlantic corridor",
        max_precipitation=28.7,
        max_wind_speed=52.3,
        min_temperature=4.1,
        max_temperature=12.5,
        min_pressure=988.9,
        description="Hurricane-force winds and heavy rain",
        impact="120,000 passengers affected, 24h of interrupted service",
    ),
)

SIMULATION_SCENARIOS: Dict[str, SimulationScenario] = {
    scenario.key: scenario
    for scenario in (
        SimulationScenario(
            key="severe-dana",
            name="Severe DANA",
            description="Heavy precipitation (15-25 mm/h) with strong winds",
            temperature=18.4,
            humidity=92.0,
            precipitation=22.3,
            wind_speed=24.7,
            wind_direction=235.0,
            pressure=998.0,
        ),
        SimulationScenario(
            key="winter-storm",
            name="Severe Winter Storm",
            description="Near-freezing temperatures with heavy precipitation and icing risk",
            temperature=3.7,
            humidity=95.0,
            precipitation=32.8,
            wind_speed=31.2,
            wind_direction=210.0,
            pressure=992.0,
        ),
        SimulationScenario(
            key="heat-wave",
            name="Extreme Heat Wave",
            description="High temperatures with low humidity and hot wind",
            temperature=41.2,
            humidity=32.0,
            precipitation=0.0,
            wind_speed=14.3,
            wind_direction=180.0,
            pressure=1025.0,
        ),
    )
}

# Approximate annual climatology for Madrid, used when no historical series is available.
CLIMATOLOGY: Dict[str, float] = {
    "temperature": 15.5,
    "humidity": 64.0,
    "precipitation": 1.4,
    "wind_speed": 8.2,
    "pressure": 1013.2,
}
