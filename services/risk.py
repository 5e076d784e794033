"""Per-platform weather risk scoring.

The score is a weighted sum of six factor functions, each on a 0-100 scale:

=============  ======  ==================================================
factor         weight  shape
=============  ======  ==================================================
precipitation  0.30    0 up to 0.5 mm/h, 20 + 6.7/mm to 5 mm/h, then
                       50 + 10/mm capped at 100
wind           0.25    0 up to 8 m/s, 30 + 6.7/(m/s) to 14 m/s, then
                       70 + 3/(m/s) capped at 100
exposure       0.15    0 for roofed platforms, else exposure * 100
humidity       0.10    60 above 85 %
temperature    0.10    40 + 5/°C above 35 °C, 60 + 5/°C below 0 °C
pressure       0.10    40 below 1000 hPa
=============  ======  ==================================================

The sum is scaled by the anomaly factor of the baseline, rounded half up and
clamped to 0-100. The upper precipitation and wind segments never drop below
the value their lower segment reaches at the breakpoint, so the score never
decreases as rain or wind increase.
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Dict, Iterable, List

from models.records import AnomalyLevel, Platform, WeatherReading

PRECIPITATION_WEIGHT = 0.30
WIND_WEIGHT = 0.25
EXPOSURE_WEIGHT = 0.15
HUMIDITY_WEIGHT = 0.10
TEMPERATURE_WEIGHT = 0.10
PRESSURE_WEIGHT = 0.10

ANOMALY_FACTORS: Dict[AnomalyLevel, float] = {
    AnomalyLevel.normal: 1.0,
    AnomalyLevel.moderate: 1.05,
    AnomalyLevel.high: 1.15,
    AnomalyLevel.extreme: 1.2,
}


def anomaly_factor(level: AnomalyLevel) -> float:
    return ANOMALY_FACTORS[level]


def _ramp(value: float, breakpoint: float, lower, upper) -> float:
    if value > breakpoint:
        return min(100.0, max(upper(value), lower(breakpoint)))
    return lower(value)


def precipitation_factor(precipitation: float) -> float:
    if precipitation <= 0.5:
        return 0.0
    return _ramp(
        precipitation,
        5.0,
        lambda p: 20 + (p - 0.5) * 6.7,
        lambda p: 50 + (p - 5) * 10,
    )


def wind_factor(wind_speed: float) -> float:
    if wind_speed <= 8:
        return 0.0
    return _ramp(
        wind_speed,
        14.0,
        lambda w: 30 + (w - 8) * 6.7,
        lambda w: 70 + (w - 14) * 3,
    )


def exposure_factor(platform: Platform) -> float:
    if platform.is_roofed:
        return 0.0
    return platform.exposure * 100


def humidity_factor(humidity: float) -> float:
    return 60.0 if humidity > 85 else 0.0


def temperature_factor(temperature: float) -> float:
    if temperature > 35:
        return 40 + (temperature - 35) * 5
    if temperature < 0:
        return 60 + abs(temperature) * 5
    return 0.0


def pressure_factor(pressure: float) -> float:
    return 40.0 if pressure < 1000 else 0.0


def weighted_factors(weather: WeatherReading, platform: Platform) -> Dict[str, float]:
    """Weighted contribution of every factor, before the anomaly multiplier."""
    return {
        "precipitation": precipitation_factor(weather.precipitation) * PRECIPITATION_WEIGHT,
        "wind": wind_factor(weather.wind_speed) * WIND_WEIGHT,
        "exposure": exposure_factor(platform) * EXPOSURE_WEIGHT,
        "humidity": humidity_factor(weather.humidity) * HUMIDITY_WEIGHT,
        "temperature": temperature_factor(weather.temperature) * TEMPERATURE_WEIGHT,
        "pressure": pressure_factor(weather.pressure) * PRESSURE_WEIGHT,
    }


def risk_score(weather: WeatherReading, platform: Platform, factor: float = 1.0) -> int:
    raw = sum(weighted_factors(weather, platform).values()) * factor
    return max(0, min(100, math.floor(raw + 0.5)))


def score_platforms(
    weather: WeatherReading,
    platforms: Iterable[Platform],
    level: AnomalyLevel = AnomalyLevel.normal,
) -> List[Platform]:
    factor = anomaly_factor(level)
    return [replace(platform, risk_score=risk_score(weather, platform, factor)) for platform in platforms]


def average_score(platforms: Iterable[Platform]) -> float:
    scores = [platform.risk_score for platform in platforms]
    return sum(scores) / len(scores) if scores else 0.0
