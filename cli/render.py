from __future__ import annotations

from typing import Any, Dict, Iterable

import typer

_WARNING_COLORS = {
    "info": typer.colors.GREEN,
    "watch": typer.colors.YELLOW,
    "advisory": typer.colors.BRIGHT_YELLOW,
    "warning": typer.colors.RED,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _risk_color(score: int) -> str:
    if score >= 70:
        return typer.colors.RED
    if score >= 40:
        return typer.colors.YELLOW
    return typer.colors.GREEN


def render_weather(payload: Dict[str, Any]) -> None:
    weather = payload.get("weather") or {}
    metadata = payload.get("metadata") or {}

    echo_heading("Current Weather")
    echo_key_values(
        [
            ("timestamp", weather.get("timestamp")),
            ("temperature", f"{weather.get('temperature')} °C"),
            ("humidity", f"{weather.get('humidity')} %"),
            ("precipitation", f"{weather.get('precipitation')} mm/h"),
            ("wind", f"{weather.get('windSpeed')} m/s from {weather.get('windDirection')}°"),
            ("pressure", f"{weather.get('pressure')} hPa"),
        ]
    )

    typer.echo()
    echo_heading("Fusion")
    echo_key_values(
        [
            ("strategy", metadata.get("fusionStrategy")),
            ("sources", ", ".join(metadata.get("sourcesUsed") or []) or "none"),
            ("confidence", metadata.get("confidence")),
            ("data_quality", metadata.get("dataQuality")),
            ("anomaly_level", metadata.get("anomalyLevel")),
            ("processing_ms", metadata.get("processingTime")),
        ]
    )

    raw_sources = metadata.get("rawSources") or []
    if raw_sources:
        typer.echo("raw_sources:")
        for source in raw_sources:
            line = f"  - {source.get('sourceName')}: {source.get('status')}"
            if source.get("errorMessage"):
                line += f" ({source['errorMessage']})"
            typer.echo(line)


def render_platforms(payload: Dict[str, Any]) -> None:
    heading = "Platforms"
    if payload.get("simulating"):
        heading += " (simulation)"
    echo_heading(heading)
    for platform in payload.get("platforms") or []:
        score = platform.get("riskScore", 0)
        cover = "roofed" if platform.get("isRoofed") else "open"
        typer.secho(
            f"  {platform.get('name'):<12} {cover:<7} risk {score:>3}",
            fg=_risk_color(score),
        )
    typer.echo(f"average_risk: {payload.get('averageRisk', 0):.1f}")


def render_analysis(payload: Dict[str, Any]) -> None:
    analysis = payload.get("analysis")
    echo_heading("Historical Analysis")
    if not analysis:
        typer.echo("No analysis available yet.")
    else:
        level = analysis.get("warningLevel")
        typer.secho(f"warning_level: {level}", fg=_WARNING_COLORS.get(level))
        echo_key_values(
            [
                ("context", analysis.get("context")),
                ("confidence", analysis.get("confidence")),
                ("combined_confidence", analysis.get("combinedConfidence")),
            ]
        )
        for label in ("insights", "trends", "alerts"):
            items = analysis.get(label) or []
            if items:
                typer.echo(f"{label}:")
                for item in items:
                    typer.echo(f"  - {item}")

    recommendations = payload.get("recommendations") or []
    typer.echo()
    echo_heading("Recommendations")
    if not recommendations:
        typer.echo("No recommendations.")
        return
    for item in recommendations:
        typer.echo(f"  [{item.get('severity')}] {item.get('title')} ({item.get('timeframe')})")
        for action in item.get("actions") or []:
            typer.echo(f"      * {action}")


def render_refresh(payload: Dict[str, Any]) -> None:
    typer.secho(f"Refresh {payload.get('outcome')}.", fg=typer.colors.GREEN)
    weather = payload.get("weather")
    if weather:
        typer.echo()
        render_weather(weather)
