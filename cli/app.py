from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_analysis, render_platforms, render_refresh, render_weather


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the platform weather risk service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for a response (defaults to CLI_TIMEOUT env or 60).",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("weather")
def weather_command(ctx: typer.Context) -> None:
    """Show the current fused weather snapshot."""
    state = _get_state(ctx)
    render_weather(state.client.get_weather())


@app.command("platforms")
def platforms_command(ctx: typer.Context) -> None:
    """Show platform risk scores."""
    state = _get_state(ctx)
    render_platforms(state.client.get_platforms())


@app.command("analysis")
def analysis_command(ctx: typer.Context) -> None:
    """Show the historical analysis and recommendations."""
    state = _get_state(ctx)
    render_analysis(state.client.get_analysis())


@app.command("refresh")
def refresh_command(ctx: typer.Context) -> None:
    """Request a manual refresh of every source."""
    state = _get_state(ctx)
    typer.echo(f"Requesting refresh from {state.config.base_url} ...")
    render_refresh(state.client.refresh())


@app.command("simulate")
def simulate_command(
    ctx: typer.Context,
    scenario: str = typer.Argument(..., help="Scenario key, e.g. severe-dana, winter-storm, heat-wave."),
) -> None:
    """Inject a predefined extreme-weather scenario."""
    state = _get_state(ctx)
    payload = state.client.simulate_scenario(scenario)
    typer.secho(f"Simulation '{scenario}' active.", fg=typer.colors.YELLOW)
    typer.echo()
    render_weather(payload)


@app.command("reset")
def reset_command(ctx: typer.Context) -> None:
    """Leave simulation mode and restore live data."""
    state = _get_state(ctx)
    payload = state.client.reset_simulation()
    typer.secho("Simulation reset.", fg=typer.colors.GREEN)
    typer.echo()
    render_weather(payload)
