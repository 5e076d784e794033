from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the platform weather risk service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_weather(self) -> Dict[str, Any]:
        return self._request("GET", "/weather")

    def get_platforms(self) -> Dict[str, Any]:
        return self._request("GET", "/platforms")

    def get_analysis(self) -> Dict[str, Any]:
        return self._request("GET", "/analysis")

    def refresh(self) -> Dict[str, Any]:
        return self._request("POST", "/refresh")

    def simulate_scenario(self, name: str) -> Dict[str, Any]:
        return self._request("POST", f"/simulation/scenarios/{name}")

    def reset_simulation(self) -> Dict[str, Any]:
        return self._request("DELETE", "/simulation")

    def _request(self, method: str, path: str) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.HTTPError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Optional[str] = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        retry_after = exc.response.headers.get("Retry-After")
        if retry_after:
            message += f" Retry in {retry_after}s."
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
