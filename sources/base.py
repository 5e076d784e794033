"""Shared plumbing for the external weather source adapters."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Generic, Mapping, Optional, TypeVar, Union

import httpx

from models.records import HistorySeriesResult, SourceResult

ResultT = TypeVar("ResultT", SourceResult, HistorySeriesResult)

# Upstream "missing value" markers (NASA POWER uses -999, AEMET -9999).
_SENTINEL_CEILING = -999.0


class SourceError(RuntimeError):
    """Raised inside an adapter when a response is unusable."""


def clean_value(raw: Union[str, float, int, None]) -> Optional[float]:
    """Translate an upstream value into a finite float, or ``None`` if absent."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        candidate = raw.strip().replace(",", ".")
        if not candidate:
            return None
        try:
            value = float(candidate)
        except ValueError:
            return None
    elif isinstance(raw, (int, float)):
        value = float(raw)
    else:
        return None
    if not math.isfinite(value) or value <= _SENTINEL_CEILING:
        return None
    return value


class SourceAdapter(Generic[ResultT]):
    """Base adapter: one provider, one call per cycle, never raises from ``fetch``."""

    name = "source"

    def __init__(self, client: httpx.AsyncClient, timeout: float = 15.0) -> None:
        self.client = client
        self.timeout = timeout
        self._log = logging.getLogger(f"sources.{self.__class__.__name__}")

    async def fetch(self) -> ResultT:
        try:
            return await asyncio.wait_for(self._fetch(), timeout=self.timeout)
        except asyncio.TimeoutError:
            message = f"timed out after {self.timeout:g}s"
        except SourceError as exc:
            message = str(exc)
        except httpx.HTTPError as exc:
            message = f"request failed: {exc.__class__.__name__}"
        except Exception as exc:  # noqa: BLE001 - adapters report, the pipeline decides
            self._log.exception("Unexpected adapter failure", extra={"source": self.name})
            message = f"unexpected error: {exc}"
        self._log.warning(
            "Source unavailable", extra={"source": self.name, "reason": message}
        )
        return self._failure(message)

    async def _fetch(self) -> ResultT:
        raise NotImplementedError

    def _failure(self, message: str) -> ResultT:
        return SourceResult.failure(self.name, message)  # type: ignore[return-value]

    async def _get_json(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        response = await self.client.get(url, params=params, headers=headers)
        if response.status_code == 429:
            raise SourceError("quota exceeded (HTTP 429)")
        if response.status_code >= 400:
            raise SourceError(f"HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise SourceError("response is not valid JSON") from exc
