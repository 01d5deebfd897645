"""Async HTTP client for the WPP report and edges endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Any

import httpx

from wpp_live.errors import NetworkError, ParseError, TransportError
from wpp_live.params import Metric
from wpp_live.settings import Settings

logger = logging.getLogger(__name__)

DIAGNOSTIC_HEADERS: tuple[str, ...] = (
    "x-ratelimit-limit",
    "x-ratelimit-remaining",
    "x-cache",
    "x-cache-ttl",
)
REPORT_ENDPOINT = "/report"
EDGES_ENDPOINT = "/best_edges"


@dataclass(frozen=True)
class WPPResponse:
    """Decoded body and diagnostics from one WPP call."""

    data: dict[str, Any]
    status_code: int
    headers: dict[str, str]
    duration_ms: int


class WPPClient:
    """Thin async client around the WPP backend."""

    def __init__(
        self, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self.settings = settings
        self._http = httpx.AsyncClient(
            base_url=settings.base_url.rstrip("/"),
            timeout=settings.timeout_s,
            headers={"Accept": "application/json", "Cache-Control": "no-store"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> WPPClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def _request(self, *, path: str, label: str, params: dict[str, str]) -> WPPResponse:
        started = perf_counter()
        try:
            response = await self._http.get(path, params=params)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(label, str(exc)) from exc
        duration_ms = int((perf_counter() - started) * 1000)
        logger.debug("GET %s %s -> %s in %dms", path, params, response.status_code, duration_ms)
        if not response.is_success:
            raise NetworkError(label, response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise ParseError(f"WPP {label} returned malformed JSON") from exc
        if not isinstance(data, dict):
            raise ParseError(f"WPP {label} returned {type(data).__name__}, expected an object")

        headers = {name: response.headers.get(name, "") for name in DIAGNOSTIC_HEADERS}
        return WPPResponse(
            data=data,
            status_code=response.status_code,
            headers=headers,
            duration_ms=duration_ms,
        )

    async def fetch_report(self, *, target_prob: float, metric: Metric) -> WPPResponse:
        """Ranked report: fire/watch sections plus tier summary."""
        params = {"target_prob": str(target_prob), "metric": metric}
        return await self._request(path=REPORT_ENDPOINT, label=REPORT_ENDPOINT, params=params)

    async def fetch_edges(
        self,
        *,
        metric: Metric,
        n: int,
        target_prob: float,
        tier: str = "garbage",
    ) -> WPPResponse:
        """Top-n plays of one tier from the edges endpoint."""
        params = {
            "tier": tier,
            "metric": metric,
            "n": str(n),
            "target_prob": str(target_prob),
        }
        label = f"{EDGES_ENDPOINT} ({tier})"
        return await self._request(path=EDGES_ENDPOINT, label=label, params=params)
