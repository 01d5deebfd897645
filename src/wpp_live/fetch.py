"""One refresh cycle: report + garbage edges fetched together and merged."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from wpp_live.errors import ParseError
from wpp_live.params import RefreshParameters
from wpp_live.rows import PlayRow, Tier, normalize_plays
from wpp_live.time_utils import utc_now
from wpp_live.util.parsing import dig, safe_int
from wpp_live.wpp_client import WPPClient

logger = logging.getLogger(__name__)

DEFAULT_GARBAGE_N = 25


@dataclass(frozen=True)
class RateInfo:
    """Request quota reported by the backend."""

    limit: int = 0
    remaining: int = 0

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> RateInfo:
        return cls(
            limit=safe_int(headers.get("x-ratelimit-limit")) or 0,
            remaining=safe_int(headers.get("x-ratelimit-remaining")) or 0,
        )


@dataclass(frozen=True)
class CacheInfo:
    """Backend response-cache status."""

    status: str = "MISS"
    ttl: int = 0

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> CacheInfo:
        status = (headers.get("x-cache") or "").strip()
        return cls(
            status=status or "MISS",
            ttl=safe_int(headers.get("x-cache-ttl")) or 0,
        )


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one successful refresh cycle."""

    params: RefreshParameters
    fire: tuple[PlayRow, ...] = ()
    watch: tuple[PlayRow, ...] = ()
    garbage: tuple[PlayRow, ...] = ()
    by_tier: dict[str, int] = field(default_factory=dict)
    rate: RateInfo = field(default_factory=RateInfo)
    cache: CacheInfo = field(default_factory=CacheInfo)
    fetched_at: datetime = field(default_factory=utc_now)

    def rows_for(self, tier: Tier) -> tuple[PlayRow, ...]:
        if tier == "Fire":
            return self.fire
        if tier == "Watch":
            return self.watch
        return self.garbage

    def tier_count(self, tier: Tier) -> int:
        return self.by_tier.get(tier, 0)


def _tier_summary(payload: Any) -> dict[str, int]:
    if not isinstance(payload, Mapping):
        return {}
    summary: dict[str, int] = {}
    for tier, count in payload.items():
        parsed = safe_int(count)
        if parsed is not None:
            summary[str(tier)] = parsed
    return summary


def _section(report: dict[str, Any], name: str) -> tuple[PlayRow, ...]:
    try:
        return normalize_plays(dig(report, f"sections.{name}"))
    except ParseError as exc:
        raise ParseError(f"WPP /report section {name!r}: {exc}") from exc


class FetchOrchestrator:
    """Issues both backend queries for a parameter set and merges the outcome."""

    def __init__(self, client: WPPClient, *, garbage_n: int = DEFAULT_GARBAGE_N) -> None:
        self.client = client
        self.garbage_n = max(1, int(garbage_n))

    async def refresh(self, params: RefreshParameters) -> FetchResult:
        """Fetch report and garbage edges concurrently; either failure fails the cycle."""
        report, edges = await asyncio.gather(
            self.client.fetch_report(target_prob=params.target_prob, metric=params.metric),
            self.client.fetch_edges(
                metric=params.metric,
                n=self.garbage_n,
                target_prob=params.target_prob,
            ),
        )
        try:
            garbage = normalize_plays(edges.data.get("plays"))
        except ParseError as exc:
            raise ParseError(f"WPP /best_edges (garbage) plays: {exc}") from exc

        result = FetchResult(
            params=params,
            fire=_section(report.data, "fire"),
            watch=_section(report.data, "watch"),
            garbage=garbage,
            by_tier=_tier_summary(dig(report.data, "summary.by_tier")),
            rate=RateInfo.from_headers(report.headers),
            cache=CacheInfo.from_headers(report.headers),
        )
        logger.info(
            "refreshed metric=%s target=%.2f fire=%d watch=%d garbage=%d cache=%s",
            params.metric,
            params.target_prob,
            len(result.fire),
            len(result.watch),
            len(result.garbage),
            result.cache.status,
        )
        return result
