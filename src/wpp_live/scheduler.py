"""Refresh polling: debounced parameter changes, interval ticks, stale-result discard."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Protocol

from wpp_live.errors import WPPError
from wpp_live.fetch import FetchResult
from wpp_live.params import RefreshParameters, clamp_target_prob
from wpp_live.time_utils import utc_now

logger = logging.getLogger(__name__)

SchedulerState = Literal["idle", "fetching", "error"]

DEFAULT_DEBOUNCE_S = 0.25
DEFAULT_INTERVAL_S = 60.0
MIN_INTERVAL_S = 5.0


class Fetcher(Protocol):
    async def refresh(self, params: RefreshParameters) -> FetchResult: ...


@dataclass(frozen=True)
class _InFlight:
    generation: int
    params: RefreshParameters
    task: asyncio.Task[None]


class RefreshScheduler:
    """Owns the current parameters and the last good FetchResult.

    Every refresh takes a generation from a monotonic counter. A completed
    fetch is applied only if it was started with the parameters that are
    current when it completes and no newer generation has been applied yet;
    anything else is dropped (no transport-level abort). All mutation happens
    on the event loop thread.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        params: RefreshParameters | None = None,
        debounce_s: float = DEFAULT_DEBOUNCE_S,
        interval_s: float = DEFAULT_INTERVAL_S,
        auto_refresh: bool = True,
        min_interval_s: float = MIN_INTERVAL_S,
        on_change: Callable[[RefreshScheduler], None] | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.params = params or RefreshParameters()
        self.pending_target_prob = self.params.target_prob
        self.debounce_s = max(0.0, float(debounce_s))
        self.min_interval_s = max(0.0, float(min_interval_s))
        self.interval_s = max(self.min_interval_s, float(interval_s))
        self.auto_refresh = auto_refresh
        self.state: SchedulerState = "idle"
        self.result: FetchResult | None = None
        self.error: str | None = None
        self.last_updated: datetime | None = None
        self._listeners: list[Callable[[RefreshScheduler], None]] = []
        if on_change is not None:
            self._listeners.append(on_change)
        self._generation = 0
        self._applied_generation = 0
        self._inflight: dict[int, _InFlight] = {}
        self._debounce_task: asyncio.Task[None] | None = None
        self._timer_task: asyncio.Task[None] | None = None
        self._started = False
        self._closed = False

    # -- lifecycle -----------------------------------------------------

    def start(self) -> int:
        """Issue the initial fetch and arm the interval timer. Needs a running loop."""
        self._started = True
        generation = self.refresh_now()
        if self.auto_refresh:
            self._arm_timer()
        return generation

    async def aclose(self) -> None:
        """Stop timers; in-flight fetches finish but their outcomes are dropped."""
        self._closed = True
        timer, debounce = self._timer_task, self._debounce_task
        self._timer_task = None
        self._debounce_task = None
        await _cancel(timer)
        await _cancel(debounce)
        pending = [entry.task for entry in self._inflight.values()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def wait_idle(self) -> None:
        """Wait until no fetch is in flight."""
        while self._inflight:
            await asyncio.gather(*(entry.task for entry in list(self._inflight.values())))

    @property
    def timer_armed(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    @property
    def debounce_pending(self) -> bool:
        return self._debounce_task is not None and not self._debounce_task.done()

    # -- parameter setters --------------------------------------------

    def set_metric(self, metric: str) -> None:
        updated = self.params.with_metric(metric)
        if updated == self.params:
            return
        self._commit(updated)

    def set_target_prob(self, value: float) -> None:
        """Record a new target; it is committed once input stays quiet for the debounce window."""
        self.pending_target_prob = clamp_target_prob(value)
        if self._debounce_task is not None:
            self._debounce_task.cancel()
        self._debounce_task = asyncio.create_task(self._debounce(self.pending_target_prob))

    async def _debounce(self, target_prob: float) -> None:
        await asyncio.sleep(self.debounce_s)
        self._debounce_task = None
        updated = self.params.with_target_prob(target_prob)
        if updated != self.params:
            self._commit(updated)

    def set_auto_refresh(self, enabled: bool) -> None:
        self.auto_refresh = enabled
        if enabled and self._started:
            self._arm_timer()
        else:
            self._disarm_timer()

    def set_interval(self, seconds: float) -> None:
        self.interval_s = max(self.min_interval_s, float(seconds))
        if self.auto_refresh and self._started:
            self._arm_timer()

    def _commit(self, params: RefreshParameters) -> None:
        logger.debug("parameters -> metric=%s target=%.4f", params.metric, params.target_prob)
        self.params = params
        self.refresh_now()
        if self.auto_refresh and self._started:
            self._arm_timer()

    # -- interval timer ------------------------------------------------

    def _arm_timer(self) -> None:
        if self._closed:
            return
        self._disarm_timer()
        self._timer_task = asyncio.create_task(self._tick_loop())

    def _disarm_timer(self) -> None:
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_s)
            self.refresh_now()

    # -- refresh path --------------------------------------------------

    def refresh_now(self) -> int:
        """Start a refresh with the current parameters; returns its generation."""
        if self._closed:
            raise WPPError("scheduler is closed")
        self._generation += 1
        generation = self._generation
        params = self.params
        task = asyncio.create_task(self._run(generation, params))
        self._inflight[generation] = _InFlight(generation=generation, params=params, task=task)
        self.state = "fetching"
        return generation

    async def _run(self, generation: int, params: RefreshParameters) -> None:
        try:
            result = await self.fetcher.refresh(params)
        except WPPError as exc:
            self._settle(generation, params, error=str(exc))
        except Exception as exc:
            logger.exception("refresh gen=%d raised unexpectedly", generation)
            self._settle(generation, params, error=f"{type(exc).__name__}: {exc}")
        else:
            self._settle(generation, params, result=result)
        finally:
            self._inflight.pop(generation, None)

    def _accepts(self, generation: int, params: RefreshParameters) -> bool:
        return (
            not self._closed
            and params == self.params
            and generation > self._applied_generation
        )

    def _settle(
        self,
        generation: int,
        params: RefreshParameters,
        *,
        result: FetchResult | None = None,
        error: str | None = None,
    ) -> None:
        if not self._accepts(generation, params):
            logger.debug(
                "dropping stale outcome gen=%d metric=%s target=%.4f",
                generation,
                params.metric,
                params.target_prob,
            )
            return
        self._applied_generation = generation
        if result is not None:
            self.result = result
            self.error = None
            self.last_updated = utc_now()
            self.state = "idle"
        else:
            logger.warning("refresh failed: %s", error)
            self.error = error
            self.state = "error"
        if self._newer_inflight(generation):
            self.state = "fetching"
        for listener in list(self._listeners):
            listener(self)

    def _newer_inflight(self, generation: int) -> bool:
        return any(
            entry.generation > generation and entry.params == self.params
            for entry in self._inflight.values()
        )


async def _cancel(task: asyncio.Task[None] | None) -> None:
    if task is None or task.done():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
