"""
Single-slot read-through snapshot cache for the Recent Tracks service.

The held snapshot is an immutable object swapped by a single reference
assignment, so the fast path reads one reference and never awaits: the age it
checks and the payload it returns always come from the same refresh.

Refreshes run lazily on the caller's request, never on a timer. With
single-flight enabled, callers that miss while a refresh is running await that
same refresh instead of issuing their own upstream call.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Generic, Optional, TypeVar

from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


T = TypeVar("T")
P = TypeVar("P")

DEFAULT_TTL_SECONDS = 5.0


class CacheState(str, Enum):
    """How a call to get_or_refresh was satisfied."""

    HIT = "hit"    # held snapshot was fresh
    MISS = "miss"  # this caller ran the upstream fetch
    WAIT = "wait"  # this caller joined another caller's in-flight fetch


@dataclass(frozen=True)
class Snapshot(Generic[T]):
    """Cached payload plus the clock reading taken when its fetch started."""

    value: T
    cached_at: float

    def age(self, now: float) -> float:
        return now - self.cached_at


@dataclass(frozen=True)
class CacheResult(Generic[T]):
    """Outcome of get_or_refresh."""

    snapshot: Snapshot[T]
    state: CacheState

    @property
    def value(self) -> T:
        return self.snapshot.value

    @property
    def served_from_cache(self) -> bool:
        return self.state is CacheState.HIT


class SnapshotCache(Generic[P, T]):
    """Owns one snapshot, its timestamp, and the refresh discipline."""

    def __init__(
        self,
        fetcher: Callable[[P], Awaitable[T]],
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        single_flight: bool = True,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional["MetricsCollector"] = None,
        name: str = "snapshot",
    ) -> None:
        self.fetcher = fetcher
        self.ttl_seconds = ttl_seconds
        self.single_flight = single_flight
        self.clock = clock
        self.metrics = metrics
        self.name = name
        self.logger = get_logger(f"tracks.cache.{name}")

        self._snapshot: Optional[Snapshot[T]] = None
        self._refresh_task: Optional["asyncio.Task[Snapshot[T]]"] = None
        self._stats: Dict[str, int] = {"hits": 0, "misses": 0, "waits": 0, "failures": 0}

    async def get_or_refresh(self, params: P, ttl: Optional[float] = None) -> CacheResult[T]:
        """
        Return the held snapshot if younger than ``ttl``, otherwise refresh it.

        A failed refresh raises the fetcher's exception unchanged and leaves
        the held snapshot (if any) untouched.
        """
        ttl_seconds = self.ttl_seconds if ttl is None else ttl

        snapshot = self._snapshot
        if snapshot is not None and snapshot.age(self.clock()) < ttl_seconds:
            self._record("hits", "cache_hits_total")
            return CacheResult(snapshot, CacheState.HIT)

        if not self.single_flight:
            self._record("misses", "cache_misses_total")
            return CacheResult(await self._refresh(params), CacheState.MISS)

        task = self._refresh_task
        if task is not None:
            self._record("waits", "cache_waits_total")
            self.logger.debug("Joining in-flight refresh")
            return CacheResult(await asyncio.shield(task), CacheState.WAIT)

        self._record("misses", "cache_misses_total")
        task = asyncio.ensure_future(self._refresh(params))
        self._refresh_task = task
        task.add_done_callback(self._clear_refresh_task)
        # Shielded so a cancelled caller does not abort the refresh for waiters
        return CacheResult(await asyncio.shield(task), CacheState.MISS)

    async def _refresh(self, params: P) -> Snapshot[T]:
        started = self.clock()
        self.logger.debug("Refreshing snapshot")

        try:
            value = await self.fetcher(params)
        except Exception as exc:
            self._stats["failures"] += 1
            self._record_upstream("error", started)
            self.logger.error(
                "Snapshot refresh failed; keeping previous snapshot",
                error=str(exc),
                error_type=type(exc).__name__,
                has_previous=self._snapshot is not None,
            )
            raise

        snapshot = Snapshot(value=value, cached_at=started)
        current = self._snapshot
        # Overlapping refreshes (single-flight off) must not publish an older generation
        if current is None or current.cached_at <= started:
            self._snapshot = snapshot
        self._record_upstream("success", started)
        self.logger.info(
            "Snapshot refreshed",
            duration_ms=round((self.clock() - started) * 1000, 2),
        )
        return snapshot

    def _clear_refresh_task(self, task: "asyncio.Task[Snapshot[T]]") -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    def peek(self) -> Optional[Snapshot[T]]:
        """Return the held snapshot without refreshing; None if never populated."""
        return self._snapshot

    def age(self) -> Optional[float]:
        """Seconds since the held snapshot's fetch started, or None."""
        snapshot = self._snapshot
        if snapshot is None:
            return None
        return snapshot.age(self.clock())

    def invalidate(self) -> None:
        """Drop the held snapshot; a refresh already running still publishes."""
        self._snapshot = None

    @property
    def refresh_in_flight(self) -> bool:
        return self._refresh_task is not None

    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    def _record(self, stat: str, metric_name: str) -> None:
        self._stats[stat] += 1
        if self.metrics:
            self.metrics.increment_counter(metric_name, cache_type=self.name)

    def _record_upstream(self, outcome: str, started: float) -> None:
        if self.metrics:
            self.metrics.increment_counter("upstream_requests_total", outcome=outcome)
            self.metrics.observe_histogram("upstream_request_duration_seconds", self.clock() - started)
