"""TTL cache in front of a source's refresh cycle.

One ``FreshnessCache`` per source. Within the TTL the cached records are
returned as-is; past it, the next caller triggers exactly one refresh and
every concurrent caller awaits that same refresh.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Generic

from taurobot.core.models import CacheEntry, RecordT, RefreshOutcome
from taurobot.logging import get_logger

logger = get_logger(__name__)

Loader = Callable[[], Awaitable[RefreshOutcome[RecordT]]]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CacheState(str, Enum):
    EMPTY = "empty"
    FRESH = "fresh"
    STALE = "stale"


class FreshnessCache(Generic[RecordT]):
    """Per-source cache with single-flight refresh.

    Only an ``ok`` outcome replaces the cached entry. Any other outcome keeps
    whatever was cached before; callers then get that stale data, or the
    outcome's records when nothing was ever cached.
    """

    def __init__(
        self,
        key: str,
        ttl: timedelta,
        loader: Loader[RecordT],
        clock: Clock = utc_now,
    ) -> None:
        self.key = key
        self.ttl = ttl
        self._loader = loader
        self._clock = clock
        self._entry: CacheEntry[RecordT] | None = None
        self._inflight: asyncio.Task[list[RecordT]] | None = None

    @property
    def state(self) -> CacheState:
        if self._entry is None:
            return CacheState.EMPTY
        if self._clock() - self._entry.computed_at < self.ttl:
            return CacheState.FRESH
        return CacheState.STALE

    @property
    def entry(self) -> CacheEntry[RecordT] | None:
        return self._entry

    @property
    def is_refreshing(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def get_or_refresh(self) -> list[RecordT]:
        """Cached records while fresh, otherwise the result of one shared refresh."""
        if self.state is CacheState.FRESH and self._entry is not None:
            logger.debug("cache_hit", source=self.key, count=len(self._entry.data))
            return list(self._entry.data)

        if self._inflight is None or self._inflight.done():
            logger.info("cache_refresh_started", source=self.key, state=self.state.value)
            self._inflight = asyncio.create_task(self._refresh())
        else:
            logger.debug("cache_refresh_joined", source=self.key)

        # Shield so one caller's timeout does not cancel the refresh for the others
        return await asyncio.shield(self._inflight)

    def put(self, records: list[RecordT]) -> None:
        """Seed the cache, e.g. from a snapshot read at startup."""
        self._entry = CacheEntry(data=tuple(records), computed_at=self._clock())

    def clear_cache(self) -> None:
        self._entry = None
        logger.info("cache_cleared", source=self.key)

    async def _refresh(self) -> list[RecordT]:
        outcome = await self._loader()
        if outcome.ok:
            self.put(outcome.records)
            logger.info("cache_updated", source=self.key, count=len(outcome.records))
            return list(outcome.records)

        if self._entry is not None:
            logger.warning(
                "cache_serving_stale",
                source=self.key,
                status=outcome.status.value,
                count=len(self._entry.data),
            )
            return list(self._entry.data)
        return list(outcome.records)
