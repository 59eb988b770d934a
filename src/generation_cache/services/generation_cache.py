"""Fingerprint-keyed result cache with singleflight generation.

At most one generation is in flight per fingerprint. Callers arriving
while a generation runs await the same task through ``asyncio.shield``,
so a cancelled caller detaches without cancelling the generation the
remaining waiters depend on. A force refresh skips the lookup but still
joins (or starts) the in-flight generation for its fingerprint.

A flight stores its result before it completes, so any lookup that
starts after a caller received the result observes the entry.
"""

import asyncio
import copy
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from generation_cache.config import settings
from generation_cache.entities import CacheEntryEntity, GenerationResultEntity
from generation_cache.errors import ProcessingError
from generation_cache.models import CacheMetrics
from generation_cache.protocols import CacheStore

logger = logging.getLogger(__name__)

# Per request type entry lifetimes in seconds
DEFAULT_TTL_BY_TYPE: dict[str, int] = {
    "challenge": 600,
    "challenge_variation": 600,
    "evaluation": 600,
    "personality": 900,
    "focus_area": 300,
}

Producer = Callable[[], Awaitable[GenerationResultEntity]]


@dataclass(frozen=True)
class _FlightOutcome:
    result: GenerationResultEntity
    generated: bool


class GenerationCache:
    """Owns the cache entries and the in-flight generation table.

    Construct one per process and pass it to the orchestrator; it is the
    only state shared between concurrent callers.

    Example:
        ```python
        cache = GenerationCache.create(InMemoryCacheRepository())

        async def produce() -> GenerationResultEntity:
            ...

        result = await cache.get_or_generate(fingerprint, "user-1", produce)
        ```
    """

    def __init__(self, store: CacheStore, ttl: int | None = None) -> None:
        """Initialize the cache.

        Args:
            store: Cache storage backend (required).
            ttl: Default entry lifetime in seconds (0 = no expiry). Defaults to settings.
        """
        self._store = store
        self._ttl = settings.cache_ttl if ttl is None else ttl
        self._inflight: dict[str, asyncio.Task] = {}
        self._metrics = CacheMetrics()
        # Bumped on every invalidation; a flight that saw an older value must not store
        self._global_generation = 0
        self._subject_generations: dict[str, int] = {}

    @classmethod
    def create(cls, store: CacheStore, ttl: int | None = None) -> "GenerationCache":
        """Factory method to create GenerationCache with defaults."""
        return cls(store=store, ttl=ttl)

    @property
    def metrics(self) -> CacheMetrics:
        return self._metrics

    @property
    def in_flight_count(self) -> int:
        """Number of generations currently running."""
        return len(self._inflight)

    async def lookup(self, fingerprint: str) -> CacheEntryEntity | None:
        """Return the entry for a fingerprint, or None on a miss.

        A backend failure is logged and treated as a miss.
        """
        entry = await self._safe_get(fingerprint)
        if entry is None:
            self._metrics.record_miss()
            logger.debug("Cache miss (fingerprint=%s)", fingerprint)
        else:
            self._metrics.record_hit()
            logger.debug("Cache hit (fingerprint=%s, subject_id=%s)", fingerprint, entry.subject_id)
        return entry

    async def store(
        self,
        fingerprint: str,
        subject_id: str,
        result: GenerationResultEntity,
        ttl: int | None = None,
    ) -> None:
        """Store a result, replacing any existing entry for the fingerprint.

        A backend failure is logged; the caller still holds the result.
        """
        entry = CacheEntryEntity(
            fingerprint=fingerprint,
            result=replace(result, from_cache=False),
            created_at=datetime.now(timezone.utc),
            subject_id=subject_id,
        )
        try:
            await self._store.put(entry, self._ttl if ttl is None else ttl)
        except Exception:
            logger.warning(
                "Cache store failed (fingerprint=%s, subject_id=%s)",
                fingerprint,
                subject_id,
                exc_info=True,
            )

    async def invalidate(self, subject_id: str) -> int:
        """Remove every entry belonging to a subject.

        Returns:
            Number of entries removed

        Raises:
            ProcessingError: If the backend fails
        """
        self._subject_generations[subject_id] = self._subject_generations.get(subject_id, 0) + 1
        try:
            count = await self._store.delete_by_subject(subject_id)
        except Exception as e:
            raise ProcessingError(
                f"Cache invalidation failed: {e}",
                subject_id=subject_id,
                stage="cache_invalidate",
            ) from e

        logger.info("Invalidated %d cache entries (subject_id=%s)", count, subject_id)
        return count

    async def invalidate_all(self) -> int:
        """Remove every entry.

        Returns:
            Number of entries removed

        Raises:
            ProcessingError: If the backend fails
        """
        self._global_generation += 1
        try:
            count = await self._store.clear_all()
        except Exception as e:
            raise ProcessingError(f"Cache invalidation failed: {e}", stage="cache_invalidate") from e

        logger.info("Invalidated all cache entries (%d removed)", count)
        return count

    async def get_or_generate(
        self,
        fingerprint: str,
        subject_id: str,
        produce: Producer,
        force_refresh: bool = False,
        ttl: int | None = None,
    ) -> GenerationResultEntity:
        """Serve a fingerprint from the cache or generate it exactly once.

        Business logic:
        1. Unless force_refresh, return a cached entry flagged from_cache
        2. Join the in-flight generation for the fingerprint, or start one
        3. A started generation stores its result before completing
        4. A failed generation stores nothing; every waiter sees the error

        Args:
            fingerprint: Cache key of the request
            subject_id: Owner of the entry, for scoped invalidation
            produce: Coroutine factory performing the generation
            force_refresh: Skip the lookup and regenerate
            ttl: Entry lifetime override in seconds

        Returns:
            The cached or freshly generated result
        """
        if not force_refresh:
            entry = await self.lookup(fingerprint)
            if entry is not None:
                return entry.result.as_cached()

        while True:
            flight = self._inflight.get(fingerprint)
            if flight is None or flight.done():
                flight = self._start_flight(fingerprint, subject_id, produce, not force_refresh, ttl)
            else:
                self._metrics.record_coalesced()
                logger.debug("Joining in-flight generation (fingerprint=%s)", fingerprint)

            outcome: _FlightOutcome = await asyncio.shield(flight)
            # A force refresh that joined a flight answered from the cache must regenerate
            if outcome.generated or not force_refresh:
                return _detached(outcome.result)

    async def get_stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dictionary with counters, in-flight count and backend stats
        """
        try:
            backend = await self._store.get_stats()
        except Exception:
            logger.warning("Cache backend stats unavailable", exc_info=True)
            backend = {"error": "unavailable"}

        return {
            **self._metrics.to_dict(),
            "in_flight": self.in_flight_count,
            "ttl": self._ttl,
            "backend": backend,
        }

    async def is_healthy(self) -> bool:
        try:
            return await self._store.health_check()
        except Exception:
            logger.warning("Cache backend health check failed", exc_info=True)
            return False

    def _start_flight(
        self,
        fingerprint: str,
        subject_id: str,
        produce: Producer,
        check_cache: bool,
        ttl: int | None,
    ) -> asyncio.Task:
        generations = (self._global_generation, self._subject_generations.get(subject_id, 0))
        task = asyncio.ensure_future(
            self._run_flight(fingerprint, subject_id, produce, check_cache, ttl, generations)
        )
        self._inflight[fingerprint] = task

        def _finished(done: asyncio.Task) -> None:
            if self._inflight.get(fingerprint) is done:
                del self._inflight[fingerprint]
            # Mark the error retrieved when every waiter detached
            if not done.cancelled():
                done.exception()

        task.add_done_callback(_finished)
        return task

    async def _run_flight(
        self,
        fingerprint: str,
        subject_id: str,
        produce: Producer,
        check_cache: bool,
        ttl: int | None,
        generations: tuple[int, int],
    ) -> _FlightOutcome:
        if check_cache:
            # An entry may have landed between the caller's lookup and this flight
            entry = await self._safe_get(fingerprint)
            if entry is not None:
                return _FlightOutcome(result=entry.result.as_cached(), generated=False)

        started = time.perf_counter()
        try:
            result = await produce()
        except Exception:
            self._metrics.record_failure()
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        self._metrics.record_generation(duration_ms)

        current = (self._global_generation, self._subject_generations.get(subject_id, 0))
        if current == generations:
            await self.store(fingerprint, subject_id, result, ttl=ttl)
        else:
            logger.info(
                "Cache invalidated during generation, result not stored (fingerprint=%s, subject_id=%s)",
                fingerprint,
                subject_id,
            )

        logger.debug("Generation completed (fingerprint=%s, duration_ms=%.1f)", fingerprint, duration_ms)
        return _FlightOutcome(result=replace(result, from_cache=False), generated=True)

    async def _safe_get(self, fingerprint: str) -> CacheEntryEntity | None:
        try:
            return await self._store.get(fingerprint)
        except Exception:
            logger.warning("Cache lookup failed, treating as miss (fingerprint=%s)", fingerprint, exc_info=True)
            return None


def _detached(result: GenerationResultEntity) -> GenerationResultEntity:
    # Waiters of one flight must not share a mutable payload
    return replace(result, payload=copy.deepcopy(result.payload))
