"""Tests for the singleflight generation cache."""

import asyncio

import pytest

from generation_cache.entities import GenerationResultEntity
from generation_cache.errors import GenerationError, ProcessingError
from generation_cache.repositories import InMemoryCacheRepository
from generation_cache.services import GenerationCache


class CountingProducer:
    """Produce results on demand, optionally held behind a gate."""

    def __init__(self, fail: bool = False) -> None:
        self.calls = 0
        self.fail = fail
        self.gate = asyncio.Event()
        self.gate.set()

    async def __call__(self) -> GenerationResultEntity:
        self.calls += 1
        await self.gate.wait()
        if self.fail:
            raise GenerationError("upstream failed")
        return GenerationResultEntity(payload={"n": self.calls}, continuation_token=f"resp_{self.calls}")


class FailingCacheStore(InMemoryCacheRepository):
    """In-memory store whose reads, writes and deletes fail."""

    async def get(self, fingerprint):
        raise ConnectionError("backend down")

    async def put(self, entry, ttl):
        raise ConnectionError("backend down")

    async def delete_by_subject(self, subject_id):
        raise ConnectionError("backend down")


@pytest.fixture
def cache():
    return GenerationCache(InMemoryCacheRepository(), ttl=0)


async def _until(predicate, attempts: int = 100) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.mark.asyncio
async def test_miss_then_hit(cache):
    """A generated result is stored and served as cached afterwards."""
    produce = CountingProducer()

    first = await cache.get_or_generate("fp-1", "user-1", produce)
    second = await cache.get_or_generate("fp-1", "user-1", produce)

    assert first.from_cache is False
    assert second.from_cache is True
    assert second.payload == first.payload
    assert produce.calls == 1
    assert cache.metrics.cache_hits == 1
    assert cache.metrics.cache_misses == 1


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_generation(cache):
    """N concurrent callers for one fingerprint trigger one generation."""
    produce = CountingProducer()
    produce.gate.clear()

    tasks = [asyncio.create_task(cache.get_or_generate("fp-1", "user-1", produce)) for _ in range(10)]
    await _until(lambda: produce.calls == 1)
    assert cache.in_flight_count == 1

    produce.gate.set()
    results = await asyncio.gather(*tasks)

    assert produce.calls == 1
    assert {r.payload["n"] for r in results} == {1}
    assert all(r.from_cache is False for r in results)
    assert cache.metrics.coalesced == 9
    assert cache.in_flight_count == 0


@pytest.mark.asyncio
async def test_waiters_receive_independent_payloads(cache):
    """Changing one caller's payload does not leak into another caller's result."""
    produce = CountingProducer()
    produce.gate.clear()

    tasks = [asyncio.create_task(cache.get_or_generate("fp-1", "user-1", produce)) for _ in range(2)]
    await _until(lambda: produce.calls == 1)
    produce.gate.set()
    first, second = await asyncio.gather(*tasks)

    first.payload["n"] = "changed"

    assert first.payload is not second.payload
    assert second.payload == {"n": 1}
    assert (await cache.lookup("fp-1")).result.payload == {"n": 1}


@pytest.mark.asyncio
async def test_different_fingerprints_do_not_coalesce(cache):
    produce = CountingProducer()
    await asyncio.gather(
        cache.get_or_generate("fp-1", "user-1", produce),
        cache.get_or_generate("fp-2", "user-1", produce),
    )
    assert produce.calls == 2


@pytest.mark.asyncio
async def test_cancelled_waiter_detaches_without_cancelling_generation(cache):
    """Cancelling one waiter leaves the flight and other waiters intact."""
    produce = CountingProducer()
    produce.gate.clear()

    leaver = asyncio.create_task(cache.get_or_generate("fp-1", "user-1", produce))
    stayer = asyncio.create_task(cache.get_or_generate("fp-1", "user-1", produce))
    await _until(lambda: produce.calls == 1)

    leaver.cancel()
    with pytest.raises(asyncio.CancelledError):
        await leaver

    produce.gate.set()
    result = await stayer

    assert result.payload == {"n": 1}
    assert produce.calls == 1
    assert (await cache.lookup("fp-1")) is not None


@pytest.mark.asyncio
async def test_generation_completes_when_every_waiter_leaves(cache):
    produce = CountingProducer()
    produce.gate.clear()

    waiter = asyncio.create_task(cache.get_or_generate("fp-1", "user-1", produce))
    await _until(lambda: produce.calls == 1)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    produce.gate.set()
    await _until(lambda: cache.in_flight_count == 0)

    cached = await cache.get_or_generate("fp-1", "user-1", produce)
    assert cached.from_cache is True
    assert produce.calls == 1


@pytest.mark.asyncio
async def test_force_refresh_bypasses_lookup_and_overwrites(cache):
    produce = CountingProducer()
    await cache.get_or_generate("fp-1", "user-1", produce)

    refreshed = await cache.get_or_generate("fp-1", "user-1", produce, force_refresh=True)
    after = await cache.get_or_generate("fp-1", "user-1", produce)

    assert refreshed.from_cache is False
    assert refreshed.payload == {"n": 2}
    assert after.from_cache is True
    assert after.payload == {"n": 2}
    assert produce.calls == 2


@pytest.mark.asyncio
async def test_concurrent_force_refreshes_collapse(cache):
    """Two concurrent force refreshes pay for one generation."""
    produce = CountingProducer()
    await cache.get_or_generate("fp-1", "user-1", produce)
    produce.gate.clear()

    tasks = [
        asyncio.create_task(cache.get_or_generate("fp-1", "user-1", produce, force_refresh=True)) for _ in range(2)
    ]
    await _until(lambda: produce.calls == 2)
    produce.gate.set()
    first, second = await asyncio.gather(*tasks)

    assert produce.calls == 2
    assert first.payload == second.payload == {"n": 2}


@pytest.mark.asyncio
async def test_failed_generation_is_not_cached(cache):
    """Every waiter sees the error and nothing is stored."""
    produce = CountingProducer(fail=True)
    produce.gate.clear()

    tasks = [asyncio.create_task(cache.get_or_generate("fp-1", "user-1", produce)) for _ in range(3)]
    await _until(lambda: produce.calls == 1)
    produce.gate.set()
    results = await asyncio.gather(*tasks, return_exceptions=True)

    assert all(isinstance(r, GenerationError) for r in results)
    assert produce.calls == 1
    assert cache.metrics.failures == 1
    assert await cache.lookup("fp-1") is None

    produce.fail = False
    result = await cache.get_or_generate("fp-1", "user-1", produce)
    assert result.from_cache is False


@pytest.mark.asyncio
async def test_invalidate_is_scoped_to_subject(cache):
    produce = CountingProducer()
    await cache.get_or_generate("fp-a", "user-a", produce)
    await cache.get_or_generate("fp-b", "user-b", produce)

    assert await cache.invalidate("user-a") == 1

    assert await cache.lookup("fp-a") is None
    assert await cache.lookup("fp-b") is not None


@pytest.mark.asyncio
async def test_invalidate_all(cache):
    produce = CountingProducer()
    await cache.get_or_generate("fp-a", "user-a", produce)
    await cache.get_or_generate("fp-b", "user-b", produce)

    assert await cache.invalidate_all() == 2
    assert await cache.lookup("fp-a") is None
    assert await cache.lookup("fp-b") is None


@pytest.mark.asyncio
async def test_invalidation_during_flight_prevents_store(cache):
    """A result generated across an invalidation is returned but not stored."""
    produce = CountingProducer()
    produce.gate.clear()

    task = asyncio.create_task(cache.get_or_generate("fp-1", "user-1", produce))
    await _until(lambda: produce.calls == 1)
    await cache.invalidate("user-1")
    produce.gate.set()

    result = await task
    assert result.payload == {"n": 1}
    assert await cache.lookup("fp-1") is None


@pytest.mark.asyncio
async def test_store_replaces_existing_entry(cache):
    await cache.store("fp-1", "user-1", GenerationResultEntity(payload={"v": 1}))
    await cache.store("fp-1", "user-1", GenerationResultEntity(payload={"v": 2}, from_cache=True))

    entry = await cache.lookup("fp-1")
    assert entry.result.payload == {"v": 2}
    assert entry.result.from_cache is False


@pytest.mark.asyncio
async def test_backend_failures_degrade_to_miss_and_skip_store():
    """Lookup and store failures never fail a generation."""
    cache = GenerationCache(FailingCacheStore(), ttl=0)
    produce = CountingProducer()

    first = await cache.get_or_generate("fp-1", "user-1", produce)
    second = await cache.get_or_generate("fp-1", "user-1", produce)

    assert first.from_cache is False
    assert second.from_cache is False
    assert produce.calls == 2


@pytest.mark.asyncio
async def test_invalidation_failure_raises_processing_error():
    cache = GenerationCache(FailingCacheStore(), ttl=0)
    with pytest.raises(ProcessingError) as exc_info:
        await cache.invalidate("user-1")
    assert exc_info.value.subject_id == "user-1"


@pytest.mark.asyncio
async def test_entries_expire_after_ttl():
    cache = GenerationCache(InMemoryCacheRepository(), ttl=1)
    produce = CountingProducer()
    await cache.get_or_generate("fp-1", "user-1", produce, ttl=1)
    assert await cache.lookup("fp-1") is not None

    await asyncio.sleep(1.05)
    assert await cache.lookup("fp-1") is None


@pytest.mark.asyncio
async def test_get_stats(cache):
    produce = CountingProducer()
    await cache.get_or_generate("fp-1", "user-1", produce)
    await cache.get_or_generate("fp-1", "user-1", produce)

    stats = await cache.get_stats()
    assert stats["cache_hits"] == 1
    assert stats["generations"] == 1
    assert stats["in_flight"] == 0
    assert stats["backend"]["total_entries"] == 1
    assert stats["hit_rate"] == 0.5
