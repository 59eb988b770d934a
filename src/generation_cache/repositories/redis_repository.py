"""Redis implementation of CacheStore.

Layout under the configured prefix:
- ``{prefix}:entry:{fingerprint}``  JSON-encoded cache entry (string, TTL)
- ``{prefix}:subject:{subject_id}`` set of fingerprints owned by a subject
"""

import redis.asyncio as redis
from redis.exceptions import RedisError

from generation_cache.config import get_redis_client, settings
from generation_cache.entities import CacheEntryEntity

from .codec import decode_entry, encode_entry


class RedisCacheRepository:
    """Redis implementation of the CacheStore protocol.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.

    Entries are written with SET (whole-value replacement) and optional
    expiry; the subject index is a plain set kept alongside them.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        key_prefix: str | None = None,
    ) -> None:
        """Initialize the Redis cache repository.

        Args:
            redis_client: Async Redis client instance. If None, creates default.
            key_prefix: Namespace for all keys. Defaults to settings.
        """
        self._client = redis_client or get_redis_client()
        self._prefix = key_prefix or settings.cache_key_prefix

    @classmethod
    def create(
        cls,
        redis_client: redis.Redis | None = None,
        key_prefix: str | None = None,
    ) -> "RedisCacheRepository":
        """Factory method to create RedisCacheRepository with defaults.

        Args:
            redis_client: Async Redis client. If None, uses settings.
            key_prefix: Key namespace. If None, uses settings.

        Returns:
            Configured RedisCacheRepository
        """
        return cls(redis_client=redis_client, key_prefix=key_prefix)

    def _entry_key(self, fingerprint: str) -> str:
        return f"{self._prefix}:entry:{fingerprint}"

    def _subject_key(self, subject_id: str) -> str:
        return f"{self._prefix}:subject:{subject_id}"

    async def get(self, fingerprint: str) -> CacheEntryEntity | None:
        """Fetch the entry stored under a fingerprint.

        Args:
            fingerprint: The request fingerprint

        Returns:
            The entry, or None on a miss
        """
        raw = await self._client.get(self._entry_key(fingerprint))
        if raw is None:
            return None
        return decode_entry(raw)

    async def put(self, entry: CacheEntryEntity, ttl: int) -> None:
        """Store an entry in Redis.

        Args:
            entry: The entry to store
            ttl: Time-to-live in seconds (0 = no expiry)
        """
        entry_key = self._entry_key(entry.fingerprint)
        subject_key = self._subject_key(entry.subject_id)

        async with self._client.pipeline(transaction=True) as pipe:
            if ttl > 0:
                pipe.set(entry_key, encode_entry(entry), ex=ttl)
            else:
                pipe.set(entry_key, encode_entry(entry))
            pipe.sadd(subject_key, entry.fingerprint)
            await pipe.execute()

    async def delete_by_subject(self, subject_id: str) -> int:
        """Delete every entry belonging to a subject.

        Args:
            subject_id: The subject whose entries are removed

        Returns:
            Number of entries deleted
        """
        subject_key = self._subject_key(subject_id)
        fingerprints = await self._client.smembers(subject_key)

        count = 0
        if fingerprints:
            keys = [self._entry_key(_as_str(fp)) for fp in fingerprints]
            count = int(await self._client.delete(*keys))
        await self._client.delete(subject_key)
        return count

    async def clear_all(self) -> int:
        """Clear all entries from the cache.

        Returns:
            Number of entries deleted
        """
        count = 0
        async for key in self._client.scan_iter(match=f"{self._prefix}:*"):
            deleted = int(await self._client.delete(key))
            if _as_str(key).startswith(f"{self._prefix}:entry:"):
                count += deleted
        return count

    async def count_all(self) -> int:
        """Count total entries in the cache.

        Returns:
            Total number of cached entries
        """
        count = 0
        async for _ in self._client.scan_iter(match=f"{self._prefix}:entry:*"):
            count += 1
        return count

    async def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    async def get_stats(self) -> dict:
        """Get repository statistics.

        Returns:
            Dictionary with stats
        """
        return {
            "backend": "redis",
            "key_prefix": self._prefix,
            "total_entries": await self.count_all(),
        }

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client


def _as_str(value: str | bytes) -> str:
    return value.decode() if isinstance(value, bytes) else value
