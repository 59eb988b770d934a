"""Cache storage protocol.

Defines the interface for any backend that can hold cache entries keyed
by request fingerprint, with a per-subject index for scoped invalidation.

Implementations can include:
- In-process dictionary (default)
- Redis
"""

from typing import Protocol, runtime_checkable

from generation_cache.entities import CacheEntryEntity


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for cache storage backends.

    Similar to Go's interface pattern - any type that implements these
    methods satisfies the protocol, no explicit inheritance needed.
    """

    async def get(self, fingerprint: str) -> CacheEntryEntity | None:
        """Fetch the entry stored under a fingerprint.

        Args:
            fingerprint: The request fingerprint

        Returns:
            The entry, or None on a miss
        """
        ...

    async def put(self, entry: CacheEntryEntity, ttl: int) -> None:
        """Store an entry, replacing any existing entry for its fingerprint.

        Args:
            entry: The entry to store
            ttl: Time-to-live in seconds (0 = no expiry)
        """
        ...

    async def delete_by_subject(self, subject_id: str) -> int:
        """Delete every entry belonging to a subject.

        Args:
            subject_id: The subject whose entries are removed

        Returns:
            Number of entries deleted
        """
        ...

    async def clear_all(self) -> int:
        """Clear all entries.

        Returns:
            Number of entries deleted
        """
        ...

    async def count_all(self) -> int:
        """Count entries currently stored."""
        ...

    async def health_check(self) -> bool:
        """Check if the backend is accessible.

        Returns:
            True if healthy, False otherwise
        """
        ...

    async def get_stats(self) -> dict:
        """Get backend statistics.

        Returns:
            Dictionary with stats (implementation-specific)
        """
        ...
