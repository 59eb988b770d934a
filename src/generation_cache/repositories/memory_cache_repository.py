"""In-process implementation of CacheStore.

Entries are kept as encoded JSON so callers can never mutate a stored
value through a returned payload.
"""

import time

from generation_cache.entities import CacheEntryEntity

from .codec import decode_entry, encode_entry


class InMemoryCacheRepository:
    """Dictionary-backed CacheStore with per-subject index and TTL.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed. It is the default backend
    for a single-process deployment.
    """

    def __init__(self) -> None:
        # fingerprint -> (encoded entry, expires_at or None)
        self._entries: dict[str, tuple[str, float | None]] = {}
        self._by_subject: dict[str, set[str]] = {}
        self._subject_of: dict[str, str] = {}

    @classmethod
    def create(cls) -> "InMemoryCacheRepository":
        """Factory method mirroring the other repositories."""
        return cls()

    async def get(self, fingerprint: str) -> CacheEntryEntity | None:
        item = self._entries.get(fingerprint)
        if item is None:
            return None

        raw, expires_at = item
        if expires_at is not None and expires_at <= time.monotonic():
            self._remove(fingerprint)
            return None
        return decode_entry(raw)

    async def put(self, entry: CacheEntryEntity, ttl: int) -> None:
        self._purge_expired()
        expires_at = time.monotonic() + ttl if ttl > 0 else None
        self._entries[entry.fingerprint] = (encode_entry(entry), expires_at)
        self._subject_of[entry.fingerprint] = entry.subject_id
        self._by_subject.setdefault(entry.subject_id, set()).add(entry.fingerprint)

    async def delete_by_subject(self, subject_id: str) -> int:
        self._purge_expired()
        fingerprints = self._by_subject.pop(subject_id, set())
        count = 0
        for fingerprint in fingerprints:
            self._subject_of.pop(fingerprint, None)
            if self._entries.pop(fingerprint, None) is not None:
                count += 1
        return count

    async def clear_all(self) -> int:
        self._purge_expired()
        count = len(self._entries)
        self._entries.clear()
        self._by_subject.clear()
        self._subject_of.clear()
        return count

    async def count_all(self) -> int:
        self._purge_expired()
        return len(self._entries)

    async def health_check(self) -> bool:
        return True

    async def get_stats(self) -> dict:
        return {
            "backend": "memory",
            "total_entries": await self.count_all(),
            "subjects": len(self._by_subject),
        }

    def _purge_expired(self) -> None:
        now = time.monotonic()
        expired = [
            fingerprint
            for fingerprint, (_, expires_at) in self._entries.items()
            if expires_at is not None and expires_at <= now
        ]
        for fingerprint in expired:
            self._remove(fingerprint)

    def _remove(self, fingerprint: str) -> None:
        self._entries.pop(fingerprint, None)
        subject_id = self._subject_of.pop(fingerprint, None)
        if subject_id is None:
            return
        fingerprints = self._by_subject.get(subject_id)
        if fingerprints is not None:
            fingerprints.discard(fingerprint)
            if not fingerprints:
                del self._by_subject[subject_id]
