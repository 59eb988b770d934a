"""Cache entry domain entity."""

from dataclasses import dataclass
from datetime import datetime

from .generation_result import GenerationResultEntity


@dataclass(frozen=True)
class CacheEntryEntity:
    """Domain entity for a cached generation result.

    Entries are replaced as a whole value, never partially updated.

    Attributes:
        fingerprint: Digest identifying the logical request
        result: The generation result stored under the fingerprint
        created_at: When the entry was stored (UTC)
        subject_id: Subject the entry belongs to, used for scoped invalidation
    """

    fingerprint: str
    result: GenerationResultEntity
    created_at: datetime
    subject_id: str
