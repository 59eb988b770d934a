"""Generation result domain entity."""

from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class GenerationResultEntity:
    """Result of a Generate call.

    Attributes:
        payload: Structured, schema-validated output of the generator
        continuation_token: Opaque handle returned by the generator, if any
        from_cache: True when the result was served from the cache
        conversation_state_id: Conversation record used for the generation,
            None when the state store was unavailable (degraded mode)
    """

    payload: dict[str, Any]
    continuation_token: str | None = None
    from_cache: bool = False
    conversation_state_id: str | None = None

    def as_cached(self) -> "GenerationResultEntity":
        """Return a copy flagged as served from the cache."""
        return replace(self, from_cache=True)
