"""Conversation continuity on top of a StateStore.

Every store failure surfaces as ProcessingError. The orchestrator treats
that as non-fatal and generates without a continuation token.
"""

import logging
from datetime import datetime, timezone

from generation_cache.entities import ConversationStateEntity
from generation_cache.errors import ProcessingError, ValidationError
from generation_cache.protocols import StateStore

logger = logging.getLogger(__name__)


class ConversationStateManager:
    """Find-or-create conversation records and track their last token.

    Example:
        ```python
        manager = ConversationStateManager.create(InMemoryStateStore())
        state = await manager.resolve("user-1", "challenge")
        token = await manager.get_last_token(state.id)
        await manager.set_last_token(state.id, "resp_123")
        ```
    """

    def __init__(self, store: StateStore) -> None:
        """Initialize the manager.

        Args:
            store: Conversation state storage backend (required).
        """
        self._store = store

    @classmethod
    def create(cls, store: StateStore) -> "ConversationStateManager":
        """Factory method to create ConversationStateManager."""
        return cls(store=store)

    async def resolve(self, subject_id: str, scope: str) -> ConversationStateEntity:
        """Return the record for (subject_id, scope), creating it on first use.

        Idempotent; duplicate prevention under concurrency is the store's job.

        Raises:
            ValidationError: If subject_id or scope is empty
            ProcessingError: If the store fails
        """
        if not subject_id or not scope:
            raise ValidationError(
                "subject_id and scope are required to resolve a conversation",
                subject_id=subject_id or None,
                stage="state_resolve",
            )

        try:
            return await self._store.create_if_absent(subject_id, scope)
        except Exception as e:
            raise ProcessingError(
                f"Conversation state store unavailable: {e}",
                subject_id=subject_id,
                stage="state_resolve",
            ) from e

    async def get_last_token(self, state_id: str) -> str | None:
        """Return the last continuation token of a record, if any.

        Raises:
            ProcessingError: If the store fails
        """
        try:
            state = await self._store.get(state_id)
        except Exception as e:
            raise ProcessingError(
                f"Conversation state store unavailable: {e}",
                stage="state_resolve",
            ) from e
        return state.last_continuation_token if state else None

    async def set_last_token(self, state_id: str, token: str) -> None:
        """Record the token of the most recently completed generation.

        Last write wins.

        Raises:
            ProcessingError: If the store fails
        """
        try:
            updated = await self._store.update_token(state_id, token, datetime.now(timezone.utc))
        except Exception as e:
            raise ProcessingError(
                f"Conversation state store unavailable: {e}",
                stage="state_update",
            ) from e

        if not updated:
            logger.warning("Conversation state %s vanished before its token could be updated", state_id)

    async def is_healthy(self) -> bool:
        try:
            return await self._store.health_check()
        except Exception:
            logger.warning("Conversation state store health check failed", exc_info=True)
            return False
