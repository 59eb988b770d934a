"""Conversation state storage protocol.

Defines the interface for durable storage of conversation records keyed
by (subject_id, scope).

Implementations can include:
- In-process dictionary guarded by a single-writer lock
- Redis (SET NX on a scope index key)
- Any database with a unique constraint on (subject_id, scope)
"""

from datetime import datetime
from typing import Protocol, runtime_checkable

from generation_cache.entities import ConversationStateEntity


@runtime_checkable
class StateStore(Protocol):
    """Protocol for conversation state storage backends."""

    async def create_if_absent(self, subject_id: str, scope: str) -> ConversationStateEntity:
        """Return the record for (subject_id, scope), creating it if missing.

        Concurrent calls for the same pair must never create two records.

        Args:
            subject_id: Subject the conversation belongs to
            scope: Conversation namespace

        Returns:
            The existing or newly created record
        """
        ...

    async def get(self, state_id: str) -> ConversationStateEntity | None:
        """Fetch a record by id.

        Args:
            state_id: The record id

        Returns:
            The record, or None if it does not exist
        """
        ...

    async def update_token(self, state_id: str, token: str, updated_at: datetime) -> bool:
        """Set the last continuation token of a record (last write wins).

        Args:
            state_id: The record id
            token: The new continuation token
            updated_at: Update timestamp

        Returns:
            True if the record existed and was updated, False otherwise
        """
        ...

    async def health_check(self) -> bool:
        """Check if the store is accessible.

        Returns:
            True if healthy, False otherwise
        """
        ...
