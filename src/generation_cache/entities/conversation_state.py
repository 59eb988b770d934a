"""Conversation state domain entity."""

from dataclasses import dataclass, replace
from datetime import datetime


@dataclass(frozen=True)
class ConversationStateEntity:
    """Durable record of one logical conversation.

    There is exactly one record per (subject_id, scope) pair.

    Attributes:
        id: Unique identifier of the record
        subject_id: Subject the conversation belongs to
        scope: Caller-chosen namespace separating independent conversations
        last_continuation_token: Token of the most recently completed generation
        created_at: Creation time (UTC)
        updated_at: Time of the last token update (UTC)
    """

    id: str
    subject_id: str
    scope: str
    created_at: datetime
    updated_at: datetime
    last_continuation_token: str | None = None

    def with_token(self, token: str, updated_at: datetime) -> "ConversationStateEntity":
        """Return a copy carrying a new continuation token."""
        return replace(self, last_continuation_token=token, updated_at=updated_at)
