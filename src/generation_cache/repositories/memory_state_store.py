"""In-process implementation of StateStore."""

import asyncio
import uuid
from datetime import datetime, timezone

from generation_cache.entities import ConversationStateEntity


class InMemoryStateStore:
    """Dictionary-backed StateStore.

    This class satisfies the StateStore protocol through structural
    typing. A single lock serializes find-or-create so one (subject, scope)
    pair never yields two records.
    """

    def __init__(self) -> None:
        self._states: dict[str, ConversationStateEntity] = {}
        self._index: dict[tuple[str, str], str] = {}
        self._lock = asyncio.Lock()

    @classmethod
    def create(cls) -> "InMemoryStateStore":
        """Factory method mirroring the other repositories."""
        return cls()

    async def create_if_absent(self, subject_id: str, scope: str) -> ConversationStateEntity:
        async with self._lock:
            state_id = self._index.get((subject_id, scope))
            if state_id is not None:
                return self._states[state_id]

            now = datetime.now(timezone.utc)
            state = ConversationStateEntity(
                id=uuid.uuid4().hex,
                subject_id=subject_id,
                scope=scope,
                created_at=now,
                updated_at=now,
            )
            self._states[state.id] = state
            self._index[(subject_id, scope)] = state.id
            return state

    async def get(self, state_id: str) -> ConversationStateEntity | None:
        return self._states.get(state_id)

    async def update_token(self, state_id: str, token: str, updated_at: datetime) -> bool:
        async with self._lock:
            state = self._states.get(state_id)
            if state is None:
                return False
            self._states[state_id] = state.with_token(token, updated_at)
            return True

    async def health_check(self) -> bool:
        return True
