"""Redis implementation of StateStore.

Layout under the configured prefix:
- ``{prefix}:record:{state_id}``           hash with the record fields
- ``{prefix}:scope:{subject_id}:{scope}``  id of the record for the pair

The scope index key is claimed with SET NX, which acts as the unique
constraint on (subject_id, scope). The record hash is written before the
claim so a winner's record is always readable once its index exists.
"""

import logging
import uuid
from datetime import datetime, timezone

import redis.asyncio as redis
from redis.exceptions import RedisError

from generation_cache.config import get_redis_client, settings
from generation_cache.entities import ConversationStateEntity

from .codec import decode_state, encode_state

logger = logging.getLogger(__name__)


class RedisStateStore:
    """Redis implementation of the StateStore protocol."""

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        key_prefix: str | None = None,
        ttl: int | None = None,
    ) -> None:
        """Initialize the Redis state store.

        Args:
            redis_client: Async Redis client instance. If None, creates default.
            key_prefix: Namespace for all keys. Defaults to settings.
            ttl: Record expiry in seconds, 0 for none. Defaults to settings.
        """
        self._client = redis_client or get_redis_client()
        self._prefix = key_prefix or settings.state_key_prefix
        self._ttl = settings.state_ttl if ttl is None else ttl

    @classmethod
    def create(
        cls,
        redis_client: redis.Redis | None = None,
        key_prefix: str | None = None,
        ttl: int | None = None,
    ) -> "RedisStateStore":
        """Factory method to create RedisStateStore with defaults."""
        return cls(redis_client=redis_client, key_prefix=key_prefix, ttl=ttl)

    def _record_key(self, state_id: str) -> str:
        return f"{self._prefix}:record:{state_id}"

    def _scope_key(self, subject_id: str, scope: str) -> str:
        return f"{self._prefix}:scope:{subject_id}:{scope}"

    async def create_if_absent(self, subject_id: str, scope: str) -> ConversationStateEntity:
        scope_key = self._scope_key(subject_id, scope)

        existing_id = await self._client.get(scope_key)
        if existing_id is not None:
            state = await self.get(_as_str(existing_id))
            if state is not None:
                return state
            # Index points at an expired record; reclaim the pair
            await self._client.delete(scope_key)

        now = datetime.now(timezone.utc)
        candidate = ConversationStateEntity(
            id=uuid.uuid4().hex,
            subject_id=subject_id,
            scope=scope,
            created_at=now,
            updated_at=now,
        )
        record_key = self._record_key(candidate.id)
        await self._client.hset(record_key, mapping=encode_state(candidate))

        ttl = self._ttl if self._ttl > 0 else None
        if ttl:
            await self._client.expire(record_key, ttl)
        claimed = await self._client.set(scope_key, candidate.id, nx=True, ex=ttl)
        if claimed:
            logger.info(
                "Created conversation state %s for subject=%s scope=%s",
                candidate.id,
                subject_id,
                scope,
            )
            return candidate

        # Lost the race: drop our record and return the winner's
        await self._client.delete(record_key)
        winner_id = await self._client.get(scope_key)
        winner = await self.get(_as_str(winner_id)) if winner_id is not None else None
        if winner is None:
            raise RedisError(f"Conversation state for {subject_id}/{scope} vanished during creation")
        return winner

    async def get(self, state_id: str) -> ConversationStateEntity | None:
        mapping = await self._client.hgetall(self._record_key(state_id))
        if not mapping:
            return None
        return decode_state(mapping)

    async def update_token(self, state_id: str, token: str, updated_at: datetime) -> bool:
        state = await self.get(state_id)
        if state is None:
            return False

        # Rewrite the whole record so a concurrent expiry never leaves a partial hash
        record_key = self._record_key(state_id)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.hset(record_key, mapping=encode_state(state.with_token(token, updated_at)))
            if self._ttl > 0:
                pipe.expire(record_key, self._ttl)
                pipe.expire(self._scope_key(state.subject_id, state.scope), self._ttl)
            await pipe.execute()
        return True

    async def health_check(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False


def _as_str(value: str | bytes) -> str:
    return value.decode() if isinstance(value, bytes) else value
