"""Tests for conversation continuity."""

import asyncio

import pytest

from generation_cache.errors import ProcessingError, ValidationError
from generation_cache.repositories import InMemoryStateStore
from generation_cache.services import ConversationStateManager


class BrokenStateStore:
    """StateStore whose every call fails."""

    async def create_if_absent(self, subject_id, scope):
        raise ConnectionError("state store down")

    async def get(self, state_id):
        raise ConnectionError("state store down")

    async def update_token(self, state_id, token, updated_at):
        raise ConnectionError("state store down")

    async def health_check(self):
        raise ConnectionError("state store down")


@pytest.fixture
def manager():
    return ConversationStateManager.create(InMemoryStateStore())


@pytest.mark.asyncio
async def test_resolve_is_idempotent(manager):
    first = await manager.resolve("user-1", "challenge")
    second = await manager.resolve("user-1", "challenge")
    assert first.id == second.id
    assert first.last_continuation_token is None


@pytest.mark.asyncio
async def test_concurrent_resolve_creates_one_record(manager):
    """Concurrent find-or-create for one pair yields a single record."""
    states = await asyncio.gather(*(manager.resolve("user-1", "challenge") for _ in range(20)))
    assert len({state.id for state in states}) == 1


@pytest.mark.asyncio
async def test_scopes_and_subjects_are_independent(manager):
    a = await manager.resolve("user-1", "challenge")
    b = await manager.resolve("user-1", "evaluation")
    c = await manager.resolve("user-2", "challenge")
    assert len({a.id, b.id, c.id}) == 3


@pytest.mark.asyncio
async def test_last_token_round_trip(manager):
    """The most recently set token is observable by the next resolve."""
    state = await manager.resolve("user-1", "challenge")
    await manager.set_last_token(state.id, "resp_1")
    await manager.set_last_token(state.id, "resp_2")

    again = await manager.resolve("user-1", "challenge")
    assert await manager.get_last_token(again.id) == "resp_2"


@pytest.mark.asyncio
async def test_unknown_state_has_no_token(manager):
    assert await manager.get_last_token("missing") is None
    # Updating a missing record is logged, not raised
    await manager.set_last_token("missing", "resp_1")


@pytest.mark.asyncio
async def test_resolve_requires_subject_and_scope(manager):
    with pytest.raises(ValidationError):
        await manager.resolve("", "challenge")
    with pytest.raises(ValidationError):
        await manager.resolve("user-1", "")


@pytest.mark.asyncio
async def test_store_failures_surface_as_processing_error():
    manager = ConversationStateManager(BrokenStateStore())

    with pytest.raises(ProcessingError) as exc_info:
        await manager.resolve("user-1", "challenge")
    assert exc_info.value.subject_id == "user-1"
    assert isinstance(exc_info.value.__cause__, ConnectionError)

    with pytest.raises(ProcessingError):
        await manager.get_last_token("state-1")
    with pytest.raises(ProcessingError):
        await manager.set_last_token("state-1", "resp_1")

    assert await manager.is_healthy() is False
