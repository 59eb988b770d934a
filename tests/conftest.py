"""Shared fixtures for the generation cache tests."""

import asyncio
import itertools
from typing import Any

import pytest

from generation_cache.dto import SamplingOptions
from generation_cache.entities import GeneratorReply
from generation_cache.repositories import InMemoryCacheRepository, InMemoryStateStore
from generation_cache.services import GenerationOrchestrator

CHALLENGE_PAYLOAD: dict[str, Any] = {
    "title": "Spot the fallacy",
    "content": {"context": "A short debate transcript", "scenario": "Two speakers disagree"},
    "questions": [{"id": "q1", "text": "Which argument is weakest?"}],
    "evaluation_criteria": {"reasoning": "Names the fallacy and explains it"},
}


class FakeGenerator:
    """Counting Generator double.

    Returns a fresh continuation token per call. ``gate`` holds every
    call until it is set; ``error`` makes every call fail.
    """

    def __init__(
        self,
        payload: dict[str, Any] | None = None,
        delay: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        self.payload = payload if payload is not None else CHALLENGE_PAYLOAD
        self.delay = delay
        self.error = error
        self.gate: asyncio.Event | None = None
        self.calls: list[dict[str, Any]] = []
        self._ids = itertools.count(1)

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def send(
        self,
        system_prompt: str,
        user_prompt: str,
        continuation_token: str | None = None,
        sampling: SamplingOptions | None = None,
    ) -> GeneratorReply:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "continuation_token": continuation_token,
                "sampling": sampling,
            }
        )
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return GeneratorReply(payload=dict(self.payload), continuation_token=f"resp_{next(self._ids)}")


@pytest.fixture
def generator():
    """Create a counting fake generator."""
    return FakeGenerator()


@pytest.fixture
def cache_store():
    return InMemoryCacheRepository.create()


@pytest.fixture
def state_store():
    return InMemoryStateStore.create()


@pytest.fixture
def orchestrator(generator, cache_store, state_store):
    """Create an orchestrator over in-memory stores and the fake generator."""
    return GenerationOrchestrator.create(
        generator=generator,
        cache_store=cache_store,
        state_store=state_store,
    )


def challenge_request(subject_id: str = "user-1", **overrides: Any) -> dict[str, Any]:
    """Build raw challenge request fields."""
    request: dict[str, Any] = {
        "subject_id": subject_id,
        "request_type": "challenge",
        "domain_params": {"challenge_type": "critical-thinking", "difficulty": "intermediate"},
    }
    request.update(overrides)
    return request
