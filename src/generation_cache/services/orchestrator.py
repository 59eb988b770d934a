"""Public Generate / ClearCache operations.

Per request: START -> CACHE_CHECK -> (hit: DONE) -> STATE_RESOLVE ->
PROMPT_BUILD -> GENERATE -> STATE_UPDATE -> CACHE_STORE -> DONE.
Validation failures happen before any side effect; a failed or
unparsable generation never reaches the cache.
"""

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from generation_cache.config import get_redis_client, settings
from generation_cache.dto import GenerationRequest, parse_generation_request, validate_payload
from generation_cache.entities import GenerationResultEntity
from generation_cache.errors import GenerationError, ProcessingError
from generation_cache.protocols import CacheStore, Generator, StateStore
from generation_cache.repositories import (
    InMemoryCacheRepository,
    InMemoryStateStore,
    RedisCacheRepository,
    RedisStateStore,
)

from .conversation_state import ConversationStateManager
from .fingerprint import build_fingerprint
from .generation_cache import DEFAULT_TTL_BY_TYPE, GenerationCache
from .prompt_assembler import PromptAssembler, PromptContext

logger = logging.getLogger(__name__)


class GenerationStage(str, Enum):
    START = "start"
    VALIDATION = "validation"
    CACHE_CHECK = "cache_check"
    STATE_RESOLVE = "state_resolve"
    PROMPT_BUILD = "prompt_build"
    GENERATE = "generate"
    STATE_UPDATE = "state_update"
    CACHE_STORE = "cache_store"
    DONE = "done"


class GenerationOrchestrator:
    """Compose fingerprinting, caching, conversation state and prompts.

    This service depends on PROTOCOLS, not concrete implementations:
    - Generator: Responses API, a gateway, or a test fake
    - CacheStore / StateStore: in-memory or Redis

    Example:
        ```python
        orchestrator = GenerationOrchestrator.create(generator=ResponsesApiGenerator.create())

        result = await orchestrator.generate(
            {
                "subject_id": "user-1",
                "request_type": "challenge",
                "domain_params": {"challenge_type": "critical-thinking"},
            }
        )
        print(result.payload, result.from_cache)

        await orchestrator.clear_cache("user-1")
        ```
    """

    def __init__(
        self,
        generator: Generator,
        cache: GenerationCache,
        state_manager: ConversationStateManager,
        assembler: PromptAssembler,
        ttl_by_type: Mapping[str, int] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            generator: LLM endpoint client (required).
            cache: Shared generation cache (required).
            state_manager: Conversation continuity manager (required).
            assembler: Prompt assembler (required).
            ttl_by_type: Entry lifetime per request type. Defaults to DEFAULT_TTL_BY_TYPE.
        """
        self._generator = generator
        self._cache = cache
        self._state = state_manager
        self._assembler = assembler
        self._ttl_by_type = dict(DEFAULT_TTL_BY_TYPE if ttl_by_type is None else ttl_by_type)

    @classmethod
    def create(
        cls,
        generator: Generator,
        cache_store: CacheStore | None = None,
        state_store: StateStore | None = None,
        cache_ttl: int | None = None,
        history_window: int | None = None,
    ) -> "GenerationOrchestrator":
        """Factory method to create GenerationOrchestrator with sensible defaults.

        Args:
            generator: LLM endpoint client (required).
            cache_store: Cache backend. If None, an in-memory store.
            state_store: Conversation state backend. If None, an in-memory store.
            cache_ttl: Fallback entry lifetime. If None, uses settings.
            history_window: History items rendered into prompts. If None, uses settings.

        Returns:
            Configured GenerationOrchestrator instance
        """
        return cls(
            generator=generator,
            cache=GenerationCache.create(cache_store or InMemoryCacheRepository.create(), ttl=cache_ttl),
            state_manager=ConversationStateManager.create(state_store or InMemoryStateStore.create()),
            assembler=PromptAssembler.create(history_window=history_window),
        )

    @classmethod
    def from_settings(cls, generator: Generator) -> "GenerationOrchestrator":
        """Create an orchestrator with the backends selected in settings.

        Both Redis-backed stores share one client when both are enabled.
        """
        redis_client = None
        if "redis" in (settings.cache_backend, settings.state_backend):
            redis_client = get_redis_client()

        cache_store: CacheStore = (
            RedisCacheRepository.create(redis_client=redis_client)
            if settings.cache_backend == "redis"
            else InMemoryCacheRepository.create()
        )
        state_store: StateStore = (
            RedisStateStore.create(redis_client=redis_client)
            if settings.state_backend == "redis"
            else InMemoryStateStore.create()
        )
        return cls.create(generator=generator, cache_store=cache_store, state_store=state_store)

    @property
    def cache(self) -> GenerationCache:
        return self._cache

    async def generate(self, request: GenerationRequest | Mapping[str, Any]) -> GenerationResultEntity:
        """Serve a generation request from the cache or the generator.

        Args:
            request: A request variant, or raw fields to validate into one

        Returns:
            GenerationResultEntity; from_cache is True on a cache hit

        Raises:
            ValidationError: If the request is malformed (no side effects)
            GenerationError: If the generator fails or returns an invalid payload
        """
        request = parse_generation_request(request)
        request_type = request.request_type
        params = request.domain_params.model_dump(mode="json")
        fingerprint = build_fingerprint(request.subject_id, request_type, params)

        context = PromptContext(
            request_type=request_type,
            domain_params=request.domain_params,
            user=request.user,
            history=list(request.history),
            attitudes=request.attitudes,
            traits=list(request.traits),
        )
        self._assembler.check(context)

        async def _produce() -> GenerationResultEntity:
            return await self._generate_uncached(request, context, fingerprint)

        return await self._cache.get_or_generate(
            fingerprint,
            request.subject_id,
            _produce,
            force_refresh=request.force_refresh,
            ttl=self._ttl_by_type.get(request_type),
        )

    async def clear_cache(self, subject_id: str | None = None) -> int:
        """Invalidate one subject's entries, or every entry when subject_id is None.

        Returns:
            Number of entries removed

        Raises:
            ProcessingError: If the cache backend fails
        """
        if subject_id is None:
            return await self._cache.invalidate_all()
        return await self._cache.invalidate(subject_id)

    async def get_stats(self) -> dict:
        """Get orchestrator statistics."""
        return {
            "cache": await self._cache.get_stats(),
            "ttl_by_type": dict(self._ttl_by_type),
        }

    async def is_healthy(self) -> bool:
        """Check that the cache and state backends are reachable."""
        return await self._cache.is_healthy() and await self._state.is_healthy()

    async def _generate_uncached(
        self,
        request: GenerationRequest,
        context: PromptContext,
        fingerprint: str,
    ) -> GenerationResultEntity:
        subject_id = request.subject_id
        request_type = request.request_type
        error_context = {"fingerprint": fingerprint, "subject_id": subject_id, "request_type": request_type}

        # STATE_RESOLVE: degraded mode on failure
        state_id: str | None = None
        continuation_token: str | None = None
        try:
            state = await self._state.resolve(subject_id, request.scope)
            state_id = state.id
            continuation_token = await self._state.get_last_token(state.id)
        except ProcessingError as e:
            logger.warning(
                "Conversation state unavailable, generating without continuation "
                "(fingerprint=%s, subject_id=%s, request_type=%s): %s",
                fingerprint,
                subject_id,
                request_type,
                e.message,
            )
            continuation_token = None

        # PROMPT_BUILD
        prompt = self._assembler.build(context)

        # GENERATE
        try:
            reply = await self._generator.send(
                prompt.system_prompt,
                prompt.user_prompt,
                continuation_token=continuation_token,
                sampling=request.sampling,
            )
        except Exception as e:
            logger.error(
                "Generator failed (fingerprint=%s, subject_id=%s, request_type=%s): %s",
                fingerprint,
                subject_id,
                request_type,
                e,
            )
            raise GenerationError(
                f"Generator call failed: {e}", stage=GenerationStage.GENERATE.value, **error_context
            ) from e

        try:
            payload = validate_payload(request_type, reply.payload)
        except (PydanticValidationError, KeyError, TypeError) as e:
            logger.error(
                "Generator returned an invalid payload (fingerprint=%s, subject_id=%s, request_type=%s)",
                fingerprint,
                subject_id,
                request_type,
            )
            raise GenerationError(
                f"Generated payload does not match the {request_type} schema",
                stage=GenerationStage.GENERATE.value,
                **error_context,
            ) from e

        # STATE_UPDATE: advisory, never fails the request
        if state_id is not None and reply.continuation_token:
            try:
                await self._state.set_last_token(state_id, reply.continuation_token)
            except ProcessingError as e:
                logger.warning(
                    "Could not record continuation token (fingerprint=%s, subject_id=%s): %s",
                    fingerprint,
                    subject_id,
                    e.message,
                )

        logger.info(
            "Generated %s result (fingerprint=%s, subject_id=%s, continued=%s)",
            request_type,
            fingerprint,
            subject_id,
            continuation_token is not None,
        )
        return GenerationResultEntity(
            payload=payload,
            continuation_token=reply.continuation_token,
            from_cache=False,
            conversation_state_id=state_id,
        )
