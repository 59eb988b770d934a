"""Generation Cache - stateful LLM generation cache with conversation continuity.

This package provides a layered architecture:

Layers:
    - protocols: Interface contracts (Generator, CacheStore, StateStore)
    - repositories: In-memory, Redis and HTTP implementations
    - services: Business logic (fingerprints, prompts, singleflight cache)
    - dto: Request variants and payload schemas (pydantic)
    - entities: Domain models (internal)

Usage:
    ```python
    from generation_cache import GenerationOrchestrator, ResponsesApiGenerator

    orchestrator = GenerationOrchestrator.create(generator=ResponsesApiGenerator.create())
    result = await orchestrator.generate(
        {
            "subject_id": "user-1",
            "request_type": "focus_area",
            "user": {"full_name": "Ada"},
        }
    )
    ```
"""

from generation_cache.config import configure_logging, get_redis_client, get_settings, settings
from generation_cache.dto import GenerationRequest, SamplingOptions, parse_generation_request
from generation_cache.entities import (
    CacheEntryEntity,
    ConversationStateEntity,
    GenerationResultEntity,
    GeneratorReply,
    PersonalizationProfile,
)
from generation_cache.errors import (
    GenerationCacheError,
    GenerationError,
    ProcessingError,
    ValidationError,
)
from generation_cache.protocols import CacheStore, Generator, StateStore
from generation_cache.repositories import (
    InMemoryCacheRepository,
    InMemoryStateStore,
    RedisCacheRepository,
    RedisStateStore,
    ResponsesApiGenerator,
)
from generation_cache.services import (
    ConversationStateManager,
    GenerationCache,
    GenerationOrchestrator,
    PromptAssembler,
    build_fingerprint,
    map_profile,
)

__all__ = [
    # Configuration
    "settings",
    "get_settings",
    "get_redis_client",
    "configure_logging",
    # Protocols (interfaces)
    "CacheStore",
    "Generator",
    "StateStore",
    # Services (business logic)
    "GenerationOrchestrator",
    "GenerationCache",
    "ConversationStateManager",
    "PromptAssembler",
    "build_fingerprint",
    "map_profile",
    # Repositories (data access)
    "InMemoryCacheRepository",
    "InMemoryStateStore",
    "RedisCacheRepository",
    "RedisStateStore",
    "ResponsesApiGenerator",
    # Entities (domain models)
    "CacheEntryEntity",
    "ConversationStateEntity",
    "GenerationResultEntity",
    "GeneratorReply",
    "PersonalizationProfile",
    # DTOs
    "GenerationRequest",
    "SamplingOptions",
    "parse_generation_request",
    # Errors
    "GenerationCacheError",
    "ValidationError",
    "ProcessingError",
    "GenerationError",
]
