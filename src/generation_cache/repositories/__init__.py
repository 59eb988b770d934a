"""Repository layer for data access.

This layer abstracts external dependencies (Redis, the LLM endpoint)
behind protocol-based interfaces. This enables:
- Easy swapping of implementations (in-memory → Redis, OpenAI → gateway)
- Unit testing with fake implementations
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from generation_cache.protocols import CacheStore, Generator, StateStore

from .memory_cache_repository import InMemoryCacheRepository
from .memory_state_store import InMemoryStateStore
from .redis_repository import RedisCacheRepository
from .redis_state_store import RedisStateStore
from .responses_generator import ResponsesApiGenerator

__all__ = [
    "CacheStore",
    "Generator",
    "StateStore",
    "InMemoryCacheRepository",
    "InMemoryStateStore",
    "RedisCacheRepository",
    "RedisStateStore",
    "ResponsesApiGenerator",
]
