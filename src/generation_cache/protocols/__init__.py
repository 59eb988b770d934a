"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (in-memory → Redis, OpenAI → gateway)
- Unit testing with fake implementations
- Clear separation of concerns

Usage:
    ```python
    from generation_cache.protocols import CacheStore, Generator, StateStore

    store: CacheStore = InMemoryCacheRepository()  # works
    store: CacheStore = RedisCacheRepository.create()  # also works
    ```
"""

from .cache_store import CacheStore
from .generator import Generator
from .state_store import StateStore

__all__ = [
    "CacheStore",
    "Generator",
    "StateStore",
]
