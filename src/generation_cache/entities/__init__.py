"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by services
and repositories. They are NOT used for request validation - use the
pydantic models from the dto package for that.

Entities should have:
- No JSON serialization logic
- No Pydantic validation
- No external dependencies
"""

from .cache_entry import CacheEntryEntity
from .conversation_state import ConversationStateEntity
from .generation_result import GenerationResultEntity
from .generator_reply import GeneratorReply
from .personalization_profile import (
    CommunicationStyle,
    DetailLevel,
    PersonalizationProfile,
    ResponseFormat,
)

__all__ = [
    "CacheEntryEntity",
    "CommunicationStyle",
    "ConversationStateEntity",
    "DetailLevel",
    "GenerationResultEntity",
    "GeneratorReply",
    "PersonalizationProfile",
    "ResponseFormat",
]
