"""Services layer for business logic.

Services orchestrate operations by coordinating repositories and
collaborators. They contain the core business logic:
- fingerprinting and personalization (pure functions)
- prompt assembly
- conversation continuity
- singleflight caching and the public Generate / ClearCache operations
"""

from .conversation_state import ConversationStateManager
from .fingerprint import build_fingerprint, canonicalize
from .generation_cache import DEFAULT_TTL_BY_TYPE, GenerationCache
from .orchestrator import GenerationOrchestrator, GenerationStage
from .profile_mapper import DEFAULT_THRESHOLDS, ProfileThresholds, map_profile
from .prompt_assembler import AssembledPrompt, PromptAssembler, PromptContext, personalization_section

__all__ = [
    "AssembledPrompt",
    "ConversationStateManager",
    "DEFAULT_THRESHOLDS",
    "DEFAULT_TTL_BY_TYPE",
    "GenerationCache",
    "GenerationOrchestrator",
    "GenerationStage",
    "ProfileThresholds",
    "PromptAssembler",
    "PromptContext",
    "build_fingerprint",
    "canonicalize",
    "map_profile",
    "personalization_section",
]
