"""Data Transfer Objects for the public contract.

These Pydantic models define what callers send to Generate and what
shape generator payloads must have. They are used for validation only.

Internal domain logic should use entities from the entities package.
"""

from .payloads import (
    PAYLOAD_SCHEMAS,
    ChallengePayload,
    EvaluationPayload,
    FocusAreaPayload,
    PersonalityPayload,
    validate_payload,
)
from .requests import (
    REQUEST_TYPES,
    ChallengeParams,
    ChallengeRequest,
    ChallengeVariationParams,
    ChallengeVariationRequest,
    EvaluationParams,
    EvaluationRequest,
    FocusAreaParams,
    FocusAreaRequest,
    GenerationRequest,
    HistoryItem,
    PersonalityParams,
    PersonalityRequest,
    SamplingOptions,
    UserProfile,
    parse_generation_request,
)

__all__ = [
    "REQUEST_TYPES",
    "GenerationRequest",
    "ChallengeRequest",
    "ChallengeVariationRequest",
    "EvaluationRequest",
    "PersonalityRequest",
    "FocusAreaRequest",
    "ChallengeParams",
    "ChallengeVariationParams",
    "EvaluationParams",
    "PersonalityParams",
    "FocusAreaParams",
    "SamplingOptions",
    "UserProfile",
    "HistoryItem",
    "parse_generation_request",
    "PAYLOAD_SCHEMAS",
    "ChallengePayload",
    "EvaluationPayload",
    "PersonalityPayload",
    "FocusAreaPayload",
    "validate_payload",
]
