"""Request DTOs for the Generate operation.

A generation request is a tagged union discriminated on ``request_type``.
Each variant carries its own strongly typed ``domain_params`` model; only
``subject_id``, ``request_type`` and ``domain_params`` participate in the
cache fingerprint. Sampling options, conversation scope and prompt context
do not.
"""

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from generation_cache.errors import ValidationError


class SamplingOptions(BaseModel):
    """Generator sampling options. Volatile: excluded from cache identity."""

    temperature: float | None = Field(None, description="Sampling temperature", ge=0.0, le=2.0)
    max_output_tokens: int | None = Field(None, description="Upper bound on generated tokens", gt=0)
    model: str | None = Field(None, description="Override the configured generator model")
    timeout: float | None = Field(
        None,
        description="Generator call timeout in seconds (caller-supplied)",
        gt=0.0,
    )
    trace_id: str | None = Field(None, description="Caller trace id for log correlation")


class UserProfile(BaseModel):
    """User profile rendered into prompts."""

    full_name: str | None = None
    professional_title: str | None = None
    skill_level: str | None = None
    learning_style: str | None = None
    focus_areas: list[str] = Field(default_factory=list)
    learning_goals: list[str] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)


class HistoryItem(BaseModel):
    """One past interaction, oldest first in a request's history."""

    title: str
    challenge_type: str | None = None
    difficulty: str | None = None
    focus_area: str | None = None
    score: float | None = Field(None, ge=0.0, le=100.0)


AttitudeScore = Annotated[float, Field(ge=0.0, le=100.0)]


# --- Domain parameters, one model per request type ---------------------------


class _DomainParams(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class ChallengeParams(_DomainParams):
    challenge_type: str = Field(..., min_length=1)
    format_type: str = "open-ended"
    difficulty: str = "intermediate"
    focus_area: str = "general"
    topic: str | None = None
    keywords: list[str] = Field(default_factory=list)


class ChallengeVariationParams(_DomainParams):
    base_challenge_title: str = Field(..., min_length=1)
    base_challenge_content: str = Field(..., min_length=1)
    variation: Literal["harder", "easier", "different_angle"] = "different_angle"
    difficulty: str | None = None


class EvaluationParams(_DomainParams):
    challenge_title: str = Field(..., min_length=1)
    challenge_content: str = ""
    challenge_type: str | None = None
    user_response: str = Field(..., min_length=1)


class PersonalityParams(_DomainParams):
    trait_categories: list[str] = Field(
        default_factory=lambda: [
            "openness",
            "conscientiousness",
            "extraversion",
            "agreeableness",
            "neuroticism",
            "adaptability",
            "creativity",
            "curiosity",
            "persistence",
            "analytical",
        ]
    )
    detail_level: Literal["basic", "detailed", "comprehensive"] = "detailed"


class FocusAreaParams(_DomainParams):
    count: int = Field(3, ge=1, le=10)
    existing_focus_areas: list[str] = Field(default_factory=list)


# --- Request variants --------------------------------------------------------


class _GenerationRequestBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    subject_id: str = Field(..., min_length=1, description="Identity of the subject (user)")
    conversation_scope: str | None = Field(
        None,
        description="Conversation namespace; defaults to the request type",
    )
    force_refresh: bool = Field(False, description="Bypass cache lookup and regenerate")
    sampling: SamplingOptions = Field(default_factory=SamplingOptions)

    # Prompt context
    user: UserProfile | None = None
    history: list[HistoryItem] = Field(default_factory=list)
    attitudes: dict[str, AttitudeScore] | None = Field(
        None,
        description="Attitude scores (0-100) used for personalization",
    )
    traits: list[str] = Field(default_factory=list)

    @property
    def scope(self) -> str:
        """Effective conversation scope."""
        return self.conversation_scope or self.request_type  # type: ignore[attr-defined]


class ChallengeRequest(_GenerationRequestBase):
    request_type: Literal["challenge"] = "challenge"
    domain_params: ChallengeParams


class ChallengeVariationRequest(_GenerationRequestBase):
    request_type: Literal["challenge_variation"] = "challenge_variation"
    domain_params: ChallengeVariationParams


class EvaluationRequest(_GenerationRequestBase):
    request_type: Literal["evaluation"] = "evaluation"
    domain_params: EvaluationParams


class PersonalityRequest(_GenerationRequestBase):
    request_type: Literal["personality"] = "personality"
    domain_params: PersonalityParams = Field(default_factory=PersonalityParams)


class FocusAreaRequest(_GenerationRequestBase):
    request_type: Literal["focus_area"] = "focus_area"
    domain_params: FocusAreaParams = Field(default_factory=FocusAreaParams)


GenerationRequest = Annotated[
    Union[
        ChallengeRequest,
        ChallengeVariationRequest,
        EvaluationRequest,
        PersonalityRequest,
        FocusAreaRequest,
    ],
    Field(discriminator="request_type"),
]

REQUEST_TYPES: tuple[str, ...] = (
    "challenge",
    "challenge_variation",
    "evaluation",
    "personality",
    "focus_area",
)

_request_adapter: TypeAdapter = TypeAdapter(GenerationRequest)


def parse_generation_request(data: Mapping[str, Any] | BaseModel) -> GenerationRequest:
    """Validate raw request data into a typed request variant.

    Args:
        data: A request model (returned unchanged) or a mapping of raw fields

    Returns:
        The validated request variant

    Raises:
        ValidationError: If the data is malformed, misses required fields
            or names an unknown request type
    """
    if isinstance(data, _GenerationRequestBase):
        return data  # type: ignore[return-value]

    raw = data.model_dump() if isinstance(data, BaseModel) else data
    try:
        return _request_adapter.validate_python(raw)
    except PydanticValidationError as e:
        subject_id = raw.get("subject_id") if isinstance(raw, Mapping) else None
        request_type = raw.get("request_type") if isinstance(raw, Mapping) else None
        raise ValidationError(
            f"Invalid generation request: {e.error_count()} error(s): "
            + "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()),
            subject_id=subject_id if isinstance(subject_id, str) else None,
            request_type=request_type if isinstance(request_type, str) else None,
            stage="validation",
        ) from e
