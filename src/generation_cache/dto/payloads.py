"""Schemas for structured generator payloads.

Generator output is validated against the schema of its request type
before it may be returned or cached.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    model_config = ConfigDict(extra="allow")


class ChallengeQuestion(_Payload):
    id: str
    text: str = Field(..., min_length=1)
    type: str = "open-ended"
    options: list[str] = Field(default_factory=list)


class ChallengePayload(_Payload):
    title: str = Field(..., min_length=1)
    content: dict[str, Any] | str
    questions: list[ChallengeQuestion] = Field(default_factory=list)
    evaluation_criteria: dict[str, Any] = Field(default_factory=dict)


class EvaluationPayload(_Payload):
    score: float = Field(..., ge=0.0, le=100.0)
    feedback: str = Field(..., min_length=1)
    strengths: list[str] = Field(default_factory=list)
    areas_for_improvement: list[str] = Field(default_factory=list)


class PersonalityPayload(_Payload):
    traits: dict[str, float]
    insights: list[str] = Field(default_factory=list)
    communication_style: str | None = None


class FocusAreaItem(_Payload):
    name: str = Field(..., min_length=1)
    description: str = ""
    priority: int | None = None


class FocusAreaPayload(_Payload):
    focus_areas: list[FocusAreaItem] = Field(..., min_length=1)


PAYLOAD_SCHEMAS: dict[str, type[BaseModel]] = {
    "challenge": ChallengePayload,
    "challenge_variation": ChallengePayload,
    "evaluation": EvaluationPayload,
    "personality": PersonalityPayload,
    "focus_area": FocusAreaPayload,
}


def validate_payload(request_type: str, payload: Any) -> dict[str, Any]:
    """Validate a generator payload against its request type schema.

    Args:
        request_type: The request type the payload was generated for
        payload: Raw structured payload from the generator

    Returns:
        The validated payload as a plain JSON-compatible dict

    Raises:
        KeyError: If no schema exists for the request type
        pydantic.ValidationError: If the payload does not match the schema
    """
    schema = PAYLOAD_SCHEMAS[request_type]
    return schema.model_validate(payload).model_dump(mode="json")
