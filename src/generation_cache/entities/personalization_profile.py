"""Personalization profile derived from attitude scores."""

from dataclasses import dataclass
from enum import Enum


class DetailLevel(str, Enum):
    BASIC = "basic"
    DETAILED = "detailed"
    COMPREHENSIVE = "comprehensive"


class CommunicationStyle(str, Enum):
    CASUAL = "casual"
    FORMAL = "formal"
    TECHNICAL = "technical"


class ResponseFormat(str, Enum):
    STRUCTURED = "structured"
    CONVERSATIONAL = "conversational"
    MIXED = "mixed"


@dataclass(frozen=True)
class PersonalizationProfile:
    """How generated content should be pitched to a user.

    Never persisted: it is recomputed from the attitude scores every time
    a prompt is assembled.
    """

    detail_level: DetailLevel = DetailLevel.DETAILED
    communication_style: CommunicationStyle = CommunicationStyle.CASUAL
    response_format: ResponseFormat = ResponseFormat.MIXED
