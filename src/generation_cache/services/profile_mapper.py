"""Map attitude scores to a personalization profile.

Pure and deterministic. Comparisons are strict (``>`` and ``<``), so a
score equal to a threshold never crosses it. The order of the
communication style and response format checks is significant: the
first attitude above the significance threshold wins.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from generation_cache.config import settings
from generation_cache.entities import (
    CommunicationStyle,
    DetailLevel,
    PersonalizationProfile,
    ResponseFormat,
)


@dataclass(frozen=True)
class ProfileThresholds:
    tech_high: float = settings.tech_high_threshold
    tech_low: float = settings.tech_low_threshold
    significant: float = settings.significant_attitude_threshold
    default_attitude: float = settings.default_attitude_value


DEFAULT_THRESHOLDS = ProfileThresholds()

# (attitude, style) in priority order
COMMUNICATION_STYLE_PRIORITY: tuple[tuple[str, CommunicationStyle], ...] = (
    ("security_conscious", CommunicationStyle.FORMAL),
    ("experimental", CommunicationStyle.CASUAL),
    ("ethical_concern", CommunicationStyle.TECHNICAL),
)

# (attitude, format) in priority order
RESPONSE_FORMAT_PRIORITY: tuple[tuple[str, ResponseFormat], ...] = (
    ("skeptical", ResponseFormat.STRUCTURED),
    ("early_adopter", ResponseFormat.CONVERSATIONAL),
)


def map_profile(
    attitudes: Mapping[str, float] | None,
    thresholds: ProfileThresholds = DEFAULT_THRESHOLDS,
) -> PersonalizationProfile:
    """Derive a personalization profile from attitude scores (0-100).

    Args:
        attitudes: Attitude scores by name; absent attitudes count as the default
        thresholds: Threshold table to apply

    Returns:
        The derived PersonalizationProfile
    """
    attitudes = attitudes or {}

    def score(name: str) -> float:
        value = attitudes.get(name)
        return thresholds.default_attitude if value is None else value

    tech_sum = score("tech_savvy") + score("early_adopter")
    if tech_sum > thresholds.tech_high:
        detail_level = DetailLevel.COMPREHENSIVE
    elif tech_sum < thresholds.tech_low:
        detail_level = DetailLevel.BASIC
    else:
        detail_level = DetailLevel.DETAILED

    communication_style = _first_significant(
        attitudes, COMMUNICATION_STYLE_PRIORITY, thresholds.significant, CommunicationStyle.CASUAL
    )
    response_format = _first_significant(
        attitudes, RESPONSE_FORMAT_PRIORITY, thresholds.significant, ResponseFormat.MIXED
    )

    return PersonalizationProfile(
        detail_level=detail_level,
        communication_style=communication_style,
        response_format=response_format,
    )


def _first_significant(attitudes, priority, significant, default):
    # Only explicitly present attitudes count; the default never exceeds the threshold
    for name, outcome in priority:
        value = attitudes.get(name)
        if value is not None and value > significant:
            return outcome
    return default
