"""Prompt assembly.

One template strategy per request type renders the user profile, a
bounded window of recent history and the domain parameters into a
deterministic ``### SECTION`` layout. When attitude scores are present
the system prompt gains personalization clauses derived from
``map_profile``.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass, field

from pydantic import BaseModel

from generation_cache.config import settings
from generation_cache.dto import (
    ChallengeParams,
    ChallengeVariationParams,
    EvaluationParams,
    FocusAreaParams,
    HistoryItem,
    PersonalityParams,
    UserProfile,
)
from generation_cache.entities import (
    CommunicationStyle,
    DetailLevel,
    PersonalizationProfile,
    ResponseFormat,
)
from generation_cache.errors import ValidationError

from .profile_mapper import DEFAULT_THRESHOLDS, ProfileThresholds, map_profile


@dataclass(frozen=True)
class PromptContext:
    """Everything a template strategy may render."""

    request_type: str
    domain_params: BaseModel
    user: UserProfile | None = None
    history: list[HistoryItem] = field(default_factory=list)
    attitudes: dict[str, float] | None = None
    traits: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AssembledPrompt:
    system_prompt: str
    user_prompt: str


_DETAIL_CLAUSES = {
    DetailLevel.BASIC: "Keep explanations short and introduce concepts from first principles.",
    DetailLevel.DETAILED: "Give balanced explanations with concrete examples.",
    DetailLevel.COMPREHENSIVE: "Go in depth: cover nuances, trade-offs and edge cases.",
}

_STYLE_CLAUSES = {
    CommunicationStyle.CASUAL: "Use a friendly, conversational tone.",
    CommunicationStyle.FORMAL: "Use a precise, formal tone.",
    CommunicationStyle.TECHNICAL: "Use exact technical vocabulary.",
}

_FORMAT_CLAUSES = {
    ResponseFormat.STRUCTURED: "Organize content into clearly labelled sections and lists.",
    ResponseFormat.CONVERSATIONAL: "Present content as flowing prose.",
    ResponseFormat.MIXED: "Mix short prose with lists where it helps readability.",
}

_JSON_INSTRUCTION = (
    "Your response MUST be a single JSON object following the exact structure "
    "specified in the prompt. Do not wrap it in markdown."
)


class PromptAssembler:
    """Select a template strategy by request type and render the prompts.

    Example:
        ```python
        assembler = PromptAssembler.create()
        prompt = assembler.build(context)
        print(prompt.system_prompt, prompt.user_prompt)
        ```
    """

    def __init__(
        self,
        history_window: int | None = None,
        thresholds: ProfileThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        """Initialize the assembler.

        Args:
            history_window: Maximum history items rendered. Defaults to settings.
            thresholds: Threshold table for personalization.
        """
        self._history_window = history_window or settings.history_window
        self._thresholds = thresholds
        self._strategies: dict[str, tuple[type[BaseModel], Callable[[PromptContext], AssembledPrompt]]] = {
            "challenge": (ChallengeParams, self._challenge),
            "challenge_variation": (ChallengeVariationParams, self._challenge_variation),
            "evaluation": (EvaluationParams, self._evaluation),
            "personality": (PersonalityParams, self._personality),
            "focus_area": (FocusAreaParams, self._focus_area),
        }

    @classmethod
    def create(cls, history_window: int | None = None) -> "PromptAssembler":
        """Factory method to create PromptAssembler with defaults."""
        return cls(history_window=history_window)

    @property
    def request_types(self) -> tuple[str, ...]:
        return tuple(self._strategies)

    def check(self, context: PromptContext) -> None:
        """Validate that a context can be rendered.

        Raises:
            ValidationError: If the request type is unknown or required
                context is missing
        """
        strategy = self._strategies.get(context.request_type)
        if strategy is None:
            raise ValidationError(
                f"Unknown request type: {context.request_type!r}",
                request_type=context.request_type,
                stage="prompt_build",
            )

        params_type, _ = strategy
        if not isinstance(context.domain_params, params_type):
            raise ValidationError(
                f"{context.request_type} requires {params_type.__name__}, "
                f"got {type(context.domain_params).__name__}",
                request_type=context.request_type,
                stage="prompt_build",
            )

        if context.request_type in ("personality", "focus_area") and context.user is None:
            raise ValidationError(
                f"{context.request_type} prompts require a user profile",
                request_type=context.request_type,
                stage="prompt_build",
            )

    def build(self, context: PromptContext) -> AssembledPrompt:
        """Render the system and user prompts for a context.

        Args:
            context: Request type, domain parameters and prompt context

        Returns:
            AssembledPrompt with both prompts

        Raises:
            ValidationError: If the context cannot be rendered
        """
        self.check(context)
        _, render = self._strategies[context.request_type]
        prompt = render(context)

        if context.attitudes is not None:
            profile = map_profile(context.attitudes, self._thresholds)
            prompt = AssembledPrompt(
                system_prompt=prompt.system_prompt + "\n\n" + personalization_section(profile),
                user_prompt=prompt.user_prompt,
            )
        return prompt

    # --- Shared sections -----------------------------------------------------

    def _recent(self, history: list[HistoryItem]) -> list[HistoryItem]:
        return history[-self._history_window :]

    def _user_section(self, user: UserProfile | None, traits: list[str]) -> str:
        if user is None and not traits:
            return ""

        user = user or UserProfile()
        lines = [
            "### USER PROFILE",
            f"Name: {user.full_name or 'Anonymous'}",
            f"Professional Title: {user.professional_title or 'Professional'}",
        ]
        if user.skill_level:
            lines.append(f"Skill Level: {user.skill_level}")
        if user.learning_style:
            lines.append(f"Learning Style: {user.learning_style}")
        if user.focus_areas:
            lines.append(f"Focus Areas: {', '.join(user.focus_areas)}")
        if user.learning_goals:
            lines.append(f"Learning Goals: {', '.join(user.learning_goals)}")
        if user.interests:
            lines.append(f"Interests: {', '.join(user.interests)}")
        if traits:
            lines.append(f"Dominant Traits: {', '.join(traits)}")
        return "\n".join(lines) + "\n\n"

    def _history_section(self, history: list[HistoryItem], heading: str = "RECENT CHALLENGES") -> str:
        recent = self._recent(history)
        if not recent:
            return ""

        lines = [f"### {heading}"]
        for idx, item in enumerate(recent, start=1):
            line = (
                f"{idx}. {item.title} ({item.challenge_type or 'Unknown type'}, "
                f"{item.difficulty or 'Not specified'})"
            )
            if item.focus_area:
                line += f" - {item.focus_area}"
            if item.score is not None:
                line += f" - score {item.score:g}"
            lines.append(line)
        return "\n".join(lines) + "\n\n"

    @staticmethod
    def _format_section(structure: dict) -> str:
        return (
            "### RESPONSE FORMAT\n"
            "Return a JSON object with the following structure:\n\n"
            + json.dumps(structure, indent=2)
        )

    # --- Strategies ----------------------------------------------------------

    def _challenge(self, context: PromptContext) -> AssembledPrompt:
        params: ChallengeParams = context.domain_params  # type: ignore[assignment]

        prompt = "### CHALLENGE GENERATION TASK\n\n"
        prompt += "Generate a challenge for the user based on their profile and the specified parameters.\n\n"
        prompt += self._user_section(context.user, context.traits)

        prompt += "### CHALLENGE PARAMETERS\n"
        prompt += f"Type: {params.challenge_type}\n"
        prompt += f"Format: {params.format_type}\n"
        prompt += f"Difficulty: {params.difficulty}\n"
        prompt += f"Focus Area: {params.focus_area}\n"
        if params.topic:
            prompt += f"Topic: {params.topic}\n"
        if params.keywords:
            prompt += f"Keywords: {', '.join(params.keywords)}\n"
        prompt += "\n"

        history = self._history_section(context.history)
        if history:
            prompt += history
            prompt += "### ADAPTATION GUIDANCE\n"
            prompt += "- Avoid repeating challenge types the user has recently encountered.\n\n"

        prompt += self._format_section(
            {
                "title": "Challenge title",
                "content": {"context": "Background information", "scenario": "Specific scenario"},
                "questions": [{"id": "q1", "text": "Question text", "type": params.format_type}],
                "evaluation_criteria": {"criterion": "What a strong answer demonstrates"},
            }
        )

        system = (
            f"You are an AI challenge creator specializing in {params.challenge_type} challenges "
            f"at {params.difficulty} difficulty. "
            "Your challenge should be engaging, clear, and aligned with the user's profile and learning goals."
        )
        return AssembledPrompt(system_prompt=f"{system}\n\n{_JSON_INSTRUCTION}", user_prompt=prompt)

    def _challenge_variation(self, context: PromptContext) -> AssembledPrompt:
        params: ChallengeVariationParams = context.domain_params  # type: ignore[assignment]

        guidance = {
            "harder": "Increase the difficulty: add constraints and require deeper reasoning.",
            "easier": "Reduce the difficulty: simplify the scenario and give more guidance.",
            "different_angle": "Keep the difficulty but approach the topic from a different perspective.",
        }[params.variation]

        prompt = "### CHALLENGE VARIATION TASK\n\n"
        prompt += "Create a variation of the base challenge below.\n\n"
        prompt += self._user_section(context.user, context.traits)
        prompt += "### BASE CHALLENGE\n"
        prompt += f"Title: {params.base_challenge_title}\n"
        prompt += f"Content: {params.base_challenge_content}\n\n"
        prompt += "### VARIATION PARAMETERS\n"
        prompt += f"Variation: {params.variation}\n"
        if params.difficulty:
            prompt += f"Target Difficulty: {params.difficulty}\n"
        prompt += f"- {guidance}\n\n"
        prompt += self._history_section(context.history)
        prompt += self._format_section(
            {
                "title": "Variation title",
                "content": {"context": "Background information", "scenario": "Specific scenario"},
                "questions": [{"id": "q1", "text": "Question text"}],
                "evaluation_criteria": {"criterion": "What a strong answer demonstrates"},
            }
        )

        system = "You are an AI challenge creator who adapts existing challenges while keeping their learning goal."
        return AssembledPrompt(system_prompt=f"{system}\n\n{_JSON_INSTRUCTION}", user_prompt=prompt)

    def _evaluation(self, context: PromptContext) -> AssembledPrompt:
        params: EvaluationParams = context.domain_params  # type: ignore[assignment]

        prompt = "### EVALUATION TASK\n\n"
        prompt += "Evaluate the user's response to the challenge below.\n\n"
        prompt += self._user_section(context.user, context.traits)
        prompt += "### CHALLENGE\n"
        prompt += f"Title: {params.challenge_title}\n"
        if params.challenge_type:
            prompt += f"Type: {params.challenge_type}\n"
        if params.challenge_content:
            prompt += f"Content: {params.challenge_content}\n"
        prompt += "\n### USER RESPONSE\n"
        prompt += f"{params.user_response}\n\n"
        prompt += self._history_section(context.history, heading="PREVIOUS RESULTS")
        prompt += self._format_section(
            {
                "score": "0-100",
                "feedback": "Overall feedback",
                "strengths": ["Strength"],
                "areas_for_improvement": ["Area"],
            }
        )

        system = (
            "You are an expert evaluator. Score fairly on a 0-100 scale and give specific, "
            "actionable feedback."
        )
        return AssembledPrompt(system_prompt=f"{system}\n\n{_JSON_INSTRUCTION}", user_prompt=prompt)

    def _personality(self, context: PromptContext) -> AssembledPrompt:
        params: PersonalityParams = context.domain_params  # type: ignore[assignment]

        prompt = "### PERSONALITY INSIGHT TASK\n\n"
        prompt += "Assess the user's personality traits from their profile and recent activity.\n\n"
        prompt += self._user_section(context.user, context.traits)
        prompt += "### TRAIT CATEGORIES\n"
        prompt += "\n".join(f"- {name}" for name in params.trait_categories) + "\n\n"
        prompt += f"Detail Level: {params.detail_level}\n\n"
        prompt += self._history_section(context.history)
        prompt += self._format_section(
            {
                "traits": {name: "0-100" for name in params.trait_categories},
                "insights": ["Insight"],
                "communication_style": "Suggested communication style",
            }
        )

        system = "You are a personality analyst who derives balanced, evidence-based trait scores."
        return AssembledPrompt(system_prompt=f"{system}\n\n{_JSON_INSTRUCTION}", user_prompt=prompt)

    def _focus_area(self, context: PromptContext) -> AssembledPrompt:
        params: FocusAreaParams = context.domain_params  # type: ignore[assignment]

        prompt = "### FOCUS AREA RECOMMENDATION TASK\n\n"
        prompt += f"Recommend {params.count} focus area(s) for the user's next learning steps.\n\n"
        prompt += self._user_section(context.user, context.traits)
        if params.existing_focus_areas:
            prompt += "### EXISTING FOCUS AREAS\n"
            prompt += "\n".join(f"- {name}" for name in params.existing_focus_areas) + "\n\n"
        prompt += self._history_section(context.history)
        prompt += self._format_section(
            {"focus_areas": [{"name": "Focus area", "description": "Why it fits", "priority": 1}]}
        )

        system = "You are a learning coach who recommends focus areas tailored to a user's profile and progress."
        return AssembledPrompt(system_prompt=f"{system}\n\n{_JSON_INSTRUCTION}", user_prompt=prompt)


def personalization_section(profile: PersonalizationProfile) -> str:
    """Render profile-derived clauses for the system prompt."""
    return "\n".join(
        [
            "Personalization:",
            f"- Detail level ({profile.detail_level.value}): {_DETAIL_CLAUSES[profile.detail_level]}",
            f"- Communication style ({profile.communication_style.value}): "
            f"{_STYLE_CLAUSES[profile.communication_style]}",
            f"- Response format ({profile.response_format.value}): {_FORMAT_CLAUSES[profile.response_format]}",
        ]
    )
