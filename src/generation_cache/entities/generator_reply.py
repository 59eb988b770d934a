"""Generator reply value object."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class GeneratorReply:
    """Raw output of one generator call.

    Attributes:
        payload: Structured output, validated by the orchestrator before use
        continuation_token: Handle a later call can pass to continue the conversation
    """

    payload: dict[str, Any]
    continuation_token: str | None = None
