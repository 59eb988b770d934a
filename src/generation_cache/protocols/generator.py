"""Generator protocol.

Defines the interface for the external large-language-model endpoint
that turns a prompt into structured output.

Implementations can include:
- OpenAI Responses API (default, see repositories.ResponsesApiGenerator)
- Any Responses-compatible gateway
- Test doubles that count invocations
"""

from typing import Protocol, runtime_checkable

from generation_cache.dto import SamplingOptions
from generation_cache.entities import GeneratorReply


@runtime_checkable
class Generator(Protocol):
    """Protocol for structured-output generators.

    Any type that implements ``send`` satisfies the protocol, no explicit
    inheritance needed.
    """

    async def send(
        self,
        system_prompt: str,
        user_prompt: str,
        continuation_token: str | None = None,
        sampling: SamplingOptions | None = None,
    ) -> GeneratorReply:
        """Send a prompt and return the structured reply.

        Args:
            system_prompt: Instructions framing the generation
            user_prompt: The task-specific prompt
            continuation_token: Handle of a previous reply to continue from
            sampling: Sampling options, including the caller's timeout

        Returns:
            GeneratorReply with the payload and a new continuation token

        Raises:
            Exception: Any upstream failure; the orchestrator wraps it
        """
        ...
