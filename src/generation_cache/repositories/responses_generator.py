"""OpenAI Responses API generator.

Sends prompts to a Responses-compatible endpoint and returns structured
JSON output. The response id doubles as the continuation token: passing
it back as ``previous_response_id`` lets the endpoint reference the
earlier conversation without resending it.

Requirements:
    - OPENAI_API_KEY set (or an unauthenticated compatible gateway)
    - GENERATOR_BASE_URL pointing at the API root (default OpenAI v1)
"""

import json
import logging
from typing import Any

import httpx

from generation_cache.config import settings
from generation_cache.dto import SamplingOptions
from generation_cache.entities import GeneratorReply

logger = logging.getLogger(__name__)


class ResponsesApiGenerator:
    """Responses API implementation of the Generator protocol.

    This class satisfies the Generator protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        generator = ResponsesApiGenerator.create(model="gpt-4o-mini")
        reply = await generator.send("You are...", "Generate...", continuation_token=None)
        print(reply.payload, reply.continuation_token)
        ```
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the generator.

        Args:
            api_key: Bearer token. Defaults to settings.openai_api_key.
            base_url: API root, e.g. "https://api.openai.com/v1". Defaults to settings.
            model: Default model when sampling options name none. Defaults to settings.
            timeout: Default request timeout in seconds. Defaults to settings.
            client: Pre-built async HTTP client (mainly for tests).
        """
        self._api_key = api_key or settings.openai_api_key
        self._base_url = (base_url or settings.generator_base_url).rstrip("/")
        self._model = model or settings.generator_model
        self._timeout = timeout or settings.generator_timeout
        self._client = client

    @classmethod
    def create(
        cls,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
    ) -> "ResponsesApiGenerator":
        """Factory method to create ResponsesApiGenerator with defaults.

        Args:
            api_key: API key. If None, uses settings.
            base_url: API root. If None, uses settings.
            model: Model name. If None, uses settings.

        Returns:
            Configured ResponsesApiGenerator
        """
        return cls(api_key=api_key, base_url=base_url, model=model)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
        return self._client

    @property
    def model_name(self) -> str:
        """Get the default model name."""
        return self._model

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_body(
        self,
        system_prompt: str,
        user_prompt: str,
        continuation_token: str | None,
        sampling: SamplingOptions,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": sampling.model or self._model,
            "instructions": system_prompt,
            "input": user_prompt,
            "text": {"format": {"type": "json_object"}},
        }
        if continuation_token:
            body["previous_response_id"] = continuation_token
        if sampling.temperature is not None:
            body["temperature"] = sampling.temperature
        if sampling.max_output_tokens is not None:
            body["max_output_tokens"] = sampling.max_output_tokens
        return body

    async def send(
        self,
        system_prompt: str,
        user_prompt: str,
        continuation_token: str | None = None,
        sampling: SamplingOptions | None = None,
    ) -> GeneratorReply:
        """Send a prompt to the Responses API.

        Args:
            system_prompt: Sent as ``instructions``
            user_prompt: Sent as ``input``
            continuation_token: Sent as ``previous_response_id`` when present
            sampling: Model, temperature, token limit and per-call timeout

        Returns:
            GeneratorReply with the parsed JSON payload and the response id

        Raises:
            RuntimeError: On transport errors, HTTP errors, timeouts or
                output that is not a JSON object
        """
        sampling = sampling or SamplingOptions()
        url = f"{self._base_url}/responses"
        body = self._build_body(system_prompt, user_prompt, continuation_token, sampling)
        timeout = sampling.timeout or self._timeout

        try:
            response = await self.client.post(url, json=body, headers=self._headers(), timeout=timeout)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise RuntimeError(f"Responses API timed out after {timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise RuntimeError(f"Responses API returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise RuntimeError(f"Responses API error: {e}") from e
        except json.JSONDecodeError as e:
            raise RuntimeError("Responses API returned a non-JSON body") from e

        text = _extract_output_text(data)
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise RuntimeError("Generated output is not valid JSON") from e

        if not isinstance(payload, dict):
            raise RuntimeError(f"Generated output must be a JSON object, got {type(payload).__name__}")

        response_id = data.get("id")
        logger.debug(
            "Responses API call completed (response_id=%s, continued=%s)",
            response_id,
            bool(continuation_token),
        )
        return GeneratorReply(payload=payload, continuation_token=response_id)

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _extract_output_text(data: dict[str, Any]) -> str:
    """Collect the generated text from a Responses API body."""
    if isinstance(data.get("output_text"), str):
        return data["output_text"]

    parts: list[str] = []
    for item in data.get("output") or []:
        if item.get("type") != "message":
            continue
        for content in item.get("content") or []:
            if content.get("type") == "output_text" and isinstance(content.get("text"), str):
                parts.append(content["text"])

    if not parts:
        raise RuntimeError(f"Unexpected response format: no output text in {sorted(data)}")
    return "".join(parts)
