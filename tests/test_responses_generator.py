"""Tests for the Responses API generator using httpx.MockTransport."""

import json

import httpx
import pytest

from generation_cache.dto import SamplingOptions
from generation_cache.repositories import ResponsesApiGenerator


def _generator(handler) -> ResponsesApiGenerator:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ResponsesApiGenerator(
        api_key="sk-test",
        base_url="https://llm.example/v1/",
        model="test-model",
        timeout=5,
        client=client,
    )


def _response_body(text: str, response_id: str = "resp_abc") -> dict:
    return {
        "id": response_id,
        "output": [
            {"type": "reasoning", "content": []},
            {"type": "message", "content": [{"type": "output_text", "text": text}]},
        ],
    }


@pytest.mark.asyncio
async def test_send_builds_request_and_parses_reply():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers.get("Authorization")
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=_response_body('{"title": "T", "content": "C"}'))

    generator = _generator(handler)
    reply = await generator.send(
        "system text",
        "user text",
        continuation_token="resp_prev",
        sampling=SamplingOptions(temperature=0.3, max_output_tokens=500),
    )

    assert reply.payload == {"title": "T", "content": "C"}
    assert reply.continuation_token == "resp_abc"
    assert captured["url"] == "https://llm.example/v1/responses"
    assert captured["auth"] == "Bearer sk-test"
    body = captured["body"]
    assert body["model"] == "test-model"
    assert body["instructions"] == "system text"
    assert body["input"] == "user text"
    assert body["previous_response_id"] == "resp_prev"
    assert body["temperature"] == 0.3
    assert body["max_output_tokens"] == 500
    assert body["text"] == {"format": {"type": "json_object"}}


@pytest.mark.asyncio
async def test_send_without_continuation_or_sampling():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "resp_1", "output_text": '{"a": 1}'})

    reply = await _generator(handler).send("s", "u", sampling=SamplingOptions(model="override"))

    assert reply.payload == {"a": 1}
    assert "previous_response_id" not in captured["body"]
    assert "temperature" not in captured["body"]
    assert captured["body"]["model"] == "override"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "handler",
    [
        lambda request: httpx.Response(500, json={"error": "boom"}),
        lambda request: httpx.Response(200, text="not json"),
        lambda request: httpx.Response(200, json=_response_body("not json either")),
        lambda request: httpx.Response(200, json=_response_body("[1, 2]")),
        lambda request: httpx.Response(200, json={"id": "resp_1", "output": []}),
    ],
)
async def test_send_failures_raise_runtime_error(handler):
    with pytest.raises(RuntimeError):
        await _generator(handler).send("s", "u")


@pytest.mark.asyncio
async def test_timeout_raises_runtime_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(RuntimeError, match="timed out"):
        await _generator(handler).send("s", "u", sampling=SamplingOptions(timeout=0.5))


@pytest.mark.asyncio
async def test_close_releases_client():
    generator = _generator(lambda request: httpx.Response(200, json={"id": "r", "output_text": "{}"}))
    await generator.close()
    await generator.close()
