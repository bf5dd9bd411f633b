"""
Unit tests for the Groq chat-completions client.
"""

import json

import httpx
import pytest
import pytest_asyncio

from mindly.exceptions import GenerationError
from mindly.llm.base import ChatMessage, CompletionOptions, parse_json_response
from mindly.llm.groq_client import GroqClient


def completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def make_client(handler, retry_attempts=2) -> GroqClient:
    return GroqClient(
        api_key="test-key",
        base_url="https://groq.test/openai/v1/",
        model="test-model",
        retry_attempts=retry_attempts,
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    """Skip retry sleeps."""

    async def _sleep(_seconds):
        return None

    monkeypatch.setattr("mindly.llm.groq_client.asyncio.sleep", _sleep)


@pytest_asyncio.fixture
async def echo_client():
    """Client whose server echoes the request payload back as content."""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=completion(request.content.decode()))

    client = make_client(handler)
    client.requests = requests
    yield client
    await client.close()


class TestComplete:
    @pytest.mark.asyncio
    async def test_request_shape(self, echo_client):
        text = await echo_client.complete(
            [ChatMessage(role="user", content="hi")],
            CompletionOptions(temperature=0.2, max_tokens=64),
        )
        payload = json.loads(text)
        request = echo_client.requests[0]

        assert request.url.path == "/openai/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer test-key"
        assert payload["model"] == "test-model"
        assert payload["messages"] == [{"role": "user", "content": "hi"}]
        assert payload["temperature"] == 0.2
        assert payload["max_tokens"] == 64
        assert "response_format" not in payload

    @pytest.mark.asyncio
    async def test_json_mode(self):
        seen = {}

        def handler(request):
            seen.update(json.loads(request.content))
            return httpx.Response(200, json=completion('```json\n{"type": "answer"}\n```'))

        async with make_client(handler) as client:
            result = await client.complete_json("classify", system="be terse")

        assert result == {"type": "answer"}
        assert seen["response_format"] == {"type": "json_object"}
        assert [m["role"] for m in seen["messages"]] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503, json={"error": "busy"})
            return httpx.Response(200, json=completion("ok"))

        async with make_client(handler) as client:
            assert await client.complete([ChatMessage(role="user", content="hi")]) == "ok"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, json={"error": "bad key"})

        async with make_client(handler, retry_attempts=3) as client:
            with pytest.raises(GenerationError) as exc_info:
                await client.complete([ChatMessage(role="user", content="hi")])

        assert len(calls) == 1
        assert exc_info.value.provider == "groq"

    @pytest.mark.asyncio
    async def test_unexpected_shape(self):
        async with make_client(lambda r: httpx.Response(200, json={"choices": []})) as client:
            with pytest.raises(GenerationError):
                await client.complete([ChatMessage(role="user", content="hi")])


class TestStream:
    @pytest.mark.asyncio
    async def test_yields_deltas_until_done(self):
        def chunk(text):
            return "data: " + json.dumps({"choices": [{"delta": {"content": text}}]})

        body = "\n\n".join(
            [chunk("Why "), ": keep-alive", "data: {broken", chunk("now?"), "data: [DONE]", chunk("late")]
        )

        def handler(request):
            assert json.loads(request.content)["stream"] is True
            return httpx.Response(200, text=body, headers={"content-type": "text/event-stream"})

        async with make_client(handler) as client:
            parts = [p async for p in client.stream([ChatMessage(role="user", content="hi")])]

        assert parts == ["Why ", "now?"]

    @pytest.mark.asyncio
    async def test_stream_http_error(self):
        async with make_client(lambda r: httpx.Response(500)) as client:
            with pytest.raises(GenerationError):
                async for _ in client.stream([ChatMessage(role="user", content="hi")]):
                    pass


class TestParseJson:
    def test_plain_object(self):
        assert parse_json_response('{"a": 1}') == {"a": 1}

    @pytest.mark.parametrize("text", ["not json", "[1, 2]"])
    def test_invalid(self, text):
        with pytest.raises(GenerationError):
            parse_json_response(text)
