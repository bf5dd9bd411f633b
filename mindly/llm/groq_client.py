"""
Groq chat-completions client.

Talks to the OpenAI-compatible /chat/completions endpoint over httpx.
Supports plain completions, JSON mode and server-sent-event streaming.
All transport, status and parse failures surface as GenerationError.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any

import httpx
from loguru import logger

from mindly.exceptions import GenerationError

from .base import (
    JSON_OPTIONS,
    ChatMessage,
    CompletionOptions,
    build_json_messages,
    parse_json_response,
)

PROVIDER = "groq"
DEFAULT_MODEL = "llama-3.3-70b-versatile"


class GroqClient:
    """HTTP client for Groq (or any OpenAI-compatible) chat completions."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.groq.com/openai/v1",
        model: str = DEFAULT_MODEL,
        timeout_s: float = 30.0,
        retry_attempts: int = 2,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Groq API key
            base_url: API base URL (without /chat/completions)
            model: Model name sent with every request
            timeout_s: Per-request timeout in seconds
            retry_attempts: Attempts for timeouts and 5xx responses
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.model = model
        self.retry_attempts = max(1, retry_attempts)
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout_s),
            transport=transport,
        )

    async def __aenter__(self) -> GroqClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    def _payload(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions,
        stream: bool = False,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
        }
        if options.json_mode:
            payload["response_format"] = {"type": "json_object"}
        if stream:
            payload["stream"] = True
        return payload

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        last_error: Exception | None = None

        for attempt in range(self.retry_attempts):
            try:
                response = await self.client.post("/chat/completions", json=payload)
                response.raise_for_status()
                return response.json()

            except httpx.TimeoutException as e:
                last_error = e
                logger.warning(f"Groq timeout on attempt {attempt + 1}/{self.retry_attempts}")

            except httpx.HTTPStatusError as e:
                last_error = e
                if e.response.status_code < 500 and e.response.status_code != 429:
                    # Client errors will not improve on retry
                    break
                logger.warning(
                    f"Groq returned {e.response.status_code} on attempt "
                    f"{attempt + 1}/{self.retry_attempts}"
                )

            except (httpx.RequestError, json.JSONDecodeError) as e:
                last_error = e
                logger.warning(f"Groq request error on attempt {attempt + 1}: {e}")

            if attempt < self.retry_attempts - 1:
                await asyncio.sleep(2 ** attempt)

        raise GenerationError(f"Groq request failed: {last_error}", provider=PROVIDER)

    async def complete(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> str:
        """Return the assistant text for a chat transcript."""
        data = await self._post(self._payload(messages, options or CompletionOptions()))
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationError(f"Unexpected Groq response shape: {e}", provider=PROVIDER) from e
        return content or ""

    async def complete_json(
        self,
        prompt: str,
        system: str | None = None,
        options: CompletionOptions | None = None,
    ) -> dict[str, Any]:
        """Run a JSON-mode completion and parse the object it returns."""
        text = await self.complete(build_json_messages(prompt, system), options or JSON_OPTIONS)
        return parse_json_response(text or "{}")

    async def stream(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> AsyncIterator[str]:
        """Yield text deltas from a streamed completion."""
        payload = self._payload(messages, options or CompletionOptions(), stream=True)
        try:
            async with self.client.stream("POST", "/chat/completions", json=payload) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    data = line[len("data:"):].strip()
                    if data == "[DONE]":
                        break
                    try:
                        chunk = json.loads(data)
                    except json.JSONDecodeError:
                        logger.debug(f"Skipping malformed stream chunk: {data[:80]}")
                        continue
                    choices = chunk.get("choices") or [{}]
                    text = (choices[0].get("delta") or {}).get("content")
                    if text:
                        yield text
        except httpx.HTTPError as e:
            raise GenerationError(f"Groq stream failed: {e}", provider=PROVIDER) from e
