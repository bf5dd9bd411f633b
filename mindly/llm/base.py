"""
Generative Service Interface.

The tutor treats text generation as a fallible, latency-bearing black box.
Backends implement CompletionService; the classifier, assessor and question
extractor only ever call complete_json, the chat service calls stream.
"""

from __future__ import annotations

import json
import re
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Literal, Protocol, runtime_checkable

from mindly.exceptions import GenerationError

Role = Literal["system", "user", "assistant"]

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")


@dataclass(frozen=True)
class ChatMessage:
    """One role/content pair of a chat transcript."""

    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class CompletionOptions:
    """Per-call generation parameters."""

    temperature: float = 0.7
    max_tokens: int = 1024
    json_mode: bool = False


# Deterministic, short outputs for classification-style calls
JSON_OPTIONS = CompletionOptions(temperature=0.0, max_tokens=150, json_mode=True)


@runtime_checkable
class CompletionService(Protocol):
    """Backend contract for the generative service."""

    async def complete(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> str:
        ...

    async def complete_json(
        self,
        prompt: str,
        system: str | None = None,
        options: CompletionOptions | None = None,
    ) -> dict[str, Any]:
        ...

    def stream(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> AsyncIterator[str]:
        ...

    async def close(self) -> None:
        ...


def parse_json_response(text: str) -> dict[str, Any]:
    """
    Parse a JSON object from model output.

    Strips markdown code fences the model may wrap around the payload.

    Raises:
        GenerationError: If the text is not a JSON object
    """
    cleaned = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text.strip())).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise GenerationError(f"Malformed JSON from model: {e}") from e

    if not isinstance(data, dict):
        raise GenerationError(f"Expected JSON object, got {type(data).__name__}")
    return data


def build_json_messages(prompt: str, system: str | None = None) -> list[ChatMessage]:
    """Message list for a single-prompt JSON call."""
    messages: list[ChatMessage] = []
    if system:
        messages.append(ChatMessage(role="system", content=system))
    messages.append(ChatMessage(role="user", content=prompt))
    return messages
