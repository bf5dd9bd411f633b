"""
Gemini backend for the generative service.

Uses google-generativeai (installed with the ``gemini`` extra). The system
prompt becomes the model's system instruction; assistant turns map to the
``model`` role.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from loguru import logger

from mindly.exceptions import ConfigurationError, GenerationError

from .base import (
    JSON_OPTIONS,
    ChatMessage,
    CompletionOptions,
    build_json_messages,
    parse_json_response,
)

PROVIDER = "gemini"


class GeminiClient:
    """CompletionService backed by google.generativeai."""

    def __init__(self, api_key: str, model_name: str = "gemini-2.0-flash"):
        try:
            import google.generativeai as genai
        except ImportError as e:
            raise ConfigurationError(
                "google-generativeai is not installed; install mindly-tutor[gemini]"
            ) from e

        genai.configure(api_key=api_key)
        self._genai = genai
        self.model_name = model_name

    def _split(self, messages: list[ChatMessage]) -> tuple[str | None, list[dict[str, Any]]]:
        system_parts = [m.content for m in messages if m.role == "system"]
        contents = [
            {"role": "model" if m.role == "assistant" else "user", "parts": [m.content]}
            for m in messages
            if m.role != "system"
        ]
        return ("\n\n".join(system_parts) or None), contents

    def _model(self, system_instruction: str | None):
        return self._genai.GenerativeModel(
            model_name=self.model_name,
            system_instruction=system_instruction,
        )

    def _config(self, options: CompletionOptions):
        return self._genai.GenerationConfig(
            temperature=options.temperature,
            max_output_tokens=options.max_tokens,
            response_mime_type="application/json" if options.json_mode else None,
        )

    async def complete(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> str:
        options = options or CompletionOptions()
        system, contents = self._split(messages)
        try:
            response = await self._model(system).generate_content_async(
                contents, generation_config=self._config(options)
            )
            return response.text.strip()
        except Exception as e:  # SDK raises a wide range of google.api_core errors
            logger.warning(f"Gemini completion failed: {e}")
            raise GenerationError(f"Gemini completion failed: {e}", provider=PROVIDER) from e

    async def complete_json(
        self,
        prompt: str,
        system: str | None = None,
        options: CompletionOptions | None = None,
    ) -> dict[str, Any]:
        text = await self.complete(build_json_messages(prompt, system), options or JSON_OPTIONS)
        return parse_json_response(text or "{}")

    async def stream(
        self,
        messages: list[ChatMessage],
        options: CompletionOptions | None = None,
    ) -> AsyncIterator[str]:
        options = options or CompletionOptions()
        system, contents = self._split(messages)
        try:
            response = await self._model(system).generate_content_async(
                contents, generation_config=self._config(options), stream=True
            )
            async for chunk in response:
                if chunk.text:
                    yield chunk.text
        except Exception as e:  # SDK raises a wide range of google.api_core errors
            raise GenerationError(f"Gemini stream failed: {e}", provider=PROVIDER) from e

    async def close(self) -> None:
        """Nothing to release; the SDK manages its own transport."""
        return None
