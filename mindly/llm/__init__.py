"""
Generative service backends.

create_completion_service() picks the configured provider.
"""

from __future__ import annotations

from mindly.config import Settings, get_settings
from mindly.exceptions import ConfigurationError

from .base import (
    JSON_OPTIONS,
    ChatMessage,
    CompletionOptions,
    CompletionService,
    parse_json_response,
)
from .groq_client import GroqClient


def create_completion_service(settings: Settings | None = None) -> CompletionService:
    """Build the backend selected by ``llm_provider``."""
    settings = settings or get_settings()

    if not settings.has_ai_configured():
        raise ConfigurationError(
            f"No API key configured for provider '{settings.llm_provider}'"
        )

    if settings.llm_provider == "gemini":
        from .gemini_client import GeminiClient

        return GeminiClient(api_key=settings.gemini_api_key, model_name=settings.gemini_model)

    return GroqClient(
        api_key=settings.groq_api_key,
        base_url=settings.groq_base_url,
        model=settings.groq_model,
        timeout_s=settings.request_timeout_s,
    )


__all__ = [
    "JSON_OPTIONS",
    "ChatMessage",
    "CompletionOptions",
    "CompletionService",
    "GroqClient",
    "create_completion_service",
    "parse_json_response",
]
