"""
Configuration settings for the Mindly tutor.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Generative Service
    # ========================================
    llm_provider: Literal["groq", "gemini"] = Field(
        default="groq",
        description="Backend used for classification, assessment and chat",
    )
    groq_api_key: str | None = Field(
        default=None,
        description="Groq API key",
    )
    groq_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        description="OpenAI-compatible chat completions base URL",
    )
    groq_model: str = Field(
        default="llama-3.3-70b-versatile",
        description="Model name for the Groq backend",
    )
    gemini_api_key: str | None = Field(
        default=None,
        description="Google Generative AI (Gemini) API key",
    )
    gemini_model: str = Field(
        default="gemini-2.0-flash",
        description="Model name for the Gemini backend",
    )

    # ─── Timeouts (seconds) ─────────────────────────────────────────────────────
    classifier_timeout_s: float = Field(
        default=8.0,
        description="Upper bound for the classifier's generative fallback",
    )
    assessor_timeout_s: float = Field(
        default=12.0,
        description="Upper bound for answer assessment",
    )
    extractor_timeout_s: float = Field(
        default=8.0,
        description="Upper bound for pending-question extraction",
    )
    request_timeout_s: float = Field(
        default=30.0,
        description="HTTP timeout for the generative service",
    )

    # ─── Chat generation ────────────────────────────────────────────────────────
    chat_temperature: float = Field(
        default=0.7,
        description="Sampling temperature for tutor replies",
    )
    chat_max_tokens: int = Field(
        default=512,
        description="Token cap for tutor replies",
    )
    history_limit: int = Field(
        default=8,
        description="Number of recent chat messages sent with each turn",
    )

    # ========================================
    # Persistence
    # ========================================
    database_url: str = Field(
        default="sqlite:///mindly_tutor.db",
        description="SQLAlchemy URL for tutor state and chat transcripts",
    )
    default_exam_domain: str = Field(
        default="competitive exams",
        description="Exam domain used when the caller supplies none",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional log file path (rotated at 10 MB)",
    )

    def has_ai_configured(self) -> bool:
        """Check if the selected provider has an API key."""
        if self.llm_provider == "gemini":
            return bool(self.gemini_api_key)
        return bool(self.groq_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
