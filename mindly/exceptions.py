"""Exceptions raised by the Mindly tutor."""

from __future__ import annotations


class MindlyError(Exception):
    """Base class for tutor errors."""
    pass


class GenerationError(MindlyError):
    """The generative service failed: network, HTTP status, timeout or unparseable output."""

    def __init__(self, detail: str, *, provider: str | None = None):
        super().__init__(detail)
        self.detail = detail
        self.provider = provider


class ConfigurationError(MindlyError):
    """Required configuration (such as an API key) is missing."""
    pass


class StateStoreError(MindlyError):
    """Loading or saving tutoring state failed."""
    pass
