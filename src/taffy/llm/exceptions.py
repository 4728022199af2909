"""
LLM exceptions.
"""


class LLMError(Exception):
    """Base exception for LLM errors."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        original: Exception | None = None,
    ):
        self.provider = provider
        self.original = original
        super().__init__(message)


class AuthenticationError(LLMError):
    """API key missing or rejected."""


class RateLimitError(LLMError):
    """Provider rate limit exceeded."""


class APIError(LLMError):
    """Any other provider error."""
