"""
LLM client used for Taffy's conversational replies (Gemini).
"""

from taffy.llm.client import LLMClient, Responder
from taffy.llm.exceptions import (
    APIError,
    AuthenticationError,
    LLMError,
    RateLimitError,
)
from taffy.llm.models import LLMResponse, Message, UsageStats

__all__ = [
    "LLMClient",
    "Responder",
    "LLMResponse",
    "Message",
    "UsageStats",
    "LLMError",
    "AuthenticationError",
    "RateLimitError",
    "APIError",
]
