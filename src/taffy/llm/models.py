"""
Data models for LLM requests and responses.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

Provider = Literal["gemini"]
Role = Literal["system", "user", "assistant"]


@dataclass
class Message:
    """A single conversation turn."""

    role: Role
    content: str


@dataclass
class UsageStats:
    """Token usage for one request."""

    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class LLMResponse:
    """Response from an LLM provider."""

    content: str
    model: str
    provider: str
    usage: UsageStats = field(default_factory=UsageStats)
    raw_response: Any = field(default=None, repr=False)
