"""
LLM provider implementations.
"""

from taffy.llm.providers.base import BaseLLMProvider
from taffy.llm.providers.google import GoogleProvider

__all__ = [
    "BaseLLMProvider",
    "GoogleProvider",
]
