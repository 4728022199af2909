"""
Base class for reply-generation providers.
"""

from abc import ABC, abstractmethod

from taffy.llm.models import LLMResponse, Message


class BaseLLMProvider(ABC):
    """A chat model that turns a conversation into one reply."""

    provider_name: str

    def __init__(self, model: str, api_key: str | None = None):
        self.model = model
        self.api_key = api_key

    @abstractmethod
    async def chat(
        self,
        messages: list[Message],
        max_tokens: int = 256,
        temperature: float = 0.7,
        top_k: float | None = None,
        top_p: float | None = None,
    ) -> LLMResponse:
        """
        Generate the next assistant turn.

        Args:
            messages: Conversation so far; at most one leading system message.
            max_tokens: Reply length cap.
            temperature: Sampling temperature.
            top_k: Top-k sampling; None leaves the provider default.
            top_p: Nucleus sampling; None leaves the provider default.

        Raises:
            AuthenticationError: Key missing or rejected.
            RateLimitError: Quota exhausted.
            APIError: Any other provider failure.
        """

    @staticmethod
    def split_system(messages: list[Message]) -> tuple[str | None, list[Message]]:
        """Separate the system instruction from the conversation turns."""
        system = None
        turns = []
        for message in messages:
            if message.role == "system":
                system = message.content
            else:
                turns.append(message)
        return system, turns

    async def close(self) -> None:
        """Release provider resources."""
