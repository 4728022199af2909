"""
LLM client and the assistant's reply generator.
"""

import logging
from collections.abc import Sequence

from taffy.config import get_model
from taffy.llm.exceptions import AuthenticationError, LLMError
from taffy.llm.models import LLMResponse, Message, Provider
from taffy.llm.providers.base import BaseLLMProvider
from taffy.llm.providers.google import GoogleProvider

logger = logging.getLogger(__name__)

# Provider registry
PROVIDERS: dict[Provider, type[BaseLLMProvider]] = {
    "gemini": GoogleProvider,
}

SYSTEM_INSTRUCTION = """You are Taffy, a friendly and helpful scheduling assistant.
Your primary function is to help users schedule events and tasks in their Google Calendar.
Be concise and confirm scheduling requests clearly.
If a user asks you to schedule something, acknowledge it and indicate you will attempt to add it to their calendar.
If the request is unclear (e.g., missing date/time), ask for clarification.
Keep responses relatively short and focused on the scheduling task or casual conversation."""

NOT_CONFIGURED_REPLY = "Sorry, my connection to Google AI is not configured."
ERROR_REPLY = "Sorry, I encountered an error trying to understand that."


class LLMClient:
    """
    Client for the configured LLM provider.

    Example:
        >>> client = LLMClient(provider="gemini", model="gemini-2.0-flash")
        >>> response = await client.chat([Message(role="user", content="Hello!")])
        >>> print(response.content)
    """

    def __init__(
        self,
        provider: Provider,
        model: str,
        api_key: str | None = None,
    ):
        """
        Initialize the LLM client.

        Args:
            provider: The LLM provider to use.
            model: Model identifier.
            api_key: Optional API key. If None, reads from environment variable.

        Raises:
            ValueError: If provider is not supported.
            AuthenticationError: If API key is not found.
        """
        if provider not in PROVIDERS:
            raise ValueError(
                f"Unknown provider: {provider}. Supported providers: {list(PROVIDERS.keys())}"
            )

        self._provider: BaseLLMProvider = PROVIDERS[provider](model=model, api_key=api_key)
        self._provider_name = provider

    @property
    def provider(self) -> Provider:
        """The current provider name."""
        return self._provider_name

    @property
    def model(self) -> str:
        """The current model identifier."""
        return self._provider.model

    async def chat(
        self,
        messages: Sequence[Message | dict],
        max_tokens: int = 256,
        temperature: float = 0.7,
        **kwargs,
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: List of conversation messages (Message objects or dicts).
            max_tokens: Maximum tokens in response.
            temperature: Sampling temperature (0-1).
            **kwargs: Sampling parameters (top_k, top_p).

        Returns:
            LLMResponse with content, model, provider, and usage stats.
        """
        normalized_messages = [
            msg if isinstance(msg, Message) else Message(**msg) for msg in messages
        ]

        return await self._provider.chat(
            messages=normalized_messages,
            max_tokens=max_tokens,
            temperature=temperature,
            **kwargs,
        )

    async def close(self) -> None:
        await self._provider.close()


class Responder:
    """Generates Taffy's conversational replies.

    Never raises: a missing key or a failed call becomes a fixed apology.
    """

    def __init__(self, client: LLMClient | None = None, model: str | None = None):
        self._client = client
        self._model = model or get_model()

    def _get_client(self) -> LLMClient:
        if self._client is None:
            self._client = LLMClient(provider="gemini", model=self._model)
        return self._client

    async def __call__(self, user_input: str, history: Sequence[Message]) -> str:
        """Reply to ``user_input`` given the prior turns."""
        try:
            client = self._get_client()
        except AuthenticationError as e:
            logger.error(f"Gemini not configured: {e}")
            return NOT_CONFIGURED_REPLY

        messages = [
            Message(role="system", content=SYSTEM_INSTRUCTION),
            *history,
            Message(role="user", content=user_input),
        ]
        logger.info(f"[Gemini] Sending prompt: {user_input!r}")
        try:
            response = await client.chat(messages, max_tokens=256, temperature=0.7, top_k=1, top_p=1)
        except LLMError as e:
            logger.error(f"[Gemini] Error: {e}")
            return ERROR_REPLY

        logger.debug(f"[Gemini] Received response: {response.content!r}")
        return response.content

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
