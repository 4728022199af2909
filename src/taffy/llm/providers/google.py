"""
Google Gemini provider implementation.
"""

import logging
import os

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from taffy.llm.exceptions import APIError, AuthenticationError, RateLimitError
from taffy.llm.models import LLMResponse, Message, UsageStats
from taffy.llm.providers.base import BaseLLMProvider

logger = logging.getLogger(__name__)


class GoogleProvider(BaseLLMProvider):
    """Gemini provider using Google GenAI API."""

    provider_name = "gemini"

    def __init__(self, model: str, api_key: str | None = None):
        super().__init__(model, api_key)
        self._api_key = api_key or os.environ.get("GOOGLE_API_KEY")
        if not self._api_key:
            raise AuthenticationError(
                "GOOGLE_API_KEY not found in environment variables",
                provider=self.provider_name,
            )
        self._client = genai.Client(api_key=self._api_key)

    async def chat(
        self,
        messages: list[Message],
        max_tokens: int = 256,
        temperature: float = 0.7,
        top_k: float | None = None,
        top_p: float | None = None,
    ) -> LLMResponse:
        """Send a chat completion request to Gemini."""
        contents, system_instruction = self._convert_to_gemini_format(messages)
        config = types.GenerateContentConfig(
            max_output_tokens=max_tokens,
            temperature=temperature,
            top_k=top_k,
            top_p=top_p,
            system_instruction=system_instruction,
        )

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except genai_errors.ClientError as e:
            if e.code in (401, 403):
                raise AuthenticationError(
                    f"Google authentication failed: {e}",
                    provider=self.provider_name,
                    original=e,
                ) from e
            if e.code == 429:
                raise RateLimitError(
                    f"Google rate limit exceeded: {e}",
                    provider=self.provider_name,
                    original=e,
                ) from e
            raise APIError(
                f"Google API error: {e}", provider=self.provider_name, original=e
            ) from e
        except genai_errors.APIError as e:
            raise APIError(
                f"Google API error: {e}", provider=self.provider_name, original=e
            ) from e

        usage = UsageStats()
        if getattr(response, "usage_metadata", None):
            usage = UsageStats(
                input_tokens=response.usage_metadata.prompt_token_count or 0,
                output_tokens=response.usage_metadata.candidates_token_count or 0,
            )

        # response.text is None when no parts came back (e.g. MAX_TOKENS)
        content = response.text or ""

        if response.candidates:
            finish_reason = response.candidates[0].finish_reason
            if finish_reason and str(finish_reason).upper().endswith("MAX_TOKENS"):
                logger.warning(
                    f"Gemini response truncated (finish_reason={finish_reason}). "
                    f"Response length: {len(content)} chars."
                )

        return LLMResponse(
            content=content,
            model=self.model,
            provider=self.provider_name,
            usage=usage,
            raw_response=response,
        )

    def _convert_to_gemini_format(
        self, messages: list[Message]
    ) -> tuple[list[types.Content], str | None]:
        """Convert messages to Gemini contents plus the system instruction."""
        system_instruction, turns = self.split_system(messages)
        # Gemini calls the assistant role "model"
        contents = [
            types.Content(
                role="model" if msg.role == "assistant" else "user",
                parts=[types.Part.from_text(text=msg.content)],
            )
            for msg in turns
        ]
        return contents, system_instruction

    async def close(self) -> None:
        """Close the Google GenAI client."""
        self._client.close()
