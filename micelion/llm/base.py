"""Abstract base class for LLM adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from micelion.schemas import LLMMessage, LLMResponse


class LLMAdapter(ABC):
    """Abstract base class for chat-completion provider adapters.

    Implementations make exactly one attempt per call and raise
    ``ModelInvocationError`` on failure; retry policy belongs to callers.
    """

    default_model: str

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'openai')."""
        ...

    @abstractmethod
    async def chat_completion(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        response_format: dict[str, str] | None = None,
    ) -> LLMResponse:
        """Send a chat completion request.

        Args:
            messages: Ordered conversation messages
            model: Model name (uses default if None)
            temperature: Sampling temperature, provider default if None
            max_tokens: Maximum tokens in response, provider default if None
            response_format: Optional response format (e.g., {"type": "json_object"})

        Returns:
            LLMResponse whose ``content`` is the first completion's text

        Raises:
            ModelInvocationError: on transport failure or non-success status
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying HTTP client."""
        ...

    def _build_request(
        self,
        messages: list[LLMMessage],
        model: str,
        temperature: float | None,
        max_tokens: int | None,
        response_format: dict[str, str] | None,
    ) -> dict[str, Any]:
        """Build the API request payload.

        Optional knobs are only sent when set so the provider's own
        defaults apply otherwise.
        """
        payload: dict[str, Any] = {
            "model": model,
            "messages": [m.model_dump(exclude_none=True) for m in messages],
        }

        if temperature is not None:
            payload["temperature"] = temperature

        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        if response_format:
            payload["response_format"] = response_format

        return payload
