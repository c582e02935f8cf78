"""OpenAI chat-completions adapter.

Works against https://api.openai.com/v1 and any OpenAI-compatible endpoint
(set ``openai_base_url``). The default model is ``gpt-4o-mini``.
"""

from __future__ import annotations

import logging
import time

import httpx

from micelion.config import Settings
from micelion.exceptions import ModelInvocationError
from micelion.llm.base import LLMAdapter
from micelion.schemas import LLMMessage, LLMResponse


logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAIAdapter(LLMAdapter):
    """OpenAI API adapter using the chat-completions endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("OpenAI API key not configured")

        self.api_key = api_key
        self.base_url = base_url
        self.default_model = model
        self.timeout = timeout

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> OpenAIAdapter:
        return cls(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            model=settings.openai_model,
            timeout=settings.llm_timeout_seconds,
            transport=transport,
        )

    @property
    def provider_name(self) -> str:
        return "openai"

    async def chat_completion(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        response_format: dict[str, str] | None = None,
    ) -> LLMResponse:
        """Send chat completion request to the OpenAI API."""
        model = model or self.default_model

        payload = self._build_request(
            messages=messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            response_format=response_format,
        )

        start_time = time.perf_counter()

        try:
            response = await self._client.post("/chat/completions", json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"OpenAI request failed: {e}")
            raise ModelInvocationError(f"OpenAI request failed: {e}") from e

        if response.is_error:
            logger.warning(f"OpenAI API error {response.status_code}: {response.text}")
            raise ModelInvocationError(
                f"OpenAI API error: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ModelInvocationError(
                "OpenAI API returned a non-JSON body",
                status_code=response.status_code,
                body=response.text,
            ) from e

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        logger.debug(f"OpenAI {model} answered in {latency_ms}ms")

        # Parse response
        choices = (data.get("choices") or [{}]) if isinstance(data, dict) else None
        choice = choices[0] if isinstance(choices, list) else None
        message = (choice.get("message") or {}) if isinstance(choice, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(message, dict) or not isinstance(content, (str, type(None))):
            logger.warning(f"OpenAI API returned an unexpected body: {response.text}")
            raise ModelInvocationError(
                "OpenAI API returned an unexpected body",
                status_code=response.status_code,
                body=response.text,
            )

        usage = data.get("usage")
        finish_reason = choice.get("finish_reason")
        return LLMResponse(
            content=content or "",
            model=str(data.get("model") or model),
            usage=usage if isinstance(usage, dict) else {},
            finish_reason=finish_reason if isinstance(finish_reason, str) else None,
            raw_response=data,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
