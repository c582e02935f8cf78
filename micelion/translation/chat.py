"""Translator backed by the chat-completion model itself."""

from __future__ import annotations

import logging

from micelion.agent.prompts import format_translation_prompt
from micelion.exceptions import ModelInvocationError, TranslationError
from micelion.llm.base import LLMAdapter
from micelion.schemas import LLMMessage
from micelion.translation.base import Translator


logger = logging.getLogger(__name__)


class ChatTranslator(Translator):
    """Asks the language model for a plain translation of the text."""

    def __init__(self, adapter: LLMAdapter):
        self.adapter = adapter

    @property
    def provider_name(self) -> str:
        return f"chat:{self.adapter.provider_name}"

    async def _translate(self, text: str, source_lang: str, target_lang: str) -> str:
        messages = [
            LLMMessage(role="system", content=format_translation_prompt(source_lang, target_lang)),
            LLMMessage(role="user", content=text),
        ]

        try:
            response = await self.adapter.chat_completion(messages=messages)
        except ModelInvocationError as e:
            raise TranslationError(
                f"Translation via {self.adapter.provider_name} failed",
                status_code=e.status_code,
                body=e.body,
            ) from e

        if not response.content.strip():
            raise TranslationError("Translation model returned an empty answer")

        return response.content

    async def close(self) -> None:
        # The adapter is shared with the pipeline, which owns its lifetime.
        return None
