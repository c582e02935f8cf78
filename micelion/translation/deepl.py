"""DeepL translation adapter.

Uses the v2 REST API (https://api.deepl.com, or https://api-free.deepl.com
for free-tier keys). Requests are form-encoded; the answer's first
``translations`` entry carries the text.
"""

from __future__ import annotations

import logging

import httpx

from micelion.config import Settings
from micelion.exceptions import TranslationError
from micelion.translation.base import Translator


logger = logging.getLogger(__name__)

# DeepL wants a regional variant for English targets; sources are bare.
TARGET_CODES: dict[str, str] = {"en": "EN-US", "es": "ES"}
SOURCE_CODES: dict[str, str] = {"en": "EN", "es": "ES"}


class DeepLTranslator(Translator):
    """DeepL API translator."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.deepl.com",
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("DeepL API key not configured")

        self.api_key = api_key
        self.base_url = base_url

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"DeepL-Auth-Key {self.api_key}"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> DeepLTranslator:
        return cls(
            api_key=settings.deepl_api_key,
            base_url=settings.deepl_base_url,
            timeout=settings.llm_timeout_seconds,
            transport=transport,
        )

    @property
    def provider_name(self) -> str:
        return "deepl"

    async def _translate(self, text: str, source_lang: str, target_lang: str) -> str:
        source = source_lang.lower()[:2]
        target = target_lang.lower()[:2]
        form = {
            "text": text,
            "source_lang": SOURCE_CODES.get(source, source.upper()),
            "target_lang": TARGET_CODES.get(target, target.upper()),
        }

        try:
            response = await self._client.post("/v2/translate", data=form)
        except httpx.HTTPError as e:
            logger.warning(f"DeepL request failed: {e}")
            raise TranslationError(f"Translation request failed: {e}") from e

        if response.is_error:
            logger.warning(f"DeepL API error {response.status_code}: {response.text}")
            raise TranslationError(
                "Translation failed",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TranslationError("Translation provider returned a non-JSON body", body=response.text) from e

        translations = data.get("translations") if isinstance(data, dict) else None
        first = translations[0] if isinstance(translations, list) and translations else None
        text = first.get("text") if isinstance(first, dict) else None
        if not isinstance(text, str):
            raise TranslationError("Translation provider returned no translation", body=response.text)

        return text

    async def close(self) -> None:
        await self._client.aclose()
