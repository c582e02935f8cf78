"""Abstract base class for translation providers."""

from __future__ import annotations

from abc import ABC, abstractmethod


ENGLISH = "en"


def needs_translation(lang: str) -> bool:
    """Return True when text in ``lang`` must go through English first."""
    return not str(lang).lower().startswith(ENGLISH)


def same_language(source_lang: str, target_lang: str) -> bool:
    return source_lang.lower()[:2] == target_lang.lower()[:2]


class Translator(ABC):
    """Translates free text between two language codes ("en", "es", ...)."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        """Translate ``text`` from ``source_lang`` into ``target_lang``.

        Text already in the target language is returned unchanged without a
        remote call.

        Raises:
            TranslationError: if the provider call fails
        """
        if same_language(source_lang, target_lang):
            return text
        return await self._translate(text, source_lang, target_lang)

    @abstractmethod
    async def _translate(self, text: str, source_lang: str, target_lang: str) -> str:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...
