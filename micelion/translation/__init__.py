"""Translation provider adapters."""

from micelion.translation.base import Translator, needs_translation
from micelion.translation.deepl import DeepLTranslator

__all__ = ["DeepLTranslator", "Translator", "needs_translation"]
