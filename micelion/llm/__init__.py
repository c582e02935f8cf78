"""Chat-completion provider adapters."""

from micelion.llm.base import LLMAdapter
from micelion.llm.openai import OpenAIAdapter

__all__ = ["LLMAdapter", "OpenAIAdapter"]
