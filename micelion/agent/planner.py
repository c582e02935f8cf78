"""Planner module.

Responsibilities:
- Convert a free-text learning goal into a validated ``Plan``
- Answer free chat prompts, translating in and out of the user's language
- Own the provider adapters the workflows run against
"""

from __future__ import annotations

import logging

from micelion.agent.prompts import DEFAULT_SYSTEM_PROMPT, PLAN_JSON_PROMPT
from micelion.agent.workflow import build_chat_workflow, build_plan_workflow
from micelion.config import Settings, get_settings
from micelion.llm.base import LLMAdapter
from micelion.llm.openai import OpenAIAdapter
from micelion.schemas import Plan
from micelion.translation.base import Translator
from micelion.translation.chat import ChatTranslator
from micelion.translation.deepl import DeepLTranslator


logger = logging.getLogger(__name__)


class PlanPipeline:
    """Runs the plan and chat workflows against one adapter and translator."""

    def __init__(
        self,
        adapter: LLMAdapter,
        translator: Translator,
        json_mode: bool = False,
    ):
        self.adapter = adapter
        self.translator = translator
        self._plan_workflow = build_plan_workflow(adapter, translator, json_mode).compile()
        self._chat_workflow = build_chat_workflow(adapter, translator).compile()

    @classmethod
    def from_settings(cls, settings: Settings) -> PlanPipeline:
        adapter = OpenAIAdapter.from_settings(settings)
        if settings.translation_provider == "deepl":
            translator: Translator = DeepLTranslator.from_settings(settings)
        else:
            translator = ChatTranslator(adapter)
        return cls(adapter, translator, json_mode=settings.llm_json_mode)

    async def generate_plan(self, idea: str, lang: str = "en") -> Plan:
        """Turn a learning goal into a validated plan.

        Args:
            idea: Free-text learning goal, in ``lang``
            lang: "en" or "es"

        Returns:
            The validated Plan

        Raises:
            PlanGenerationError: with the kind of failure and its cause
        """
        logger.info(f"Generating plan (lang={lang})")
        state = await self._plan_workflow.ainvoke(
            {
                "idea": idea,
                "lang": lang,
                "system": PLAN_JSON_PROMPT,
                "prompt": idea,
            }
        )
        return state["plan"]

    async def chat(
        self,
        prompt: str,
        lang: str = "en",
        system: str | None = None,
    ) -> str:
        """Answer a free chat prompt in the user's language.

        Raises:
            PlanGenerationError: on translation or model failure
        """
        state = await self._chat_workflow.ainvoke(
            {
                "idea": prompt,
                "lang": lang,
                "system": system or DEFAULT_SYSTEM_PROMPT,
                "prompt": prompt,
            }
        )
        return state.get("answer", state["raw"])

    async def close(self) -> None:
        """Close the translator and adapter HTTP clients."""
        await self.translator.close()
        await self.adapter.close()


# Singleton instance
_pipeline: PlanPipeline | None = None


def get_pipeline() -> PlanPipeline:
    """Get the global pipeline instance built from settings."""
    global _pipeline
    if _pipeline is None:
        _pipeline = PlanPipeline.from_settings(get_settings())
    return _pipeline


async def close_pipeline() -> None:
    global _pipeline
    if _pipeline is not None:
        await _pipeline.close()
        _pipeline = None
