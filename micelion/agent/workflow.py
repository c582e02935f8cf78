"""LangGraph workflows for plan generation and free chat.

Plan graph (straight line, any failure is terminal):
START → [translate_in] → invoke → clean → parse → validate → END

Chat graph:
START → [translate_in] → invoke → [translate_out] → END

Bracketed nodes only run when the user's language is not English. Nodes
raise ``PlanGenerationError`` with the kind of failure; the graph is never
resumed or retried.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Literal, TypedDict

from langgraph.graph import StateGraph, END

from micelion.agent.validation import strip_code_fences, validate_plan
from micelion.exceptions import (
    ModelInvocationError,
    PlanErrorKind,
    PlanGenerationError,
    PlanValidationError,
    TranslationError,
)
from micelion.llm.base import LLMAdapter
from micelion.schemas import LLMMessage, Plan
from micelion.translation.base import ENGLISH, Translator, needs_translation


logger = logging.getLogger(__name__)

Node = Callable[[Any], Awaitable[dict[str, Any]]]


# =============================================================================
# State Definitions
# =============================================================================

class PlanState(TypedDict, total=False):
    """State for the plan workflow.

    Attributes:
        idea: The user's free-text learning goal
        lang: Language the idea is written in
        system: System prompt sent with the request
        prompt: English text sent as the user message
        raw: Raw text of the model's answer
        cleaned: Raw text with code fences stripped
        parsed: Decoded JSON value
        plan: Validated plan
    """
    idea: str
    lang: str
    system: str
    prompt: str
    raw: str
    cleaned: str
    parsed: Any
    plan: Plan


class ChatState(TypedDict, total=False):
    idea: str
    lang: str
    system: str
    prompt: str
    raw: str
    answer: str


# =============================================================================
# Node Factories
# =============================================================================

def make_translate_in_node(translator: Translator) -> Node:
    async def translate_in(state) -> dict[str, Any]:
        logger.info(f"Translating input from {state['lang']} to English via {translator.provider_name}")
        try:
            prompt = await translator.translate(state["idea"], state["lang"], ENGLISH)
        except TranslationError as e:
            raise PlanGenerationError(
                "Failed to translate your input",
                kind=PlanErrorKind.TRANSLATION_FAILURE,
                cause=e,
            ) from e
        return {"prompt": prompt}

    return translate_in


def make_invoke_node(
    adapter: LLMAdapter,
    response_format: dict[str, str] | None = None,
) -> Node:
    async def invoke(state) -> dict[str, Any]:
        messages = [
            LLMMessage(role="system", content=state["system"]),
            LLMMessage(role="user", content=state["prompt"]),
        ]

        logger.info(f"Invoking {adapter.provider_name}/{adapter.default_model}")
        try:
            response = await adapter.chat_completion(
                messages=messages,
                response_format=response_format,
            )
        except ModelInvocationError as e:
            raise PlanGenerationError(
                f"AI service error: {e}",
                kind=PlanErrorKind.TRANSPORT_FAILURE,
                cause=e,
            ) from e

        if not response.content or not response.content.strip():
            raise PlanGenerationError(
                "No response from AI service",
                kind=PlanErrorKind.EMPTY_RESPONSE,
            )

        return {"raw": response.content}

    return invoke


def make_translate_out_node(translator: Translator) -> Node:
    async def translate_out(state) -> dict[str, Any]:
        logger.info(f"Translating answer from English to {state['lang']} via {translator.provider_name}")
        try:
            answer = await translator.translate(state["raw"], ENGLISH, state["lang"])
        except TranslationError as e:
            raise PlanGenerationError(
                "Failed to translate the answer",
                kind=PlanErrorKind.TRANSLATION_FAILURE,
                cause=e,
            ) from e
        return {"answer": answer}

    return translate_out


async def clean_node(state: PlanState) -> dict[str, Any]:
    return {"cleaned": strip_code_fences(state["raw"])}


async def parse_node(state: PlanState) -> dict[str, Any]:
    try:
        parsed = json.loads(state["cleaned"])
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON from model ({e}). Raw response: {state['raw']!r}")
        raise PlanGenerationError(
            "Invalid JSON response from AI",
            kind=PlanErrorKind.MALFORMED_OUTPUT,
            cause=e,
        ) from e
    return {"parsed": parsed}


async def validate_node(state: PlanState) -> dict[str, Any]:
    try:
        plan = validate_plan(state["parsed"])
    except PlanValidationError as e:
        logger.error(f"Model output failed plan validation: {e}")
        raise PlanGenerationError(
            f"Invalid plan structure: {e}",
            kind=PlanErrorKind.SCHEMA_VIOLATION,
            cause=e,
        ) from e

    logger.info(f"Generated plan '{plan.project_title}' with {len(plan.milestones)} milestones")
    return {"plan": plan}


# =============================================================================
# Routing Functions
# =============================================================================

def route_start(state: dict[str, Any]) -> Literal["translate_in", "invoke"]:
    """Translate first unless the input is already English."""
    return "translate_in" if needs_translation(state["lang"]) else "invoke"


def route_after_answer(state: dict[str, Any]) -> Literal["translate_out", "__end__"]:
    return "translate_out" if needs_translation(state["lang"]) else END


# =============================================================================
# Workflow Builders
# =============================================================================

def build_plan_workflow(
    adapter: LLMAdapter,
    translator: Translator,
    json_mode: bool = False,
) -> StateGraph:
    """Build the plan-generation workflow."""
    workflow = StateGraph(PlanState)

    workflow.add_node("translate_in", make_translate_in_node(translator))
    workflow.add_node(
        "invoke",
        make_invoke_node(adapter, {"type": "json_object"} if json_mode else None),
    )
    workflow.add_node("clean", clean_node)
    workflow.add_node("parse", parse_node)
    workflow.add_node("validate", validate_node)

    workflow.set_conditional_entry_point(
        route_start,
        {
            "translate_in": "translate_in",
            "invoke": "invoke",
        },
    )

    workflow.add_edge("translate_in", "invoke")
    workflow.add_edge("invoke", "clean")
    workflow.add_edge("clean", "parse")
    workflow.add_edge("parse", "validate")
    workflow.add_edge("validate", END)

    return workflow


def build_chat_workflow(adapter: LLMAdapter, translator: Translator) -> StateGraph:
    """Build the free-chat workflow, the only one translating answers back."""
    workflow = StateGraph(ChatState)

    workflow.add_node("translate_in", make_translate_in_node(translator))
    workflow.add_node("invoke", make_invoke_node(adapter))
    workflow.add_node("translate_out", make_translate_out_node(translator))

    workflow.set_conditional_entry_point(
        route_start,
        {
            "translate_in": "translate_in",
            "invoke": "invoke",
        },
    )

    workflow.add_edge("translate_in", "invoke")
    workflow.add_conditional_edges(
        "invoke",
        route_after_answer,
        {
            "translate_out": "translate_out",
            END: END,
        },
    )
    workflow.add_edge("translate_out", END)

    return workflow
