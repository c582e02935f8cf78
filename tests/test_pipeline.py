"""
Tests for the plan-generation pipeline and free chat mode.

Providers are faked at the HTTP layer so call counts and ordering reflect
real requests.
"""

import json
import logging

import httpx
import pytest

from micelion.agent.prompts import DEFAULT_SYSTEM_PROMPT, PLAN_JSON_PROMPT
from micelion.exceptions import (
    ModelInvocationError,
    PlanErrorKind,
    PlanGenerationError,
    PlanValidationError,
    TranslationError,
)
from micelion.schemas import Plan


IDEA = "I want to learn backend development"


class TestGeneratePlan:
    """Test successful plan generation."""

    @pytest.mark.asyncio
    async def test_end_to_end_english(self, fake_openai, fake_deepl, make_pipeline):
        model_output = {
            "project_title": "Backend Dev Path",
            "briefing": "...",
            "skills": ["APIs"],
            "milestones": [
                {
                    "title": "Learn HTTP",
                    "description": "...",
                    "skills": ["APIs"],
                    "resources": [
                        {
                            "title": "MDN HTTP",
                            "url": "https://developer.mozilla.org/...",
                            "type": "doc",
                        }
                    ],
                }
            ],
        }
        openai = fake_openai(json.dumps(model_output))
        deepl = fake_deepl("unused")
        pipeline = make_pipeline(openai, deepl)

        plan = await pipeline.generate_plan(IDEA, "en")

        assert isinstance(plan, Plan)
        assert plan.to_dict() == model_output
        assert len(openai.requests) == 1
        assert len(deepl.requests) == 0
        assert openai.payloads[0]["messages"] == [
            {"role": "system", "content": PLAN_JSON_PROMPT},
            {"role": "user", "content": IDEA},
        ]

    @pytest.mark.asyncio
    async def test_spanish_idea_translated_before_model_call(
        self, fake_openai, fake_deepl, make_pipeline, sample_plan
    ):
        events = []
        openai = fake_openai(json.dumps(sample_plan))
        deepl = fake_deepl(IDEA)
        openai_handler, deepl_handler = openai.handler, deepl.handler
        openai.handler = lambda request: events.append("model") or openai_handler(request)
        deepl.handler = lambda request: events.append("translate") or deepl_handler(request)
        pipeline = make_pipeline(openai, deepl)

        plan = await pipeline.generate_plan("Quiero aprender desarrollo backend", "es")

        assert events == ["translate", "model"]
        assert deepl.forms[0]["text"] == "Quiero aprender desarrollo backend"
        assert deepl.forms[0]["target_lang"] == "EN-US"
        # The system prompt is never translated; the user message is the English text
        assert openai.payloads[0]["messages"] == [
            {"role": "system", "content": PLAN_JSON_PROMPT},
            {"role": "user", "content": IDEA},
        ]
        # No translation of the plan back to Spanish
        assert plan.to_dict() == sample_plan
        assert len(deepl.requests) == 1

    @pytest.mark.asyncio
    async def test_fenced_output_is_cleaned(self, fake_openai, make_pipeline, sample_plan):
        fenced = "```json\n" + json.dumps(sample_plan, indent=2) + "\n```"
        pipeline = make_pipeline(fake_openai(fenced))

        plan = await pipeline.generate_plan(IDEA, "en")

        assert plan.to_dict() == sample_plan

    @pytest.mark.asyncio
    async def test_json_mode_requests_json_object(self, fake_openai, make_pipeline, sample_plan):
        openai = fake_openai(json.dumps(sample_plan))
        pipeline = make_pipeline(openai, json_mode=True)

        await pipeline.generate_plan(IDEA, "en")

        assert openai.payloads[0]["response_format"] == {"type": "json_object"}


class TestGeneratePlanFailures:
    """Test that every failure surfaces as a classified PlanGenerationError."""

    @pytest.mark.asyncio
    async def test_model_error_status(self, fake_openai, make_pipeline):
        openai = fake_openai(httpx.Response(500, text="internal error"))
        pipeline = make_pipeline(openai)

        with pytest.raises(PlanGenerationError) as exc_info:
            await pipeline.generate_plan(IDEA, "en")

        error = exc_info.value
        assert error.kind is PlanErrorKind.TRANSPORT_FAILURE
        assert isinstance(error.cause, ModelInvocationError)
        assert error.__cause__ is error.cause
        assert error.cause.body == "internal error"
        # Single attempt, no retry
        assert len(openai.requests) == 1

    @pytest.mark.asyncio
    async def test_non_object_body_is_transport_failure(self, fake_openai, make_pipeline):
        pipeline = make_pipeline(fake_openai(httpx.Response(200, json=["oops"])))

        with pytest.raises(PlanGenerationError) as exc_info:
            await pipeline.generate_plan(IDEA, "en")

        assert exc_info.value.kind is PlanErrorKind.TRANSPORT_FAILURE
        assert isinstance(exc_info.value.cause, ModelInvocationError)

    @pytest.mark.asyncio
    async def test_empty_response(self, fake_openai, make_pipeline):
        pipeline = make_pipeline(fake_openai(fake_openai.completion(None)))

        with pytest.raises(PlanGenerationError) as exc_info:
            await pipeline.generate_plan(IDEA, "en")

        assert exc_info.value.kind is PlanErrorKind.EMPTY_RESPONSE
        assert exc_info.value.message == "No response from AI service"

    @pytest.mark.asyncio
    async def test_whitespace_response_is_empty(self, fake_openai, make_pipeline):
        pipeline = make_pipeline(fake_openai("  \n "))

        with pytest.raises(PlanGenerationError) as exc_info:
            await pipeline.generate_plan(IDEA, "en")

        assert exc_info.value.kind is PlanErrorKind.EMPTY_RESPONSE

    @pytest.mark.asyncio
    async def test_not_json(self, fake_openai, make_pipeline, caplog):
        pipeline = make_pipeline(fake_openai("not json"))

        with caplog.at_level(logging.ERROR, logger="micelion.agent.workflow"):
            with pytest.raises(PlanGenerationError) as exc_info:
                await pipeline.generate_plan(IDEA, "en")

        error = exc_info.value
        assert error.kind is PlanErrorKind.MALFORMED_OUTPUT
        assert isinstance(error.cause, json.JSONDecodeError)
        assert "not json" not in str(error)
        assert "not json" not in error.message
        assert "not json" in caplog.text

    @pytest.mark.asyncio
    async def test_schema_violation(self, fake_openai, make_pipeline, sample_plan):
        sample_plan["milestones"][0]["resources"][0]["type"] = "podcast"
        pipeline = make_pipeline(fake_openai(json.dumps(sample_plan)))

        with pytest.raises(PlanGenerationError) as exc_info:
            await pipeline.generate_plan(IDEA, "en")

        error = exc_info.value
        assert error.kind is PlanErrorKind.SCHEMA_VIOLATION
        assert isinstance(error.cause, PlanValidationError)
        assert "milestones.0.resources.0.type" in error.message

    @pytest.mark.asyncio
    async def test_missing_field(self, fake_openai, make_pipeline, sample_plan):
        del sample_plan["project_title"]
        pipeline = make_pipeline(fake_openai(json.dumps(sample_plan)))

        with pytest.raises(PlanGenerationError) as exc_info:
            await pipeline.generate_plan(IDEA, "en")

        assert exc_info.value.kind is PlanErrorKind.SCHEMA_VIOLATION

    @pytest.mark.asyncio
    async def test_translation_failure_aborts_before_model(
        self, fake_openai, fake_deepl, make_pipeline, sample_plan
    ):
        openai = fake_openai(json.dumps(sample_plan))
        deepl = fake_deepl(httpx.Response(503, text="unavailable"))
        pipeline = make_pipeline(openai, deepl)

        with pytest.raises(PlanGenerationError) as exc_info:
            await pipeline.generate_plan("Quiero aprender", "es")

        assert exc_info.value.kind is PlanErrorKind.TRANSLATION_FAILURE
        assert isinstance(exc_info.value.cause, TranslationError)
        assert openai.requests == []


class TestChat:
    """Test free chat mode, the only path translating answers back."""

    @pytest.mark.asyncio
    async def test_english_chat(self, fake_openai, fake_deepl, make_pipeline):
        openai = fake_openai("Start with HTTP.")
        deepl = fake_deepl("unused")
        pipeline = make_pipeline(openai, deepl)

        answer = await pipeline.chat("Where do I start?", "en")

        assert answer == "Start with HTTP."
        assert deepl.requests == []
        assert openai.payloads[0]["messages"][0] == {
            "role": "system",
            "content": DEFAULT_SYSTEM_PROMPT,
        }

    @pytest.mark.asyncio
    async def test_spanish_chat_translates_both_ways(self, fake_openai, fake_deepl, make_pipeline):
        openai = fake_openai("Start with HTTP.")
        deepl = fake_deepl("Where do I start?", "Empieza con HTTP.")
        pipeline = make_pipeline(openai, deepl)

        answer = await pipeline.chat("¿Por dónde empiezo?", "es", system="Be a mentor.")

        assert answer == "Empieza con HTTP."
        assert [form["target_lang"] for form in deepl.forms] == ["EN-US", "ES"]
        assert deepl.forms[1]["text"] == "Start with HTTP."
        assert openai.payloads[0]["messages"] == [
            {"role": "system", "content": "Be a mentor."},
            {"role": "user", "content": "Where do I start?"},
        ]

    @pytest.mark.asyncio
    async def test_answer_translation_failure(self, fake_openai, fake_deepl, make_pipeline):
        deepl = fake_deepl("Where do I start?", httpx.Response(500, text="boom"))
        pipeline = make_pipeline(fake_openai("Start with HTTP."), deepl)

        with pytest.raises(PlanGenerationError) as exc_info:
            await pipeline.chat("¿Por dónde empiezo?", "es")

        assert exc_info.value.kind is PlanErrorKind.TRANSLATION_FAILURE
