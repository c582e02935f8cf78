"""
Pytest configuration and shared fixtures.

Provides fake LLM and DeepL providers (httpx.MockTransport), a sample plan,
an in-memory SQLite database and an API client wired to both.
"""

import json
import os
from typing import Any, Callable
from urllib.parse import parse_qs

# Settings are cached on first use; point them at test values before any import.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["OPENAI_API_KEY"] = "test-openai-key"
os.environ["DEEPL_API_KEY"] = "test-deepl-key"
os.environ["ENVIRONMENT"] = "development"

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from micelion.agent.planner import PlanPipeline, get_pipeline
from micelion.database.session import get_db, init_db
from micelion.llm.openai import OpenAIAdapter
from micelion.translation.deepl import DeepLTranslator

# ==============================================================================
# Sample Data
# ==============================================================================

SAMPLE_PLAN: dict[str, Any] = {
    "project_title": "Backend Dev Path",
    "briefing": "Learn to build and ship web backends.",
    "skills": ["APIs", "Databases"],
    "milestones": [
        {
            "title": "Learn HTTP",
            "description": "Requests, responses, status codes.",
            "skills": ["APIs"],
            "resources": [
                {
                    "title": "MDN HTTP",
                    "url": "https://developer.mozilla.org/en-US/docs/Web/HTTP",
                    "type": "doc",
                }
            ],
        },
        {
            "title": "Model data",
            "description": "Relational modelling and SQL.",
            "skills": ["Databases", "APIs"],
            "resources": [
                {"title": "SQLBolt", "url": "https://sqlbolt.com"},
                {
                    "title": "MDN HTTP",
                    "url": "https://developer.mozilla.org/en-US/docs/Web/HTTP",
                    "type": "doc",
                },
            ],
        },
    ],
}


@pytest.fixture
def sample_plan() -> dict[str, Any]:
    """A valid plan as the model would return it (deep copy per test)."""
    return json.loads(json.dumps(SAMPLE_PLAN))


# ==============================================================================
# Fake Providers
# ==============================================================================


def chat_completion_body(content: str | None) -> dict[str, Any]:
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "model": "gpt-4o-mini",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30},
    }


Reply = str | httpx.Response | Exception


class FakeProvider:
    """Serves queued replies and records every request it receives.

    A reply is either the text to answer with, a ready ``httpx.Response``,
    or an exception to raise as a transport failure. The last reply repeats.
    """

    def __init__(self, *replies: Reply):
        self.replies = list(replies)
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, httpx.Response):
            return reply
        return self.respond(reply)

    def respond(self, text: str) -> httpx.Response:
        raise NotImplementedError

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class FakeOpenAI(FakeProvider):
    @staticmethod
    def completion(content: str | None, status_code: int = 200) -> httpx.Response:
        return httpx.Response(status_code, json=chat_completion_body(content))

    def respond(self, text: str) -> httpx.Response:
        return self.completion(text)

    def adapter(self) -> OpenAIAdapter:
        return OpenAIAdapter(api_key="test-openai-key", transport=self.transport)

    @property
    def payloads(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]


class FakeDeepL(FakeProvider):
    def respond(self, text: str) -> httpx.Response:
        return httpx.Response(
            200,
            json={"translations": [{"detected_source_language": "ES", "text": text}]},
        )

    def translator(self) -> DeepLTranslator:
        return DeepLTranslator(api_key="test-deepl-key", transport=self.transport)

    @property
    def forms(self) -> list[dict[str, str]]:
        return [
            {k: v[0] for k, v in parse_qs(r.content.decode()).items()}
            for r in self.requests
        ]


@pytest.fixture
def fake_openai() -> Callable[..., FakeOpenAI]:
    return FakeOpenAI


@pytest.fixture
def fake_deepl() -> Callable[..., FakeDeepL]:
    return FakeDeepL


@pytest.fixture
def make_pipeline() -> Callable[..., PlanPipeline]:
    """Build a pipeline over fake providers."""

    def _make(openai: FakeOpenAI, deepl: FakeDeepL | None = None, json_mode: bool = False) -> PlanPipeline:
        deepl = deepl or FakeDeepL("unused")
        return PlanPipeline(openai.adapter(), deepl.translator(), json_mode=json_mode)

    return _make


# ==============================================================================
# Database Fixtures
# ==============================================================================


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
    )
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


# ==============================================================================
# API Fixtures
# ==============================================================================


@pytest.fixture
def api_app(session_maker):
    """The FastAPI app bound to the test database; set ``app.state.pipeline``."""
    from micelion.api.main import app

    async def _get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_pipeline] = lambda: app.state.pipeline
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def api_client(api_app):
    transport = httpx.ASGITransport(app=api_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
