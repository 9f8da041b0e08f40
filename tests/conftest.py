"""Shared test fixtures.

Provides:
- Deterministic clock and id generator
- HistoryStore / WorkspaceStore rooted in tmp_path
- FakeLLM: in-process completion client returning canned content
- FakeSpeech: speech service double
- Factories for analysis payloads and InteractionRecords
- A FastAPI app with the real routers, exception handlers and app.state
  collaborators, plus an httpx AsyncClient over ASGITransport
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.saleslens.analysis.prefetch import CoachingPrefetcher
from src.saleslens.analysis.service import AnalysisService
from src.saleslens.api.errors import register_exception_handlers
from src.saleslens.api.v1 import health
from src.saleslens.api.v1.router import router as v1_router
from src.saleslens.batch.orchestrator import BatchOrchestrator
from src.saleslens.core.errors import UpstreamConfigurationError
from src.saleslens.core.ids import FixedClock, SequentialIdGenerator
from src.saleslens.schemas.analysis import AnalysisResult, SourceKind
from src.saleslens.schemas.history import InteractionRecord
from src.saleslens.storage.history import HistoryStore
from src.saleslens.storage.workspaces import WorkspaceStore

NOW_MS = 1_760_000_000_000
HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


# ── Payload builders ─────────────────────────────────────────────────────────


def build_analysis_payload(**overrides: Any) -> dict[str, Any]:
    """A valid camelCase analysis response as the model would return it."""
    payload: dict[str, Any] = {
        "leadScore": 72,
        "leadScoreReasoning": "Engaged champion with a defined budget.",
        "worthChasing": True,
        "worthChasingReasoning": "Clear pain and a near-term timeline.",
        "dealRisk": "Medium",
        "dealRiskReasoning": "A competitor is still in the evaluation.",
        "closeForecast": 55,
        "closeForecastReasoning": "Decision maker not yet engaged.",
        "buyingSignals": [
            {"signal": "Asked about onboarding timeline", "evidence": "When could we go live?"},
            {"signal": "Budget confirmed", "evidence": "We have budget set aside for Q3."},
        ],
        "objections": [
            {"objection": "Price versus incumbent", "evidence": "Your quote is higher than Globex."},
        ],
        "nextSteps": [
            "Send security questionnaire",
            "Book demo with the CFO",
            "Share ROI calculator",
        ],
        "followUpEmail": "Hi Dana, thanks for the time today...",
        "coachingSummary": "Strong discovery; push harder for access to the economic buyer.",
    }
    payload.update(overrides)
    return payload


def build_coaching_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "script": (
            "Hey, nice work on that sales call with Acme. You opened with real curiosity "
            "and the prospect clearly trusted you. Next time, ask who signs off on budget."
        ),
        "sections": {
            "greeting": "Nice work on that call.",
            "strengths": ["Strong rapport"],
            "improvements": ["Confirm the decision process"],
            "missedQuestions": [{"question": "Who signs the contract?", "why": "Authority is unclear."}],
            "nextCallQuestions": [{"question": "What does success look like?", "why": "Anchors value."}],
            "closing": "Keep it up.",
        },
    }
    payload.update(overrides)
    return payload


def make_record(
    entry_id: str = "entry-1",
    *,
    timestamp: int = NOW_MS - 30 * DAY_MS,
    company_name: str = "Acme Corp",
    source_kind: SourceKind = SourceKind.CALL_TRANSCRIPT,
    raw_text: str | None = "We discussed onboarding and security reviews.",
    analysis: dict[str, Any] | None = None,
    **fields: Any,
) -> InteractionRecord:
    analysis_model = AnalysisResult.model_validate(analysis or build_analysis_payload())
    return InteractionRecord(
        id=entry_id,
        timestamp=timestamp,
        source_kind=source_kind,
        company_name=company_name,
        lead_score=analysis_model.lead_score,
        close_forecast_score=analysis_model.close_forecast,
        worth_chasing=analysis_model.worth_chasing,
        deal_risk=analysis_model.deal_risk,
        raw_text=raw_text,
        analysis=analysis_model,
        **fields,
    )


# ── Test doubles ─────────────────────────────────────────────────────────────


class FakeLLM:
    """Completion client double.

    ``responses`` items are returned in order; an Exception item is raised
    instead. A callable item is called with the messages and its return
    value (str or Exception) is used.
    """

    def __init__(self, responses: list[Any] | None = None) -> None:
        self.responses: list[Any] = list(responses or [])
        self.calls: list[dict[str, Any]] = []
        self.configured = True

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def queue_json(self, *payloads: dict[str, Any]) -> None:
        self.responses.extend(json.dumps(p) for p in payloads)

    async def completion(
        self,
        messages: list[dict],
        model: str = "fast",
        max_tokens: int = 4096,
        temperature: float = 0.7,
        metadata: dict | None = None,
    ) -> dict:
        self.calls.append({"messages": messages, "temperature": temperature, "metadata": metadata or {}})
        if not self.responses:
            raise UpstreamConfigurationError("No LLM API key is configured (OPENAI_API_KEY or ANTHROPIC_API_KEY).")
        item = self.responses.pop(0)
        if callable(item):
            item = item(messages)
        if isinstance(item, Exception):
            raise item
        return {"content": item, "model": "fake", "usage": {}}


class FakeSpeech:
    def __init__(self, audio: bytes = b"ID3fake-mp3", configured: bool = True) -> None:
        self.audio = audio
        self.configured = configured
        self.texts: list[str] = []

    async def synthesize(self, text: str) -> bytes:
        self.texts.append(text)
        return self.audio


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW_MS)


@pytest.fixture
def ids() -> SequentialIdGenerator:
    return SequentialIdGenerator()


@pytest.fixture
def history_store(tmp_path) -> HistoryStore:
    return HistoryStore(tmp_path, max_entries=100)


@pytest.fixture
def workspace_store(tmp_path, clock, ids) -> WorkspaceStore:
    return WorkspaceStore(tmp_path, clock=clock, ids=ids)


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def fake_speech() -> FakeSpeech:
    return FakeSpeech()


@pytest.fixture
def analysis_payload() -> Callable[..., dict[str, Any]]:
    return build_analysis_payload


@pytest.fixture
def coaching_payload() -> Callable[..., dict[str, Any]]:
    return build_coaching_payload


@pytest.fixture
def record_factory() -> Callable[..., InteractionRecord]:
    return make_record


@pytest.fixture
def app(tmp_path, clock, ids, history_store, workspace_store, fake_llm, fake_speech) -> FastAPI:
    """FastAPI app with the real routers and in-process collaborators."""
    application = FastAPI()
    register_exception_handlers(application)
    application.include_router(health.router)
    application.include_router(v1_router)

    analysis_service = AnalysisService(fake_llm)
    application.state.clock = clock
    application.state.id_generator = ids
    application.state.data_dir = tmp_path
    application.state.history_store = history_store
    application.state.workspace_store = workspace_store
    application.state.llm_service = fake_llm
    application.state.analysis_service = analysis_service
    application.state.speech_service = fake_speech
    application.state.coaching_prefetcher = CoachingPrefetcher()
    application.state.batch_orchestrator = BatchOrchestrator(
        analysis_service, history_store, clock=clock, ids=ids
    )
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing the API."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
