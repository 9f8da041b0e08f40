"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS,
Sentry, the domain exception handlers, a lifespan that wires stores and
services onto ``app.state``, and the v1 API router.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.saleslens.analysis.prefetch import CoachingPrefetcher
from src.saleslens.analysis.service import AnalysisService
from src.saleslens.api.errors import register_exception_handlers
from src.saleslens.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.saleslens.api.v1 import health
from src.saleslens.api.v1.router import router as v1_router
from src.saleslens.batch.orchestrator import BatchOrchestrator
from src.saleslens.config import get_settings
from src.saleslens.core.ids import SystemClock, UuidIdGenerator
from src.saleslens.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry
from src.saleslens.services.llm import LLMService
from src.saleslens.services.speech import ElevenLabsTTS
from src.saleslens.storage.history import HistoryStore
from src.saleslens.storage.workspaces import WorkspaceStore


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build stores and services on startup, cancel prefetches on shutdown."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()

    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    # ── Startup ───────────────────────────────────────────────────────────
    clock = SystemClock()
    ids = UuidIdGenerator()
    data_dir = settings.data_path
    data_dir.mkdir(parents=True, exist_ok=True)

    history_store = HistoryStore(data_dir, max_entries=settings.HISTORY_MAX_ENTRIES)
    workspace_store = WorkspaceStore(data_dir, clock=clock, ids=ids)
    llm_service = LLMService(settings)
    analysis_service = AnalysisService(llm_service)

    app.state.clock = clock
    app.state.id_generator = ids
    app.state.data_dir = data_dir
    app.state.history_store = history_store
    app.state.workspace_store = workspace_store
    app.state.llm_service = llm_service
    app.state.analysis_service = analysis_service
    app.state.speech_service = ElevenLabsTTS.from_settings(settings)
    app.state.coaching_prefetcher = CoachingPrefetcher()
    app.state.batch_orchestrator = BatchOrchestrator(
        analysis_service, history_store, clock=clock, ids=ids
    )

    log.info(
        "startup.ready",
        data_dir=str(data_dir),
        llm_configured=llm_service.configured,
        speech_configured=app.state.speech_service.configured,
    )

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    prefetcher = getattr(app.state, "coaching_prefetcher", None)
    if prefetcher is not None:
        await prefetcher.aclose()
    log.info("shutdown.complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="SalesLens API",
        version="0.1.0",
        description="Sales conversation analysis, coaching and account workspaces",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    # CORS middleware
    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-History-Entry-ID", "X-Event-Form-Fields", "X-Event-Form-Completeness", "X-Request-ID"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(v1_router)

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
