"""FastAPI dependencies for the long-lived collaborators on ``app.state``.

The lifespan handler in ``src.saleslens.main`` publishes the stores and
services; each getter answers 503 when its collaborator is missing.
Tests swap collaborators by setting ``app.state`` directly.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request, status

from src.saleslens.analysis.prefetch import CoachingPrefetcher
from src.saleslens.analysis.service import AnalysisService
from src.saleslens.batch.orchestrator import BatchOrchestrator
from src.saleslens.core.ids import Clock, IdGenerator, SystemClock, UuidIdGenerator
from src.saleslens.services.speech import ElevenLabsTTS
from src.saleslens.storage.history import HistoryStore
from src.saleslens.storage.workspaces import WorkspaceStore


def _from_state(request: Request, name: str, label: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} not initialized",
        )
    return value


def get_history_store(request: Request) -> HistoryStore:
    return _from_state(request, "history_store", "History store")


def get_workspace_store(request: Request) -> WorkspaceStore:
    return _from_state(request, "workspace_store", "Workspace store")


def get_analysis_service(request: Request) -> AnalysisService:
    return _from_state(request, "analysis_service", "Analysis service")


def get_speech_service(request: Request) -> ElevenLabsTTS:
    return _from_state(request, "speech_service", "Speech service")


def get_prefetcher(request: Request) -> CoachingPrefetcher:
    return _from_state(request, "coaching_prefetcher", "Coaching prefetcher")


def get_batch_orchestrator(request: Request) -> BatchOrchestrator:
    return _from_state(request, "batch_orchestrator", "Batch orchestrator")


def get_clock(request: Request) -> Clock:
    """Clock on app.state, system clock when none was configured."""
    return getattr(request.app.state, "clock", None) or SystemClock()


def get_id_generator(request: Request) -> IdGenerator:
    return getattr(request.app.state, "id_generator", None) or UuidIdGenerator()
