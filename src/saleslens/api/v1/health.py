"""Health check endpoints.

Provides liveness (/health) and readiness (/health/ready) checks.
"""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from src.saleslens.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check. No dependencies are checked."""
    settings = get_settings()
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


def _probe_writable(directory: Path) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(dir=directory, prefix=".probe-"):
        pass


async def _check_dependencies(request: Request) -> dict:
    """Check data directory writability and LLM key presence. Returns check results dict."""
    checks: dict = {"data_dir": "ok", "litellm": "ok", "speech": "ok"}
    settings = get_settings()

    data_dir = getattr(request.app.state, "data_dir", None) or settings.data_path
    try:
        await asyncio.to_thread(_probe_writable, Path(data_dir))
    except OSError as e:
        checks["data_dir"] = "error"
        checks["data_dir_error"] = str(e)

    llm = getattr(request.app.state, "llm_service", None)
    configured = llm.configured if llm is not None else settings.llm_configured
    if not configured:
        checks["litellm"] = "no_keys"

    speech = getattr(request.app.state, "speech_service", None)
    if speech is None or not speech.configured:
        checks["speech"] = "no_keys"

    return checks


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness check: 200 when the data directory is writable, 503 otherwise.

    Missing provider keys are reported as ``no_keys`` but do not fail readiness:
    history and workspace endpoints still work without them.
    """
    checks = await _check_dependencies(request)
    all_healthy = checks.get("data_dir") == "ok"

    return JSONResponse(
        status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if all_healthy else "degraded",
            "checks": checks,
        },
    )
