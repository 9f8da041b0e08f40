"""V1 API router -- aggregates all v1 endpoint routers under /api/v1."""

from __future__ import annotations

from fastapi import APIRouter

from src.saleslens.api.v1 import analyze, batch, chat, coaching, history, workspaces

router = APIRouter(prefix="/api/v1")

router.include_router(analyze.router)
router.include_router(chat.router)
router.include_router(coaching.router)
router.include_router(history.router)
router.include_router(workspaces.router)
router.include_router(batch.router)
