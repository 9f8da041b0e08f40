"""Interaction history endpoints (list, append, remove, clear)."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from src.saleslens.api.deps import get_history_store
from src.saleslens.schemas.history import InteractionRecord
from src.saleslens.storage.history import HistoryStore

router = APIRouter(prefix="/history", tags=["history"])

MAX_HISTORY_BODY_LENGTH = 200_000


def _wire(entries: list[InteractionRecord]) -> list[dict]:
    return [entry.to_wire() for entry in entries]


@router.get("")
async def list_history(history: HistoryStore = Depends(get_history_store)) -> list[dict]:
    return _wire(await history.read_history())


@router.post("")
async def add_history_entry(
    request: Request,
    history: HistoryStore = Depends(get_history_store),
) -> list[dict]:
    """Append a client-built record; rejects bodies over 200,000 characters."""
    raw = await request.body()
    if len(raw.decode("utf-8", errors="replace")) > MAX_HISTORY_BODY_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Payload too large",
        )
    try:
        payload = json.loads(raw or b"null")
    except json.JSONDecodeError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body") from None

    if not isinstance(payload, dict) or not payload.get("id"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid entry: id is required")
    try:
        entry = InteractionRecord.model_validate(payload)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid entry: {', '.join(fields)}",
        ) from None

    return _wire(await history.add_entry(entry))


@router.delete("/{entry_id}")
async def remove_history_entry(
    entry_id: str,
    history: HistoryStore = Depends(get_history_store),
) -> list[dict]:
    return _wire(await history.remove_entry(entry_id))


@router.delete("")
async def clear_history(history: HistoryStore = Depends(get_history_store)) -> list[dict]:
    return _wire(await history.clear())
