"""Sales assistant chat endpoint.

When the client sends no ``context`` the server grounds the answer itself
with the relevance selector over stored history.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from src.saleslens.analysis.service import AnalysisService
from src.saleslens.api.deps import get_analysis_service, get_clock, get_history_store
from src.saleslens.context import select_relevant_history
from src.saleslens.core.ids import Clock
from src.saleslens.schemas.base import CamelModel
from src.saleslens.schemas.chat import ChatTurn
from src.saleslens.storage.history import HistoryStore

router = APIRouter(tags=["chat"])

MAX_QUESTION_LENGTH = 2_000


class ChatRequest(CamelModel):
    question: str = ""
    context: str | None = None
    conversation_history: list[Any] | None = None


def parse_prior_turns(raw_turns: list[Any] | None) -> list[ChatTurn]:
    """Keep well-formed ``{role: user|assistant, content: str}`` turns, drop the rest."""
    turns: list[ChatTurn] = []
    for raw in raw_turns or []:
        if not isinstance(raw, dict):
            continue
        role, content = raw.get("role"), raw.get("content")
        if role in ("user", "assistant") and isinstance(content, str):
            turns.append(ChatTurn(role=role, content=content))
    return turns


@router.post("/chat")
async def chat(
    body: ChatRequest,
    service: AnalysisService = Depends(get_analysis_service),
    history: HistoryStore = Depends(get_history_store),
    clock: Clock = Depends(get_clock),
) -> dict:
    """Answer a question about the sales history; returns {answer, tasks?}."""
    question = body.question.strip()
    if not question:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Question is required.")
    if len(body.question) > MAX_QUESTION_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Question exceeds maximum length of {MAX_QUESTION_LENGTH} characters.",
        )

    context = body.context
    if context is None:
        entries = await history.read_history()
        context = select_relevant_history(question, entries, clock.now_ms())

    answer = await service.answer_question(
        question=body.question,
        context=context,
        prior_turns=parse_prior_turns(body.conversation_history),
    )
    return answer.to_wire()
