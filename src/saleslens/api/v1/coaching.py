"""Coaching endpoints: structured coaching script and spoken audio."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status

from src.saleslens.analysis.prefetch import CoachingPrefetcher
from src.saleslens.analysis.service import AnalysisService
from src.saleslens.api.deps import get_analysis_service, get_prefetcher, get_speech_service
from src.saleslens.api.v1.analyze import check_conversation_limits, resolve_source_kind
from src.saleslens.schemas.base import CamelModel
from src.saleslens.services.speech import MAX_SPEECH_TEXT_LENGTH, ElevenLabsTTS

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["coaching"])


class CoachingScriptRequest(CamelModel):
    transcript: str = ""
    company_name: str = ""
    deal_stage: str | None = None
    source: str | None = None
    analysis_result: Any = None
    prefetch_key: str | None = None


class VoiceCoachingRequest(CamelModel):
    coaching_summary: str = ""


@router.post("/coaching-script")
async def coaching_script(
    body: CoachingScriptRequest,
    service: AnalysisService = Depends(get_analysis_service),
    prefetcher: CoachingPrefetcher = Depends(get_prefetcher),
) -> dict:
    """Return a coaching script, from the prefetch under ``prefetchKey`` when one finished."""
    if not body.transcript.strip() or not body.company_name.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Transcript and company name are required.",
        )
    check_conversation_limits(body.transcript, body.company_name)

    if body.prefetch_key:
        prefetched = await prefetcher.take(body.prefetch_key)
        if prefetched is not None:
            logger.info("coaching.prefetch_hit", key=body.prefetch_key)
            return prefetched.to_wire()

    script = await service.generate_coaching_script(
        text=body.transcript,
        company_name=body.company_name.strip(),
        deal_stage=body.deal_stage,
        source_kind=resolve_source_kind(body.source),
        analysis_result=body.analysis_result,
    )
    return script.to_wire()


@router.delete("/coaching-script/prefetch/{key}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_prefetch(
    key: str,
    prefetcher: CoachingPrefetcher = Depends(get_prefetcher),
) -> Response:
    """Cancel a background prefetch; its result is never delivered."""
    prefetcher.cancel(key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/voice-coaching")
async def voice_coaching(
    body: VoiceCoachingRequest,
    speech: ElevenLabsTTS = Depends(get_speech_service),
) -> Response:
    """Render coaching text to MP3 audio."""
    text = body.coaching_summary
    if not text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Coaching summary text is required.",
        )
    if len(text) > MAX_SPEECH_TEXT_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Coaching summary exceeds maximum length of {MAX_SPEECH_TEXT_LENGTH} characters.",
        )

    audio = await speech.synthesize(text)
    return Response(content=audio, media_type="audio/mpeg")
