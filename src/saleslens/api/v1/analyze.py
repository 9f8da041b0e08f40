"""Conversation analysis endpoint.

POST /api/v1/analyze accepts a call transcript, an email thread or a
structured event form, runs one model analysis and returns the validated
AnalysisResult. Optionally it persists the interaction (history record +
AI tasks in the company workspace) and starts a background coaching
prefetch.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import field_validator

from src.saleslens.analysis.event_form import completeness_label, count_filled_fields, event_form_to_notes
from src.saleslens.analysis.prefetch import CoachingPrefetcher
from src.saleslens.analysis.service import AnalysisService, AnalyzeInput
from src.saleslens.api.deps import (
    get_analysis_service,
    get_clock,
    get_history_store,
    get_id_generator,
    get_prefetcher,
    get_workspace_store,
)
from src.saleslens.core.errors import WorkspaceUnreadableError
from src.saleslens.core.ids import Clock, IdGenerator
from src.saleslens.core.slug import company_slug
from src.saleslens.schemas.analysis import AnalysisResult, SourceKind
from src.saleslens.schemas.base import CamelModel
from src.saleslens.schemas.events import EventForm
from src.saleslens.schemas.history import InteractionRecord
from src.saleslens.storage.history import HistoryStore
from src.saleslens.storage.workspaces import WorkspaceStore

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["analysis"])

MAX_TRANSCRIPT_LENGTH = 50_000
MAX_COMPANY_NAME_LENGTH = 200
DEFAULT_EVENT_DEAL_STAGE = "Discovery"

HISTORY_ENTRY_HEADER = "X-History-Entry-ID"
EVENT_FORM_FIELDS_HEADER = "X-Event-Form-Fields"
EVENT_FORM_COMPLETENESS_HEADER = "X-Event-Form-Completeness"

_SOURCE_ALIASES: dict[str, SourceKind] = {
    "transcript": SourceKind.CALL_TRANSCRIPT,
    "call-transcript": SourceKind.CALL_TRANSCRIPT,
    "email-thread": SourceKind.EMAIL_THREAD,
    "event-form": SourceKind.EVENT_NOTES,
    "event-notes": SourceKind.EVENT_NOTES,
    "batch-item": SourceKind.BATCH_ITEM,
}


def resolve_source_kind(source: str | None, has_event_form: bool = False) -> SourceKind:
    """Map the client's ``source`` value to a SourceKind (call when unknown)."""
    if has_event_form:
        return SourceKind.EVENT_NOTES
    return _SOURCE_ALIASES.get((source or "").strip().lower(), SourceKind.CALL_TRANSCRIPT)


def check_conversation_limits(text: str, company_name: str) -> None:
    """Enforce the conversation-text and company-name ceilings (413 / 400)."""
    if len(text) > MAX_TRANSCRIPT_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Transcript exceeds maximum length of {MAX_TRANSCRIPT_LENGTH} characters.",
        )
    if len(company_name) > MAX_COMPANY_NAME_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Company name is too long (maximum {MAX_COMPANY_NAME_LENGTH} characters).",
        )


def amount_to_str(value: Any) -> Any:
    """Accept a numeric deal amount from clients that send one."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    return value



# ── Request Schemas ──────────────────────────────────────────────────────────


class AnalyzeRequest(CamelModel):
    transcript: str | None = None
    company_name: str = ""
    deal_stage: str = ""
    deal_amount: str | None = None
    source: str | None = None
    thread_context: str | None = None
    event_form: EventForm | None = None
    persist: bool = False
    prefetch_key: str | None = None

    @field_validator("deal_amount", mode="before")
    @classmethod
    def _amount_as_text(cls, v: Any) -> Any:
        return amount_to_str(v)


# ── Helpers ──────────────────────────────────────────────────────────────────


async def persist_interaction(
    *,
    result: AnalysisResult,
    request: AnalyzeInput,
    body: AnalyzeRequest,
    history: HistoryStore,
    workspaces: WorkspaceStore,
    clock: Clock,
    ids: IdGenerator,
) -> InteractionRecord:
    """Append the history record and import next steps into the account workspace."""
    record = InteractionRecord.from_analysis(
        entry_id=ids.new_id("entry"),
        timestamp=clock.now_ms(),
        source_kind=request.source_kind,
        company_name=request.company_name,
        analysis=result,
        deal_stage=request.deal_stage,
        deal_amount=request.deal_amount,
        raw_text=request.text,
        thread_context=body.thread_context,
        event_form=body.event_form,
    )
    await history.add_entry(record)

    slug = company_slug(request.company_name)
    try:
        await workspaces.get_or_create(slug, request.company_name)
    except WorkspaceUnreadableError:
        logger.warning("analyze.task_import_skipped", slug=slug, entry_id=record.id)
        return record
    await workspaces.import_ai_tasks(
        slug,
        result.next_steps,
        source_interaction_id=record.id,
        created_at=record.timestamp,
    )
    return record


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.post("/analyze")
async def analyze(
    body: AnalyzeRequest,
    service: AnalysisService = Depends(get_analysis_service),
    history: HistoryStore = Depends(get_history_store),
    workspaces: WorkspaceStore = Depends(get_workspace_store),
    prefetcher: CoachingPrefetcher = Depends(get_prefetcher),
    clock: Clock = Depends(get_clock),
    ids: IdGenerator = Depends(get_id_generator),
) -> JSONResponse:
    """Analyse one conversation and return the structured assessment.

    With ``eventForm`` the conversation text is the rendered event briefing
    and the deal stage defaults to Discovery. ``persist`` stores the
    interaction and reports its id in the X-History-Entry-ID header. Event
    forms also report how many scored fields were filled in the
    X-Event-Form-Fields and X-Event-Form-Completeness headers.
    """
    source_kind = resolve_source_kind(body.source, body.event_form is not None)

    if body.event_form is not None:
        text = event_form_to_notes(body.event_form)
        company_name = (body.company_name or body.event_form.company_name).strip()
        deal_stage = body.deal_stage or DEFAULT_EVENT_DEAL_STAGE
        if not company_name:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Company name is required for event notes.",
            )
    else:
        text = body.transcript or ""
        company_name = body.company_name.strip()
        deal_stage = body.deal_stage
        if not text.strip() or not company_name or not deal_stage:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Transcript, company name, and deal stage are required.",
            )

    check_conversation_limits(text, company_name)
    if body.thread_context and len(body.thread_context) > MAX_TRANSCRIPT_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Thread context exceeds maximum length of {MAX_TRANSCRIPT_LENGTH} characters.",
        )

    request = AnalyzeInput(
        text=text,
        company_name=company_name,
        deal_stage=deal_stage,
        deal_amount=body.deal_amount or None,
        source_kind=source_kind,
    )
    result = await service.analyze(request)

    if body.prefetch_key:
        prefetcher.start(
            body.prefetch_key,
            lambda: service.generate_coaching_script(
                text=text,
                company_name=company_name,
                deal_stage=deal_stage,
                source_kind=source_kind,
                analysis_result=result.to_wire(),
            ),
        )

    headers: dict[str, str] = {}
    if body.event_form is not None:
        filled, total = count_filled_fields(body.event_form)
        headers[EVENT_FORM_FIELDS_HEADER] = f"{filled}/{total}"
        headers[EVENT_FORM_COMPLETENESS_HEADER] = completeness_label(filled)
        logger.info("analyze.event_form_completeness", company=company_name, filled=filled, total=total)
    if body.persist:
        record = await persist_interaction(
            result=result,
            request=request,
            body=body,
            history=history,
            workspaces=workspaces,
            clock=clock,
            ids=ids,
        )
        headers[HISTORY_ENTRY_HEADER] = record.id

    return JSONResponse(content=result.to_wire(), headers=headers)
