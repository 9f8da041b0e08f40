"""InteractionRecord: one analysed conversation as persisted in history."""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from src.saleslens.schemas.analysis import AnalysisResult, DealRisk, SourceKind
from src.saleslens.schemas.base import CamelModel
from src.saleslens.schemas.events import EventForm

logger = structlog.get_logger(__name__)


class InteractionRecord(CamelModel):
    """A history entry. Immutable once created; only removal is allowed.

    Everything except ``id`` and ``timestamp`` tolerates absence so that
    older or hand-edited history files still load; an unreadable
    ``analysis`` object degrades to ``None`` instead of dropping the entry.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    id: str = Field(min_length=1)
    timestamp: int
    source_kind: SourceKind = SourceKind.CALL_TRANSCRIPT
    company_name: str = ""
    lead_score: int = Field(default=0, ge=0, le=100)
    close_forecast_score: int | None = Field(default=None, ge=0, le=100)
    worth_chasing: bool = False
    deal_risk: DealRisk | None = None
    deal_stage: str | None = None
    deal_amount: str | None = None
    raw_text: str | None = None
    thread_context: str | None = None
    event_form: EventForm | None = None
    analysis: AnalysisResult | None = None

    @field_validator("analysis", mode="wrap")
    @classmethod
    def _tolerate_malformed_analysis(cls, value: Any, handler: Any) -> AnalysisResult | None:
        if value is None:
            return None
        try:
            return handler(value)
        except ValidationError as exc:
            logger.warning("history.analysis_unreadable", errors=exc.error_count())
            return None

    @classmethod
    def from_analysis(
        cls,
        *,
        entry_id: str,
        timestamp: int,
        source_kind: SourceKind,
        company_name: str,
        analysis: AnalysisResult,
        deal_stage: str | None = None,
        deal_amount: str | None = None,
        raw_text: str | None = None,
        thread_context: str | None = None,
        event_form: EventForm | None = None,
    ) -> InteractionRecord:
        """Build the history record for a freshly validated analysis."""
        return cls(
            id=entry_id,
            timestamp=timestamp,
            source_kind=source_kind,
            company_name=company_name,
            lead_score=analysis.lead_score,
            close_forecast_score=analysis.close_forecast,
            worth_chasing=analysis.worth_chasing,
            deal_risk=analysis.deal_risk,
            deal_stage=deal_stage,
            deal_amount=deal_amount or None,
            raw_text=raw_text,
            thread_context=thread_context,
            event_form=event_form,
            analysis=analysis,
        )
