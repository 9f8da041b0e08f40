"""Batch queue item state."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from src.saleslens.schemas.analysis import AnalysisResult
from src.saleslens.schemas.base import CamelModel

BatchItemStatus = Literal["pending", "processing", "completed", "error"]


class BatchItem(CamelModel):
    id: str
    transcript: str
    preview: str = ""
    company_name: str = Field(min_length=1, max_length=200)
    deal_stage: str = "Discovery"
    deal_amount: str = ""
    status: BatchItemStatus = "pending"
    result: AnalysisResult | None = None
    error: str | None = None
    history_entry_id: str | None = None
