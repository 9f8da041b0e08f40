"""Batch analysis endpoints.

POST /api/v1/batch runs the queue and answers once with the final items;
POST /api/v1/batch/stream reports every status transition as a
Server-Sent Event and ends with ``data: [DONE]``.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from pydantic import Field, field_validator

from src.saleslens.api.deps import get_batch_orchestrator, get_id_generator
from src.saleslens.api.v1.analyze import amount_to_str, check_conversation_limits
from src.saleslens.batch.orchestrator import (
    DEFAULT_DEAL_STAGE,
    MAX_BATCH_ITEMS,
    BatchOrchestrator,
    make_batch_item,
    split_batch_text,
)
from src.saleslens.core.ids import IdGenerator
from src.saleslens.schemas.base import CamelModel
from src.saleslens.schemas.batch import BatchItem

router = APIRouter(prefix="/batch", tags=["batch"])


class BatchItemInput(CamelModel):
    transcript: str = ""
    company_name: str = ""
    deal_stage: str = DEFAULT_DEAL_STAGE
    deal_amount: str = ""

    @field_validator("deal_amount", mode="before")
    @classmethod
    def _amount_as_text(cls, v: Any) -> Any:
        return "" if v is None else amount_to_str(v)


class BatchRequest(CamelModel):
    """Explicit items, a pasted blob of ``---``-separated transcripts, or both.

    Non-empty bulk ``companyName``/``dealStage``/``dealAmount`` values
    override the matching field of every item.
    """

    items: list[BatchItemInput] = Field(default_factory=list)
    text: str = ""
    company_name: str = ""
    deal_stage: str = ""
    deal_amount: str = ""

    @field_validator("deal_amount", mode="before")
    @classmethod
    def _amount_as_text(cls, v: Any) -> Any:
        return "" if v is None else amount_to_str(v)


def expand_items(body: BatchRequest) -> list[BatchItemInput]:
    """Combine explicit items with pasted chunks and apply the bulk values."""
    inputs = list(body.items) + [BatchItemInput(transcript=chunk) for chunk in split_batch_text(body.text)]
    return [
        item.model_copy(
            update={
                "company_name": body.company_name.strip() or item.company_name,
                "deal_stage": body.deal_stage.strip() or item.deal_stage,
                "deal_amount": body.deal_amount or item.deal_amount,
            }
        )
        for item in inputs
    ]


def build_queue(body: BatchRequest, ids: IdGenerator) -> list[BatchItem]:
    """Validate the request and turn it into pending BatchItems."""
    items = expand_items(body)
    if not items:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="At least one batch item is required.")
    if len(items) > MAX_BATCH_ITEMS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"A batch holds at most {MAX_BATCH_ITEMS} items.",
        )

    queue: list[BatchItem] = []
    for position, item in enumerate(items, start=1):
        transcript = item.transcript.strip()
        company_name = item.company_name.strip()
        if not transcript or not company_name:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Item {position}: transcript and company name are required.",
            )
        check_conversation_limits(transcript, company_name)
        queue.append(
            make_batch_item(
                ids.new_id("batch"),
                transcript,
                company_name,
                deal_stage=item.deal_stage,
                deal_amount=item.deal_amount or "",
            )
        )
    return queue


def summarize(items: list[BatchItem]) -> dict[str, int]:
    completed = sum(1 for item in items if item.status == "completed")
    failed = sum(1 for item in items if item.status == "error")
    return {"total": len(items), "completed": completed, "failed": failed}


@router.post("")
async def run_batch(
    body: BatchRequest,
    orchestrator: BatchOrchestrator = Depends(get_batch_orchestrator),
    ids: IdGenerator = Depends(get_id_generator),
) -> dict:
    queue = build_queue(body, ids)
    items = await orchestrator.run(queue)
    return {"items": [item.to_wire() for item in items], "summary": summarize(items)}


@router.post("/stream")
async def run_batch_stream(
    body: BatchRequest,
    orchestrator: BatchOrchestrator = Depends(get_batch_orchestrator),
    ids: IdGenerator = Depends(get_id_generator),
) -> StreamingResponse:
    """Stream queue snapshots as SSE while the batch runs."""
    queue = build_queue(body, ids)
    snapshots: asyncio.Queue[list[BatchItem] | None] = asyncio.Queue()

    async def on_update(items: list[BatchItem]) -> None:
        await snapshots.put(items)

    async def event_generator():
        runner = asyncio.create_task(orchestrator.run(queue, on_update=on_update))
        runner.add_done_callback(lambda _: snapshots.put_nowait(None))
        try:
            while True:
                items = await snapshots.get()
                if items is None:
                    break
                payload = {"items": [item.to_wire() for item in items], "summary": summarize(items)}
                yield f"data: {json.dumps(payload)}\n\n"
            await runner
        finally:
            if not runner.done():
                runner.cancel()
        yield "data: [DONE]\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
