"""Batch orchestrator: drive the analyzer over a queue, one item at a time.

Processing is strictly sequential: exactly one model call is in flight,
total wall time is the sum of the per-item latencies, and progress is
reported in queue order. Each item moves pending -> processing ->
completed | error; a failing item is recorded and the queue moves on.
Successful results are appended to history as ``batch-item`` records.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable

import structlog

from src.saleslens.analysis.service import AnalysisService, AnalyzeInput
from src.saleslens.core.errors import SalesLensError
from src.saleslens.core.ids import Clock, IdGenerator, SystemClock, UuidIdGenerator
from src.saleslens.core.monitoring import batch_items_total
from src.saleslens.schemas.analysis import SourceKind
from src.saleslens.schemas.batch import BatchItem
from src.saleslens.schemas.history import InteractionRecord
from src.saleslens.storage.history import HistoryStore

logger = structlog.get_logger(__name__)

MAX_BATCH_ITEMS = 10
PREVIEW_LENGTH = 120
DEFAULT_DEAL_STAGE = "Discovery"
GENERIC_FAILURE = "Analysis failed"

_BATCH_SEPARATOR_RE = re.compile(r"\n---\n")

UpdateCallback = Callable[[list[BatchItem]], Awaitable[None]]


def split_batch_text(text: str) -> list[str]:
    """Split multi-transcript paste on ``---`` lines; trims and drops empty chunks."""
    return [chunk.strip() for chunk in _BATCH_SEPARATOR_RE.split(text or "") if chunk.strip()]


def make_preview(transcript: str) -> str:
    preview = transcript[:PREVIEW_LENGTH].replace("\n", " ").strip()
    if len(transcript) > PREVIEW_LENGTH:
        preview += "..."
    return preview


def make_batch_item(
    item_id: str,
    transcript: str,
    company_name: str,
    deal_stage: str = DEFAULT_DEAL_STAGE,
    deal_amount: str = "",
) -> BatchItem:
    return BatchItem(
        id=item_id,
        transcript=transcript,
        preview=make_preview(transcript),
        company_name=company_name,
        deal_stage=deal_stage or DEFAULT_DEAL_STAGE,
        deal_amount=deal_amount,
    )


class BatchOrchestrator:
    """Sequential driver of AnalysisService over a list of BatchItems.

    Args:
        analysis: Service that analyses one transcript.
        history: Store successful results are appended to.
        clock: Timestamp source for history records.
        ids: Id source for history records.
    """

    def __init__(
        self,
        analysis: AnalysisService,
        history: HistoryStore,
        clock: Clock | None = None,
        ids: IdGenerator | None = None,
    ) -> None:
        self._analysis = analysis
        self._history = history
        self._clock = clock or SystemClock()
        self._ids = ids or UuidIdGenerator()

    async def run(
        self,
        items: list[BatchItem],
        on_update: UpdateCallback | None = None,
    ) -> list[BatchItem]:
        """Process ``items`` in order and return their final states.

        ``on_update`` receives a snapshot of the whole queue after every
        status transition.

        Raises:
            ValueError: More than MAX_BATCH_ITEMS items.
        """
        if len(items) > MAX_BATCH_ITEMS:
            raise ValueError(f"A batch holds at most {MAX_BATCH_ITEMS} items.")

        queue = [item.model_copy(update={"status": "pending"}) for item in items]

        async def _publish() -> None:
            if on_update is not None:
                await on_update(list(queue))

        logger.info("batch.started", items=len(queue))
        for index, item in enumerate(queue):
            queue[index] = item.model_copy(update={"status": "processing", "error": None})
            await _publish()
            queue[index] = await self._process(queue[index])
            batch_items_total.labels(status=queue[index].status).inc()
            await _publish()

        completed = sum(1 for item in queue if item.status == "completed")
        logger.info("batch.finished", completed=completed, failed=len(queue) - completed)
        return queue

    async def _process(self, item: BatchItem) -> BatchItem:
        try:
            result = await self._analysis.analyze(
                AnalyzeInput(
                    text=item.transcript,
                    company_name=item.company_name,
                    deal_stage=item.deal_stage,
                    deal_amount=item.deal_amount or None,
                    source_kind=SourceKind.BATCH_ITEM,
                )
            )
            record = InteractionRecord.from_analysis(
                entry_id=self._ids.new_id("entry"),
                timestamp=self._clock.now_ms(),
                source_kind=SourceKind.BATCH_ITEM,
                company_name=item.company_name,
                analysis=result,
                deal_stage=item.deal_stage,
                deal_amount=item.deal_amount,
                raw_text=item.transcript,
            )
            await self._history.add_entry(record)
        except SalesLensError as exc:
            logger.warning("batch.item_failed", item_id=item.id, error=exc.message)
            return item.model_copy(update={"status": "error", "error": exc.message})
        except Exception:
            logger.exception("batch.item_crashed", item_id=item.id)
            return item.model_copy(update={"status": "error", "error": GENERIC_FAILURE})

        return item.model_copy(
            update={"status": "completed", "result": result, "history_entry_id": record.id}
        )
