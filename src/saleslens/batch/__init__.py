"""Sequential batch analysis of up to MAX_BATCH_ITEMS transcripts."""

from src.saleslens.batch.orchestrator import (
    MAX_BATCH_ITEMS,
    BatchOrchestrator,
    make_batch_item,
    split_batch_text,
)

__all__ = ["MAX_BATCH_ITEMS", "BatchOrchestrator", "make_batch_item", "split_batch_text"]
