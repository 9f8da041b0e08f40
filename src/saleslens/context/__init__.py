"""Grounding context for the chat assistant.

Provides:
- select_relevant_history: score stored interactions against a question
  and format the top matches as a bounded text block
- score_entry / format_entry_summary / tokenize: the pieces, exported for tests
"""

from src.saleslens.context.selector import (
    NO_HISTORY_MESSAGE,
    format_entry_summary,
    relevance_score,
    score_entry,
    select_relevant_history,
    tokenize,
)

__all__ = [
    "NO_HISTORY_MESSAGE",
    "format_entry_summary",
    "relevance_score",
    "score_entry",
    "select_relevant_history",
    "tokenize",
]
