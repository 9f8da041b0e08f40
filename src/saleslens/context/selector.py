"""Keyword/recency relevance selection of history entries for chat grounding.

Each InteractionRecord gets an additive score against the question:

- +100  question contains the company name verbatim
- +20   per question token (len >= 3) overlapping a company-name token
- +5    per question token found in the raw conversation text
- +3    per question token found in the analysis text (reasoning,
        coaching, email, next steps, signals, objections)
- +15   once, if the question mentions any financial term
- +15   once, if the question mentions a source-kind keyword and the
        record has that source kind
- +10 / +7 / +4 / +2  recency: < 1h, < 24h, < 7d, older

Records are sorted by total score (stable), the top 10 (25 for broad
"all/every/pipeline/summary/overview/dashboard" questions) with a
positive keyword score are kept, and if none qualifies the first 5 of
the sorted list are used instead. The keyword tables are tuned
heuristics; changing them changes which history the assistant sees.

Pure and synchronous: time enters only through ``now_ms``.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import datetime, timezone

from src.saleslens.schemas.analysis import AnalysisResult, SourceKind
from src.saleslens.schemas.history import InteractionRecord

NO_HISTORY_MESSAGE = "No customer interaction history available yet."

MAX_ENTRIES = 10
MAX_ENTRIES_BROAD = 25
FALLBACK_ENTRIES = 5
EXCERPT_LENGTH = 300
MIN_TOKEN_LENGTH = 3
ENTRY_SEPARATOR = "\n\n---\n\n"

COMPANY_EXACT_BONUS = 100
COMPANY_TOKEN_BONUS = 20
RAW_TEXT_TOKEN_BONUS = 5
ANALYSIS_TOKEN_BONUS = 3
FINANCIAL_BONUS = 15
SOURCE_KIND_BONUS = 15

FINANCIAL_KEYWORDS: tuple[str, ...] = (
    "budget", "arr", "mrr", "revenue", "pipeline", "roi",
    "pricing", "competitor", "discount", "contract", "spend", "payback",
)

SOURCE_KIND_KEYWORDS: dict[SourceKind, tuple[str, ...]] = {
    SourceKind.EMAIL_THREAD: ("email", "emails", "thread", "threads", "inbox", "sent", "reply", "replied"),
    SourceKind.EVENT_NOTES: ("event", "events", "conference", "booth", "meetup", "trade show"),
    SourceKind.CALL_TRANSCRIPT: ("call", "calls", "meeting", "meetings", "transcript", "transcripts"),
    SourceKind.BATCH_ITEM: ("batch", "bulk", "multiple"),
}

BROAD_INTENT_MARKERS: tuple[str, ...] = ("all ", "every ", "pipeline", "summary", "overview", "dashboard")

# (max age in hours, bonus); anything older gets RECENCY_FLOOR
RECENCY_TIERS: tuple[tuple[float, int], ...] = ((1, 10), (24, 7), (168, 4))
RECENCY_FLOOR = 2

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_MS_PER_HOUR = 1000 * 60 * 60


def tokenize(text: str) -> list[str]:
    """Lowercase, replace non-alphanumerics with spaces, split, drop empties."""
    return _NON_ALNUM_RE.sub(" ", (text or "").lower()).split()


def _analysis_text(analysis: AnalysisResult | None) -> str:
    if analysis is None:
        return ""
    parts = [
        analysis.lead_score_reasoning,
        analysis.worth_chasing_reasoning,
        analysis.deal_risk_reasoning,
        analysis.close_forecast_reasoning,
        analysis.coaching_summary,
        analysis.follow_up_email,
        *analysis.next_steps,
        *(f"{b.signal} {b.evidence}" for b in analysis.buying_signals),
        *(f"{o.objection} {o.evidence}" for o in analysis.objections),
    ]
    return " ".join(p for p in parts if p).lower()


def _recency_bonus(timestamp_ms: int, now_ms: int) -> int:
    age_hours = (now_ms - timestamp_ms) / _MS_PER_HOUR
    for max_age, bonus in RECENCY_TIERS:
        if age_hours < max_age:
            return bonus
    return RECENCY_FLOOR


def relevance_score(question: str, entry: InteractionRecord) -> int:
    """Keyword part of the score: every term except recency."""
    question_lower = question.lower()
    keywords = [t for t in tokenize(question) if len(t) >= MIN_TOKEN_LENGTH]
    score = 0

    if entry.company_name and entry.company_name.lower() in question_lower:
        score += COMPANY_EXACT_BONUS

    company_tokens = tokenize(entry.company_name)
    for token in keywords:
        if any(ct in token or token in ct for ct in company_tokens):
            score += COMPANY_TOKEN_BONUS

    raw_text = (entry.raw_text or "").lower()
    for token in keywords:
        if token in raw_text:
            score += RAW_TEXT_TOKEN_BONUS

    analysis_text = _analysis_text(entry.analysis)
    for token in keywords:
        if token in analysis_text:
            score += ANALYSIS_TOKEN_BONUS

    if any(kw in question_lower for kw in FINANCIAL_KEYWORDS):
        score += FINANCIAL_BONUS

    for kind, kind_keywords in SOURCE_KIND_KEYWORDS.items():
        if entry.source_kind == kind and any(k in question_lower for k in kind_keywords):
            score += SOURCE_KIND_BONUS

    return score


def score_entry(question: str, entry: InteractionRecord, now_ms: int) -> int:
    """Full additive score of one record at instant ``now_ms``."""
    return relevance_score(question, entry) + _recency_bonus(entry.timestamp, now_ms)


def _money(value: float) -> str:
    if float(value).is_integer():
        return f"${int(value):,}"
    return f"${value:,.2f}"


def _financial_line(analysis: AnalysisResult | None) -> str | None:
    fa = analysis.financial_analysis if analysis else None
    if fa is None:
        return None
    parts: list[str] = []
    if fa.deal_economics.weighted_pipeline_value is not None:
        parts.append(f"Pipeline: {_money(fa.deal_economics.weighted_pipeline_value)}")
    if fa.deal_economics.extracted_annual_spend is not None:
        parts.append(f"ARR: {_money(fa.deal_economics.extracted_annual_spend)}")
    if fa.budget_health.status:
        parts.append(f"Budget: {fa.budget_health.status}")
    parts.append(f"Revenue Risk: {fa.revenue_risk.overall_score}/100")
    competitors = [c.competitor for c in fa.competitive_pricing.competitors_detected]
    if competitors:
        parts.append(f"Competitors: {', '.join(competitors)}")
    return f"Financial: {' | '.join(parts)}"


def _excerpt(raw_text: str | None) -> str:
    if not raw_text:
        return "(no transcript)"
    excerpt = raw_text[:EXCERPT_LENGTH].replace("\n", " ").strip()
    if len(raw_text) > EXCERPT_LENGTH:
        excerpt += "..."
    return excerpt


def format_entry_summary(entry: InteractionRecord) -> str:
    """Render one record as a compact multi-line block."""
    when = datetime.fromtimestamp(entry.timestamp / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    lines = [
        f"[{entry.company_name}] ({entry.source_kind.value}) - {when}",
        f"Lead Score: {entry.lead_score} | Worth Chasing: {'Yes' if entry.worth_chasing else 'No'}"
        f" | Deal Risk: {entry.deal_risk or 'Unknown'}",
    ]
    if entry.deal_stage:
        lines.append(f"Deal Stage: {entry.deal_stage}")
    if entry.deal_amount:
        lines.append(f"Deal Amount: ${entry.deal_amount}")

    financial = _financial_line(entry.analysis)
    if financial:
        lines.append(financial)

    analysis = entry.analysis
    if analysis and analysis.next_steps:
        lines.append(f"Next Steps: {'; '.join(analysis.next_steps[:3])}")
    if analysis and analysis.buying_signals:
        lines.append(f"Buying Signals: {'; '.join(b.signal for b in analysis.buying_signals[:2])}")
    if analysis and analysis.objections:
        lines.append(f"Objections: {'; '.join(o.objection for o in analysis.objections[:2])}")

    lines.append(f"Excerpt: {_excerpt(entry.raw_text)}")
    return "\n".join(lines)


def selection_limit(question: str) -> int:
    question_lower = question.lower()
    if any(marker in question_lower for marker in BROAD_INTENT_MARKERS):
        return MAX_ENTRIES_BROAD
    return MAX_ENTRIES


def rank_history(
    question: str,
    history: Sequence[InteractionRecord],
    now_ms: int,
) -> list[tuple[InteractionRecord, int, int]]:
    """Score every record and sort by total score descending (stable on ties).

    Returns ``(entry, relevance, total)`` triples, where ``total`` adds
    the recency bonus to the keyword ``relevance``.
    """
    ranked = []
    for entry in history:
        relevance = relevance_score(question, entry)
        ranked.append((entry, relevance, relevance + _recency_bonus(entry.timestamp, now_ms)))
    ranked.sort(key=lambda triple: triple[2], reverse=True)
    return ranked


def select_entries(
    question: str,
    history: Sequence[InteractionRecord],
    now_ms: int,
) -> list[InteractionRecord]:
    """The records that go into the context block, in ranked order.

    The positive-score cut applies to keyword relevance: recency is
    always positive, so it orders records but cannot qualify one alone.
    """
    ranked = rank_history(question, history, now_ms)
    selected = [entry for entry, relevance, _ in ranked if relevance > 0][: selection_limit(question)]
    if not selected:
        selected = [entry for entry, _, _ in ranked[:FALLBACK_ENTRIES]]
    return selected


def select_relevant_history(
    question: str,
    history: Sequence[InteractionRecord],
    now_ms: int,
) -> str:
    """Build the bounded grounding block for a chat question.

    Args:
        question: Free-text user question.
        history: All stored records; input order carries no meaning.
        now_ms: Epoch milliseconds used for the recency term.

    Returns:
        ``NO_HISTORY_MESSAGE`` for empty history, otherwise a header
        ``=== Sales History (k of n entries) ===`` followed by the
        selected record summaries separated by ``---`` lines.
    """
    if not history:
        return NO_HISTORY_MESSAGE

    selected = select_entries(question, history, now_ms)
    summaries = [format_entry_summary(entry) for entry in selected]
    header = f"=== Sales History ({len(selected)} of {len(history)} entries) ==="
    return f"{header}\n\n{ENTRY_SEPARATOR.join(summaries)}"
