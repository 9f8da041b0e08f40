"""Convert structured event-conversation notes into analysable text.

A rep at a conference fills in a short BANT-style form instead of pasting
a transcript. ``event_form_to_notes`` renders that form as a briefing
block the analysis prompt treats like any other conversation text.
"""

from __future__ import annotations

from src.saleslens.schemas.events import EventForm

BRIEFING_START = "=== EVENT CONVERSATION BRIEFING ==="
BRIEFING_END = "=== END BRIEFING ==="

# additional_notes and decision_maker_name are not scored
SCORED_FIELDS: tuple[str, ...] = (
    "prospect_name",
    "prospect_title",
    "company_name",
    "event_name",
    "pain_point",
    "budget",
    "budget_notes",
    "decision_maker",
    "timeline",
    "competitors_mentioned",
    "interest_level",
    "next_steps_discussed",
    "notable_quotes",
)


def _block(lines: list[str], heading: str, body: str) -> None:
    if body:
        lines.extend([heading, body, ""])


def event_form_to_notes(form: EventForm) -> str:
    """Render an EventForm as the event briefing text.

    Empty fields are left out, except COMPANY and the QUALIFYING
    INFORMATION heading which always appear.
    """
    lines = [BRIEFING_START, ""]

    if form.prospect_name or form.prospect_title:
        title = f" ({form.prospect_title})" if form.prospect_title else ""
        lines.append(f"PROSPECT: {form.prospect_name or 'Unknown'}{title}")
    lines.append(f"COMPANY: {form.company_name}")
    if form.event_name:
        lines.append(f"EVENT: {form.event_name}")
    lines.append("")

    _block(lines, "PAIN POINT / NEED DESCRIBED:", form.pain_point)

    lines.append("QUALIFYING INFORMATION:")
    if form.budget:
        budget = f"- Budget Available: {form.budget}"
        if form.budget_notes:
            budget += f" ({form.budget_notes})"
        lines.append(budget)
    if form.decision_maker:
        decision_maker = f"- Decision Maker: {form.decision_maker}"
        if form.decision_maker == "Someone Else" and form.decision_maker_name:
            decision_maker += f" ({form.decision_maker_name})"
        lines.append(decision_maker)
    if form.timeline:
        lines.append(f"- Timeline: {form.timeline}")
    if form.interest_level:
        lines.append(f"- Interest/Energy Level: {form.interest_level}")
    lines.append("")

    _block(lines, "COMPETITORS MENTIONED:", form.competitors_mentioned)
    _block(lines, "NEXT STEPS DISCUSSED:", form.next_steps_discussed)
    _block(lines, "NOTABLE QUOTES:", form.notable_quotes)
    _block(lines, "ADDITIONAL NOTES:", form.additional_notes)

    lines.append(BRIEFING_END)
    return "\n".join(lines)


def count_filled_fields(form: EventForm) -> tuple[int, int]:
    """Return ``(filled, total)`` over the scored core fields."""
    filled = sum(1 for name in SCORED_FIELDS if getattr(form, name))
    return filled, len(SCORED_FIELDS)


def completeness_label(filled: int) -> str:
    if filled <= 3:
        return "Minimal: add more for better analysis"
    if filled <= 6:
        return "Fair: keep going"
    if filled <= 9:
        return "Good for analysis"
    return "Excellent: comprehensive data"
