"""Structured notes captured from a short event/conference conversation."""

from __future__ import annotations

from typing import Literal

from src.saleslens.schemas.base import CamelModel


class EventForm(CamelModel):
    prospect_name: str = ""
    prospect_title: str = ""
    company_name: str = ""
    event_name: str = ""
    pain_point: str = ""
    budget: Literal["Yes", "No", "Unsure", ""] = ""
    budget_notes: str = ""
    decision_maker: Literal["Them", "Someone Else", "Unknown", ""] = ""
    decision_maker_name: str = ""
    timeline: Literal["Immediate", "This Quarter", "This Year", "Just Exploring", ""] = ""
    competitors_mentioned: str = ""
    interest_level: Literal["Hot", "Warm", "Cold", ""] = ""
    next_steps_discussed: str = ""
    notable_quotes: str = ""
    additional_notes: str = ""
