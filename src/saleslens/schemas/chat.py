"""Chat assistant payloads."""

from __future__ import annotations

from typing import Literal

from src.saleslens.schemas.base import CamelModel


class ChatTurn(CamelModel):
    role: Literal["user", "assistant"]
    content: str


class ExtractedTask(CamelModel):
    """An action item parsed from a ``TASK: ... | OWNER: ...`` answer line."""

    task: str
    owner: str
    deadline: str
    source: str


class ChatAnswer(CamelModel):
    answer: str
    tasks: list[ExtractedTask] | None = None
