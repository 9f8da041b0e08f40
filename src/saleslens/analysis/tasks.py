"""Action-item extraction from chat answers.

The chat assistant is told to emit one line per task:

    TASK: <desc> | OWNER: <who> | DEADLINE: <when> | SOURCE: <company>

Matching lines become ExtractedTask objects and are removed from the text
shown to the user. A line that does not have all four fields stays prose.
"""

from __future__ import annotations

import re

from src.saleslens.schemas.chat import ExtractedTask

TASK_LINE_RE = re.compile(
    r"^[ \t]*(?:[-*][ \t]*)?TASK:[ \t]*(.+?)[ \t]*\|[ \t]*OWNER:[ \t]*(.+?)[ \t]*\|"
    r"[ \t]*DEADLINE:[ \t]*(.+?)[ \t]*\|[ \t]*SOURCE:[ \t]*(.+?)[ \t]*$",
    re.MULTILINE,
)
_RULE_LINE_RE = re.compile(r"^---+$", re.MULTILINE)
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def extract_tasks(text: str) -> list[ExtractedTask]:
    return [
        ExtractedTask(
            task=match.group(1).strip(),
            owner=match.group(2).strip(),
            deadline=match.group(3).strip(),
            source=match.group(4).strip(),
        )
        for match in TASK_LINE_RE.finditer(text or "")
    ]


def strip_task_lines(text: str) -> str:
    """Drop complete TASK lines and bare ``---`` rules, leaving at most one blank line between paragraphs."""
    text = TASK_LINE_RE.sub("", text)
    text = _RULE_LINE_RE.sub("", text)
    return _BLANK_RUN_RE.sub("\n\n", text).strip()


def split_answer(raw_answer: str) -> tuple[str, list[ExtractedTask]]:
    """Return the display text and extracted tasks for a model answer.

    The text is only rewritten when at least one task was found.
    """
    tasks = extract_tasks(raw_answer)
    if not tasks:
        return raw_answer, []
    return strip_task_lines(raw_answer), tasks
