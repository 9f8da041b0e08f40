"""TASK line extraction from chat answers."""

from __future__ import annotations

from src.saleslens.analysis.tasks import extract_tasks, split_answer, strip_task_lines

ANSWER = (
    "Here is the plan.\n"
    "\n"
    "TASK: Send proposal | OWNER: Dana | DEADLINE: Friday | SOURCE: Acme Corp\n"
    "TASK:  Book demo  |  OWNER: Sales Rep | DEADLINE: TBD | SOURCE: Globex \n"
    "\n"
    "---\n"
    "\n"
    "Let me know if you need anything else."
)


def test_extracts_one_task_per_line_with_trimmed_fields():
    tasks = extract_tasks(ANSWER)

    assert len(tasks) == 2
    assert tasks[0].task == "Send proposal"
    assert tasks[0].owner == "Dana"
    assert tasks[0].deadline == "Friday"
    assert tasks[0].source == "Acme Corp"
    assert tasks[1].task == "Book demo"
    assert tasks[1].owner == "Sales Rep"
    assert tasks[1].source == "Globex"


def test_display_text_drops_task_lines_and_separators():
    text, tasks = split_answer(ANSWER)

    assert len(tasks) == 2
    assert text == "Here is the plan.\n\nLet me know if you need anything else."
    assert "TASK:" not in text
    assert "\n\n\n" not in text


def test_incomplete_task_line_is_left_as_prose():
    raw = "Maybe later.\nTASK: Follow up | OWNER: Dana\n\n\n\nThanks."
    text, tasks = split_answer(raw)

    assert tasks == []
    assert text == raw


def test_answer_without_tasks_is_unchanged():
    raw = "Acme is in the proposal stage.\n\n---\n\nNothing else to report."
    assert split_answer(raw) == (raw, [])


def test_strip_task_lines_collapses_blank_runs():
    raw = "Intro\n\n\n\n\nTASK: a | OWNER: b | DEADLINE: c | SOURCE: d\n\n\nOutro\n"
    assert strip_task_lines(raw) == "Intro\n\nOutro"


def test_extract_tasks_on_empty_text():
    assert extract_tasks("") == []


def test_bulleted_task_line_is_extracted_and_removed():
    raw = "Plan:\n- TASK: Send proposal | OWNER: Dana | DEADLINE: Friday | SOURCE: Acme\nDone."
    text, tasks = split_answer(raw)

    assert [task.task for task in tasks] == ["Send proposal"]
    assert text == "Plan:\n\nDone."


def test_partial_task_line_survives_next_to_complete_one():
    raw = "TASK: a | OWNER: b | DEADLINE: c | SOURCE: d\nTASK: remember to call Bob\nEnd."
    text, tasks = split_answer(raw)

    assert len(tasks) == 1
    assert text == "TASK: remember to call Bob\nEnd."
