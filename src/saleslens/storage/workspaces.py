"""Workspace store: one JSON file per account plus a binary side directory.

Layout under ``<data_dir>/workspaces``::

    <slug>.json          AccountWorkspace record
    <slug>/<doc-file>    uploaded document binaries

Slugs are checked against the safe-slug pattern before any path is built.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, TypeVar

import structlog

from src.saleslens.core.errors import (
    InvalidSlugError,
    ItemNotFoundError,
    LimitReachedError,
    WorkspaceNotFoundError,
    WorkspaceUnreadableError,
)
from src.saleslens.core.ids import Clock, IdGenerator, SystemClock, UuidIdGenerator
from src.saleslens.core.slug import is_safe_slug
from src.saleslens.schemas.workspace import (
    AccountWorkspace,
    WorkspaceDocument,
    WorkspaceNote,
    WorkspaceTask,
)
from src.saleslens.storage.files import read_json, write_json

logger = structlog.get_logger(__name__)

MAX_TASKS = 500
MAX_NOTES = 200
MAX_DOCUMENTS = 100

T = TypeVar("T")

_UNSET: Any = object()


class WorkspaceStore:
    """JSON-file backed account workspaces.

    Args:
        data_dir: Application data root; workspaces live in ``workspaces/``.
        clock: Source of ``createdAt``/``updatedAt`` timestamps.
        ids: Generator for task and note ids.
    """

    def __init__(
        self,
        data_dir: Path | str,
        clock: Clock | None = None,
        ids: IdGenerator | None = None,
    ) -> None:
        self._root = Path(data_dir) / "workspaces"
        self._clock = clock or SystemClock()
        self._ids = ids or UuidIdGenerator()

    # ── Paths ────────────────────────────────────────────────────────────

    def _check_slug(self, slug: str) -> None:
        if not is_safe_slug(slug):
            raise InvalidSlugError("Invalid slug")

    def _workspace_file(self, slug: str) -> Path:
        self._check_slug(slug)
        return self._root / f"{slug}.json"

    def _files_dir(self, slug: str) -> Path:
        self._check_slug(slug)
        return self._root / slug

    def document_file_path(self, slug: str, stored_file_name: str) -> Path:
        path = self._files_dir(slug) / stored_file_name
        if path.parent != self._files_dir(slug):
            raise InvalidSlugError("Invalid document file name")
        return path

    # ── Read / write ─────────────────────────────────────────────────────

    def _load(self, slug: str) -> AccountWorkspace | None:
        path = self._workspace_file(slug)
        if not path.exists():
            return None
        try:
            return AccountWorkspace.model_validate(read_json(path))
        except ValueError as exc:
            logger.error("workspace.file_unreadable", slug=slug, error=str(exc))
            raise WorkspaceUnreadableError(slug) from exc

    def _save(self, slug: str, workspace: AccountWorkspace) -> None:
        workspace.updated_at = self._clock.now_ms()
        write_json(self._workspace_file(slug), workspace.model_dump(mode="json", by_alias=True))

    def _load_required(self, slug: str) -> AccountWorkspace:
        workspace = self._load(slug)
        if workspace is None:
            raise WorkspaceNotFoundError(slug)
        return workspace

    async def _mutate(self, slug: str, fn: Callable[[AccountWorkspace], T]) -> AccountWorkspace:
        """Load, apply ``fn``, persist, and return the workspace."""

        def _run() -> AccountWorkspace:
            workspace = self._load_required(slug)
            fn(workspace)
            self._save(slug, workspace)
            return workspace

        return await asyncio.to_thread(_run)

    async def read(self, slug: str) -> AccountWorkspace | None:
        return await asyncio.to_thread(self._load, slug)

    async def write(self, slug: str, workspace: AccountWorkspace) -> None:
        await asyncio.to_thread(self._save, slug, workspace)

    async def get_or_create(self, slug: str, company_name: str) -> AccountWorkspace:
        def _run() -> AccountWorkspace:
            existing = self._load(slug)
            if existing is not None:
                return existing
            now = self._clock.now_ms()
            workspace = AccountWorkspace(
                slug=slug,
                company_name=company_name,
                created_at=now,
                updated_at=now,
            )
            self._save(slug, workspace)
            logger.info("workspace.created", slug=slug, company_name=company_name)
            return workspace

        return await asyncio.to_thread(_run)

    # ── Tasks ────────────────────────────────────────────────────────────

    async def add_task(
        self,
        slug: str,
        text: str,
        priority: str = "medium",
        due_date: str | None = None,
    ) -> AccountWorkspace:
        task = WorkspaceTask(
            id=self._ids.new_id("task"),
            text=text,
            priority=priority,
            due_date=due_date,
            created_at=self._clock.now_ms(),
            origin="manual",
        )

        def _apply(ws: AccountWorkspace) -> None:
            if len(ws.tasks) >= MAX_TASKS:
                raise LimitReachedError("task", MAX_TASKS)
            ws.tasks.insert(0, task)

        workspace = await self._mutate(slug, _apply)
        logger.info("workspace.task_added", slug=slug, task_id=task.id)
        return workspace

    async def update_task(
        self,
        slug: str,
        task_id: str,
        *,
        text: str | None = _UNSET,
        status: str | None = _UNSET,
        due_date: str | None = _UNSET,
        priority: str | None = _UNSET,
    ) -> AccountWorkspace:
        """Apply a partial update; omitted keyword arguments are left alone."""

        def _apply(ws: AccountWorkspace) -> None:
            task = next((t for t in ws.tasks if t.id == task_id), None)
            if task is None:
                raise ItemNotFoundError("task", task_id)
            if text is not _UNSET and text is not None:
                task.text = text
            if status is not _UNSET and status is not None:
                task.status = status
                task.completed_at = self._clock.now_ms() if status == "completed" else None
            if due_date is not _UNSET:
                task.due_date = due_date
            if priority is not _UNSET and priority is not None:
                task.priority = priority

        return await self._mutate(slug, _apply)

    async def remove_task(self, slug: str, task_id: str) -> AccountWorkspace:
        def _apply(ws: AccountWorkspace) -> None:
            ws.tasks = [t for t in ws.tasks if t.id != task_id]

        return await self._mutate(slug, _apply)

    async def import_ai_tasks(
        self,
        slug: str,
        steps: Iterable[str],
        *,
        source_interaction_id: str | None,
        created_at: int | None = None,
    ) -> int:
        """Append AI-suggested tasks whose exact text is not already present.

        Returns the number of tasks added; the file is only rewritten when
        something was added.
        """
        steps = list(steps)

        def _run() -> int:
            workspace = self._load_required(slug)
            existing = {t.text for t in workspace.tasks}
            added = 0
            for step in steps:
                if not step or step in existing:
                    continue
                if len(workspace.tasks) >= MAX_TASKS:
                    break
                existing.add(step)
                workspace.tasks.append(
                    WorkspaceTask(
                        id=self._ids.new_id("ai"),
                        text=step,
                        created_at=created_at if created_at is not None else self._clock.now_ms(),
                        origin="ai",
                        source_interaction_id=source_interaction_id,
                    )
                )
                added += 1
            if added:
                self._save(slug, workspace)
            return added

        added = await asyncio.to_thread(_run)
        if added:
            logger.info("workspace.ai_tasks_imported", slug=slug, added=added)
        return added

    # ── Notes ────────────────────────────────────────────────────────────

    async def add_note(self, slug: str, content: str) -> AccountWorkspace:
        now = self._clock.now_ms()
        note = WorkspaceNote(id=self._ids.new_id("note"), content=content, created_at=now, updated_at=now)

        def _apply(ws: AccountWorkspace) -> None:
            if len(ws.notes) >= MAX_NOTES:
                raise LimitReachedError("note", MAX_NOTES)
            ws.notes.insert(0, note)

        return await self._mutate(slug, _apply)

    async def update_note(self, slug: str, note_id: str, content: str) -> AccountWorkspace:
        def _apply(ws: AccountWorkspace) -> None:
            note = next((n for n in ws.notes if n.id == note_id), None)
            if note is None:
                raise ItemNotFoundError("note", note_id)
            note.content = content
            note.updated_at = self._clock.now_ms()

        return await self._mutate(slug, _apply)

    async def remove_note(self, slug: str, note_id: str) -> AccountWorkspace:
        def _apply(ws: AccountWorkspace) -> None:
            ws.notes = [n for n in ws.notes if n.id != note_id]

        return await self._mutate(slug, _apply)

    # ── Documents ────────────────────────────────────────────────────────

    async def add_document(self, slug: str, document: WorkspaceDocument) -> AccountWorkspace:
        def _apply(ws: AccountWorkspace) -> None:
            if len(ws.documents) >= MAX_DOCUMENTS:
                raise LimitReachedError("document", MAX_DOCUMENTS)
            ws.documents.insert(0, document)

        return await self._mutate(slug, _apply)

    async def remove_document(self, slug: str, document_id: str) -> AccountWorkspace:
        def _apply(ws: AccountWorkspace) -> None:
            ws.documents = [d for d in ws.documents if d.id != document_id]

        return await self._mutate(slug, _apply)

    async def save_document_file(self, slug: str, stored_file_name: str, content: bytes) -> None:
        path = self.document_file_path(slug, stored_file_name)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)

        await asyncio.to_thread(_write)

    async def read_document_file(self, slug: str, stored_file_name: str) -> bytes:
        path = self.document_file_path(slug, stored_file_name)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            raise ItemNotFoundError("document", stored_file_name) from None

    async def delete_document_file(self, slug: str, stored_file_name: str) -> None:
        path = self.document_file_path(slug, stored_file_name)
        await asyncio.to_thread(path.unlink, missing_ok=True)
