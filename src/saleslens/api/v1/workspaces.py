"""Account workspace ("deal room") endpoints: workspace, tasks, notes, documents.

Every mutating endpoint answers with the full updated workspace so the
client can re-render from one payload.
"""

from __future__ import annotations

import re
from datetime import date
from pathlib import PurePath
from typing import Any, Literal
from urllib.parse import quote

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status

from src.saleslens.api.deps import get_clock, get_history_store, get_id_generator, get_workspace_store
from src.saleslens.core.errors import ItemNotFoundError, WorkspaceNotFoundError
from src.saleslens.core.ids import Clock, IdGenerator
from src.saleslens.core.slug import company_slug
from src.saleslens.schemas.base import CamelModel
from src.saleslens.schemas.history import InteractionRecord
from src.saleslens.schemas.workspace import AccountWorkspace, WorkspaceDocument
from src.saleslens.storage.history import HistoryStore
from src.saleslens.storage.workspaces import WorkspaceStore

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/workspaces", tags=["workspaces"])

MAX_FILE_SIZE = 10 * 1024 * 1024
ALLOWED_EXTENSIONS = frozenset({"pdf", "docx", "txt", "xlsx", "csv", "pptx", "png", "jpg", "jpeg"})
VALID_PRIORITIES = frozenset({"low", "medium", "high"})
DEFAULT_PRIORITY = "medium"

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


# ── Request Schemas ──────────────────────────────────────────────────────────


class WorkspaceOpenRequest(CamelModel):
    company_name: str = ""


class TaskCreateRequest(CamelModel):
    text: str = ""
    priority: Any = None
    due_date: Any = None


class TaskUpdateRequest(CamelModel):
    text: str | None = None
    status: Literal["pending", "completed"] | None = None
    priority: Any = None
    due_date: Any = None


class NoteRequest(CamelModel):
    content: str = ""


# ── Input normalisation ──────────────────────────────────────────────────────


def valid_priority(value: Any) -> str:
    """Unknown priorities fall back to medium."""
    return value if value in VALID_PRIORITIES else DEFAULT_PRIORITY


def valid_due_date(value: Any) -> str | None:
    """``YYYY-MM-DD`` naming a real calendar day, otherwise None."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return None
    try:
        date.fromisoformat(value)
    except ValueError:
        return None
    return value


def file_extension(filename: str) -> str:
    suffix = PurePath(filename or "").suffix.lower().lstrip(".")
    return _NON_ALNUM_RE.sub("", suffix)


def content_disposition(original_name: str) -> str:
    """RFC 5987 attachment header preserving a non-ASCII original filename."""
    encoded = quote(original_name, safe="!~*'()")
    return f"attachment; filename*=UTF-8''{encoded}"


def _required_text(value: str | None, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{field} required")
    return text


def _workspace_payload(workspace: AccountWorkspace, interactions: list[InteractionRecord]) -> dict:
    return {
        "workspace": workspace.to_wire(),
        "interactions": [entry.to_wire() for entry in interactions],
    }


async def _interactions_for(slug: str, history: HistoryStore) -> list[InteractionRecord]:
    return [entry for entry in await history.read_history() if company_slug(entry.company_name) == slug]


# ── Workspace ────────────────────────────────────────────────────────────────


@router.get("/{slug}")
async def get_workspace(
    slug: str,
    workspaces: WorkspaceStore = Depends(get_workspace_store),
    history: HistoryStore = Depends(get_history_store),
) -> dict:
    """Workspace plus every history record of the same company slug."""
    workspace = await workspaces.read(slug)
    if workspace is None:
        raise WorkspaceNotFoundError(slug)
    return _workspace_payload(workspace, await _interactions_for(slug, history))


@router.post("/{slug}")
async def open_workspace(
    slug: str,
    body: WorkspaceOpenRequest,
    workspaces: WorkspaceStore = Depends(get_workspace_store),
    history: HistoryStore = Depends(get_history_store),
) -> dict:
    """Get or create the workspace and import next steps from matching history as AI tasks."""
    company_name = _required_text(body.company_name, "companyName")
    await workspaces.get_or_create(slug, company_name)

    interactions = await _interactions_for(slug, history)
    for entry in interactions:
        if entry.analysis is None:
            continue
        await workspaces.import_ai_tasks(
            slug,
            entry.analysis.next_steps,
            source_interaction_id=entry.id,
            created_at=entry.timestamp,
        )

    workspace = await workspaces.read(slug)
    if workspace is None:
        raise WorkspaceNotFoundError(slug)
    return _workspace_payload(workspace, interactions)


# ── Tasks ────────────────────────────────────────────────────────────────────


@router.post("/{slug}/tasks")
async def create_task(
    slug: str,
    body: TaskCreateRequest,
    workspaces: WorkspaceStore = Depends(get_workspace_store),
) -> dict:
    workspace = await workspaces.add_task(
        slug,
        _required_text(body.text, "text"),
        priority=valid_priority(body.priority),
        due_date=valid_due_date(body.due_date),
    )
    return workspace.to_wire()


@router.put("/{slug}/tasks/{task_id}")
async def update_task(
    slug: str,
    task_id: str,
    body: TaskUpdateRequest,
    workspaces: WorkspaceStore = Depends(get_workspace_store),
) -> dict:
    """Partial update; only the keys present in the body are applied."""
    updates: dict[str, Any] = {}
    provided = body.model_fields_set
    if "text" in provided:
        updates["text"] = _required_text(body.text, "text")
    if "status" in provided and body.status is not None:
        updates["status"] = body.status
    if "priority" in provided:
        updates["priority"] = valid_priority(body.priority)
    if "due_date" in provided:
        updates["due_date"] = valid_due_date(body.due_date)

    workspace = await workspaces.update_task(slug, task_id, **updates)
    return workspace.to_wire()


@router.delete("/{slug}/tasks/{task_id}")
async def delete_task(
    slug: str,
    task_id: str,
    workspaces: WorkspaceStore = Depends(get_workspace_store),
) -> dict:
    return (await workspaces.remove_task(slug, task_id)).to_wire()


# ── Notes ────────────────────────────────────────────────────────────────────


@router.post("/{slug}/notes")
async def create_note(
    slug: str,
    body: NoteRequest,
    workspaces: WorkspaceStore = Depends(get_workspace_store),
) -> dict:
    return (await workspaces.add_note(slug, _required_text(body.content, "content"))).to_wire()


@router.put("/{slug}/notes/{note_id}")
async def update_note(
    slug: str,
    note_id: str,
    body: NoteRequest,
    workspaces: WorkspaceStore = Depends(get_workspace_store),
) -> dict:
    content = _required_text(body.content, "content")
    return (await workspaces.update_note(slug, note_id, content)).to_wire()


@router.delete("/{slug}/notes/{note_id}")
async def delete_note(
    slug: str,
    note_id: str,
    workspaces: WorkspaceStore = Depends(get_workspace_store),
) -> dict:
    return (await workspaces.remove_note(slug, note_id)).to_wire()


# ── Documents ────────────────────────────────────────────────────────────────


@router.post("/{slug}/documents")
async def upload_document(
    slug: str,
    file: UploadFile | None = File(None),
    workspaces: WorkspaceStore = Depends(get_workspace_store),
    clock: Clock = Depends(get_clock),
    ids: IdGenerator = Depends(get_id_generator),
) -> dict:
    """Store an uploaded file (allowlisted extension, at most 10 MB)."""
    if await workspaces.read(slug) is None:
        raise WorkspaceNotFoundError(slug)
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")

    content = await file.read()
    if len(content) > MAX_FILE_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="File exceeds 10 MB limit",
        )

    extension = file_extension(file.filename)
    if extension not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File type not allowed (allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))})",
        )

    doc_id = ids.new_id("doc")
    stored_file_name = f"{doc_id}.{extension}"
    await workspaces.save_document_file(slug, stored_file_name, content)

    document = WorkspaceDocument(
        id=doc_id,
        stored_file_name=stored_file_name,
        original_file_name=file.filename,
        mime_type=file.content_type or "application/octet-stream",
        size_bytes=len(content),
        uploaded_at=clock.now_ms(),
    )
    try:
        workspace = await workspaces.add_document(slug, document)
    except Exception:
        await workspaces.delete_document_file(slug, stored_file_name)
        raise

    logger.info("workspace.document_uploaded", slug=slug, document_id=doc_id, size_bytes=len(content))
    return workspace.to_wire()


@router.get("/{slug}/documents/{doc_id}")
async def download_document(
    slug: str,
    doc_id: str,
    workspaces: WorkspaceStore = Depends(get_workspace_store),
) -> Response:
    workspace = await workspaces.read(slug)
    if workspace is None:
        raise WorkspaceNotFoundError(slug)
    document = next((d for d in workspace.documents if d.id == doc_id), None)
    if document is None:
        raise ItemNotFoundError("document", doc_id)

    content = await workspaces.read_document_file(slug, document.stored_file_name)
    return Response(
        content=content,
        media_type=document.mime_type,
        headers={"Content-Disposition": content_disposition(document.original_file_name)},
    )


@router.delete("/{slug}/documents/{doc_id}")
async def delete_document(
    slug: str,
    doc_id: str,
    workspaces: WorkspaceStore = Depends(get_workspace_store),
) -> dict:
    workspace = await workspaces.read(slug)
    if workspace is None:
        raise WorkspaceNotFoundError(slug)
    document = next((d for d in workspace.documents if d.id == doc_id), None)
    if document is not None:
        await workspaces.delete_document_file(slug, document.stored_file_name)
    return (await workspaces.remove_document(slug, doc_id)).to_wire()
