"""AccountWorkspace ("deal room"): per-company tasks, notes and documents."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from src.saleslens.schemas.base import CamelModel

TaskStatus = Literal["pending", "completed"]
TaskPriority = Literal["low", "medium", "high"]
TaskOrigin = Literal["ai", "manual"]


class WorkspaceTask(CamelModel):
    id: str
    text: str
    status: TaskStatus = "pending"
    priority: TaskPriority = "medium"
    due_date: str | None = None
    created_at: int
    completed_at: int | None = None
    origin: TaskOrigin = "manual"
    source_interaction_id: str | None = None


class WorkspaceNote(CamelModel):
    id: str
    content: str
    created_at: int
    updated_at: int


class WorkspaceDocument(CamelModel):
    id: str
    stored_file_name: str
    original_file_name: str
    mime_type: str = "application/octet-stream"
    size_bytes: int = 0
    uploaded_at: int


class AccountWorkspace(CamelModel):
    slug: str
    company_name: str
    created_at: int
    updated_at: int
    tasks: list[WorkspaceTask] = Field(default_factory=list)
    notes: list[WorkspaceNote] = Field(default_factory=list)
    documents: list[WorkspaceDocument] = Field(default_factory=list)
