"""Account workspace endpoints: open, tasks, notes, documents."""

from __future__ import annotations

import pytest

from src.saleslens.api.v1 import workspaces as workspaces_api
from src.saleslens.api.v1.workspaces import content_disposition, file_extension, valid_due_date, valid_priority

BASE = "/api/v1/workspaces"
NOW = 1_760_000_000_000


@pytest.fixture
async def opened(client):
    response = await client.post(f"{BASE}/acme-corp", json={"companyName": "Acme Corp"})
    assert response.status_code == 200, response.text
    return response.json()


class TestWorkspace:
    async def test_get_missing_is_404(self, client):
        response = await client.get(f"{BASE}/globex")
        assert response.status_code == 404
        assert response.json()["error"] == "Workspace not found"

    async def test_unsafe_slug_is_400(self, client):
        response = await client.get(f"{BASE}/Acme_Corp")
        assert response.status_code == 400

    async def test_open_unreadable_workspace_keeps_file(self, client, tmp_path):
        path = tmp_path / "workspaces" / "acme-corp.json"
        path.parent.mkdir(parents=True)
        path.write_text('{"slug": "acme-corp", "tasks": [{"priority": "urgent"}]}')

        response = await client.post(f"{BASE}/acme-corp", json={"companyName": "Acme Corp"})

        assert response.status_code == 500
        assert response.json()["error"] == "Workspace file is unreadable"
        assert "urgent" in path.read_text()

    async def test_open_creates_and_imports_history_tasks(self, client, history_store, record_factory):
        await history_store.add_entry(record_factory("entry-1", company_name="Acme, Corp!!", timestamp=NOW - 1000))
        await history_store.add_entry(record_factory("entry-2", company_name="Globex"))

        response = await client.post(f"{BASE}/acme-corp", json={"companyName": "Acme Corp"})

        assert response.status_code == 200
        data = response.json()
        assert data["workspace"]["companyName"] == "Acme Corp"
        assert [i["id"] for i in data["interactions"]] == ["entry-1"]
        tasks = data["workspace"]["tasks"]
        assert len(tasks) == 3
        assert {t["origin"] for t in tasks} == {"ai"}
        assert {t["sourceInteractionId"] for t in tasks} == {"entry-1"}
        assert {t["createdAt"] for t in tasks} == {NOW - 1000}

    async def test_reopen_does_not_duplicate_tasks(self, client, history_store, record_factory):
        await history_store.add_entry(record_factory("entry-1"))

        await client.post(f"{BASE}/acme-corp", json={"companyName": "Acme Corp"})
        response = await client.post(f"{BASE}/acme-corp", json={"companyName": "Acme Corp"})

        assert len(response.json()["workspace"]["tasks"]) == 3

    async def test_open_requires_company_name(self, client):
        response = await client.post(f"{BASE}/acme-corp", json={})
        assert response.status_code == 400
        assert response.json()["error"] == "companyName required"

    async def test_get_returns_workspace_and_interactions(self, client, opened):
        response = await client.get(f"{BASE}/acme-corp")
        assert response.status_code == 200
        assert response.json()["workspace"]["slug"] == "acme-corp"


class TestTasks:
    async def test_create_normalizes_priority_and_date(self, client, opened):
        response = await client.post(
            f"{BASE}/acme-corp/tasks",
            json={"text": "  Call Dana  ", "priority": "urgent", "dueDate": "2025-02-30"},
        )

        assert response.status_code == 200
        task = response.json()["tasks"][0]
        assert task["text"] == "Call Dana"
        assert task["priority"] == "medium"
        assert "dueDate" not in task
        assert task["origin"] == "manual"

    async def test_create_requires_text(self, client, opened):
        response = await client.post(f"{BASE}/acme-corp/tasks", json={"text": " "})
        assert response.status_code == 400

    async def test_create_on_missing_workspace(self, client):
        response = await client.post(f"{BASE}/globex/tasks", json={"text": "Call"})
        assert response.status_code == 404

    async def test_update_and_complete(self, client, opened):
        created = await client.post(
            f"{BASE}/acme-corp/tasks", json={"text": "Call Dana", "priority": "high", "dueDate": "2025-11-01"}
        )
        task_id = created.json()["tasks"][0]["id"]

        response = await client.put(f"{BASE}/acme-corp/tasks/{task_id}", json={"status": "completed"})

        task = response.json()["tasks"][0]
        assert task["status"] == "completed"
        assert task["completedAt"] == NOW
        assert task["priority"] == "high"
        assert task["dueDate"] == "2025-11-01"

        response = await client.put(
            f"{BASE}/acme-corp/tasks/{task_id}", json={"status": "pending", "dueDate": "not-a-date"}
        )
        task = response.json()["tasks"][0]
        assert "completedAt" not in task
        assert "dueDate" not in task

    async def test_update_missing_task_is_404(self, client, opened):
        response = await client.put(f"{BASE}/acme-corp/tasks/task-404", json={"text": "x"})
        assert response.status_code == 404
        assert response.json()["error"] == "Task not found"

    async def test_delete(self, client, opened):
        created = await client.post(f"{BASE}/acme-corp/tasks", json={"text": "Call Dana"})
        task_id = created.json()["tasks"][0]["id"]

        response = await client.delete(f"{BASE}/acme-corp/tasks/{task_id}")

        assert response.status_code == 200
        assert response.json()["tasks"] == []


class TestNotes:
    async def test_note_lifecycle(self, client, opened, clock):
        created = await client.post(f"{BASE}/acme-corp/notes", json={"content": "Champion: Dana"})
        note = created.json()["notes"][0]

        clock.advance(1000)
        updated = await client.put(f"{BASE}/acme-corp/notes/{note['id']}", json={"content": "Champion: Dana Lee"})
        assert updated.json()["notes"][0]["content"] == "Champion: Dana Lee"
        assert updated.json()["notes"][0]["updatedAt"] == NOW + 1000

        deleted = await client.delete(f"{BASE}/acme-corp/notes/{note['id']}")
        assert deleted.json()["notes"] == []

    async def test_note_requires_content(self, client, opened):
        response = await client.post(f"{BASE}/acme-corp/notes", json={"content": ""})
        assert response.status_code == 400
        assert response.json()["error"] == "content required"

    async def test_update_missing_note_is_404(self, client, opened):
        response = await client.put(f"{BASE}/acme-corp/notes/note-404", json={"content": "x"})
        assert response.status_code == 404


class TestDocuments:
    async def test_upload_download_delete(self, client, opened, tmp_path):
        upload = await client.post(
            f"{BASE}/acme-corp/documents",
            files={"file": ("Angebot Über.pdf", b"%PDF-1.4 test", "application/pdf")},
        )

        assert upload.status_code == 200, upload.text
        document = upload.json()["documents"][0]
        assert document["originalFileName"] == "Angebot Über.pdf"
        assert document["storedFileName"] == f"{document['id']}.pdf"
        assert document["sizeBytes"] == len(b"%PDF-1.4 test")
        assert document["uploadedAt"] == NOW
        stored = tmp_path / "workspaces" / "acme-corp" / document["storedFileName"]
        assert stored.read_bytes() == b"%PDF-1.4 test"

        download = await client.get(f"{BASE}/acme-corp/documents/{document['id']}")
        assert download.status_code == 200
        assert download.content == b"%PDF-1.4 test"
        assert download.headers["content-type"] == "application/pdf"
        assert download.headers["content-disposition"] == "attachment; filename*=UTF-8''Angebot%20%C3%9Cber.pdf"

        deleted = await client.delete(f"{BASE}/acme-corp/documents/{document['id']}")
        assert deleted.json()["documents"] == []
        assert not stored.exists()

    async def test_disallowed_extension(self, client, opened):
        response = await client.post(
            f"{BASE}/acme-corp/documents",
            files={"file": ("payload.exe", b"MZ", "application/octet-stream")},
        )
        assert response.status_code == 400
        assert response.json()["error"].startswith("File type not allowed")

    async def test_oversized_file(self, client, opened, monkeypatch):
        monkeypatch.setattr(workspaces_api, "MAX_FILE_SIZE", 10)
        response = await client.post(
            f"{BASE}/acme-corp/documents",
            files={"file": ("notes.txt", b"x" * 11, "text/plain")},
        )
        assert response.status_code == 413
        assert response.json()["error"] == "File exceeds 10 MB limit"

    async def test_no_file(self, client, opened):
        response = await client.post(f"{BASE}/acme-corp/documents", data={"note": "nothing attached"})
        assert response.status_code == 400
        assert response.json()["error"] == "No file provided"

    async def test_upload_to_missing_workspace(self, client):
        response = await client.post(
            f"{BASE}/globex/documents",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 404

    async def test_download_unknown_document(self, client, opened):
        response = await client.get(f"{BASE}/acme-corp/documents/doc-404")
        assert response.status_code == 404
        assert response.json()["error"] == "Document not found"


class TestHelpers:
    @pytest.mark.parametrize("value, expected", [("low", "low"), ("high", "high"), ("HIGH", "medium"), (None, "medium"), (3, "medium")])
    def test_valid_priority(self, value, expected):
        assert valid_priority(value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [("2025-11-01", "2025-11-01"), ("2024-02-29", "2024-02-29"), ("2025-02-29", None), ("11/01/2025", None), ("", None), (None, None)],
    )
    def test_valid_due_date(self, value, expected):
        assert valid_due_date(value) == expected

    def test_file_extension(self):
        assert file_extension("Report.Final.PDF") == "pdf"
        assert file_extension("no-extension") == ""
        assert file_extension("archive.tar.gz") == "gz"

    def test_content_disposition_quotes_non_ascii(self):
        assert content_disposition("plan (v2).docx") == "attachment; filename*=UTF-8''plan%20(v2).docx"
