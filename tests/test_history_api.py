"""History endpoints: list, append, remove, clear."""

from __future__ import annotations

import json

URL = "/api/v1/history"


def _entry(entry_id: str = "entry-1", **fields) -> dict:
    entry = {"id": entry_id, "timestamp": 1_760_000_000_000, "companyName": "Acme Corp", "leadScore": 64}
    entry.update(fields)
    return entry


async def test_list_empty(client):
    response = await client.get(URL)
    assert response.status_code == 200
    assert response.json() == []


async def test_append_and_list_newest_first(client):
    await client.post(URL, json=_entry("entry-1"))
    response = await client.post(URL, json=_entry("entry-2", sourceKind="email-thread"))

    assert response.status_code == 200
    assert [e["id"] for e in response.json()] == ["entry-2", "entry-1"]

    listed = (await client.get(URL)).json()
    assert listed[0]["sourceKind"] == "email-thread"
    assert listed[1]["sourceKind"] == "call-transcript"


async def test_append_requires_id(client):
    response = await client.post(URL, json={"timestamp": 1, "companyName": "Acme"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid entry: id is required"


async def test_append_rejects_invalid_fields(client):
    response = await client.post(URL, json=_entry(leadScore=400))
    assert response.status_code == 400
    assert "leadScore" in response.json()["error"]


async def test_append_rejects_invalid_json(client):
    response = await client.post(URL, content=b"{nope", headers={"Content-Type": "application/json"})
    assert response.status_code == 400


async def test_append_rejects_oversized_body(client, history_store):
    body = json.dumps(_entry(rawText="x" * 200_001))
    response = await client.post(URL, content=body, headers={"Content-Type": "application/json"})

    assert response.status_code == 413
    assert response.json()["error"] == "Payload too large"
    assert await history_store.read_history() == []


async def test_remove_one(client):
    await client.post(URL, json=_entry("entry-1"))
    await client.post(URL, json=_entry("entry-2"))

    response = await client.delete(f"{URL}/entry-1")

    assert response.status_code == 200
    assert [e["id"] for e in response.json()] == ["entry-2"]


async def test_clear(client):
    await client.post(URL, json=_entry("entry-1"))

    response = await client.delete(URL)

    assert response.status_code == 200
    assert response.json() == []
    assert (await client.get(URL)).json() == []
