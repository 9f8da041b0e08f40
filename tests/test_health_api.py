"""Health, readiness and metrics endpoints."""

from __future__ import annotations

from httpx import ASGITransport, AsyncClient
from prometheus_client import REGISTRY


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "environment" in response.json()


async def test_ready_with_writable_data_dir(client):
    response = await client.get("/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {"data_dir": "ok", "litellm": "ok", "speech": "ok"}


async def test_missing_keys_do_not_fail_readiness(app, client, fake_llm, fake_speech):
    fake_llm.configured = False
    fake_speech.configured = False

    response = await client.get("/health/ready")

    assert response.status_code == 200
    assert response.json()["checks"]["litellm"] == "no_keys"
    assert response.json()["checks"]["speech"] == "no_keys"


async def test_unwritable_data_dir_is_degraded(app, client, tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file")
    app.state.data_dir = blocker

    response = await client.get("/health/ready")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"]["data_dir"] == "error"


async def test_full_app_serves_metrics_and_request_ids():
    from src.saleslens.main import create_app

    application = create_app()
    async with AsyncClient(transport=ASGITransport(app=application), base_url="http://test") as ac:
        health = await ac.get("/health")
        metrics = await ac.get("/metrics")

    assert health.status_code == 200
    assert health.headers["X-Request-ID"]
    assert metrics.status_code == 200
    assert "saleslens_http_requests_total" in metrics.text
    served = REGISTRY.get_sample_value(
        "saleslens_http_requests_total",
        {"method": "GET", "endpoint": "/health", "status_code": "200"},
    )
    assert served is not None and served >= 1


async def test_missing_collaborator_is_503(app, client):
    app.state.history_store = None

    response = await client.get("/api/v1/history")

    assert response.status_code == 503
    assert response.json()["error"] == "History store not initialized"
