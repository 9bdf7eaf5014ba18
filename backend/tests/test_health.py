"""Smoke tests for the application wiring."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from main import app


def test_health_reports_ok(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_every_router_is_mounted():
    paths = {route.path for route in app.routes}
    assert {
        "/api/records/{entity_type}/changes",
        "/api/historical-sync/{configuration_id}",
        "/api/event-logs",
        "/api/connections",
        "/api/connections/validate",
        "/api/connections/{connection_id}",
        "/api/sync-configurations",
        "/api/sync-configurations/{configuration_id}/mappings",
    } <= paths


def test_lifespan_drains_event_log_on_shutdown():
    with (
        patch("main.init_db") as init_db,
        patch("main.shutdown_log_executor") as shutdown,
    ):
        with TestClient(app):
            init_db.assert_called_once()
            shutdown.assert_not_called()
        shutdown.assert_called_once_with(wait=True)
