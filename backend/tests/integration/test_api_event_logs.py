"""Integration tests for event log API endpoints."""

from datetime import datetime, timedelta, timezone

from models import EventLogEntry


def _add_entries(db):
    now = datetime.now(timezone.utc)
    db.add_all([
        EventLogEntry(status="Success", lead_id="00Q1", sync_configuration_id="cfg-1",
                      created_at=now - timedelta(minutes=2)),
        EventLogEntry(status="Failed", contact_id="0031", sync_configuration_id="cfg-2",
                      created_at=now - timedelta(minutes=1)),
        EventLogEntry(status="Success", account_id="0011", sync_configuration_id="cfg-1",
                      created_at=now),
    ])
    db.commit()


class TestListEventLogs:
    """Tests for GET /api/event-logs."""

    def test_empty(self, client):
        response = client.get("/api/event-logs")
        assert response.status_code == 200
        assert response.json() == []

    def test_newest_first(self, client, db):
        _add_entries(db)
        data = client.get("/api/event-logs").json()
        assert [e["account_id"] or e["contact_id"] or e["lead_id"] for e in data] == [
            "0011", "0031", "00Q1",
        ]

    def test_status_filter(self, client, db):
        _add_entries(db)
        data = client.get("/api/event-logs", params={"status": "Failed"}).json()
        assert len(data) == 1
        assert data[0]["contact_id"] == "0031"

    def test_configuration_filter_and_limit(self, client, db):
        _add_entries(db)
        data = client.get(
            "/api/event-logs", params={"sync_configuration_id": "cfg-1", "limit": 1}
        ).json()
        assert len(data) == 1
        assert data[0]["account_id"] == "0011"

    def test_limit_bounds(self, client):
        assert client.get("/api/event-logs", params={"limit": 0}).status_code == 422
