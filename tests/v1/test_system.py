"""Tests for system and transparency endpoints."""

from fastapi import status
from fastapi.testclient import TestClient


def test_system_config(client: TestClient) -> None:
    """Test system configuration endpoint."""
    r = client.get("/api/v1/system/config")
    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert "app" in data and "appeals" in data and "events" in data
    assert data["appeals"]["reason_length"] == [20, 5000]
    assert data["appeals"]["decision_reasoning_length"] == [20, 2000]
    assert "secret_key" not in str(data)


def test_event_publisher_status(client: TestClient, publisher) -> None:
    publisher.health_check.return_value = {"status": "healthy", "enabled": True}
    publisher.get_metrics.return_value = {"request_count": 3, "success_rate": 100.0}

    r = client.get("/api/v1/system/events")

    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {
        "health": {"status": "healthy", "enabled": True},
        "metrics": {"request_count": 3, "success_rate": 100.0},
    }
