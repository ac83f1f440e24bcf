"""Tests for the review queue endpoints."""

from __future__ import annotations

from fastapi import status
from fastapi.testclient import TestClient

from moderation_appeals.models import ModerationSeverity


def test_queue_lists_open_appeals(
    client: TestClient, make_action, make_appeal, moderator_headers
) -> None:
    appeal = make_appeal(make_action(severity=ModerationSeverity.NON_PUNITIVE))

    r = client.get("/api/v1/moderation/queue", headers=moderator_headers)

    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert data["total_count"] == 1
    item = data["items"][0]
    assert item["id"] == appeal.id
    assert item["type"] == "appeal"
    assert item["priority"] == "normal"
    assert item["wait_time"].startswith("P")


def test_queue_stats(client: TestClient, action, make_appeal, moderator_headers) -> None:
    make_appeal(action)

    r = client.get("/api/v1/moderation/queue/stats", headers=moderator_headers)

    assert r.status_code == status.HTTP_200_OK
    assert r.json()["pending_appeals"] == 1


def test_queue_stats_empty(client: TestClient, moderator_headers) -> None:
    r = client.get("/api/v1/moderation/queue/stats", headers=moderator_headers)

    assert r.json() == {"pending_appeals": 0, "oldest_item_age": "PT0S"}
