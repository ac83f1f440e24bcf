"""Tests for the appeal endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import status
from fastapi.testclient import TestClient

from moderation_appeals.models import AppealStatus, ModerationStatus

APPEAL_REASON = "The post was satire and clearly labelled as such in the title."
DECISION_REASONING = "Context confirms satire; removal was not warranted here."


def _file_appeal(client: TestClient, action_id: str, headers: dict[str, str]) -> dict:
    r = client.post(
        f"/api/v1/moderation/actions/{action_id}/appeal",
        json={"reason": APPEAL_REASON},
        headers=headers,
    )
    assert r.status_code == status.HTTP_201_CREATED, r.text
    return r.json()


def test_create_appeal(client: TestClient, action, appellant, appellant_headers) -> None:
    data = _file_appeal(client, action.id, appellant_headers)

    assert data["status"] == "PENDING"
    assert data["appellant_id"] == appellant.id
    assert data["moderation_action_id"] == action.id
    assert data["created_at"].endswith("Z")


def test_create_appeal_validation_error(client: TestClient, action, appellant_headers) -> None:
    r = client.post(
        f"/api/v1/moderation/actions/{action.id}/appeal",
        json={"reason": "too short"},
        headers=appellant_headers,
    )
    assert r.status_code == status.HTTP_400_BAD_REQUEST


def test_create_appeal_unknown_action(client: TestClient, appellant_headers) -> None:
    r = client.post(
        "/api/v1/moderation/actions/does-not-exist/appeal",
        json={"reason": APPEAL_REASON},
        headers=appellant_headers,
    )
    assert r.status_code == status.HTTP_404_NOT_FOUND


def test_duplicate_open_appeal_conflicts(client: TestClient, action, appellant_headers) -> None:
    _file_appeal(client, action.id, appellant_headers)

    r = client.post(
        f"/api/v1/moderation/actions/{action.id}/appeal",
        json={"reason": APPEAL_REASON},
        headers=appellant_headers,
    )
    assert r.status_code == status.HTTP_409_CONFLICT


def test_requires_authentication(client: TestClient, action) -> None:
    r = client.post(
        f"/api/v1/moderation/actions/{action.id}/appeal",
        json={"reason": APPEAL_REASON},
    )
    assert r.status_code == status.HTTP_401_UNAUTHORIZED

    r = client.post(
        f"/api/v1/moderation/actions/{action.id}/appeal",
        json={"reason": APPEAL_REASON},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert r.status_code == status.HTTP_401_UNAUTHORIZED


def test_moderator_routes_reject_regular_users(client: TestClient, appellant_headers) -> None:
    for path in (
        "/api/v1/moderation/appeals/pending",
        "/api/v1/moderation/appeals/statistics",
        "/api/v1/moderation/queue",
        "/api/v1/moderation/queue/stats",
    ):
        r = client.get(path, headers=appellant_headers)
        assert r.status_code == status.HTTP_403_FORBIDDEN, path


def test_full_upheld_flow(
    client: TestClient,
    db_session,
    publisher,
    action,
    appellant,
    moderator,
    appellant_headers,
    moderator_headers,
) -> None:
    appeal = _file_appeal(client, action.id, appellant_headers)

    r = client.get("/api/v1/moderation/appeals/pending", headers=moderator_headers)
    assert r.status_code == status.HTTP_200_OK
    listing = r.json()
    assert listing["total_count"] == 1
    assert listing["next_cursor"] is None
    assert listing["appeals"][0]["moderation_action"]["status"] == "APPEALED"

    r = client.post(f"/api/v1/moderation/appeals/{appeal['id']}/assign", headers=moderator_headers)
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["status"] == "UNDER_REVIEW"
    assert r.json()["reviewer_id"] == moderator.id

    r = client.post(
        f"/api/v1/moderation/appeals/{appeal['id']}/review",
        json={"decision": "upheld", "reasoning": DECISION_REASONING},
        headers=moderator_headers,
    )
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["status"] == "UPHELD"
    assert r.json()["resolved_at"] is not None
    publisher.publish.assert_awaited_once()

    r = client.get(f"/api/v1/moderation/appeals/{appeal['id']}", headers=appellant_headers)
    assert r.status_code == status.HTTP_200_OK
    snapshot = r.json()["moderation_action"]
    assert snapshot["status"] == ModerationStatus.REVERSED.value
    assert snapshot["reasoning"].endswith(f"[APPEAL UPHELD: {DECISION_REASONING}]")

    r = client.post(
        f"/api/v1/moderation/appeals/{appeal['id']}/review",
        json={"decision": "denied", "reasoning": DECISION_REASONING},
        headers=moderator_headers,
    )
    assert r.status_code == status.HTTP_409_CONFLICT


def test_review_rejects_unknown_decision(
    client: TestClient, action, make_appeal, moderator_headers
) -> None:
    appeal = make_appeal(action)

    r = client.post(
        f"/api/v1/moderation/appeals/{appeal.id}/review",
        json={"decision": "maybe", "reasoning": DECISION_REASONING},
        headers=moderator_headers,
    )
    assert r.status_code == status.HTTP_400_BAD_REQUEST


def test_assign_to_named_moderator_and_unassign(
    client: TestClient, action, make_appeal, second_moderator, moderator_headers
) -> None:
    appeal = make_appeal(action)

    r = client.post(
        f"/api/v1/moderation/appeals/{appeal.id}/assign",
        json={"moderator_id": second_moderator.id},
        headers=moderator_headers,
    )
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["reviewer_id"] == second_moderator.id

    r = client.post(f"/api/v1/moderation/appeals/{appeal.id}/unassign", headers=moderator_headers)
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["status"] == "PENDING"
    assert r.json()["reviewer_id"] is None

    r = client.post(f"/api/v1/moderation/appeals/{appeal.id}/unassign", headers=moderator_headers)
    assert r.status_code == status.HTTP_409_CONFLICT


def test_assign_unknown_moderator(
    client: TestClient, action, make_appeal, moderator_headers
) -> None:
    appeal = make_appeal(action)

    r = client.post(
        f"/api/v1/moderation/appeals/{appeal.id}/assign",
        json={"moderator_id": "ghost"},
        headers=moderator_headers,
    )
    assert r.status_code == status.HTTP_404_NOT_FOUND


def test_get_appeal_visibility(
    client: TestClient,
    action,
    make_appeal,
    appellant_headers,
    moderator_headers,
    other_user_headers,
) -> None:
    appeal = make_appeal(action)
    path = f"/api/v1/moderation/appeals/{appeal.id}"

    assert client.get(path, headers=appellant_headers).status_code == status.HTTP_200_OK
    assert client.get(path, headers=moderator_headers).status_code == status.HTTP_200_OK
    assert client.get(path, headers=other_user_headers).status_code == status.HTTP_403_FORBIDDEN

    r = client.get("/api/v1/moderation/appeals/missing", headers=moderator_headers)
    assert r.status_code == status.HTTP_404_NOT_FOUND


def test_pending_pagination_params(
    client: TestClient, make_action, make_appeal, moderator_headers
) -> None:
    appeals = [
        make_appeal(make_action(), created_at=datetime(2026, 1, 1, hour)) for hour in (1, 2, 3)
    ]

    r = client.get(
        "/api/v1/moderation/appeals/pending",
        params={"limit": 2},
        headers=moderator_headers,
    )
    data = r.json()
    assert [a["id"] for a in data["appeals"]] == [appeals[0].id, appeals[1].id]
    assert data["next_cursor"] == appeals[1].id

    r = client.get(
        "/api/v1/moderation/appeals/pending",
        params={"limit": 2, "cursor": data["next_cursor"]},
        headers=moderator_headers,
    )
    assert [a["id"] for a in r.json()["appeals"]] == [appeals[2].id]

    r = client.get(
        "/api/v1/moderation/appeals/pending",
        params={"limit": 500},
        headers=moderator_headers,
    )
    assert r.status_code == status.HTTP_400_BAD_REQUEST

    r = client.get(
        "/api/v1/moderation/appeals/pending",
        params={"cursor": "unknown"},
        headers=moderator_headers,
    )
    assert r.status_code == status.HTTP_400_BAD_REQUEST


def test_statistics_endpoint(
    client: TestClient, make_action, make_appeal, moderator, moderator_headers
) -> None:
    make_appeal(make_action(), created_at=datetime(2026, 2, 1, 10))
    make_appeal(
        make_action(),
        status=AppealStatus.DENIED,
        reviewer_id=moderator.id,
        created_at=datetime(2026, 2, 2, 10),
        resolved_at=datetime(2026, 2, 2, 11),
    )

    r = client.get(
        "/api/v1/moderation/appeals/statistics",
        params={"start_date": "2026-02-01T00:00:00Z", "end_date": "2026-02-28T00:00:00Z"},
        headers=moderator_headers,
    )
    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert data["total"] == 2
    assert data["pending"] == 1
    assert data["denied"] == 1
    assert data["avg_resolution_minutes"] == 60
    assert len(data["by_status"]) == 4


def test_store_failure_maps_to_503(
    client: TestClient, action, appellant_headers, mocker
) -> None:
    from sqlalchemy.exc import OperationalError

    mocker.patch(
        "moderation_appeals.repositories.appeal_repo.AppealRepository.get_action",
        side_effect=OperationalError("SELECT", {}, Exception("connection reset")),
    )

    r = client.post(
        f"/api/v1/moderation/actions/{action.id}/appeal",
        json={"reason": APPEAL_REASON},
        headers=appellant_headers,
    )
    assert r.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


def test_statistics_endpoint_honours_offset_bounds(
    client: TestClient, action, make_appeal, moderator_headers
) -> None:
    make_appeal(action, created_at=datetime(2026, 2, 1, 10, 0, 0))

    r = client.get(
        "/api/v1/moderation/appeals/statistics",
        params={
            "start_date": "2026-02-01T14:00:00+05:00",
            "end_date": "2026-02-01T16:00:00+05:00",
        },
        headers=moderator_headers,
    )

    assert r.status_code == status.HTTP_200_OK
    assert r.json()["total"] == 1
    assert r.json()["pending"] == 1
