"""Moderator review queue endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query

from moderation_appeals.api.v1.dependencies import ModeratorDep, QueueServiceDep, http_error_for
from moderation_appeals.schemas.queue import QueueResponse, QueueStats
from moderation_appeals.services.errors import AppealError

router = APIRouter(prefix="/moderation/queue", tags=["moderation-queue"])


@router.get("", response_model=QueueResponse)
async def get_review_queue(
    moderator: ModeratorDep,
    service: QueueServiceDep,
    limit: int | None = Query(None, ge=1),
    cursor: str | None = Query(None),
) -> QueueResponse:
    """Open appeals with priority and wait time, oldest first."""
    try:
        return service.get_queue(limit, cursor)
    except AppealError as exc:
        raise http_error_for(exc) from exc


@router.get("/stats", response_model=QueueStats)
async def get_queue_stats(moderator: ModeratorDep, service: QueueServiceDep) -> QueueStats:
    try:
        return service.get_stats()
    except AppealError as exc:
        raise http_error_for(exc) from exc
