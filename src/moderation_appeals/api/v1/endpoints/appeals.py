"""Appeal submission, routing and resolution endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, status

from moderation_appeals.api.v1.dependencies import (
    AppealServiceDep,
    CurrentUserDep,
    ModeratorDep,
    http_error_for,
)
from moderation_appeals.schemas.appeal import (
    AppealAssign,
    AppealCreate,
    AppealListResponse,
    AppealResponse,
    AppealReview,
    AppealStatisticsResponse,
    AppealWithActionResponse,
)
from moderation_appeals.services.errors import AppealError

router = APIRouter(prefix="/moderation", tags=["moderation-appeals"])


@router.post(
    "/actions/{action_id}/appeal",
    response_model=AppealResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_appeal(
    action_id: str,
    body: AppealCreate,
    current_user: CurrentUserDep,
    service: AppealServiceDep,
) -> AppealResponse:
    """File an appeal against a moderation action on behalf of the caller."""
    try:
        return service.create_appeal(action_id, current_user.id, body.reason)
    except AppealError as exc:
        raise http_error_for(exc) from exc


@router.get("/appeals/pending", response_model=AppealListResponse)
async def get_pending_appeals(
    moderator: ModeratorDep,
    service: AppealServiceDep,
    limit: int | None = Query(None, ge=1),
    cursor: str | None = Query(None),
    assigned_to: str | None = Query(None, description="Only appeals assigned to this moderator"),
) -> AppealListResponse:
    """List appeals waiting in the PENDING pool."""
    try:
        return service.get_pending_appeals(limit, cursor, assigned_to)
    except AppealError as exc:
        raise http_error_for(exc) from exc


@router.get("/appeals/statistics", response_model=AppealStatisticsResponse)
async def get_appeal_statistics(
    moderator: ModeratorDep,
    service: AppealServiceDep,
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
) -> AppealStatisticsResponse:
    """Appeal counts by status for appeals created within the window."""
    try:
        return service.get_appeal_statistics(start_date, end_date)
    except AppealError as exc:
        raise http_error_for(exc) from exc


@router.get("/appeals/{appeal_id}", response_model=AppealWithActionResponse)
async def get_appeal(
    appeal_id: str,
    current_user: CurrentUserDep,
    service: AppealServiceDep,
) -> AppealWithActionResponse:
    """Fetch one appeal; visible to moderators and to the appellant."""
    try:
        appeal = service.get_appeal_by_id(appeal_id)
    except AppealError as exc:
        raise http_error_for(exc) from exc

    if appeal is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appeal not found")
    if not current_user.is_moderator and appeal.appellant_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to view this appeal",
        )
    return appeal


@router.post("/appeals/{appeal_id}/assign", response_model=AppealResponse)
async def assign_appeal(
    appeal_id: str,
    moderator: ModeratorDep,
    service: AppealServiceDep,
    body: AppealAssign | None = None,
) -> AppealResponse:
    """Claim a pending appeal, for the caller unless another moderator is named."""
    moderator_id = body.moderator_id if body and body.moderator_id else moderator.id
    try:
        return service.assign_appeal_to_moderator(appeal_id, moderator_id)
    except AppealError as exc:
        raise http_error_for(exc) from exc


@router.post("/appeals/{appeal_id}/unassign", response_model=AppealResponse)
async def unassign_appeal(
    appeal_id: str,
    moderator: ModeratorDep,
    service: AppealServiceDep,
) -> AppealResponse:
    try:
        return service.unassign_appeal(appeal_id)
    except AppealError as exc:
        raise http_error_for(exc) from exc


@router.post("/appeals/{appeal_id}/review", response_model=AppealResponse)
async def review_appeal(
    appeal_id: str,
    body: AppealReview,
    moderator: ModeratorDep,
    service: AppealServiceDep,
    background_tasks: BackgroundTasks,
) -> AppealResponse:
    """Uphold or deny an open appeal as the calling moderator.

    The trust re-evaluation event for an upheld appeal is sent after the
    response.
    """
    try:
        return await service.review_appeal(
            appeal_id,
            moderator.id,
            body.decision,
            body.reasoning,
            defer=background_tasks.add_task,
        )
    except AppealError as exc:
        raise http_error_for(exc) from exc
