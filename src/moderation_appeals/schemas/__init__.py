"""Pydantic schemas for the moderation appeals API."""

from .appeal import (
    AppealAssign,
    AppealCreate,
    AppealListResponse,
    AppealResponse,
    AppealReview,
    AppealStatisticsResponse,
    AppealWithActionResponse,
    ApprovedBySummary,
    ModerationActionResponse,
    StatusCount,
)
from .queue import QueueItem, QueueResponse, QueueStats

__all__ = [
    "AppealAssign",
    "AppealCreate",
    "AppealListResponse",
    "AppealResponse",
    "AppealReview",
    "AppealStatisticsResponse",
    "AppealWithActionResponse",
    "ApprovedBySummary",
    "ModerationActionResponse",
    "QueueItem",
    "QueueResponse",
    "QueueStats",
    "StatusCount",
]
