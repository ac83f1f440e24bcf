"""SQLAlchemy models for the moderation appeals service."""

from .appeal import Appeal, AppealStatus
from .moderation import (
    ModerationAction,
    ModerationActionType,
    ModerationSeverity,
    ModerationStatus,
    ModerationTargetType,
)
from .user import User

__all__ = [
    "Appeal", "AppealStatus",
    "ModerationAction", "ModerationActionType", "ModerationSeverity",
    "ModerationStatus", "ModerationTargetType",
    "User",
]
