"""Data access layer for moderation actions, appeals and moderators."""

from .appeal_repo import AppealPage, AppealRepository
from .user_repo import ModeratorDirectory

__all__ = ["AppealPage", "AppealRepository", "ModeratorDirectory"]
