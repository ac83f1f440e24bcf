"""Moderator lookups."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from moderation_appeals.models.user import User

__all__ = ["ModeratorDirectory"]


class ModeratorDirectory:
    """Resolves moderator identities against the users table."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, moderator_id: str) -> User | None:
        """Return the moderator with ``moderator_id``, or None for unknown ids and non-moderators."""
        return self.session.execute(
            select(User).where(User.id == moderator_id, User.is_moderator.is_(True))
        ).scalars().first()

    def exists(self, moderator_id: str) -> bool:
        return self.get(moderator_id) is not None
