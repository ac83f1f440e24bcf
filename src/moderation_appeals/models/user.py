"""SQLAlchemy model for platform users as seen by the moderation service."""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from moderation_appeals.db.session import Base


class User(Base):
    """Minimal user record: identity, display name and the moderator flag."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Only moderators can be assigned appeals or approve actions.
    is_moderator: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
