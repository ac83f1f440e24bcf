"""Models tracking moderation actions taken against content or users."""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from moderation_appeals.db.session import Base
from moderation_appeals.db.time import utcnow
from moderation_appeals.models.user import User


class ModerationTargetType(enum.Enum):
    """Kind of entity a moderation action applies to."""

    RESPONSE = "RESPONSE"
    USER = "USER"
    TOPIC = "TOPIC"


class ModerationActionType(enum.Enum):
    """Action taken, from advisory (EDUCATE) to exclusion (BAN)."""

    EDUCATE = "EDUCATE"
    WARN = "WARN"
    HIDE = "HIDE"
    REMOVE = "REMOVE"
    SUSPEND = "SUSPEND"
    BAN = "BAN"


class ModerationSeverity(enum.Enum):
    """Whether the action carries consequences for the target."""

    NON_PUNITIVE = "NON_PUNITIVE"
    CONSEQUENTIAL = "CONSEQUENTIAL"


class ModerationStatus(enum.Enum):
    """Lifecycle of a moderation action.

    PENDING and ACTIVE are owned by whoever raises the action; the appeal
    workflow only ever moves an action to APPEALED or REVERSED.
    """

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    APPEALED = "APPEALED"
    REVERSED = "REVERSED"


class ModerationAction(Base):
    """A moderation decision already taken against a piece of content or a user."""

    __tablename__ = "moderation_actions"
    __table_args__ = (
        Index("ix_moderation_actions_target", "target_type", "target_id"),
        Index("ix_moderation_actions_status", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    target_type: Mapped[ModerationTargetType] = mapped_column(
        Enum(ModerationTargetType, name="moderation_target_type", native_enum=False, length=20),
        nullable=False,
    )
    target_id: Mapped[str] = mapped_column(String(36), nullable=False)
    action_type: Mapped[ModerationActionType] = mapped_column(
        Enum(ModerationActionType, name="moderation_action_type", native_enum=False, length=20),
        nullable=False,
    )
    severity: Mapped[ModerationSeverity] = mapped_column(
        Enum(ModerationSeverity, name="moderation_severity", native_enum=False, length=20),
        nullable=False,
    )
    # Appended to (never replaced) when an appeal against the action is upheld.
    reasoning: Mapped[str] = mapped_column(Text, nullable=False)
    ai_recommended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ai_confidence: Mapped[Decimal | None] = mapped_column(Numeric(3, 2), nullable=True)
    approved_by_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[ModerationStatus] = mapped_column(
        Enum(ModerationStatus, name="moderation_status", native_enum=False, length=20),
        nullable=False,
        default=ModerationStatus.ACTIVE,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    executed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    approved_by: Mapped[User | None] = relationship("User", lazy="joined")
