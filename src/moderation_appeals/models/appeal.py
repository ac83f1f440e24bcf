"""Models for appeals contesting moderation actions."""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from moderation_appeals.db.session import Base
from moderation_appeals.db.time import utcnow
from moderation_appeals.models.moderation import ModerationAction


class AppealStatus(enum.Enum):
    """Appeal state machine.

    PENDING -> UNDER_REVIEW -> {UPHELD, DENIED}
    PENDING -> {UPHELD, DENIED}
    UNDER_REVIEW -> PENDING (unassign)
    """

    PENDING = "PENDING"
    UNDER_REVIEW = "UNDER_REVIEW"
    UPHELD = "UPHELD"
    DENIED = "DENIED"

    @property
    def is_open(self) -> bool:
        return self in OPEN_APPEAL_STATUSES


OPEN_APPEAL_STATUSES = frozenset({AppealStatus.PENDING, AppealStatus.UNDER_REVIEW})

_OPEN_STATUS_PREDICATE = text("status IN ('PENDING', 'UNDER_REVIEW')")


class Appeal(Base):
    """One contestation of a moderation action by the user it targeted."""

    __tablename__ = "appeals"
    __table_args__ = (
        # At most one open appeal per moderation action.
        Index(
            "uq_appeals_open_per_action",
            "moderation_action_id",
            unique=True,
            sqlite_where=_OPEN_STATUS_PREDICATE,
            postgresql_where=_OPEN_STATUS_PREDICATE,
        ),
        Index("ix_appeals_status", "status"),
        Index("ix_appeals_created_at_id", "created_at", "id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    moderation_action_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("moderation_actions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    appellant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[AppealStatus] = mapped_column(
        Enum(AppealStatus, name="appeal_status", native_enum=False, length=20),
        nullable=False,
        default=AppealStatus.PENDING,
    )
    # Null while PENDING; set on assignment or by the deciding moderator.
    reviewer_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    decision_reasoning: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    # Set exactly when the appeal reaches UPHELD or DENIED.
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    moderation_action: Mapped[ModerationAction] = relationship("ModerationAction")
