"""Data access helpers for appeals and the moderation actions they contest.

The repository never commits: callers own the transaction so that paired
writes (appeal plus action) land together or not at all. State-changing
helpers are conditional writes that report whether they matched a row.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.orm import Session, joinedload

from moderation_appeals.db.time import ensure_utc
from moderation_appeals.models.appeal import OPEN_APPEAL_STATUSES, Appeal, AppealStatus
from moderation_appeals.models.moderation import ModerationAction, ModerationStatus

__all__ = ["AppealPage", "AppealRepository"]


@dataclass(frozen=True)
class AppealPage:
    """One page of appeals plus the number of rows matching the filter."""

    items: list[Appeal]
    total_count: int


def _created_between(start: datetime | None, end: datetime | None) -> list[Any]:
    # SQLite drops tzinfo on bind, so offsets must be folded into UTC first.
    clauses: list[Any] = []
    if start is not None:
        clauses.append(Appeal.created_at >= ensure_utc(start))
    if end is not None:
        clauses.append(Appeal.created_at <= ensure_utc(end))
    return clauses


class AppealRepository:
    """Thin wrapper around database access for appeal entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_action(self, action_id: str) -> ModerationAction | None:
        """Return a moderation action by identifier."""
        return self.session.get(ModerationAction, action_id)

    def get_appeal(self, appeal_id: str, *, refresh: bool = False) -> Appeal | None:
        """Return an appeal by identifier, reloading it from the database when ``refresh`` is set."""
        return self.session.get(
            Appeal,
            appeal_id,
            options=[joinedload(Appeal.moderation_action)],
            populate_existing=refresh,
        )

    def get_latest_for_action(self, action_id: str) -> Appeal | None:
        """Return the most recently filed appeal against an action."""
        return self.session.execute(
            select(Appeal)
            .where(Appeal.moderation_action_id == action_id)
            .order_by(Appeal.created_at.desc(), Appeal.id.desc())
            .limit(1)
        ).scalars().first()

    def create_for_action(self, action_id: str, appellant_id: str, reason: str) -> Appeal | None:
        """Insert a PENDING appeal and flip its action to APPEALED.

        Returns None without inserting when the action has been reversed in the
        meantime. A concurrent open appeal surfaces as ``IntegrityError`` from
        the one-open-appeal-per-action index when the session flushes.
        """
        result = self.session.execute(
            update(ModerationAction)
            .where(
                ModerationAction.id == action_id,
                ModerationAction.status != ModerationStatus.REVERSED,
            )
            .values(status=ModerationStatus.APPEALED)
        )
        if result.rowcount != 1:
            return None

        appeal = Appeal(
            moderation_action_id=action_id,
            appellant_id=appellant_id,
            reason=reason,
            status=AppealStatus.PENDING,
            reviewer_id=None,
            decision_reasoning=None,
            resolved_at=None,
        )
        self.session.add(appeal)
        self.session.flush()
        return appeal

    def transition(
        self,
        appeal_id: str,
        *,
        expected: Iterable[AppealStatus],
        **values: Any,
    ) -> bool:
        """Update an appeal only if its status is still one of ``expected``."""
        result = self.session.execute(
            update(Appeal)
            .where(Appeal.id == appeal_id, Appeal.status.in_(list(expected)))
            .values(**values)
        )
        return result.rowcount == 1

    def reverse_action(self, action_id: str, reasoning_marker: str) -> bool:
        """Mark an action REVERSED and append ``reasoning_marker`` to its reasoning."""
        result = self.session.execute(
            update(ModerationAction)
            .where(
                ModerationAction.id == action_id,
                ModerationAction.status != ModerationStatus.REVERSED,
            )
            .values(
                status=ModerationStatus.REVERSED,
                reasoning=ModerationAction.reasoning + reasoning_marker,
            )
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    def list_page(
        self,
        statuses: Iterable[AppealStatus],
        *,
        limit: int,
        after: Appeal | None = None,
        reviewer_id: str | None = None,
    ) -> AppealPage:
        """Return appeals oldest first, resuming strictly after ``after``.

        Ordering is ``(created_at, id)`` so ties on the timestamp still resume
        deterministically.
        """
        filters: list[Any] = [Appeal.status.in_(list(statuses))]
        if reviewer_id is not None:
            filters.append(Appeal.reviewer_id == reviewer_id)

        total_count = self.session.execute(
            select(func.count()).select_from(Appeal).where(*filters)
        ).scalar() or 0

        stmt = select(Appeal).options(joinedload(Appeal.moderation_action)).where(*filters)
        if after is not None:
            stmt = stmt.where(
                or_(
                    Appeal.created_at > after.created_at,
                    and_(Appeal.created_at == after.created_at, Appeal.id > after.id),
                )
            )
        stmt = stmt.order_by(Appeal.created_at.asc(), Appeal.id.asc()).limit(limit)
        items = list(self.session.execute(stmt).scalars().unique())
        return AppealPage(items=items, total_count=int(total_count))

    def count_by_status(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[AppealStatus, int]:
        """Grouped count of appeals created within ``[start, end]``."""
        rows = self.session.execute(
            select(Appeal.status, func.count())
            .where(*_created_between(start, end))
            .group_by(Appeal.status)
        ).all()
        return {status: int(count) for status, count in rows}

    def resolution_spans(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[tuple[datetime, datetime]]:
        """``(created_at, resolved_at)`` pairs for resolved appeals created within the range."""
        rows = self.session.execute(
            select(Appeal.created_at, Appeal.resolved_at).where(
                Appeal.resolved_at.is_not(None),
                *_created_between(start, end),
            )
        ).all()
        return [(created_at, resolved_at) for created_at, resolved_at in rows]

    def count_open(self) -> int:
        return int(
            self.session.execute(
                select(func.count())
                .select_from(Appeal)
                .where(Appeal.status.in_(list(OPEN_APPEAL_STATUSES)))
            ).scalar()
            or 0
        )

    def oldest_open(self) -> Appeal | None:
        """Return the open appeal that has waited the longest."""
        return self.session.execute(
            select(Appeal)
            .where(Appeal.status.in_(list(OPEN_APPEAL_STATUSES)))
            .order_by(Appeal.created_at.asc(), Appeal.id.asc())
            .limit(1)
        ).scalars().first()
