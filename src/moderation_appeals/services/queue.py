"""Moderator-facing review queue over open appeals."""
from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from sqlalchemy.orm import Session

from moderation_appeals.core.settings import settings
from moderation_appeals.db.time import ensure_utc, utcnow
from moderation_appeals.models import Appeal, ModerationSeverity
from moderation_appeals.models.appeal import OPEN_APPEAL_STATUSES
from moderation_appeals.repositories import AppealRepository
from moderation_appeals.schemas.queue import QueueItem, QueueResponse, QueueStats
from moderation_appeals.services.errors import AppealValidationError, translate_store_errors

__all__ = ["AppealQueueService", "format_wait_time"]

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 60 * SECONDS_PER_MINUTE
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR


def format_wait_time(since: datetime, now: datetime) -> str:
    """Render the elapsed time as an ISO 8601 duration in its largest whole unit."""
    elapsed = max(0, int((ensure_utc(now) - ensure_utc(since)).total_seconds()))
    if elapsed >= SECONDS_PER_DAY:
        return f"P{elapsed // SECONDS_PER_DAY}D"
    if elapsed >= SECONDS_PER_HOUR:
        return f"PT{elapsed // SECONDS_PER_HOUR}H"
    if elapsed >= SECONDS_PER_MINUTE:
        return f"PT{elapsed // SECONDS_PER_MINUTE}M"
    return f"PT{elapsed}S"


class AppealQueueService:
    """Lists open appeals with a priority and wait time for triage."""

    def __init__(
        self,
        db: Session,
        *,
        repository: AppealRepository | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.repository = repository or AppealRepository(db)
        self.clock = clock

    @staticmethod
    def priority_for(appeal: Appeal) -> str:
        # Appeals against consequential actions weigh directly on user trust.
        if appeal.moderation_action.severity is ModerationSeverity.CONSEQUENTIAL:
            return "high"
        return "normal"

    def _to_item(self, appeal: Appeal, now: datetime) -> QueueItem:
        action = appeal.moderation_action
        return QueueItem(
            id=appeal.id,
            priority=self.priority_for(appeal),
            wait_time=format_wait_time(appeal.created_at, now),
            summary=f"Appeal: {action.action_type.value} on {action.target_type.value.lower()}",
        )

    def get_queue(self, page_size: int | None = None, cursor: str | None = None) -> QueueResponse:
        """Open appeals (PENDING and UNDER_REVIEW), oldest first."""
        limit = settings.appeals_default_page_size if page_size is None else page_size
        if limit < 1 or limit > settings.appeals_max_page_size:
            raise AppealValidationError(
                f"page size must be between 1 and {settings.appeals_max_page_size}"
            )

        with translate_store_errors(self.db, "get_queue"):
            after = None
            if cursor:
                after = self.repository.get_appeal(cursor)
                if after is None:
                    raise AppealValidationError(f"Unknown cursor {cursor}")

            page = self.repository.list_page(OPEN_APPEAL_STATUSES, limit=limit, after=after)
            now = self.clock()
            items = [self._to_item(appeal, now) for appeal in page.items]

        return QueueResponse(
            items=items,
            next_cursor=page.items[-1].id if len(page.items) == limit else None,
            total_count=page.total_count,
        )

    def get_stats(self) -> QueueStats:
        with translate_store_errors(self.db, "get_queue_stats"):
            oldest = self.repository.oldest_open()
            pending = self.repository.count_open()
        return QueueStats(
            pending_appeals=pending,
            oldest_item_age=format_wait_time(oldest.created_at, self.clock()) if oldest else "PT0S",
        )
