"""Aggregate appeal counts over a creation-date window."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from moderation_appeals.db.time import ensure_utc
from moderation_appeals.models import AppealStatus
from moderation_appeals.repositories import AppealRepository
from moderation_appeals.schemas.appeal import AppealStatisticsResponse, StatusCount

__all__ = ["AppealStatisticsService"]


class AppealStatisticsService:
    """Derives per-status appeal counts from a single grouped query."""

    def __init__(self, db: Session, *, repository: AppealRepository | None = None) -> None:
        self.db = db
        self.repository = repository or AppealRepository(db)

    def get_appeal_statistics(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> AppealStatisticsResponse:
        """Count appeals created within ``[start_date, end_date]``.

        Either bound may be omitted; no bounds means all time. A window with
        no appeals yields zeros across the board.
        """
        counts = self.repository.count_by_status(start_date, end_date)
        by_status = [
            StatusCount(status=status.value, count=counts.get(status, 0))
            for status in AppealStatus
        ]

        return AppealStatisticsResponse(
            total=sum(counts.values()),
            pending=counts.get(AppealStatus.PENDING, 0),
            under_review=counts.get(AppealStatus.UNDER_REVIEW, 0),
            upheld=counts.get(AppealStatus.UPHELD, 0),
            denied=counts.get(AppealStatus.DENIED, 0),
            by_status=by_status,
            avg_resolution_minutes=self._average_resolution_minutes(start_date, end_date),
        )

    def _average_resolution_minutes(
        self,
        start_date: datetime | None,
        end_date: datetime | None,
    ) -> int | None:
        spans = self.repository.resolution_spans(start_date, end_date)
        if not spans:
            return None
        total_seconds = sum(
            (ensure_utc(resolved_at) - ensure_utc(created_at)).total_seconds()
            for created_at, resolved_at in spans
        )
        return int(total_seconds // len(spans) // 60)
