"""Appeal workflow for contesting moderation actions.

The service enforces the appeal state machine on top of ``AppealRepository``:

    PENDING -> UNDER_REVIEW -> {UPHELD, DENIED}
    PENDING -> {UPHELD, DENIED}
    UNDER_REVIEW -> PENDING

Every write is a conditional update keyed on the status read a moment
earlier, so a caller that loses a race gets ``AppealConflictError`` instead of
overwriting the winner. The trust re-evaluation event emitted for upheld
appeals is sent after the commit and its failure never reaches the caller.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from moderation_appeals.core.settings import settings
from moderation_appeals.db.time import isoformat_utc, utcnow
from moderation_appeals.models import Appeal, AppealStatus, ModerationStatus
from moderation_appeals.models.appeal import OPEN_APPEAL_STATUSES
from moderation_appeals.repositories import AppealRepository, ModeratorDirectory
from moderation_appeals.schemas.appeal import (
    AppealListResponse,
    AppealResponse,
    AppealStatisticsResponse,
    AppealWithActionResponse,
)
from moderation_appeals.services.errors import (
    AppealConflictError,
    AppealNotFoundError,
    AppealValidationError,
    translate_store_errors,
)
from moderation_appeals.services.events import (
    USER_TRUST_UPDATED,
    EventPublisher,
    EventPublisherDisabledError,
    get_event_publisher,
)
from moderation_appeals.services.projection import (
    appeal_to_response,
    appeal_with_action_to_response,
)
from moderation_appeals.services.statistics import AppealStatisticsService

logger = logging.getLogger(__name__)

APPEAL_REASON_MIN_LENGTH = 20
APPEAL_REASON_MAX_LENGTH = 5000
DECISION_REASONING_MIN_LENGTH = 20
DECISION_REASONING_MAX_LENGTH = 2000

TRUST_REASON_APPEAL_UPHELD = "appeal_upheld"


class AppealDecision(enum.Enum):
    """Outcome a reviewer can record."""

    UPHELD = "upheld"
    DENIED = "denied"

    @property
    def status(self) -> AppealStatus:
        return AppealStatus.UPHELD if self is AppealDecision.UPHELD else AppealStatus.DENIED


def _require_length(value: str | None, field_name: str, min_length: int, max_length: int) -> str:
    if value is None or not value.strip():
        raise AppealValidationError(f"{field_name} is required")
    if len(value) < min_length:
        raise AppealValidationError(
            f"{field_name} must be at least {min_length} characters long"
        )
    if len(value) > max_length:
        raise AppealValidationError(f"{field_name} cannot exceed {max_length} characters")
    return value


def _parse_decision(decision: str | AppealDecision) -> AppealDecision:
    if isinstance(decision, AppealDecision):
        return decision
    try:
        return AppealDecision(decision)
    except ValueError as err:
        raise AppealValidationError("decision must be one of 'upheld' or 'denied'") from err


def upheld_marker(decision_reasoning: str) -> str:
    """Text appended to a reversed action's reasoning."""
    return f"\n\n[APPEAL UPHELD: {decision_reasoning}]"


class AppealService:
    """Service handling appeal creation, routing and resolution."""

    def __init__(
        self,
        db: Session,
        *,
        repository: AppealRepository | None = None,
        moderators: ModeratorDirectory | None = None,
        publisher: EventPublisher | None = None,
        statistics: AppealStatisticsService | None = None,
    ) -> None:
        self.db = db
        self.repository = repository or AppealRepository(db)
        self.moderators = moderators or ModeratorDirectory(db)
        self.publisher = publisher or get_event_publisher()
        self.statistics = statistics or AppealStatisticsService(db, repository=self.repository)

    def _load_appeal(self, appeal_id: str) -> Appeal:
        appeal = self.repository.get_appeal(appeal_id)
        if appeal is None:
            raise AppealNotFoundError(f"Appeal {appeal_id} not found")
        return appeal

    def _lost_race(self, appeal_id: str, operation: str) -> AppealConflictError:
        self.db.rollback()
        logger.warning("Appeal %s changed state concurrently; %s rejected", appeal_id, operation)
        return AppealConflictError(f"Appeal {appeal_id} was modified concurrently")

    def create_appeal(self, action_id: str, appellant_id: str, reason: str) -> AppealResponse:
        """File an appeal against a moderation action.

        Args:
            action_id: Moderation action being contested.
            appellant_id: User filing the appeal.
            reason: Free text, 20 to 5000 characters.

        Returns:
            Projection of the new PENDING appeal.

        Raises:
            AppealValidationError: If ``reason`` is empty or out of range.
            AppealNotFoundError: If the action does not exist.
            AppealConflictError: If the action is reversed or already has an open appeal.
        """
        _require_length(reason, "reason", APPEAL_REASON_MIN_LENGTH, APPEAL_REASON_MAX_LENGTH)

        with translate_store_errors(self.db, "create_appeal"):
            action = self.repository.get_action(action_id)
            if action is None:
                raise AppealNotFoundError(f"Moderation action {action_id} not found")

            if action.status is ModerationStatus.REVERSED:
                raise AppealConflictError(
                    "Cannot appeal a moderation action that has already been reversed"
                )

            latest = self.repository.get_latest_for_action(action_id)
            if latest is not None and latest.status.is_open:
                raise AppealConflictError(
                    "An appeal for this moderation action is already pending review"
                )

            try:
                appeal = self.repository.create_for_action(action_id, appellant_id, reason)
                if appeal is None:
                    self.db.rollback()
                    logger.warning("Action %s was reversed before appeal could be filed", action_id)
                    raise AppealConflictError(
                        "Cannot appeal a moderation action that has already been reversed"
                    )
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                latest = self.repository.get_latest_for_action(action_id)
                if latest is not None and latest.status.is_open:
                    logger.warning("Concurrent appeal detected for action %s", action_id)
                    raise AppealConflictError(
                        "An appeal for this moderation action is already pending review"
                    ) from exc
                raise

            logger.info("Appeal %s filed against action %s", appeal.id, action_id)
            return appeal_to_response(appeal)

    def get_pending_appeals(
        self,
        page_size: int | None = None,
        cursor: str | None = None,
        assigned_moderator_id: str | None = None,
    ) -> AppealListResponse:
        """List PENDING appeals oldest first.

        ``cursor`` is the id of the last appeal of the previous page. The
        returned ``next_cursor`` is set only when the page came back full.
        """
        limit = settings.appeals_default_page_size if page_size is None else page_size
        if limit < 1 or limit > settings.appeals_max_page_size:
            raise AppealValidationError(
                f"page size must be between 1 and {settings.appeals_max_page_size}"
            )

        with translate_store_errors(self.db, "get_pending_appeals"):
            after = None
            if cursor:
                after = self.repository.get_appeal(cursor)
                if after is None:
                    raise AppealValidationError(f"Unknown cursor {cursor}")

            page = self.repository.list_page(
                [AppealStatus.PENDING],
                limit=limit,
                after=after,
                reviewer_id=assigned_moderator_id,
            )
            appeals = [appeal_with_action_to_response(appeal) for appeal in page.items]

        next_cursor = page.items[-1].id if len(page.items) == limit else None
        return AppealListResponse(
            appeals=appeals,
            next_cursor=next_cursor,
            total_count=page.total_count,
        )

    def assign_appeal_to_moderator(self, appeal_id: str, moderator_id: str) -> AppealResponse:
        """Claim a PENDING appeal for a moderator, moving it to UNDER_REVIEW."""
        with translate_store_errors(self.db, "assign_appeal"):
            appeal = self._load_appeal(appeal_id)
            if appeal.status is not AppealStatus.PENDING:
                raise AppealConflictError(
                    "Appeal must be in PENDING status to assign, "
                    f"current status: {appeal.status.value}"
                )

            if not self.moderators.exists(moderator_id):
                raise AppealNotFoundError(f"Moderator {moderator_id} not found")

            claimed = self.repository.transition(
                appeal_id,
                expected=[AppealStatus.PENDING],
                status=AppealStatus.UNDER_REVIEW,
                reviewer_id=moderator_id,
            )
            if not claimed:
                raise self._lost_race(appeal_id, "assignment")
            self.db.commit()

            logger.info("Appeal %s assigned to moderator %s", appeal_id, moderator_id)
            return appeal_to_response(self._load_refreshed(appeal_id))

    def unassign_appeal(self, appeal_id: str) -> AppealResponse:
        """Return an UNDER_REVIEW appeal to the PENDING pool."""
        with translate_store_errors(self.db, "unassign_appeal"):
            appeal = self._load_appeal(appeal_id)
            if appeal.status is not AppealStatus.UNDER_REVIEW:
                raise AppealConflictError(
                    "Appeal must be in UNDER_REVIEW status to unassign, "
                    f"current status: {appeal.status.value}"
                )

            released = self.repository.transition(
                appeal_id,
                expected=[AppealStatus.UNDER_REVIEW],
                status=AppealStatus.PENDING,
                reviewer_id=None,
            )
            if not released:
                raise self._lost_race(appeal_id, "unassignment")
            self.db.commit()

            logger.info("Appeal %s returned to the pending pool", appeal_id)
            return appeal_to_response(self._load_refreshed(appeal_id))

    async def review_appeal(
        self,
        appeal_id: str,
        reviewer_id: str,
        decision: str | AppealDecision,
        decision_reasoning: str,
        *,
        defer: Callable[..., Any] | None = None,
    ) -> AppealResponse:
        """Resolve an open appeal.

        An upheld appeal reverses its moderation action in the same
        transaction, then a ``user.trust.updated`` event is published for the
        appellant. A denied appeal leaves the action untouched.

        When ``defer`` is given (e.g. ``BackgroundTasks.add_task``) the
        publication is scheduled through it instead of awaited inline.

        Raises:
            AppealValidationError: On a bad decision or reasoning length.
            AppealNotFoundError: If the appeal does not exist.
            AppealConflictError: If the appeal is already resolved.
        """
        _require_length(
            decision_reasoning,
            "decision reasoning",
            DECISION_REASONING_MIN_LENGTH,
            DECISION_REASONING_MAX_LENGTH,
        )
        verdict = _parse_decision(decision)

        with translate_store_errors(self.db, "review_appeal"):
            appeal = self._load_appeal(appeal_id)
            if not appeal.status.is_open:
                raise AppealConflictError(
                    "Appeal must be in PENDING or UNDER_REVIEW status to review, "
                    f"current status: {appeal.status.value}"
                )
            action_id = appeal.moderation_action_id
            appellant_id = appeal.appellant_id

            resolved = self.repository.transition(
                appeal_id,
                expected=OPEN_APPEAL_STATUSES,
                status=verdict.status,
                reviewer_id=reviewer_id,
                decision_reasoning=decision_reasoning,
                resolved_at=utcnow(),
            )
            if not resolved:
                raise self._lost_race(appeal_id, "review")

            if verdict is AppealDecision.UPHELD and not self.repository.reverse_action(
                action_id, upheld_marker(decision_reasoning)
            ):
                self.db.rollback()
                raise AppealConflictError(f"Moderation action {action_id} is already reversed")
            self.db.commit()

            logger.info(
                "Appeal %s resolved as %s by %s", appeal_id, verdict.status.value, reviewer_id
            )
            result = appeal_to_response(self._load_refreshed(appeal_id))

        if verdict is AppealDecision.UPHELD:
            notification = {
                "appeal_id": appeal_id,
                "action_id": action_id,
                "appellant_id": appellant_id,
                "reviewer_id": reviewer_id,
            }
            if defer is not None:
                defer(self._publish_trust_update, **notification)
            else:
                await self._publish_trust_update(**notification)
        return result

    def get_appeal_by_id(self, appeal_id: str) -> AppealWithActionResponse | None:
        """Return the appeal with its moderation action, or None when absent."""
        with translate_store_errors(self.db, "get_appeal_by_id"):
            appeal = self.repository.get_appeal(appeal_id)
            if appeal is None:
                return None
            return appeal_with_action_to_response(appeal)

    def get_appeal_statistics(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> AppealStatisticsResponse:
        with translate_store_errors(self.db, "get_appeal_statistics"):
            return self.statistics.get_appeal_statistics(start_date, end_date)

    def _load_refreshed(self, appeal_id: str) -> Appeal:
        appeal = self.repository.get_appeal(appeal_id, refresh=True)
        if appeal is None:  # pragma: no cover - deleted between commit and reload
            raise AppealNotFoundError(f"Appeal {appeal_id} not found")
        return appeal

    async def _publish_trust_update(
        self,
        *,
        appeal_id: str,
        action_id: str,
        appellant_id: str,
        reviewer_id: str,
    ) -> None:
        """Ask downstream services to re-evaluate the appellant's trust.

        Any failure is logged and swallowed: the appeal outcome is already
        committed and stays authoritative.
        """
        payload = {
            "userId": appellant_id,
            "reason": TRUST_REASON_APPEAL_UPHELD,
            "moderationActionId": action_id,
            "appealId": appeal_id,
            "updatedAt": isoformat_utc(utcnow()),
        }
        try:
            accepted = await self.publisher.publish(
                USER_TRUST_UPDATED,
                payload,
                event_id=appeal_id,
                actor_id=reviewer_id,
            )
        except EventPublisherDisabledError:
            logger.debug("Event publication disabled; %s for appeal %s skipped",
                         USER_TRUST_UPDATED, appeal_id)
            return
        except Exception:  # noqa: BLE001
            logger.exception(
                "Failed to publish %s for appeal %s", USER_TRUST_UPDATED, appeal_id
            )
            return

        if not accepted:
            logger.warning(
                "Event gateway rejected %s for appeal %s", USER_TRUST_UPDATED, appeal_id
            )
