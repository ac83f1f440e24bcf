"""Mapping from ORM entities to API projections.

Both mappers are pure: they read the entity and never touch the session.
Timestamps render as ISO-8601 UTC strings and absent values stay None.
"""
from __future__ import annotations

from moderation_appeals.db.time import isoformat_utc
from moderation_appeals.models import Appeal, ModerationAction
from moderation_appeals.schemas.appeal import (
    AppealResponse,
    AppealWithActionResponse,
    ApprovedBySummary,
    ModerationActionResponse,
)

__all__ = [
    "action_to_response",
    "appeal_to_response",
    "appeal_with_action_to_response",
]


def appeal_to_response(appeal: Appeal) -> AppealResponse:
    """Project an appeal's scalar fields."""
    return AppealResponse(
        id=appeal.id,
        moderation_action_id=appeal.moderation_action_id,
        appellant_id=appeal.appellant_id,
        reason=appeal.reason,
        status=appeal.status.value,
        reviewer_id=appeal.reviewer_id,
        decision_reasoning=appeal.decision_reasoning,
        created_at=isoformat_utc(appeal.created_at),
        resolved_at=isoformat_utc(appeal.resolved_at),
    )


def action_to_response(action: ModerationAction) -> ModerationActionResponse:
    """Project a moderation action, collapsing its approver to ``{id, display_name}``."""
    approved_by = None
    if action.approved_by is not None:
        approved_by = ApprovedBySummary(
            id=action.approved_by.id,
            display_name=action.approved_by.display_name,
        )

    return ModerationActionResponse(
        id=action.id,
        target_type=action.target_type.value,
        target_id=action.target_id,
        action_type=action.action_type.value,
        severity=action.severity.value,
        reasoning=action.reasoning,
        ai_recommended=action.ai_recommended,
        ai_confidence=None if action.ai_confidence is None else float(action.ai_confidence),
        approved_by=approved_by,
        approved_at=isoformat_utc(action.approved_at),
        status=action.status.value,
        created_at=isoformat_utc(action.created_at),
        executed_at=isoformat_utc(action.executed_at),
    )


def appeal_with_action_to_response(appeal: Appeal) -> AppealWithActionResponse:
    action = appeal.moderation_action
    return AppealWithActionResponse(
        **appeal_to_response(appeal).model_dump(),
        moderation_action=action_to_response(action) if action is not None else None,
    )
