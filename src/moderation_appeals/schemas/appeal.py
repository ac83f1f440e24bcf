"""Appeal-related Pydantic schemas.

Request bodies deliberately carry no length constraints: the workflow service
owns field validation so that every caller gets the same error semantics.
"""

from pydantic import BaseModel, ConfigDict, Field


class AppealCreate(BaseModel):
    """Schema for filing an appeal against a moderation action."""

    reason: str = Field(..., description="Why the action should be reconsidered (20-5000 chars)")


class AppealAssign(BaseModel):
    """Schema for claiming an appeal; defaults to the calling moderator."""

    moderator_id: str | None = Field(None, description="Moderator to assign")


class AppealReview(BaseModel):
    """Schema for resolving an appeal."""

    decision: str = Field(..., description="Either 'upheld' or 'denied'")
    reasoning: str = Field(..., description="Decision reasoning (20-2000 chars)")


class ApprovedBySummary(BaseModel):
    """Moderator who approved a moderation action."""

    id: str
    display_name: str | None


class ModerationActionResponse(BaseModel):
    """Snapshot of the moderation action an appeal refers to."""

    model_config = ConfigDict(frozen=True)

    id: str
    target_type: str
    target_id: str
    action_type: str
    severity: str
    reasoning: str
    ai_recommended: bool
    ai_confidence: float | None
    approved_by: ApprovedBySummary | None
    approved_at: str | None
    status: str
    created_at: str
    executed_at: str | None


class AppealResponse(BaseModel):
    """Schema for appeal information returned by the API."""

    model_config = ConfigDict(frozen=True)

    id: str
    moderation_action_id: str
    appellant_id: str
    reason: str
    status: str
    reviewer_id: str | None
    decision_reasoning: str | None
    created_at: str
    resolved_at: str | None


class AppealWithActionResponse(AppealResponse):
    """Appeal enriched with the moderation action it contests."""

    moderation_action: ModerationActionResponse | None = None


class AppealListResponse(BaseModel):
    """Cursor-paginated list of appeals."""

    appeals: list[AppealWithActionResponse]
    next_cursor: str | None
    total_count: int


class StatusCount(BaseModel):
    status: str
    count: int


class AppealStatisticsResponse(BaseModel):
    """Appeal counts over a creation-date window."""

    total: int
    pending: int
    under_review: int
    upheld: int
    denied: int
    by_status: list[StatusCount]
    avg_resolution_minutes: int | None = None
