"""Review queue schemas."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class QueueItem(BaseModel):
    """An open appeal awaiting moderator attention."""

    type: Literal["appeal"] = "appeal"
    id: str
    priority: Literal["high", "normal"]
    wait_time: str = Field(..., description="ISO 8601 duration since the appeal was filed")
    summary: str


class QueueResponse(BaseModel):
    items: list[QueueItem]
    next_cursor: str | None
    total_count: int


class QueueStats(BaseModel):
    pending_appeals: int
    oldest_item_age: str = Field(..., description="ISO 8601 duration, PT0S when empty")
