"""System and transparency endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from moderation_appeals.api.v1.dependencies import EventPublisherDep
from moderation_appeals.core.settings import settings
from moderation_appeals.services.appeals import (
    APPEAL_REASON_MAX_LENGTH,
    APPEAL_REASON_MIN_LENGTH,
    DECISION_REASONING_MAX_LENGTH,
    DECISION_REASONING_MIN_LENGTH,
)

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/config")
async def get_public_config(publisher: EventPublisherDep) -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets and connection strings.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "debug": settings.debug,
        },
        "appeals": {
            "reason_length": [APPEAL_REASON_MIN_LENGTH, APPEAL_REASON_MAX_LENGTH],
            "decision_reasoning_length": [
                DECISION_REASONING_MIN_LENGTH,
                DECISION_REASONING_MAX_LENGTH,
            ],
            "default_page_size": settings.appeals_default_page_size,
            "max_page_size": settings.appeals_max_page_size,
        },
        "events": {
            "enabled": publisher.enabled,
            "source": settings.events_source,
        },
    }


@router.get("/events")
async def get_event_publisher_status(publisher: EventPublisherDep) -> dict[str, Any]:
    """Event gateway health and publish metrics."""
    return {
        "health": await publisher.health_check(),
        "metrics": publisher.get_metrics(),
    }
