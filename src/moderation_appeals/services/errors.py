"""Error taxonomy for the appeal workflow.

Validation, not-found and conflict errors are business-rule failures raised
before (or instead of) a state change. ``AppealStoreError`` wraps failures
surfaced by the storage layer or the moderator directory. None of these are
retried by the workflow itself.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class AppealError(RuntimeError):
    """Base exception for appeal workflow failures."""


class AppealValidationError(AppealError):
    """Caller-supplied data violates a field constraint."""


class AppealNotFoundError(AppealError):
    """A referenced appeal, moderation action or moderator does not exist."""


class AppealConflictError(AppealError):
    """The requested transition is illegal given the current state."""


class AppealStoreError(AppealError):
    """The entity store or moderator directory failed to answer."""


@contextmanager
def translate_store_errors(db: Session, operation: str) -> Iterator[None]:
    """Roll back and re-raise storage failures as ``AppealStoreError``."""
    try:
        yield
    except AppealError:
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Entity store failure during %s: %s", operation, exc)
        raise AppealStoreError(f"{operation} failed: entity store unavailable") from exc
