"""Shared API dependencies for authentication and service wiring."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from moderation_appeals.core.security import decode_access_token
from moderation_appeals.db.session import get_db
from moderation_appeals.models import User
from moderation_appeals.services.appeals import AppealService
from moderation_appeals.services.errors import (
    AppealConflictError,
    AppealError,
    AppealNotFoundError,
    AppealStoreError,
    AppealValidationError,
)
from moderation_appeals.services.events import EventPublisher, get_event_publisher
from moderation_appeals.services.queue import AppealQueueService

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Resolve the caller from a bearer token.

    Raises:
        HTTPException: If the token is invalid or the user does not exist.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def get_current_moderator(current_user: CurrentUserDep) -> User:
    """Require the caller to hold the moderator role."""
    if not current_user.is_moderator:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Moderator role required",
        )
    return current_user


ModeratorDep = Annotated[User, Depends(get_current_moderator)]


def get_event_publisher_dep() -> EventPublisher:
    """Get EventPublisher dependency for dependency injection."""
    return get_event_publisher()


EventPublisherDep = Annotated[EventPublisher, Depends(get_event_publisher_dep)]


def get_appeal_service(db: SessionDep, publisher: EventPublisherDep) -> AppealService:
    return AppealService(db, publisher=publisher)


def get_queue_service(db: SessionDep) -> AppealQueueService:
    return AppealQueueService(db)


AppealServiceDep = Annotated[AppealService, Depends(get_appeal_service)]
QueueServiceDep = Annotated[AppealQueueService, Depends(get_queue_service)]


def http_error_for(exc: AppealError) -> HTTPException:
    """Map workflow errors onto HTTP semantics."""
    if isinstance(exc, AppealValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, AppealNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, AppealConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, AppealStoreError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))
