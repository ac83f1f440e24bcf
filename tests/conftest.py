# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import datetime
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock

import pytest

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-appeals")
os.environ.setdefault("EVENTS_ENABLED", "false")

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from moderation_appeals.api.v1.dependencies import get_event_publisher_dep
from moderation_appeals.core.security import create_access_token
from moderation_appeals.db.session import Base
from moderation_appeals.db.session import get_db as app_get_session
from moderation_appeals.main import app as fastapi_app
from moderation_appeals.models import (
    Appeal,
    AppealStatus,
    ModerationAction,
    ModerationActionType,
    ModerationSeverity,
    ModerationStatus,
    ModerationTargetType,
    User,
)
from moderation_appeals.services.appeals import AppealService
from moderation_appeals.services.events import EventPublisher

TEST_DB_URL = "sqlite://"

APPEAL_REASON = "The post was satire and clearly labelled as such in the title."
DECISION_REASONING = "Context confirms satire; removal was not warranted here."


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def publisher() -> AsyncMock:
    """Event publisher double that accepts every event."""
    mock = AsyncMock(spec=EventPublisher)
    mock.enabled = True
    mock.publish.return_value = True
    return mock


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI, db_session: Session, publisher: AsyncMock
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_event_publisher_dep] = lambda: publisher
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_event_publisher_dep, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def service(db_session: Session, publisher: AsyncMock) -> AppealService:
    return AppealService(db_session, publisher=publisher)


def _make_user(db: Session, display_name: str, *, is_moderator: bool = False) -> User:
    user = User(display_name=display_name, is_moderator=is_moderator)
    db.add(user)
    db.commit()
    return user


@pytest.fixture()
def appellant(db_session: Session) -> User:
    """Regular user whose content was moderated."""
    return _make_user(db_session, "Appellant")


@pytest.fixture()
def other_user(db_session: Session) -> User:
    return _make_user(db_session, "Bystander")


@pytest.fixture()
def moderator(db_session: Session) -> User:
    return _make_user(db_session, "Moderator One", is_moderator=True)


@pytest.fixture()
def second_moderator(db_session: Session) -> User:
    return _make_user(db_session, "Moderator Two", is_moderator=True)


@pytest.fixture()
def make_action(db_session: Session, moderator: User) -> Callable[..., ModerationAction]:
    """Factory for persisted moderation actions approved by ``moderator``."""

    def _make(**overrides: Any) -> ModerationAction:
        values: dict[str, Any] = {
            "target_type": ModerationTargetType.RESPONSE,
            "target_id": "3f1c2a9e-0000-4000-8000-000000000001",
            "action_type": ModerationActionType.REMOVE,
            "severity": ModerationSeverity.CONSEQUENTIAL,
            "reasoning": "Violates community guidelines on harassment.",
            "ai_recommended": True,
            "ai_confidence": Decimal("0.87"),
            "approved_by_id": moderator.id,
            "approved_at": datetime(2026, 1, 1, 12, 0, 0),
            "status": ModerationStatus.ACTIVE,
            "executed_at": datetime(2026, 1, 1, 12, 5, 0),
        }
        values.update(overrides)
        action = ModerationAction(**values)
        db_session.add(action)
        db_session.commit()
        return action

    return _make


@pytest.fixture()
def action(make_action: Callable[..., ModerationAction]) -> ModerationAction:
    return make_action()


@pytest.fixture()
def make_appeal(db_session: Session, appellant: User) -> Callable[..., Appeal]:
    """Factory inserting appeals directly, bypassing the workflow."""

    def _make(action: ModerationAction, **overrides: Any) -> Appeal:
        values: dict[str, Any] = {
            "moderation_action_id": action.id,
            "appellant_id": appellant.id,
            "reason": APPEAL_REASON,
            "status": AppealStatus.PENDING,
        }
        values.update(overrides)
        appeal = Appeal(**values)
        db_session.add(appeal)
        db_session.commit()
        return appeal

    return _make


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def appellant_headers(appellant: User) -> dict[str, str]:
    """Return authorization headers for the appellant."""
    return auth_headers(appellant)


@pytest.fixture()
def moderator_headers(moderator: User) -> dict[str, str]:
    """Return authorization headers for the primary moderator."""
    return auth_headers(moderator)


@pytest.fixture()
def other_user_headers(other_user: User) -> dict[str, str]:
    return auth_headers(other_user)
