"""
Test configuration and fixtures.

Provides:
- Fresh in-memory SQLite database per test
- Users and JWT session cookies for authenticated tests
- HTTPX AsyncClient wired to the app with the test session
- Factories for forms, notifications and add-on feeds
"""
import json
import os
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Keep the app's own engine off the filesystem
os.environ.setdefault("DATABASE_URL", "sqlite://")

from formclone.core.deps import COOKIE_NAME, get_db
from formclone.core.security import create_session_token
from formclone.db.base import Base
from formclone.db.enums import NotificationEvent, Role
from formclone.db.models import AddonFeed, FormNotification, User
from formclone.main import app
from formclone.services.stores import SqlFormMetaStore, SqlFormStore


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a session on a private in-memory database.

    StaticPool keeps a single connection so the request threads used by
    sync endpoints see the same data as the test.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()

    yield session

    session.close()
    Base.metadata.drop_all(engine)
    engine.dispose()


def _create_user(db: Session, role: Role) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{role.value}-{uuid.uuid4().hex[:8]}@test.com",
        display_name=f"Test {role.value}",
        role=role.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def admin_user(db: Session) -> User:
    return _create_user(db, Role.ADMIN)


@pytest.fixture(scope="function")
def editor_user(db: Session) -> User:
    return _create_user(db, Role.EDITOR)


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    token: str
    cookie_name: str = COOKIE_NAME


def _auth_for(user: User) -> TestAuth:
    token = create_session_token(
        user_id=user.id,
        role=user.role,
        token_version=user.token_version,
    )
    return TestAuth(user=user, token=token)


@pytest.fixture(scope="function")
def admin_auth(admin_user: User) -> TestAuth:
    return _auth_for(admin_user)


@pytest.fixture(scope="function")
def editor_auth(editor_user: User) -> TestAuth:
    return _auth_for(editor_user)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated AsyncClient."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def admin_client(
    db: Session,
    admin_auth: TestAuth,
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient authenticated as an admin."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={admin_auth.cookie_name: admin_auth.token},
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def editor_client(
    db: Session,
    editor_auth: TestAuth,
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient authenticated as an editor (no clone capability)."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={editor_auth.cookie_name: editor_auth.token},
    ) as c:
        yield c

    app.dependency_overrides.clear()


# =============================================================================
# Data Factories
# =============================================================================

def create_form(db: Session, title: str, fields: list[dict], **extra) -> int:
    """Create a form; fields without an id get positional ids."""
    return SqlFormStore(db).create({"title": title, "fields": fields, **extra})


def create_notification(db: Session, form_id: int, **payload) -> str:
    notification = FormNotification(
        id=uuid.uuid4().hex,
        form_id=form_id,
        event=payload.pop("event", NotificationEvent.FORM_SUBMISSION.value),
        sort_order=payload.pop("sort_order", 1),
        payload=payload,
    )
    db.add(notification)
    db.commit()
    return notification.id


def create_feed(db: Session, form_id: int, meta: dict | str, addon_slug: str = "stripe") -> int:
    feed = AddonFeed(
        form_id=form_id,
        addon_slug=addon_slug,
        meta=meta if isinstance(meta, str) else json.dumps(meta),
    )
    db.add(feed)
    db.commit()
    return feed.id


def set_grid_meta(db: Session, form_id: int, value: str) -> None:
    SqlFormMetaStore(db).set_entries_grid_meta(form_id, value)
