"""
Shared fixtures.

Each test gets its own SQLite database file (aiosqlite) with the schema
created from the models, the permission catalog seeded and a handful of
users that the session provider would normally own.
"""

from __future__ import annotations

import os

# Module-level engine in app.core.database must not need a PostgreSQL server
os.environ.setdefault("CH_DATABASE_URL", "sqlite+aiosqlite://")

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.core.auth import create_jwt
from app.core.authorization import RequestContext
from app.core.database import enable_sqlite_savepoints, get_session, init_db
from app.main import app as fastapi_app
from app.models.user import User
from app.services.onboarding import create_organization_for_user
from app.services.role_permissions import seed_permission_catalog

from creatorhub_shared.schemas.onboarding import OnboardingRequest

USERS = ["alice", "bob", "carol", "dave", "erin"]


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'creatorhub.db'}")
    enable_sqlite_savepoints(eng)
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
async def session_factory(engine):
    factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as s:
        await seed_permission_catalog(s)
        s.add_all([User(id=uid, name=uid.title(), email=f"{uid}@example.com") for uid in USERS])
        await s.commit()
    return factory


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def onboard(session):
    """Create an organization owned by ``user_id`` through onboarding."""

    async def _onboard(user_id: str = "alice", name: str = "Acme Creators", **fields):
        result = await create_organization_for_user(
            session,
            RequestContext.for_user(user_id),
            user_id,
            OnboardingRequest(name=name, **fields),
        )
        await session.commit()
        return result

    return _onboard


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

@pytest.fixture
def redis_mock():
    mock_redis = AsyncMock()
    mock_redis.exists = AsyncMock(return_value=0)
    mock_redis.setex = AsyncMock()
    return mock_redis


@pytest.fixture
async def client(session_factory, redis_mock):
    async def _get_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    fastapi_app.dependency_overrides[get_session] = _get_session
    with patch("app.core.auth.get_redis", return_value=redis_mock):
        async with AsyncClient(
            transport=ASGITransport(app=fastapi_app), base_url="http://test"
        ) as ac:
            yield ac
    fastapi_app.dependency_overrides.clear()


def auth_headers(user_id: str, *, expires_delta: timedelta | None = None) -> dict[str, str]:
    token, _ = create_jwt(user_id, expires_delta=expires_delta)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers():
    return auth_headers
