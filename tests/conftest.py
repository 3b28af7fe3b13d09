"""Shared test fixtures.

Tests run against an in-memory SQLite database (aiosqlite) built from the
ORM metadata, with HS256 session tokens and no Redis, Slack or S3.
"""

from __future__ import annotations

import os
import time
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from unittest.mock import MagicMock

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

os.environ["VCA_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["VCA_AUTH_JWT_ALGORITHM"] = "HS256"
os.environ["VCA_AUTH_JWT_SECRET"] = "test-session-secret"
os.environ["VCA_AUTH_JWT_ISSUER"] = ""
os.environ["VCA_AUTH_JWT_AUDIENCE"] = ""
os.environ["VCA_SLACK_WEBHOOK_URL"] = ""
os.environ["VCA_STORAGE_PUBLIC_BASE_URL"] = "https://cdn.test"
os.environ["VCA_LOG_FORMAT"] = "console"

from vca.auth.identity import reset_keys  # noqa: E402
from vca.config import get_settings  # noqa: E402
from vca.database import close_db, get_engine, get_session, init_db  # noqa: E402
from vca.db.base import Base  # noqa: E402
from vca.db.models import Profile, Role  # noqa: E402
from vca.main import create_app  # noqa: E402
from vca.storage import service as storage  # noqa: E402

get_settings.cache_clear()
reset_keys()

TEST_SECRET = "test-session-secret"


def make_token(user_id: str, email: str | None = None, name: str | None = None, **claims: object) -> str:
    """Mint an identity-provider session token signed with the test secret."""
    payload: dict[str, object] = {"sub": user_id, "exp": int(time.time()) + 3600}
    if email is not None:
        payload["email"] = email
    if name is not None:
        payload["name"] = name
    payload.update(claims)
    return jwt.encode(payload, TEST_SECRET, algorithm="HS256")


def auth_headers(profile: Profile) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(profile.id, profile.email, profile.name)}"}


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh in-memory schema for one test."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app; the schema is set up by ``database``."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for seeding and assertions."""
    async for session in get_session():
        yield session
        break


async def create_profile(
    db: AsyncSession,
    user_id: str,
    name: str,
    role: Role = Role.MEMBER,
    email: str | None = None,
) -> Profile:
    now = datetime.now(timezone.utc)
    profile = Profile(
        id=user_id,
        name=name,
        email=email or f"{user_id}@example.com",
        role=role.value,
        created_at=now,
        updated_at=now,
    )
    db.add(profile)
    await db.commit()
    return profile


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> Profile:
    return await create_profile(db_session, "user_admin", "Ada Admin", role=Role.ADMIN)


@pytest_asyncio.fixture
async def member(db_session: AsyncSession) -> Profile:
    return await create_profile(db_session, "user_member", "Mia Member")


@pytest.fixture
def admin_headers(admin: Profile) -> dict[str, str]:
    return auth_headers(admin)


@pytest.fixture
def member_headers(member: Profile) -> dict[str, str]:
    return auth_headers(member)


@pytest.fixture(autouse=True)
def s3(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Replace the boto3 client so no test reaches a real bucket."""
    fake = MagicMock()
    fake.list_objects_v2.return_value = {"Contents": []}
    monkeypatch.setattr(storage, "_client", lambda: fake)
    return fake
