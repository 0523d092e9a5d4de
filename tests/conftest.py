"""
Pytest configuration and shared fixtures.

Tests run against an in-memory SQLite database (aiosqlite) built from the
ORM metadata, and never contact WorkOS: the identity dependencies are
overridden through `login_as`.
"""

import os

# Settings are read at import time; these must be set before importing app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("WORKOS_API_KEY", "sk_test_directory")
os.environ.setdefault("WORKOS_CLIENT_ID", "client_test_directory")

from collections.abc import AsyncGenerator, Callable

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.v1.schemas.auth import WorkOSUserResponse
from app.core.database import Base, get_db
from app.core.dependencies import get_current_user, get_optional_user
from app.main import app as main_app

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture(scope="function")
async def engine():
    """
    Fresh in-memory database per test.

    StaticPool keeps the single in-memory connection alive for the whole
    test, otherwise every checkout would see an empty database.
    """
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture(scope="function")
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture(scope="function")
def app(db_session: AsyncSession) -> FastAPI:
    """
    FastAPI app bound to the test session.

    The override keeps get_db's transaction handling: commit when the
    request succeeds, roll back when it raises.
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    main_app.dependency_overrides[get_db] = override_get_db

    yield main_app

    main_app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for the API.

    Usage:
        async def test_endpoint(client):
            response = await client.get("/api/v1/votes", params={"itemId": "x"})
            assert response.status_code == 200
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


def make_user(
    user_id: str = "user_01",
    email: str = "ada@example.com",
    first_name: str | None = "Ada",
    last_name: str | None = "Lovelace",
    profile_picture_url: str | None = "https://avatars.example.com/ada.png",
) -> WorkOSUserResponse:
    return WorkOSUserResponse(
        id=user_id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        profile_picture_url=profile_picture_url,
    )


@pytest.fixture
def login_as(app: FastAPI) -> Callable[[WorkOSUserResponse | None], None]:
    """
    Make subsequent requests run as the given user (None logs out).

    Usage:
        login_as(make_user("user_02"))
        response = await client.post("/api/v1/votes", json={...})
    """

    def _login(user: WorkOSUserResponse | None) -> None:
        if user is None:
            app.dependency_overrides.pop(get_current_user, None)
            app.dependency_overrides.pop(get_optional_user, None)
            return

        async def _current_user() -> WorkOSUserResponse:
            return user

        app.dependency_overrides[get_current_user] = _current_user
        app.dependency_overrides[get_optional_user] = _current_user

    return _login


@pytest.fixture
def alice() -> WorkOSUserResponse:
    return make_user()


@pytest.fixture
def bob() -> WorkOSUserResponse:
    return make_user(
        user_id="user_02",
        email="bob@example.com",
        first_name=None,
        last_name=None,
        profile_picture_url=None,
    )


@pytest.fixture
def user_factory() -> Callable[..., WorkOSUserResponse]:
    return make_user
