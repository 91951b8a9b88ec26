"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from salvambiente.auth.google import GoogleIdentity, GoogleOAuthError
from salvambiente.auth.roles import Role
from salvambiente.auth.service import create_user, issue_session_token
from salvambiente.config import get_settings
from salvambiente.database import close_db, get_engine, get_session, init_db
from salvambiente.db import models  # noqa: F401
from salvambiente.db.base import Base
from salvambiente.db.models import User
from salvambiente.db.seed import seed_roles, seed_support_categories
from salvambiente.email.service import reset_email_service
from salvambiente.main import create_app
from salvambiente.password_reset.registry import InMemoryResetCodeRegistry

TEST_PASSWORD = "secreto123"


class FakeGoogleClient:
    """Stands in for GoogleOAuthClient; maps authorization codes to identities."""

    def __init__(self) -> None:
        self.identities: dict[str, GoogleIdentity] = {}
        self.closed = False

    def authorization_url(self, state: str) -> str:
        return f"https://accounts.example.test/auth?state={state}"

    async def fetch_identity(self, code: str) -> GoogleIdentity:
        try:
            return self.identities[code]
        except KeyError:
            msg = "unknown code"
            raise GoogleOAuthError(msg) from None

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def _test_settings(tmp_path, monkeypatch) -> None:  # noqa: ANN001
    """Point every test at its own SQLite file."""
    monkeypatch.setenv("SALVAMBIENTE_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("SALVAMBIENTE_JWT_SECRET_KEY", "test-secret-key-with-at-least-32-bytes")
    monkeypatch.setenv("SALVAMBIENTE_LOG_FORMAT", "console")
    monkeypatch.setenv("SALVAMBIENTE_FRONTEND_BASE_URL", "http://frontend.test")
    get_settings.cache_clear()
    reset_email_service()
    yield
    get_settings.cache_clear()
    reset_email_service()


@pytest_asyncio.fixture
async def app() -> AsyncGenerator[FastAPI, None]:
    """Application with schema, reference data and app state in place.

    ASGITransport does not run the lifespan, so startup is replayed here.
    """
    application = create_app()
    settings = get_settings()
    await init_db(settings.database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async for session in get_session():
        await seed_roles(session)
        await seed_support_categories(session)
        break

    application.state.reset_codes = InMemoryResetCodeRegistry(timedelta(minutes=settings.reset_code_ttl_minutes))
    application.state.google_client = FakeGoogleClient()
    yield application
    await close_db()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(app: FastAPI) -> AsyncGenerator[AsyncSession, None]:
    """Session on the same database the client talks to."""
    async for session in get_session():
        yield session
        break


@pytest.fixture
def google_client(app: FastAPI) -> FakeGoogleClient:
    return app.state.google_client


@pytest.fixture
def reset_registry(app: FastAPI) -> InMemoryResetCodeRegistry:
    return app.state.reset_codes


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[tuple[User, str]]]:
    """Create a committed user and return it with a session token."""

    async def _make(username: str = "ana", role: Role = Role.USER, password: str = TEST_PASSWORD) -> tuple[User, str]:
        user = await create_user(db_session, username, f"{username}@example.com", password, role)
        await db_session.commit()
        return user, issue_session_token(user)

    return _make


@pytest.fixture
def auth_header() -> Callable[[str], dict[str, str]]:
    def _header(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    return _header


@pytest.fixture
def mock_email_service(monkeypatch) -> MagicMock:  # noqa: ANN001
    """Replace the email service used by the password reset router."""
    service = MagicMock()
    service.send_template = AsyncMock(return_value=True)
    monkeypatch.setattr("salvambiente.password_reset.router.get_email_service", lambda: service)
    return service
