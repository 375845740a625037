"""Shared test fixtures.

Each test gets its own SQLite database file built from the ORM metadata, so
no PostgreSQL or Redis server is needed. Redis is left uninitialised: the rate
limiter lets every request through and events are not published.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from betthat.achievements.seed import seed_achievements
from betthat.auth.jwt import create_access_token
from betthat.database import close_db, get_session, init_db
from betthat.db.base import Base
from betthat.db.models import User
from betthat.main import create_app
from betthat.users.service import create_profile

UserFactory = Callable[..., Awaitable[User]]


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[str, None]:
    """Fresh schema with achievement definitions seeded."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'betthat.db'}"
    engine = create_async_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()

    await init_db(url)
    sessions = get_session()
    session = await anext(sessions)
    await seed_achievements(session)
    await sessions.aclose()

    yield url
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: str) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for setup and assertions."""
    sessions = get_session()
    session = await anext(sessions)
    yield session
    await sessions.aclose()


@pytest_asyncio.fixture
async def client(database: str) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to a fresh app instance."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(db_session: AsyncSession) -> UserFactory:
    """Create and commit a profile, optionally pre-funded."""

    async def _make(username: str, *, bet_coins: int = 0, balance: str | int = 0, full_name: str | None = None) -> User:
        user = await create_profile(
            db_session, str(uuid.uuid4()), username, f"{username.lower()}@example.com", full_name,
        )
        user.bet_coins = bet_coins
        user.balance = Decimal(str(balance))
        await db_session.commit()
        return user

    return _make


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


@pytest.fixture
def auth() -> Callable[[User], dict[str, str]]:
    """Bearer headers for a user, as the identity provider would issue them."""
    return auth_headers
