"""Test fixtures for the studio backend."""
from __future__ import annotations

import datetime as dt
import os
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

from studio.core.config import get_settings
from studio.core.security import get_password_hash
from studio.db.base import Base
from studio.db.session import dispose_engine, get_sessionmaker
from studio.main import app
from studio.models import AvailableDate, User, UserRole, UserStatus
from studio.services import change_feed
from studio.services.availability_service import studio_today

ADMIN_PASSWORD = "Adm1nPass!"
CLIENT_PASSWORD = "Cl1entPass!"


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()
    change_feed.clear()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest_asyncio.fixture()
async def db_session(reset_database: None, db_url: str) -> AsyncIterator[AsyncSession]:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        yield session


async def make_user(
    session: AsyncSession,
    email: str,
    *,
    role: UserRole = UserRole.CLIENT,
    password: str = CLIENT_PASSWORD,
    full_name: str = "Jamie Client",
    phone: str | None = "0600000000",
) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash(password),
        full_name=full_name,
        phone=phone,
        role=role,
        status=UserStatus.ACTIVE,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def open_date(
    session: AsyncSession,
    *,
    days_ahead: int = 7,
    time_slots: list[str] | None = None,
    max_bookings: int = 1,
    is_active: bool = True,
) -> AvailableDate:
    available_date = AvailableDate(
        date=studio_today() + dt.timedelta(days=days_ahead),
        time_slots=time_slots or ["09:00", "10:00"],
        max_bookings=max_bookings,
        is_active=is_active,
    )
    session.add(available_date)
    await session.commit()
    await session.refresh(available_date)
    return available_date


@pytest_asyncio.fixture()
async def client_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "jamie.client@example.com")


@pytest_asyncio.fixture()
async def app_context(reset_database: None, db_url: str) -> AsyncIterator[dict[str, object]]:
    """Yield an async client and seeded admin/client accounts."""
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        admin = await make_user(
            session,
            "owner.admin@example.com",
            role=UserRole.ADMIN,
            password=ADMIN_PASSWORD,
            full_name="Alex Owner",
        )
        client_user = await make_user(session, "jamie.client@example.com")
        context: dict[str, object] = {
            "admin_id": admin.id,
            "admin_email": admin.email,
            "admin_password": ADMIN_PASSWORD,
            "client_id": client_user.id,
            "client_email": client_user.email,
            "client_password": CLIENT_PASSWORD,
            "sessionmaker": sessionmaker,
        }

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        context["client"] = client
        yield context


async def authenticate(client: AsyncClient, email: str, password: str) -> dict[str, str]:
    response = await client.post(
        "/api/v1/auth/token",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
