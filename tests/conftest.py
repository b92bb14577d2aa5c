from __future__ import annotations

import os

os.environ.setdefault("TASKHUB_ENVIRONMENT", "test")
os.environ.setdefault("TASKHUB_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TASKHUB_JWT_SECRET_KEY", "test-secret")

from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from taskhub.core.config import get_settings
from taskhub.core.permissions import Actor
from taskhub.core.security import revoked_tokens
from taskhub.deps import get_db_session
from taskhub.main import create_app
from taskhub.models import User, UserRole
from taskhub.services import UserService

DEFAULT_PASSWORD = "StrongPass123!"


@dataclass(slots=True)
class AuthenticatedUser:
    user: User
    email: str
    password: str
    token: str | None

    @property
    def id(self) -> int:
        if self.user.id is None:  # pragma: no cover - defensive guard
            raise RuntimeError("Persisted user is missing an id.")
        return self.user.id

    @property
    def actor(self) -> Actor:
        return Actor.from_user(self.user)

    @property
    def headers(self) -> dict[str, str]:
        if not self.token:
            raise RuntimeError("User has not been authenticated.")
        return {"Authorization": f"Bearer {self.token}"}


UserFactory = Callable[..., Awaitable[AuthenticatedUser]]


def task_payload(**overrides: Any) -> dict[str, Any]:
    """JSON body for ``POST /tasks`` with a reminder two days out."""
    reminder = datetime.now(timezone.utc) + timedelta(days=2)
    payload: dict[str, Any] = {
        "title": "Prepare quarterly report",
        "description": "Collect figures from every team.",
        "priority": "HIGH",
        "reminderDate": reminder.isoformat(),
    }
    payload.update(overrides)
    return payload


@pytest.fixture(autouse=True)
def _reset_revoked_tokens() -> None:
    revoked_tokens.clear()


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def app(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[FastAPI]:
    get_settings.cache_clear()
    application = create_app()

    async def _override_db_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as request_session:
            yield request_session

    application.dependency_overrides[get_db_session] = _override_db_session
    try:
        yield application
    finally:
        application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
        timeout=15.0,
    ) as http_client:
        yield http_client


@pytest_asyncio.fixture
async def user_factory(session: AsyncSession, client: AsyncClient) -> UserFactory:
    user_service = UserService(session)
    counter = count()

    async def _factory(
        *,
        email: str | None = None,
        password: str = DEFAULT_PASSWORD,
        first_name: str = "Test",
        last_name: str | None = None,
        role: UserRole = UserRole.USER,
        login: bool = True,
    ) -> AuthenticatedUser:
        index = next(counter)
        actual_email = email or f"user-{index}@example.com"
        user = await user_service.create_user(
            email=actual_email,
            password=password,
            first_name=first_name,
            last_name=last_name or f"User{index}",
            role=role,
        )
        token: str | None = None
        if login:
            response = await client.post(
                "/api/auth/login",
                json={"email": actual_email, "password": password},
            )
            assert response.status_code == 200, response.text
            token = response.json()["token"]
        return AuthenticatedUser(user=user, email=actual_email, password=password, token=token)

    return _factory
