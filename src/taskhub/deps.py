"""Reusable FastAPI dependencies."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlmodel.ext.asyncio.session import AsyncSession

from .core.config import Settings, get_settings
from .core.permissions import Actor
from .db.session import get_session
from .errors import ForbiddenError, UnauthorizedError
from .models import User, UserRole
from .services import AuthService

SettingsDependency = Annotated[Settings, Depends(get_settings)]

_bearer_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login", auto_error=False)


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields a database session."""

    async for session in get_session():
        yield session


DatabaseSessionDependency = Annotated[AsyncSession, Depends(get_db_session)]


async def get_token(
    request: Request,
    settings: SettingsDependency,
    bearer: str | None = Depends(_bearer_scheme),
) -> str:
    """Read the bearer token, falling back to the auth cookie."""

    token = bearer or request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise UnauthorizedError("Not authorized, no token.")
    return token


TokenDependency = Annotated[str, Depends(get_token)]


def require_current_user(required_role: UserRole | None = None) -> Callable[..., Awaitable[User]]:
    """Return a dependency enforcing authentication and optional role checks."""

    async def _dependency(
        token: TokenDependency,
        session: DatabaseSessionDependency,
        settings: SettingsDependency,
    ) -> User:
        user = await AuthService(session, settings).resolve_user(token)
        if required_role is UserRole.ADMIN and user.role != UserRole.ADMIN:
            raise ForbiddenError("Not authorized as an admin.")
        return user

    return _dependency


CurrentUserDependency = Annotated[User, Depends(require_current_user())]
AdminUserDependency = Annotated[User, Depends(require_current_user(UserRole.ADMIN))]


async def get_current_actor(user: CurrentUserDependency) -> Actor:
    return Actor.from_user(user)


ActorDependency = Annotated[Actor, Depends(get_current_actor)]


__all__ = [
    "ActorDependency",
    "AdminUserDependency",
    "CurrentUserDependency",
    "DatabaseSessionDependency",
    "SettingsDependency",
    "TokenDependency",
    "get_current_actor",
    "get_db_session",
    "get_token",
    "require_current_user",
]
