"""Service layer orchestrating user-related repository operations."""

from __future__ import annotations

from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.security import get_password_hash
from ..errors import NotFoundError
from ..models import User, UserRole
from ..repositories import UserRepository
from ..schemas.user import UserPublic, UserWithTaskCount


class UserService:
    """High-level business operations for ``User`` entities."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repository = UserRepository(session)

    async def create_user(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: UserRole = UserRole.USER,
    ) -> User:
        """Create and persist a new user record."""
        user = User(
            email=email.lower(),
            first_name=first_name,
            last_name=last_name,
            role=role,
            hashed_password=get_password_hash(password),
        )
        await self._repository.add(user)
        await self._session.commit()
        await self._repository.refresh(user)
        return user

    async def get_user(self, user_id: int) -> User:
        """Fetch a user by primary key or raise ``NotFoundError``."""
        user = await self._repository.get(user_id)
        if user is None:
            raise NotFoundError("User not found.")
        return user

    async def get_user_by_email(self, email: str) -> User | None:
        return await self._repository.get_by_email(email.lower())

    async def list_users(self) -> list[User]:
        """Return all registered users."""
        return await self._repository.list_all()

    async def list_users_with_task_counts(self) -> list[UserWithTaskCount]:
        """Return every user with the number of tasks they created and hold."""
        users = await self._repository.list_all()
        created = await self._repository.count_created_tasks()
        assigned = await self._repository.count_assigned_tasks()
        return [
            UserWithTaskCount(
                **UserPublic.model_validate(user).model_dump(),
                created_tasks=created.get(user.id, 0),
                assigned_tasks=assigned.get(user.id, 0),
            )
            for user in users
        ]


__all__ = ["UserService"]
