"""Authentication service encapsulating registration and token flows."""

from __future__ import annotations

import logging

from fastapi import status
from jose import ExpiredSignatureError, JWTError
from pydantic import ValidationError as PydanticValidationError
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.config import Settings
from ..core.security import (
    GeneratedToken,
    create_access_token,
    decode_token,
    is_token_revoked,
    revoke_token,
    verify_password,
)
from ..errors import ApplicationError, UnauthorizedError
from ..models import User, UserRole, ensure_aware
from ..repositories import UserRepository
from ..schemas.auth import TokenPayload
from .users import UserService

logger = logging.getLogger(__name__)


class AuthService:
    """Registration, login and bearer token workflows."""

    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._user_service = UserService(session)
        self._user_repository = UserRepository(session)

    async def register_user(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> User:
        """Create a regular account; nobody can register as an admin."""
        existing = await self._user_service.get_user_by_email(email)
        if existing is not None:
            raise ApplicationError(
                "User already exists.",
                code="user_exists",
                status_code=status.HTTP_400_BAD_REQUEST,
            )
        user = await self._user_service.create_user(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            role=UserRole.USER,
        )
        logger.info("User registered", extra={"user_id": user.id})
        return user

    async def authenticate_user(self, email: str, password: str) -> User:
        user = await self._user_service.get_user_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            raise UnauthorizedError("Invalid email or password.", code="invalid_credentials")
        return user

    def issue_token(self, user: User) -> GeneratedToken:
        if user.id is None:
            raise ApplicationError("User must be persisted before issuing tokens.")
        return create_access_token(
            subject=user.id,
            role=user.role.value,
            settings=self._settings,
        )

    def decode(self, token: str) -> TokenPayload:
        """Validate a bearer token and return its payload."""
        try:
            payload = decode_token(
                token=token,
                secret=self._settings.jwt_secret_key,
                algorithm=self._settings.jwt_algorithm,
            )
        except ExpiredSignatureError as exc:
            raise UnauthorizedError("Token has expired.", code="token_expired") from exc
        except JWTError as exc:
            raise UnauthorizedError("Could not validate credentials.") from exc

        try:
            token_payload = TokenPayload.model_validate(payload)
        except PydanticValidationError as exc:
            raise UnauthorizedError("Could not validate credentials.") from exc

        if is_token_revoked(token_payload.jti):
            raise UnauthorizedError("Token has been revoked.", code="token_revoked")
        return token_payload

    async def resolve_user(self, token: str) -> User:
        """Return the account a bearer token was issued to."""
        token_payload = self.decode(token)
        try:
            user_id = int(token_payload.sub)
        except ValueError as exc:
            raise UnauthorizedError("Invalid token subject.") from exc
        user = await self._user_repository.get(user_id)
        if user is None:
            raise UnauthorizedError("User no longer exists.")
        return user

    def logout(self, token: str) -> None:
        """Revoke ``token`` until it would have expired anyway."""
        token_payload = self.decode(token)
        revoke_token(token_payload.jti, ensure_aware(token_payload.exp))
        logger.info("Token revoked", extra={"user_id": token_payload.sub})


__all__ = ["AuthService"]
