"""Routes handling user authentication flows."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from ...core.config import Settings
from ...core.security import GeneratedToken
from ...deps import CurrentUserDependency, DatabaseSessionDependency, SettingsDependency, TokenDependency
from ...models import User
from ...schemas import AuthResponse, LoginRequest, MessageResponse, RegisterRequest, UserPublic
from ...services import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_auth_cookie(response: Response, token: GeneratedToken, settings: Settings) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token.token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
        path="/",
    )


def _auth_response(user: User, token: GeneratedToken) -> AuthResponse:
    return AuthResponse(**UserPublic.model_validate(user).model_dump(), token=token.token)


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user account",
)
async def register(
    payload: RegisterRequest,
    response: Response,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> AuthResponse:
    service = AuthService(session, settings)
    user = await service.register_user(
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    token = service.issue_token(user)
    _set_auth_cookie(response, token, settings)
    return _auth_response(user, token)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Authenticate using email and password",
)
async def login(
    payload: LoginRequest,
    response: Response,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> AuthResponse:
    service = AuthService(session, settings)
    user = await service.authenticate_user(payload.email, payload.password)
    token = service.issue_token(user)
    _set_auth_cookie(response, token, settings)
    return _auth_response(user, token)


@router.get("/me", response_model=UserPublic, summary="Current user profile")
async def read_current_user(current_user: CurrentUserDependency) -> UserPublic:
    return UserPublic.model_validate(current_user)


@router.post("/logout", response_model=MessageResponse, summary="Revoke the current token")
async def logout(
    response: Response,
    token: TokenDependency,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> MessageResponse:
    AuthService(session, settings).logout(token)
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return MessageResponse(message="Logged out successfully")
