"""Pydantic schemas exposed by the API."""

from __future__ import annotations

from .auth import AuthResponse, LoginRequest, RegisterRequest, TokenPayload
from .system import ErrorResponse, HealthCheckResponse, MessageResponse, RootResponse
from .task import TaskCreate, TaskFilters, TaskRead, TaskStatistics, TaskUpdate
from .user import UserPublic, UserSummary, UserWithTaskCount

__all__ = [
    "AuthResponse",
    "ErrorResponse",
    "HealthCheckResponse",
    "LoginRequest",
    "MessageResponse",
    "RegisterRequest",
    "RootResponse",
    "TaskCreate",
    "TaskFilters",
    "TaskRead",
    "TaskStatistics",
    "TaskUpdate",
    "TokenPayload",
    "UserPublic",
    "UserSummary",
    "UserWithTaskCount",
]
