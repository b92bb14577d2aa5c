"""Async HTTP client for the TaskHub API built on ``httpx``."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..core.config import Settings, get_settings
from ..errors import (
    ApplicationError,
    ForbiddenError,
    NotFoundError,
    RequestTimeoutError,
    ServerError,
    UnauthorizedError,
    ValidationError,
)
from ..schemas import (
    AuthResponse,
    TaskCreate,
    TaskFilters,
    TaskRead,
    TaskStatistics,
    TaskUpdate,
    UserPublic,
    UserWithTaskCount,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class TokenStore:
    """Single process-wide credential, replaced wholesale on login and logout."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token

    @property
    def token(self) -> str | None:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


token_store = TokenStore()

_ERRORS_BY_STATUS: dict[int, type[ApplicationError]] = {
    400: ValidationError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    408: RequestTimeoutError,
    422: ValidationError,
    504: RequestTimeoutError,
}


def _parse(model: type[ModelT], payload: Any) -> ModelT:
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ServerError(
            f"Unexpected {model.__name__} payload from the TaskHub API.",
            code="invalid_response",
        ) from exc


def _parse_list(model: type[ModelT], payload: Any) -> list[ModelT]:
    if payload is not None and not isinstance(payload, list):
        raise ServerError("Expected a list from the TaskHub API.", code="invalid_response")
    return [_parse(model, item) for item in payload or []]


def filters_to_params(filters: TaskFilters | None) -> dict[str, str]:
    """Encode filters as the comma separated query parameters the API expects."""

    if filters is None:
        return {}
    params: dict[str, str] = {}
    if filters.status:
        params["status"] = ",".join(status.value for status in filters.status)
    if filters.priority:
        params["priority"] = ",".join(priority.value for priority in filters.priority)
    if filters.users:
        params["users"] = ",".join(str(user_id) for user_id in filters.users)
    if filters.search:
        params["search"] = filters.search
    return params


class TaskApiClient:
    """Typed wrapper over the TaskHub REST API.

    Every call is bounded by the configured timeout. A timeout raises
    ``RequestTimeoutError``, which is distinct from errors the server reports.
    GET responses carrying an ``ETag`` are remembered per client, and a later
    ``304 Not Modified`` replays the remembered body.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        settings: Settings | None = None,
        tokens: TokenStore | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._tokens = tokens if tokens is not None else token_store
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout if timeout is not None else settings.client_timeout_seconds,
            transport=transport,
        )
        self._etags: dict[str, tuple[str, Any]] = {}

    @property
    def tokens(self) -> TokenStore:
        return self._tokens

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TaskApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _headers(self) -> dict[str, str]:
        token = self._tokens.token
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _raise_for_response(self, response: httpx.Response) -> None:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("message") or response.reason_phrase or "Request failed."
        details = body.get("details")
        code = body.get("code")

        if response.status_code == 401:
            self._tokens.clear()
        error_type = _ERRORS_BY_STATUS.get(response.status_code)
        if error_type is None and response.status_code >= 500:
            error_type = ServerError
        if error_type is None:
            raise ApplicationError(
                message,
                code=code or "http_error",
                status_code=response.status_code,
                details=details,
            )
        if code:
            raise error_type(message, code=code, details=details)
        raise error_type(message, details=details)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        params: dict[str, str] | None = None,
    ) -> Any:
        headers = self._headers()
        cache_key: str | None = None
        cached: tuple[str, Any] | None = None
        if method == "GET":
            cache_key = str(httpx.URL(path, params=params or {}))
            cached = self._etags.get(cache_key)
            if cached is not None:
                headers["If-None-Match"] = cached[0]

        try:
            response = await self._client.request(
                method,
                path,
                json=json,
                params=params,
                headers=headers,
            )
        except httpx.TimeoutException as exc:
            logger.warning("Request timed out", extra={"method": method, "path": path})
            raise RequestTimeoutError(f"{method} {path} timed out.") from exc
        except httpx.HTTPError as exc:
            logger.warning("Request failed", extra={"method": method, "path": path, "error": str(exc)})
            raise ServerError("Could not reach the TaskHub API.", code="network_error") from exc

        if response.status_code == httpx.codes.NOT_MODIFIED and cached is not None:
            return cached[1]
        if response.is_error:
            self._raise_for_response(response)

        try:
            payload = response.json() if response.content else None
        except ValueError as exc:
            raise ServerError("The TaskHub API returned a malformed body.", code="invalid_response") from exc
        etag = response.headers.get("ETag")
        if cache_key is not None and etag:
            self._etags[cache_key] = (etag, payload)
        return payload

    async def _authenticate(self, path: str, body: dict[str, Any]) -> AuthResponse:
        auth = _parse(AuthResponse, await self._request("POST", path, json=body))
        self._tokens.set(auth.token)
        self._etags.clear()
        return auth

    async def register(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
    ) -> AuthResponse:
        return await self._authenticate(
            "/auth/register",
            {"firstName": first_name, "lastName": last_name, "email": email, "password": password},
        )

    async def login(self, email: str, password: str) -> AuthResponse:
        return await self._authenticate("/auth/login", {"email": email, "password": password})

    async def logout(self) -> None:
        try:
            if self._tokens.token:
                await self._request("POST", "/auth/logout")
        finally:
            self._tokens.clear()
            self._etags.clear()

    async def me(self) -> UserPublic:
        return _parse(UserPublic, await self._request("GET", "/auth/me"))

    async def list_tasks(self, filters: TaskFilters | None = None) -> list[TaskRead]:
        payload = await self._request("GET", "/tasks", params=filters_to_params(filters))
        return _parse_list(TaskRead, payload)

    async def get_task(self, task_id: int) -> TaskRead:
        return _parse(TaskRead, await self._request("GET", f"/tasks/{task_id}"))

    async def create_task(self, payload: TaskCreate) -> TaskRead:
        body = payload.model_dump(by_alias=True, exclude_none=True, mode="json")
        return _parse(TaskRead, await self._request("POST", "/tasks", json=body))

    async def update_task(self, task_id: int, patch: TaskUpdate) -> TaskRead:
        body = patch.model_dump(by_alias=True, exclude_unset=True, mode="json")
        return _parse(TaskRead, await self._request("PUT", f"/tasks/{task_id}", json=body))

    async def delete_task(self, task_id: int) -> None:
        await self._request("DELETE", f"/tasks/{task_id}")

    async def list_users(self) -> list[UserPublic]:
        payload = await self._request("GET", "/admin/users")
        return _parse_list(UserPublic, payload)

    async def list_users_with_tasks(self) -> list[UserWithTaskCount]:
        payload = await self._request("GET", "/admin/users/with-tasks")
        return _parse_list(UserWithTaskCount, payload)

    async def list_all_tasks(self, filters: TaskFilters | None = None) -> list[TaskRead]:
        payload = await self._request("GET", "/admin/tasks", params=filters_to_params(filters))
        return _parse_list(TaskRead, payload)

    async def get_statistics(self) -> TaskStatistics:
        return _parse(TaskStatistics, await self._request("GET", "/admin/statistics"))


__all__ = ["TaskApiClient", "TokenStore", "filters_to_params", "token_store"]
