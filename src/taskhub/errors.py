"""Application-level exception taxonomy and FastAPI exception handlers."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from .core.context import REQUEST_ID_HEADER, bind_request_id, reset_request_id
from .schemas.system import ErrorResponse

logger = logging.getLogger(__name__)


class ApplicationError(Exception):
    """Base class for domain-specific errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "application_error",
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = message
        self.code = code
        self.status_code = status_code
        self.details = details


class ValidationError(ApplicationError):
    """Missing or malformed input the caller can correct."""

    def __init__(
        self,
        message: str = "Validation failed.",
        *,
        code: str = "validation_error",
        details: Any | None = None,
    ) -> None:
        super().__init__(
            message,
            code=code,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
        )


class UnauthorizedError(ApplicationError):
    """Missing, expired or otherwise invalid credentials."""

    def __init__(
        self,
        message: str = "Not authorized.",
        *,
        code: str = "unauthorized",
        details: Any | None = None,
    ) -> None:
        super().__init__(
            message,
            code=code,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details,
        )


class ForbiddenError(ApplicationError):
    """Authenticated, but not permitted to perform the operation."""

    def __init__(
        self,
        message: str = "Not enough permissions.",
        *,
        code: str = "forbidden",
        details: Any | None = None,
    ) -> None:
        super().__init__(
            message,
            code=code,
            status_code=status.HTTP_403_FORBIDDEN,
            details=details,
        )


class NotFoundError(ApplicationError):
    """Error representing missing resources."""

    def __init__(
        self,
        message: str = "Resource not found.",
        *,
        code: str = "not_found",
        details: Any | None = None,
    ) -> None:
        super().__init__(
            message,
            code=code,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
        )


class DatabaseIntegrityError(ApplicationError):
    """Error representing database integrity violations."""

    def __init__(
        self,
        message: str = "Database integrity violation.",
        *,
        code: str = "db_integrity_error",
        details: Any | None = None,
    ) -> None:
        super().__init__(
            message,
            code=code,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
        )


class ServerError(ApplicationError):
    """Error representing unexpected server or persistence failures."""

    def __init__(
        self,
        message: str = "Internal server error.",
        *,
        code: str = "server_error",
        details: Any | None = None,
    ) -> None:
        super().__init__(
            message,
            code=code,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
        )


class RequestTimeoutError(ApplicationError):
    """A network call exceeded its time bound before the server answered."""

    def __init__(
        self,
        message: str = "The request timed out.",
        *,
        code: str = "timeout",
        details: Any | None = None,
    ) -> None:
        super().__init__(
            message,
            code=code,
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            details=details,
        )


_CODES_BY_STATUS: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "bad_request",
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_409_CONFLICT: "conflict",
}


@contextmanager
def _request_context(request: Request) -> Iterator[str | None]:
    """Re-bind the request id while a handler runs outside the middleware's context."""

    request_id = getattr(request.state, "request_id", None)
    token = bind_request_id(request_id) if request_id else None
    try:
        yield request_id
    finally:
        if token is not None:
            reset_request_id(token)


def _with_request_id(details: Any | None, request_id: str | None) -> Any | None:
    if isinstance(details, list):
        details = {"errors": details}
    if not request_id:
        return details
    if details is None:
        return {"request_id": request_id}
    if isinstance(details, dict):
        return {"request_id": request_id, **details}
    return {"request_id": request_id, "detail": details}


def error_response(
    *,
    status_code: int,
    code: str,
    message: str,
    details: Any | None = None,
    request_id: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    """Render the ``{code, message, details}`` envelope shared by every failure."""

    body = ErrorResponse(code=code, message=message, details=_with_request_id(details, request_id))
    response_headers = dict(headers or {})
    if status_code == status.HTTP_401_UNAUTHORIZED:
        response_headers.setdefault("WWW-Authenticate", "Bearer")
    if request_id:
        response_headers.setdefault(REQUEST_ID_HEADER, request_id)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body.model_dump()),
        headers=response_headers,
    )


def _log_failure(request: Request, status_code: int, code: str) -> None:
    level = logging.ERROR if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logging.WARNING
    logger.log(
        level,
        "Request failed",
        extra={"code": code, "status_code": status_code, "path": request.url.path},
    )


def _describe_http_exception(exc: StarletteHTTPException) -> tuple[str, str, Any | None]:
    code = _CODES_BY_STATUS.get(exc.status_code, "http_error")
    if isinstance(exc.detail, str):
        return code, exc.detail, None
    try:
        phrase = HTTPStatus(exc.status_code).phrase
    except ValueError:
        phrase = "Error"
    return code, phrase, exc.detail


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure raised by ``app`` as an error envelope."""

    @app.exception_handler(ApplicationError)
    async def _handle_application_error(request: Request, exc: ApplicationError) -> JSONResponse:
        with _request_context(request) as request_id:
            _log_failure(request, exc.status_code, exc.code)
            return error_response(
                status_code=exc.status_code,
                code=exc.code,
                message=exc.message,
                details=exc.details,
                request_id=request_id,
            )

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation_error(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        with _request_context(request) as request_id:
            errors = jsonable_encoder(exc.errors())
            logger.warning("Request validation failed", extra={"errors": errors})
            return error_response(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                code="validation_error",
                message="Request validation failed.",
                details=errors,
                request_id=request_id,
            )

    @app.exception_handler(IntegrityError)
    async def _handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
        with _request_context(request) as request_id:
            logger.error("Database integrity error encountered.", exc_info=exc)
            return error_response(
                status_code=status.HTTP_409_CONFLICT,
                code="db_integrity_error",
                message="Database integrity violation.",
                request_id=request_id,
            )

    @app.exception_handler(StarletteHTTPException)
    async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        with _request_context(request) as request_id:
            code, message, details = _describe_http_exception(exc)
            _log_failure(request, exc.status_code, code)
            return error_response(
                status_code=exc.status_code,
                code=code,
                message=message,
                details=details,
                request_id=request_id,
                headers=exc.headers,
            )

    @app.exception_handler(Exception)
    async def _handle_unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
        with _request_context(request) as request_id:
            logger.exception("Unhandled application error.")
            return error_response(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                code="server_error",
                message="Internal server error.",
                request_id=request_id,
            )


__all__ = [
    "ApplicationError",
    "DatabaseIntegrityError",
    "ForbiddenError",
    "NotFoundError",
    "RequestTimeoutError",
    "ServerError",
    "UnauthorizedError",
    "ValidationError",
    "error_response",
    "register_exception_handlers",
]
