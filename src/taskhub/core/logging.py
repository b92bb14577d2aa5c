"""JSON logging for the TaskHub service and client.

Every record becomes one JSON object per line. Values passed through
``extra=`` are merged into the object, so call sites log structured fields
(``task_id``, ``actor_id`` ...) instead of formatting them into the message.
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any

from .config import Settings
from .context import get_request_id

# Attributes every LogRecord carries; anything else came in through ``extra``.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName", "request_id"}

# Loggers that keep their own handler instead of propagating to the root.
_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class JsonLogFormatter(logging.Formatter):
    """Render a record as a single-line JSON object."""

    def __init__(self, *, defaults: dict[str, Any] | None = None, datefmt: str | None = None) -> None:
        super().__init__(datefmt=datefmt)
        self._defaults = dict(defaults or {})

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            **self._defaults,
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }
        extras = {key: value for key, value in vars(record).items() if key not in _STANDARD_ATTRS}
        for key, value in extras.items():
            payload.setdefault(key, _jsonable(value))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class RequestContextFilter(logging.Filter):
    """Stamp the current correlation id on every record."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        record.request_id = get_request_id()
        return True


def build_logging_config(settings: Settings) -> dict[str, Any]:
    """Return the ``dictConfig`` mapping for ``settings``."""

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    def _own(logger_level: int) -> dict[str, Any]:
        return {"handlers": ["json"], "level": logger_level, "propagate": False}

    loggers: dict[str, Any] = {name: _own(level) for name in _SERVER_LOGGERS}
    # httpx logs every request at INFO; the client only wants failures.
    loggers["httpx"] = _own(logging.WARNING)
    loggers["sqlalchemy.engine"] = _own(logging.INFO if settings.db_echo else logging.WARNING)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": JsonLogFormatter,
                "defaults": {"service": settings.project_name, "environment": settings.environment},
            }
        },
        "filters": {"request_context": {"()": RequestContextFilter}},
        "handlers": {
            "json": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "json",
                "filters": ["request_context"],
                "level": level,
            }
        },
        "root": {"handlers": ["json"], "level": level},
        "loggers": loggers,
    }


def configure_logging(settings: Settings) -> None:
    """Install the JSON handler on the root logger."""

    logging.captureWarnings(True)
    logging.config.dictConfig(build_logging_config(settings))


__all__ = ["JsonLogFormatter", "RequestContextFilter", "build_logging_config", "configure_logging"]
