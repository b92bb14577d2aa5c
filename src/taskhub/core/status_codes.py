"""Translation between the client-facing and persisted task status vocabularies.

The API and the client speak ``ClientStatus`` (``TODO``, ``IN_PROGRESS`` ...),
the database stores ``InternalStatus`` (``To Do``, ``In Progress`` ...). Every
boundary crossing goes through the functions below; both directions are total
and fall back to the ``TODO`` / ``To Do`` pair for anything unrecognised.
"""

from __future__ import annotations

from enum import Enum


class ClientStatus(str, Enum):
    """Status vocabulary exposed to API consumers."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    PENDING = "PENDING"


class InternalStatus(str, Enum):
    """Status vocabulary persisted in the ``tasks`` table."""

    TO_DO = "To Do"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    PENDING = "Pending"


_CLIENT_TO_INTERNAL: dict[str, InternalStatus] = {
    ClientStatus.TODO.value: InternalStatus.TO_DO,
    ClientStatus.IN_PROGRESS.value: InternalStatus.IN_PROGRESS,
    ClientStatus.COMPLETED.value: InternalStatus.COMPLETED,
    ClientStatus.PENDING.value: InternalStatus.PENDING,
}

_INTERNAL_TO_CLIENT: dict[str, ClientStatus] = {
    InternalStatus.TO_DO.value: ClientStatus.TODO,
    InternalStatus.IN_PROGRESS.value: ClientStatus.IN_PROGRESS,
    InternalStatus.COMPLETED.value: ClientStatus.COMPLETED,
    InternalStatus.PENDING.value: ClientStatus.PENDING,
}


def _raw(value: object) -> str:
    if isinstance(value, Enum):
        value = value.value
    if not isinstance(value, str):
        return ""
    return value.strip()


def to_internal(value: object) -> InternalStatus:
    """Translate a client status into its persisted counterpart."""

    return _CLIENT_TO_INTERNAL.get(_raw(value), InternalStatus.TO_DO)


def to_client(value: object) -> ClientStatus:
    """Translate a persisted status into the client vocabulary."""

    return _INTERNAL_TO_CLIENT.get(_raw(value), ClientStatus.TODO)


def normalise_client_status(value: object) -> ClientStatus:
    """Return the client status for a value drawn from either vocabulary."""

    raw = _raw(value)
    if raw in _CLIENT_TO_INTERNAL:
        return ClientStatus(raw)
    return to_client(raw)


__all__ = [
    "ClientStatus",
    "InternalStatus",
    "normalise_client_status",
    "to_client",
    "to_internal",
]
