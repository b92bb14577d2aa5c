from __future__ import annotations

import pytest

from taskhub.core.status_codes import (
    ClientStatus,
    InternalStatus,
    normalise_client_status,
    to_client,
    to_internal,
)

PAIRS = [
    (ClientStatus.TODO, InternalStatus.TO_DO),
    (ClientStatus.IN_PROGRESS, InternalStatus.IN_PROGRESS),
    (ClientStatus.COMPLETED, InternalStatus.COMPLETED),
    (ClientStatus.PENDING, InternalStatus.PENDING),
]


@pytest.mark.parametrize(("client_status", "internal_status"), PAIRS)
def test_vocabularies_map_one_to_one(client_status: ClientStatus, internal_status: InternalStatus) -> None:
    assert to_internal(client_status) is internal_status
    assert to_client(internal_status) is client_status
    assert to_internal(client_status.value) is internal_status
    assert to_client(internal_status.value) is client_status


@pytest.mark.parametrize("client_status", list(ClientStatus))
def test_round_trip_is_stable(client_status: ClientStatus) -> None:
    internal = to_internal(client_status)
    assert to_internal(to_client(internal)) is internal


@pytest.mark.parametrize("garbage", ["", "DONE", "todo", None, 3, "  ", "To Do "])
def test_unknown_client_values_fall_back_to_todo(garbage: object) -> None:
    expected = InternalStatus.TO_DO
    assert to_internal(garbage) is expected


@pytest.mark.parametrize("garbage", ["", "Done", "TODO", None, 0])
def test_unknown_internal_values_fall_back_to_todo(garbage: object) -> None:
    assert to_client(garbage) is ClientStatus.TODO


def test_normalise_accepts_either_vocabulary() -> None:
    assert normalise_client_status("IN_PROGRESS") is ClientStatus.IN_PROGRESS
    assert normalise_client_status("In Progress") is ClientStatus.IN_PROGRESS
    assert normalise_client_status(InternalStatus.COMPLETED) is ClientStatus.COMPLETED
    assert normalise_client_status("nonsense") is ClientStatus.TODO
