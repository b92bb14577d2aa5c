from __future__ import annotations

from dataclasses import dataclass
from itertools import product

import pytest

from taskhub.core.permissions import (
    Actor,
    can_change_status,
    can_read,
    can_reassign,
    can_write,
    ensure_can_reassign,
    ensure_can_write,
)
from taskhub.errors import ForbiddenError
from taskhub.models import UserRole


@dataclass
class _Task:
    creator_id: int
    assignee_id: int


CREATOR = Actor(id=1)
ASSIGNEE = Actor(id=2)
STRANGER = Actor(id=3)
ADMIN = Actor(id=99, role=UserRole.ADMIN)
TASK = _Task(creator_id=1, assignee_id=2)


def test_read_rules() -> None:
    assert can_read(CREATOR, TASK)
    assert can_read(ASSIGNEE, TASK)
    assert can_read(ADMIN, TASK)
    assert not can_read(STRANGER, TASK)


def test_write_rules() -> None:
    assert can_write(CREATOR, TASK)
    assert can_write(ADMIN, TASK)
    assert not can_write(ASSIGNEE, TASK)
    assert not can_write(STRANGER, TASK)


def test_status_changes_extend_to_the_assignee_only() -> None:
    assert can_change_status(ASSIGNEE, TASK)
    assert can_change_status(CREATOR, TASK)
    assert not can_change_status(STRANGER, TASK)


def test_only_admins_reassign() -> None:
    assert can_reassign(ADMIN)
    assert not can_reassign(CREATOR)
    with pytest.raises(ForbiddenError):
        ensure_can_reassign(CREATOR)
    ensure_can_reassign(ADMIN)


def test_ensure_can_write_raises_forbidden() -> None:
    with pytest.raises(ForbiddenError) as excinfo:
        ensure_can_write(ASSIGNEE, TASK)
    assert excinfo.value.status_code == 403
    ensure_can_write(CREATOR, TASK)


@pytest.mark.parametrize(
    ("actor_id", "role", "creator_id", "assignee_id"),
    list(product([1, 2, 3], list(UserRole), [1, 2], [1, 2, 3])),
)
def test_write_implies_read(actor_id: int, role: UserRole, creator_id: int, assignee_id: int) -> None:
    actor = Actor(id=actor_id, role=role)
    task = _Task(creator_id=creator_id, assignee_id=assignee_id)
    if can_write(actor, task):
        assert can_read(actor, task)
