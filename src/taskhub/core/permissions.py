"""Role and participation rules deciding who may read, edit or reassign a task."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from ..errors import ForbiddenError
from ..models.user import UserRole

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..models.user import User


class TaskParticipants(Protocol):
    """Anything exposing the creator and assignee identifiers of a task."""

    creator_id: int
    assignee_id: int


@dataclass(slots=True, frozen=True)
class Actor:
    """The authenticated identity performing an operation."""

    id: int
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_user(cls, user: "User") -> "Actor":
        if user.id is None:  # pragma: no cover - defensive guard for unsaved users
            raise ValueError("Cannot build an actor from an unsaved user.")
        return cls(id=user.id, role=user.role)


def is_creator(actor: Actor, task: TaskParticipants) -> bool:
    return actor.id == task.creator_id


def is_assignee(actor: Actor, task: TaskParticipants) -> bool:
    return actor.id == task.assignee_id


def can_read(actor: Actor, task: TaskParticipants) -> bool:
    """Admins, the creator and the current assignee may read a task."""

    return actor.is_admin or is_creator(actor, task) or is_assignee(actor, task)


def can_write(actor: Actor, task: TaskParticipants) -> bool:
    """Only admins and the creator may edit or delete a task."""

    return actor.is_admin or is_creator(actor, task)


def can_change_status(actor: Actor, task: TaskParticipants) -> bool:
    """Writers may change status; so may the assignee, and nothing else."""

    return can_write(actor, task) or is_assignee(actor, task)


def can_reassign(actor: Actor) -> bool:
    return actor.is_admin


def ensure_can_write(actor: Actor, task: TaskParticipants) -> None:
    if not can_write(actor, task):
        raise ForbiddenError("You are not permitted to modify this task.")


def ensure_can_reassign(actor: Actor) -> None:
    if not can_reassign(actor):
        raise ForbiddenError("Only administrators can assign tasks to other users.")


__all__ = [
    "Actor",
    "TaskParticipants",
    "can_change_status",
    "can_read",
    "can_reassign",
    "can_write",
    "ensure_can_reassign",
    "ensure_can_write",
    "is_assignee",
    "is_creator",
]
