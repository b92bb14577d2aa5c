"""Composable task predicates scoped by role and filter criteria."""

from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy import ColumnElement

from ..core.permissions import Actor
from ..core.status_codes import to_internal
from ..models import Task
from ..schemas.task import TaskFilters

TASK_ORDERING: tuple[ColumnElement, ...] = (Task.created_at.desc(), Task.id.desc())


def visibility_clause(actor: Actor) -> ColumnElement[bool]:
    """Restrict non-admins to tasks they created or are assigned to."""

    if actor.is_admin:
        return sa.true()
    return sa.or_(Task.creator_id == actor.id, Task.assignee_id == actor.id)


def build_task_query(actor: Actor, filters: TaskFilters | None = None) -> ColumnElement[bool]:
    """Combine visibility and filter clauses into one predicate over ``Task``.

    User filters only apply to admins; for everyone else the visibility
    clause already scopes the result to their own tasks.
    """

    filters = filters or TaskFilters()
    clauses: list[ColumnElement[bool]] = []

    if not actor.is_admin:
        clauses.append(visibility_clause(actor))

    if filters.status:
        internal = sorted({to_internal(status) for status in filters.status}, key=lambda s: s.value)
        clauses.append(Task.status.in_(internal))

    if filters.priority:
        clauses.append(Task.priority.in_(list(filters.priority)))

    if filters.users and actor.is_admin:
        user_ids = list(filters.users)
        clauses.append(sa.or_(Task.creator_id.in_(user_ids), Task.assignee_id.in_(user_ids)))

    if filters.search:
        clauses.append(
            sa.or_(
                Task.title.icontains(filters.search, autoescape=True),
                Task.description.icontains(filters.search, autoescape=True),
            )
        )

    if not clauses:
        return sa.true()
    return sa.and_(*clauses)


__all__ = ["TASK_ORDERING", "build_task_query", "visibility_clause"]
