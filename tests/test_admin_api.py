from __future__ import annotations

import pytest
from fastapi import status
from httpx import AsyncClient

from taskhub.models import UserRole

from .conftest import UserFactory, task_payload

pytestmark = pytest.mark.asyncio


async def test_admin_routes_reject_regular_users(client: AsyncClient, user_factory: UserFactory) -> None:
    member = await user_factory()
    for path in ("/api/admin/users", "/api/admin/users/with-tasks", "/api/admin/tasks", "/api/admin/statistics"):
        response = await client.get(path, headers=member.headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN, path

    client.cookies.clear()
    anonymous = await client.get("/api/admin/users")
    assert anonymous.status_code == status.HTTP_401_UNAUTHORIZED


async def test_admin_lists_users_with_task_counts(client: AsyncClient, user_factory: UserFactory) -> None:
    admin = await user_factory(role=UserRole.ADMIN)
    member = await user_factory()
    await client.post("/api/tasks", json=task_payload(assignedTo=member.id), headers=admin.headers)
    await client.post("/api/tasks", json=task_payload(), headers=member.headers)

    users = await client.get("/api/admin/users", headers=admin.headers)
    assert users.status_code == status.HTTP_200_OK
    assert {user["email"] for user in users.json()} == {admin.email, member.email}
    assert all("hashedPassword" not in user for user in users.json())

    counts = await client.get("/api/admin/users/with-tasks", headers=admin.headers)
    by_email = {user["email"]: user for user in counts.json()}
    assert by_email[admin.email]["createdTasks"] == 1
    assert by_email[admin.email]["assignedTasks"] == 0
    assert by_email[member.email]["createdTasks"] == 1
    assert by_email[member.email]["assignedTasks"] == 2

    single = await client.get(f"/api/admin/users/{member.id}", headers=admin.headers)
    assert single.status_code == status.HTTP_200_OK
    assert single.json()["role"] == "user"
    assert (await client.get("/api/admin/users/99999", headers=admin.headers)).status_code == 404


async def test_admin_sees_every_task_and_can_filter_by_user(client: AsyncClient, user_factory: UserFactory) -> None:
    admin = await user_factory(role=UserRole.ADMIN)
    first = await user_factory()
    second = await user_factory()
    await client.post("/api/tasks", json=task_payload(title="First's"), headers=first.headers)
    await client.post("/api/tasks", json=task_payload(title="Second's"), headers=second.headers)

    everything = await client.get("/api/admin/tasks", headers=admin.headers)
    assert sorted(task["title"] for task in everything.json()) == ["First's", "Second's"]

    scoped = await client.get("/api/admin/tasks", params={"users": str(first.id)}, headers=admin.headers)
    assert [task["title"] for task in scoped.json()] == ["First's"]

    member_view = await client.get("/api/tasks", params={"users": str(first.id)}, headers=second.headers)
    assert [task["title"] for task in member_view.json()] == ["Second's"]


async def test_admin_statistics(client: AsyncClient, user_factory: UserFactory) -> None:
    admin = await user_factory(role=UserRole.ADMIN)
    await client.post("/api/tasks", json=task_payload(status="COMPLETED"), headers=admin.headers)
    await client.post("/api/tasks", json=task_payload(status="PENDING", priority="LOW"), headers=admin.headers)

    response = await client.get("/api/admin/statistics", headers=admin.headers)

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["total"] == 2
    assert body["completed"] == 1
    assert body["pending"] == 1
    assert body["byStatus"]["COMPLETED"] == 1
    assert body["byPriority"] == {"LOW": 1, "MEDIUM": 0, "HIGH": 1}
