from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from taskhub.client import LoadState, TaskApiClient, TaskCache, TokenStore
from taskhub.client.http import filters_to_params
from taskhub.core.status_codes import ClientStatus
from taskhub.errors import (
    ForbiddenError,
    NotFoundError,
    RequestTimeoutError,
    ServerError,
    UnauthorizedError,
    ValidationError,
)
from taskhub.models import UserRole
from taskhub.schemas import TaskCreate, TaskFilters, TaskUpdate

from .conftest import DEFAULT_PASSWORD, UserFactory, task_payload
from .fakes import FakeNotifier


class RecordingTransport(httpx.ASGITransport):
    """ASGI transport that remembers every response status."""

    def __init__(self, app: FastAPI) -> None:
        super().__init__(app=app)
        self.statuses: list[int] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        response = await super().handle_async_request(request)
        self.statuses.append(response.status_code)
        return response


@pytest.fixture
def transport(app: FastAPI) -> RecordingTransport:
    return RecordingTransport(app)


@pytest.fixture
def tokens() -> TokenStore:
    return TokenStore()


@pytest_asyncio.fixture
async def api(transport: RecordingTransport, tokens: TokenStore) -> AsyncIterator[TaskApiClient]:
    async with TaskApiClient("http://testserver/api", tokens=tokens, transport=transport) as client:
        yield client


def _new_task(**overrides) -> TaskCreate:
    return TaskCreate.model_validate(task_payload(**overrides))


def test_filters_encode_as_comma_separated_params() -> None:
    filters = TaskFilters(status="TODO,COMPLETED", priority="high", users="3,4", search=" report ")

    assert filters_to_params(filters) == {
        "status": "TODO,COMPLETED",
        "priority": "HIGH",
        "users": "3,4",
        "search": "report",
    }
    assert filters_to_params(None) == {}
    assert filters_to_params(TaskFilters()) == {}


async def test_register_stores_token(api: TaskApiClient, tokens: TokenStore) -> None:
    auth = await api.register(
        first_name="Grace",
        last_name="Hopper",
        email="grace@example.com",
        password=DEFAULT_PASSWORD,
    )

    assert auth.role is UserRole.USER
    assert tokens.token == auth.token
    profile = await api.me()
    assert profile.email == "grace@example.com"


async def test_task_round_trip(api: TaskApiClient, user_factory: UserFactory) -> None:
    member = await user_factory(login=False)
    await api.login(member.email, member.password)

    created = await api.create_task(_new_task(title="Client task"))
    assert created.created_by == member.id
    assert created.assigned_to == member.id
    assert created.creator is not None and created.creator.email == member.email

    updated = await api.update_task(created.id, TaskUpdate(status=ClientStatus.IN_PROGRESS))
    assert updated.status is ClientStatus.IN_PROGRESS
    assert updated.title == "Client task"

    fetched = await api.get_task(created.id)
    assert fetched == updated

    await api.delete_task(created.id)
    with pytest.raises(NotFoundError):
        await api.get_task(created.id)


async def test_unchanged_list_is_replayed_from_etag(
    api: TaskApiClient, transport: RecordingTransport, user_factory: UserFactory
) -> None:
    member = await user_factory(login=False)
    await api.login(member.email, member.password)
    await api.create_task(_new_task(title="Cached"))

    first = await api.list_tasks()
    second = await api.list_tasks()

    assert [task.title for task in first] == ["Cached"]
    assert second == first
    assert transport.statuses[-2:] == [200, 304]

    await api.create_task(_new_task(title="Newer"))
    third = await api.list_tasks()
    assert [task.title for task in third] == ["Newer", "Cached"]
    assert transport.statuses[-1] == 200


async def test_filtered_list(api: TaskApiClient, user_factory: UserFactory) -> None:
    member = await user_factory(login=False)
    await api.login(member.email, member.password)
    await api.create_task(_new_task(title="Low one", priority="LOW"))
    await api.create_task(_new_task(title="High one", priority="HIGH"))

    tasks = await api.list_tasks(TaskFilters(priority="LOW"))

    assert [task.title for task in tasks] == ["Low one"]


async def test_missing_reminder_is_a_validation_error(api: TaskApiClient, user_factory: UserFactory) -> None:
    member = await user_factory(login=False)
    await api.login(member.email, member.password)

    with pytest.raises(ValidationError):
        await api.create_task(TaskCreate(title="No reminder"))


async def test_unauthorized_response_clears_token(api: TaskApiClient, tokens: TokenStore) -> None:
    tokens.set("not-a-jwt")

    with pytest.raises(UnauthorizedError):
        await api.me()

    assert tokens.token is None


async def test_admin_endpoints_are_forbidden_for_members(api: TaskApiClient, user_factory: UserFactory) -> None:
    member = await user_factory(login=False)
    await api.login(member.email, member.password)

    with pytest.raises(ForbiddenError):
        await api.list_users()


async def test_admin_endpoints(api: TaskApiClient, user_factory: UserFactory) -> None:
    admin = await user_factory(role=UserRole.ADMIN, login=False)
    member = await user_factory(login=False)
    await api.login(admin.email, admin.password)
    await api.create_task(_new_task(title="Delegated", assignedTo=member.id))

    users = await api.list_users_with_tasks()
    counts = {user.id: (user.created_tasks, user.assigned_tasks) for user in users}
    assert counts[admin.id] == (1, 0)
    assert counts[member.id] == (0, 1)

    every_task = await api.list_all_tasks(TaskFilters(users=str(member.id)))
    assert [task.title for task in every_task] == ["Delegated"]

    stats = await api.get_statistics()
    assert stats.total == 1


async def test_logout_revokes_and_clears(api: TaskApiClient, tokens: TokenStore, user_factory: UserFactory) -> None:
    member = await user_factory(login=False)
    auth = await api.login(member.email, member.password)

    await api.logout()

    assert tokens.token is None
    tokens.set(auth.token)
    with pytest.raises(UnauthorizedError):
        await api.me()


async def test_timeout_is_distinct_from_server_errors() -> None:
    def _timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    async with TaskApiClient(
        "http://testserver/api",
        tokens=TokenStore("token"),
        transport=httpx.MockTransport(_timeout),
    ) as client:
        with pytest.raises(RequestTimeoutError):
            await client.list_tasks()


async def test_connection_failure_is_a_network_error() -> None:
    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with TaskApiClient(
        "http://testserver/api",
        tokens=TokenStore("token"),
        transport=httpx.MockTransport(_refuse),
    ) as client:
        with pytest.raises(ServerError) as excinfo:
            await client.get_task(1)

    assert excinfo.value.code == "network_error"


async def test_server_error_envelope_is_mapped() -> None:
    def _explode(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            503,
            json={"code": "unavailable", "message": "Try later.", "details": None},
        )

    async with TaskApiClient(
        "http://testserver/api",
        tokens=TokenStore("token"),
        transport=httpx.MockTransport(_explode),
    ) as client:
        with pytest.raises(ServerError) as excinfo:
            await client.list_tasks()

    assert excinfo.value.code == "unavailable"
    assert excinfo.value.message == "Try later."


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, content=b"<html>gateway</html>", headers={"Content-Type": "text/html"}),
        httpx.Response(200, json=[{"id": "not-a-task"}]),
        httpx.Response(200, json={"tasks": []}),
    ],
)
async def test_malformed_success_body_is_a_server_error(response: httpx.Response) -> None:
    def _reply(request: httpx.Request) -> httpx.Response:
        return response

    async with TaskApiClient(
        "http://testserver/api",
        tokens=TokenStore("token"),
        transport=httpx.MockTransport(_reply),
    ) as client:
        with pytest.raises(ServerError) as excinfo:
            await client.list_tasks()

    assert excinfo.value.code == "invalid_response"


async def test_cache_over_malformed_list_ends_in_error_state() -> None:
    def _reply(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"not json")

    async with TaskApiClient(
        "http://testserver/api",
        tokens=TokenStore("token"),
        transport=httpx.MockTransport(_reply),
    ) as client:
        cache = TaskCache(client, notifier=FakeNotifier(), tokens=TokenStore("token"), debounce_seconds=5)
        assert await cache.refresh() == []

    assert cache.state is LoadState.ERROR
    assert isinstance(cache.error, ServerError)
