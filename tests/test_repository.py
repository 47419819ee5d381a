from __future__ import annotations

import anyio
import pytest

from users_api.errors import StoreError
from users_api.repository import UserRepository


def test_create_and_find_round_trip(memory_store) -> None:
    repository = UserRepository(memory_store)

    async def scenario():
        created = await repository.create("Ann", "ann@x.com")
        return created, await repository.find_by_id(created.id), await repository.find_by_email("ann@x.com")

    created, by_id, by_email = anyio.run(scenario)

    assert by_id == created
    assert by_email == created
    assert created.created_at.tzinfo is not None


def test_missing_rows_return_none(memory_store) -> None:
    repository = UserRepository(memory_store)
    assert anyio.run(repository.find_by_id, 404) is None
    assert anyio.run(repository.find_by_email, "nobody@x.com") is None


def test_find_all_is_newest_first_and_empty_when_no_rows(memory_store) -> None:
    repository = UserRepository(memory_store)
    assert anyio.run(repository.find_all) == []

    async def scenario():
        await repository.create("Old", "old@x.com")
        await repository.create("New", "new@x.com")
        return await repository.find_all()

    users = anyio.run(scenario)
    assert [user.name for user in users] == ["New", "Old"]


def test_store_failures_are_wrapped(broken_store) -> None:
    repository = UserRepository(broken_store)
    with pytest.raises(StoreError) as excinfo:
        anyio.run(repository.find_all)
    assert excinfo.value.message == "Database error: connection reset by peer"
    assert excinfo.value.status_code == 500


def test_unexpected_exceptions_are_wrapped(memory_store) -> None:
    memory_store.fail_with = KeyError("created_at")
    repository = UserRepository(memory_store)
    with pytest.raises(StoreError):
        anyio.run(repository.find_by_id, 1)


def test_update_and_delete(memory_store) -> None:
    repository = UserRepository(memory_store)

    async def scenario():
        created = await repository.create("Ann", "ann@x.com")
        updated = await repository.update(created.id, {"email": "ann@y.com"})
        deleted = await repository.delete(created.id)
        return updated, deleted, await repository.find_by_id(created.id)

    updated, deleted, after = anyio.run(scenario)
    assert updated.email == "ann@y.com"
    assert updated.name == "Ann"
    assert deleted is True
    assert after is None
