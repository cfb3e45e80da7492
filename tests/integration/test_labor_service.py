"""Integration tests for the Labor use cases against SQLite, and PostgreSQL where reachable"""
import asyncio
from dataclasses import replace

import pytest

from labor.domain.model import CustomUser, PatchOperation, TestTyp
from labor.domain.results import (
    AccessForbidden,
    Deleted,
    Found,
    Success,
    UsernameExists,
    VersionOutdated,
)
from labor.service_layer.services import LaborService


@pytest.fixture
def service(sqlite_users, fake_mailer, timeouts):
    return LaborService(sqlite_users, fake_mailer, timeouts=timeouts)


async def create(service, labor, username="neu"):
    result = await service.create(replace(labor, user=CustomUser(id=None, username=username, password="p")))
    assert isinstance(result, Success)
    return result.labor


@pytest.mark.asyncio
async def test_create_and_find_as_owner(service, labor_factory):
    created = await create(service, labor_factory())

    result = await service.find_by_id(created.id, "neu")

    assert result == Success(created)
    assert result.labor.username == "neu"


@pytest.mark.asyncio
async def test_created_account_can_log_in(service, sqlite_users, labor_factory):
    await create(service, labor_factory(), username="Neu")

    with sqlite_users() as uow:
        user = uow.users.find_by_username("neu")
        assert uow.users.verify_password(user, "p")


@pytest.mark.asyncio
async def test_create_with_existing_username_writes_no_labor(service, labor_factory):
    labor = replace(labor_factory(), user=CustomUser(id=None, username="alpha1", password="p"))

    result = await service.create(labor)

    assert result == UsernameExists("alpha1")
    assert await service.find() == Found(())


@pytest.mark.asyncio
async def test_other_labor_account_is_forbidden(service, labor_factory):
    created = await create(service, labor_factory())

    result = await service.find_by_id(created.id, "alpha1")

    assert isinstance(result, AccessForbidden)


@pytest.mark.asyncio
async def test_search(service, labor_factory):
    await create(service, labor_factory(name="Chicken"), username="eins")
    await create(service, labor_factory(name="Flora"), username="zwei")

    result = await service.find({"name": ["flo"]})

    assert [labor.name for labor in result.labore] == ["Flora"]
    assert (await service.find({"name": ["flo"], "unbekannt": ["x"]})) == Found(())


@pytest.mark.asyncio
async def test_version_increases_with_every_write(service, labor_factory):
    created = await create(service, labor_factory())

    first = await service.update(replace(created, name="Eins"), created.id, "0")
    second = await service.patch(created.id, [PatchOperation("add", "/laborTests", "D")], "1", "neu")

    assert first.labor.version == 1
    assert second.labor.version == 2
    assert second.labor.name == "Eins"
    assert TestTyp.DNS in second.labor.labor_tests


@pytest.mark.asyncio
async def test_second_writer_with_same_version_loses(service, labor_factory):
    created = await create(service, labor_factory())
    seen_by_first = await service.find_by_id(created.id, "admin")
    seen_by_second = await service.find_by_id(created.id, "admin")

    first = await service.update(replace(seen_by_first.labor, name="Erster"), created.id, "0")
    second = await service.update(replace(seen_by_second.labor, name="Zweiter"), created.id, "0")

    assert isinstance(first, Success)
    assert second == VersionOutdated(0)
    found = await service.find_by_id(created.id, "admin")
    assert found.labor.version == 1
    assert found.labor.name == "Erster"


@pytest.mark.asyncio
async def test_delete_twice(service, labor_factory):
    created = await create(service, labor_factory())

    assert await service.delete_by_id(created.id) == Deleted(1)
    assert await service.delete_by_id(created.id) == Deleted(0)


@pytest.mark.asyncio
async def test_overlapping_writers_on_postgres(postgres_uow_factory, fake_mailer, timeouts, labor_factory):
    service = LaborService(postgres_uow_factory, fake_mailer, timeouts=timeouts)
    with postgres_uow_factory() as uow:
        created = uow.labore.add(labor_factory())
        uow.commit()

    with postgres_uow_factory() as first:
        first.labore.update(replace(created, name="Erster"), 0)
        second = asyncio.create_task(service.update(replace(created, name="Zweiter"), created.id, "0"))
        # the second UPDATE now waits for the row lock held by the first transaction
        await asyncio.sleep(0.5)
        first.commit()

    assert await second == VersionOutdated(0)
    with postgres_uow_factory() as uow:
        stored = uow.labore.get(created.id)
    assert stored.version == 1
    assert stored.name == "Erster"
