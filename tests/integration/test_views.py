"""Integration tests for the value queries"""
from labor import views


def test_find_names_by_prefix(sqlite_uow_factory, labor_factory):
    with sqlite_uow_factory() as uow:
        uow.labore.add(labor_factory(name="Flora"))
        uow.labore.add(labor_factory(name="Fleming"))
        uow.labore.add(labor_factory(name="Chicken"))
        uow.commit()

    assert views.find_names_by_prefix("FL", sqlite_uow_factory()) == ["Fleming", "Flora"]
    assert views.find_names_by_prefix("z", sqlite_uow_factory()) == []


def test_find_version_by_id(sqlite_uow_factory, labor_factory):
    with sqlite_uow_factory() as uow:
        saved = uow.labore.add(labor_factory())
        uow.commit()

    assert views.find_version_by_id(saved.id, sqlite_uow_factory()) == 0
    assert views.find_version_by_id("does-not-exist", sqlite_uow_factory()) is None


def test_uncommitted_work_is_rolled_back(sqlite_uow_factory, labor_factory):
    with sqlite_uow_factory() as uow:
        saved = uow.labore.add(labor_factory())

    assert views.find_version_by_id(saved.id, sqlite_uow_factory()) is None
