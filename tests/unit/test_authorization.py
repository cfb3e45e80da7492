"""Unit tests for the access decision chain"""
import pytest

from labor.domain.model import Rolle
from labor.domain.results import AccessForbidden, Allowed, NotFound
from labor.service_layer.authorization import AuthorizationResolver


@pytest.fixture
def resolver(fake_uow_factory, timeouts):
    return AuthorizationResolver(fake_uow_factory, timeouts)


@pytest.mark.asyncio
async def test_owner_is_allowed_without_role_lookup(labor_factory, timeouts):
    def failing_uow_factory():
        raise AssertionError("the user directory must not be consulted")

    resolver = AuthorizationResolver(failing_uow_factory, timeouts)
    labor = labor_factory(id="1", username="stranger")

    assert await resolver.resolve_access("stranger", labor) == Allowed()


@pytest.mark.asyncio
async def test_unknown_principal_is_forbidden_without_roles(resolver, labor_factory):
    result = await resolver.resolve_access("nobody", labor_factory(id="1"))

    assert result == AccessForbidden(None)


@pytest.mark.asyncio
async def test_non_admin_is_forbidden_with_roles(resolver, labor_factory):
    result = await resolver.resolve_access("alpha1", labor_factory(id="1", username="admin"))

    assert result == AccessForbidden((Rolle.LABOR,))


@pytest.mark.asyncio
async def test_non_admin_gets_forbidden_for_missing_labor(resolver):
    result = await resolver.resolve_access("alpha1", None)

    assert isinstance(result, AccessForbidden)


@pytest.mark.asyncio
async def test_admin_gets_not_found_for_missing_labor(resolver):
    assert await resolver.resolve_access("admin", None) == NotFound()


@pytest.mark.asyncio
async def test_admin_is_allowed(resolver, labor_factory):
    assert await resolver.resolve_access("admin", labor_factory(id="1")) == Allowed()


@pytest.mark.asyncio
async def test_username_lookup_ignores_case(resolver, labor_factory):
    assert await resolver.resolve_access("Admin", labor_factory(id="1")) == Allowed()


@pytest.mark.asyncio
async def test_labor_without_owner_does_not_match_anonymous(resolver, labor_factory):
    result = await resolver.resolve_access(None, labor_factory(id="1", username=None))

    assert result == AccessForbidden(None)
