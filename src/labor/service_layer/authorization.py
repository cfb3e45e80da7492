import logging
from typing import Callable, Optional

from labor.domain.model import Labor, Rolle
from labor.domain.results import AccessDecision, AccessForbidden, Allowed, NotFound
from labor.service_layer.timeouts import Timeouts, run_blocking
from labor.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


class AuthorizationResolver:
    """
    Decides whether a principal may see a labor.

    The checks run in a fixed order: owner, known principal, admin role,
    existing labor. An admin asking for a missing labor gets NotFound, everybody
    else without access gets AccessForbidden first.
    """

    def __init__(self, uow_factory: Callable[[], AbstractUnitOfWork], timeouts: Timeouts = Timeouts()):
        self.uow_factory = uow_factory
        self.timeouts = timeouts

    def _find_roles(self, username: str):
        with self.uow_factory() as uow:
            user = uow.users.find_by_username(username)
            return None if user is None else tuple(user.authorities)

    async def find_roles(self, username: Optional[str]):
        if not username:
            return None
        return await run_blocking(self.timeouts.short, self._find_roles, username)

    async def resolve_access(self, username: Optional[str], labor: Optional[Labor]) -> AccessDecision:
        if labor is not None and labor.username is not None and labor.username == username:
            logger.debug(f"{username} owns labor {labor.id}")
            return Allowed()

        roles = await self.find_roles(username)
        if roles is None:
            logger.debug(f"Unknown principal {username}")
            return AccessForbidden(None)
        if Rolle.ADMIN not in roles:
            logger.debug(f"{username} has roles {list(roles)}, admin required")
            return AccessForbidden(roles)
        if labor is None:
            return NotFound()
        return Allowed()
