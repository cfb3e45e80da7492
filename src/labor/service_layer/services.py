"""
Use cases for the Labor aggregate.

Each public coroutine returns one of the result types from labor.domain.results.
Blocking adapter calls run through run_blocking with the short budget for
single-document operations and the long budget for scans and mail.
"""

import asyncio
import logging
from dataclasses import replace
from typing import AsyncIterator, Callable, Iterable, Mapping, Optional, Sequence

from labor.adapters.criteria import build_criteria, build_criterion
from labor.adapters.mailer import AbstractMailer, SendSuccess
from labor.adapters.repository import VersionConflictError
from labor.domain.model import CustomUser, Labor, PatchOperation, Rolle
from labor.domain.patch import apply_patch
from labor.domain.results import (
    Allowed,
    ConstraintViolations,
    CreateResult,
    Deleted,
    DeleteResult,
    FindByIdResult,
    Found,
    InvalidAccount,
    NotFound,
    PatchResult,
    SearchResult,
    Success,
    UpdateResult,
    UserCreated,
    VersionInvalid,
    VersionOutdated,
)
from labor.domain.validation import LaborValidator
from labor.service_layer.authorization import AuthorizationResolver
from labor.service_layer.timeouts import Timeouts, run_blocking, timeout_as_result
from labor.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


def parse_version(version: Optional[str]) -> Optional[int]:
    """
    Version number from an If-Match value without quotes, or None if it is not an integer.
    A negative number parses; no stored labor has it, so the save is rejected as outdated.
    """
    if version is None:
        return None
    try:
        return int(version)
    except ValueError:
        return None


class LaborService:
    def __init__(
        self,
        uow_factory: Callable[[], AbstractUnitOfWork],
        mailer: AbstractMailer,
        validator: LaborValidator = LaborValidator(),
        timeouts: Timeouts = Timeouts(),
        authorization: Optional[AuthorizationResolver] = None,
    ):
        self.uow_factory = uow_factory
        self.mailer = mailer
        self.validator = validator
        self.timeouts = timeouts
        self.authorization = authorization or AuthorizationResolver(uow_factory, timeouts)

    # blocking helpers, one unit of work each

    def _get(self, labor_id):
        with self.uow_factory() as uow:
            return uow.labore.get(labor_id)

    def _list(self):
        with self.uow_factory() as uow:
            return uow.labore.list()

    def _find(self, criteria):
        with self.uow_factory() as uow:
            return uow.labore.find(criteria)

    def _create_user(self, user):
        with self.uow_factory() as uow:
            result = uow.users.create(user)
            if isinstance(result, UserCreated):
                uow.commit()
            return result

    def _add(self, labor):
        with self.uow_factory() as uow:
            saved = uow.labore.add(labor)
            uow.commit()
            return saved

    def _update(self, labor, expected_version):
        with self.uow_factory() as uow:
            updated = uow.labore.update(labor, expected_version)
            uow.commit()
            return updated

    def _delete(self, labor_id):
        with self.uow_factory() as uow:
            count = uow.labore.delete(labor_id)
            uow.commit()
            return count

    # use cases

    @timeout_as_result("find_by_id")
    async def find_by_id(self, labor_id: str, username: Optional[str]) -> FindByIdResult:
        labor = await run_blocking(self.timeouts.short, self._get, labor_id)
        decision = await self.authorization.resolve_access(username, labor)
        if isinstance(decision, Allowed):
            logger.debug(f"find_by_id: {labor}")
            return Success(labor)
        return decision

    @timeout_as_result("find")
    async def find(self, query_params: Optional[Mapping[str, Sequence[str]]] = None) -> SearchResult:
        if not query_params:
            labore = await run_blocking(self.timeouts.long, self._list)
            return Found(tuple(labore))

        if len(query_params) == 1:
            property_name, values = next(iter(query_params.items()))
            criteria = [build_criterion(property_name, values)]
        else:
            criteria = build_criteria(query_params)

        if any(criterion is None for criterion in criteria):
            logger.debug(f"Invalid search parameters {dict(query_params)}, no results")
            return Found(())

        labore = await run_blocking(self.timeouts.long, self._find, criteria)
        logger.debug(f"find: {len(labore)} results")
        return Found(tuple(labore))

    async def find_all_stream(self) -> AsyncIterator[Labor]:
        """
        All labore one by one, for the event stream.
        The scan runs under the long budget before the first item is yielded;
        when it expires asyncio.TimeoutError reaches the consumer.
        """
        labore = await run_blocking(self.timeouts.long, self._list)
        logger.debug(f"find_all_stream: {len(labore)} labore")
        for labor in labore:
            yield labor

    @timeout_as_result("create")
    async def create(self, labor: Labor) -> CreateResult:
        logger.debug(f"create: {labor}")
        violations = self.validator.validate(labor)
        if violations:
            logger.debug(f"create: violations {violations}")
            return ConstraintViolations(tuple(violations))

        candidate = labor.user
        if candidate is None or not candidate.username or not candidate.password:
            return InvalidAccount()

        account = CustomUser(
            id=None,
            username=candidate.username,
            password=candidate.password,
            authorities=(Rolle.LABOR,),
        )
        account_result = await run_blocking(self.timeouts.short, self._create_user, account)
        if not isinstance(account_result, UserCreated):
            return account_result

        user = account_result.user
        neues_labor = replace(labor, id=None, version=0, username=user.username, user=user)
        saved = await run_blocking(self.timeouts.short, self._add, neues_labor)
        logger.info(f"Created labor {saved.id} for {user.username}")

        await self._notify(saved)
        return Success(saved)

    async def _notify(self, labor: Labor):
        try:
            result = await run_blocking(self.timeouts.long, self.mailer.send, labor)
        except asyncio.TimeoutError:
            logger.warning(f"Mail for labor {labor.id} timed out")
            return
        if not isinstance(result, SendSuccess):
            logger.warning(f"Mail for labor {labor.id} not sent: {result}")

    @timeout_as_result("update")
    async def update(self, labor: Labor, labor_id: str, version: Optional[str]) -> UpdateResult:
        logger.debug(f"update: {labor}, id={labor_id}, version={version}")
        violations = self.validator.validate(labor)
        if violations:
            return ConstraintViolations(tuple(violations))

        current = await run_blocking(self.timeouts.short, self._get, labor_id)
        if current is None:
            return NotFound()

        expected_version = parse_version(version)
        if expected_version is None:
            return VersionInvalid(str(version))

        changed = replace(
            labor,
            id=labor_id,
            username=current.username,
            erzeugt=current.erzeugt,
            user=None,
        )
        try:
            updated = await run_blocking(self.timeouts.short, self._update, changed, expected_version)
        except VersionConflictError:
            return VersionOutdated(expected_version)

        logger.debug(f"update: new version {updated.version}")
        return Success(updated)

    @timeout_as_result("patch")
    async def patch(
        self,
        labor_id: str,
        operations: Iterable[PatchOperation],
        version: Optional[str],
        username: Optional[str],
    ) -> PatchResult:
        found = await self.find_by_id(labor_id, username)
        if not isinstance(found, Success):
            return found

        patched = apply_patch(found.labor, operations)
        logger.debug(f"patch: {patched}")
        return await self.update(patched, labor_id, version)

    @timeout_as_result("delete_by_id")
    async def delete_by_id(self, labor_id: str) -> DeleteResult:
        count = await run_blocking(self.timeouts.short, self._delete, labor_id)
        logger.debug(f"delete_by_id: {count} removed")
        return Deleted(count)
