import abc
import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import DBAPIError

from labor.adapters import orm
from labor.adapters.criteria import Criterion
from labor.domain.model import Labor

logger = logging.getLogger(__name__)

SERIALIZATION_FAILURE = "40001"


class VersionConflictError(Exception):
    """Raised when a version-checked save finds a different version in the store."""

    def __init__(self, labor_id: str, expected_version: int):
        super().__init__(f"Labor {labor_id} is not at version {expected_version}")
        self.labor_id = labor_id
        self.expected_version = expected_version


class AbstractLaborRepository(abc.ABC):
    """
    Store API for Labor aggregates.

    update() takes the version the caller believes current and fails with
    VersionConflictError if the store holds another one; there is no identity
    map to keep in sync.
    """

    def add(self, labor: Labor) -> Labor:
        return self._add(labor)

    def get(self, labor_id: str) -> Optional[Labor]:
        return self._get(labor_id)

    def exists(self, labor_id: str) -> bool:
        return self._exists(labor_id)

    def list(self) -> List[Labor]:
        return self._list()

    def find(self, criteria: Sequence[Criterion]) -> List[Labor]:
        return self._find(criteria)

    def update(self, labor: Labor, expected_version: int) -> Labor:
        return self._update(labor, expected_version)

    def delete(self, labor_id: str) -> int:
        return self._delete(labor_id)

    def find_names_by_prefix(self, prefix: str) -> List[str]:
        return self._find_names_by_prefix(prefix)

    def find_version(self, labor_id: str) -> Optional[int]:
        return self._find_version(labor_id)

    @abc.abstractmethod
    def _add(self, labor: Labor) -> Labor:
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, labor_id: str) -> Optional[Labor]:
        raise NotImplementedError

    @abc.abstractmethod
    def _exists(self, labor_id: str) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def _list(self) -> List[Labor]:
        raise NotImplementedError

    @abc.abstractmethod
    def _find(self, criteria: Sequence[Criterion]) -> List[Labor]:
        raise NotImplementedError

    @abc.abstractmethod
    def _update(self, labor: Labor, expected_version: int) -> Labor:
        raise NotImplementedError

    @abc.abstractmethod
    def _delete(self, labor_id: str) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    def _find_names_by_prefix(self, prefix: str) -> List[str]:
        raise NotImplementedError

    @abc.abstractmethod
    def _find_version(self, labor_id: str) -> Optional[int]:
        raise NotImplementedError


class SqlAlchemyLaborRepository(AbstractLaborRepository):
    def __init__(self, session):
        super().__init__()
        self.session = session

    def _add(self, labor):
        now = datetime.now(timezone.utc)
        labor_id = labor.id or str(uuid.uuid4())
        values = orm.labor_to_row(labor)
        values.update(id=labor_id, version=0, erzeugt=now, aktualisiert=now)
        self.session.execute(insert(orm.labore).values(**values))
        logger.debug(f"Inserted labor {labor_id}")
        return replace(labor, id=labor_id, version=0, erzeugt=now, aktualisiert=now)

    def _get(self, labor_id):
        row = self.session.execute(
            select(orm.labore).where(orm.labore.c.id == labor_id)
        ).first()
        return orm.row_to_labor(row) if row else None

    def _exists(self, labor_id):
        count = self.session.execute(
            select(func.count()).select_from(orm.labore).where(orm.labore.c.id == labor_id)
        ).scalar()
        return bool(count)

    def _list(self):
        rows = self.session.execute(select(orm.labore).order_by(orm.labore.c.name)).all()
        return [orm.row_to_labor(row) for row in rows]

    def _find(self, criteria):
        query = select(orm.labore).order_by(orm.labore.c.name)
        if criteria:
            query = query.where(*criteria)
        rows = self.session.execute(query).all()
        return [orm.row_to_labor(row) for row in rows]

    def _update(self, labor, expected_version):
        values = orm.labor_to_row(labor)
        # username is fixed at creation
        values.pop("username")
        values.update(
            version=orm.labore.c.version + 1,
            aktualisiert=datetime.now(timezone.utc),
        )
        try:
            result = self.session.execute(
                update(orm.labore)
                .where(orm.labore.c.id == labor.id, orm.labore.c.version == expected_version)
                .values(**values)
            )
        except DBAPIError as e:
            # a concurrent writer committed first (REPEATABLE READ on PostgreSQL)
            if getattr(e.orig, "pgcode", None) != SERIALIZATION_FAILURE:
                raise
            self.session.rollback()
            logger.info(f"Concurrent update of labor {labor.id} at version {expected_version}")
            raise VersionConflictError(labor.id, expected_version) from e
        if result.rowcount != 1:
            logger.info(f"Version conflict for labor {labor.id}: expected {expected_version}")
            raise VersionConflictError(labor.id, expected_version)
        return self._get(labor.id)

    def _delete(self, labor_id):
        result = self.session.execute(delete(orm.labore).where(orm.labore.c.id == labor_id))
        return result.rowcount

    def _find_names_by_prefix(self, prefix):
        rows = self.session.execute(
            select(orm.labore.c.name)
            .where(orm.labore.c.name.istartswith(prefix, autoescape=True))
            .distinct()
            .order_by(orm.labore.c.name)
        ).all()
        return [row.name for row in rows]

    def _find_version(self, labor_id):
        return self.session.execute(
            select(orm.labore.c.version).where(orm.labore.c.id == labor_id)
        ).scalar()
