# pylint: disable=redefined-outer-name
import functools
from dataclasses import replace
from datetime import datetime, timezone
import uuid

import pytest
from passlib.context import CryptContext
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

import config
from labor.adapters import orm
from labor.adapters.mailer import AbstractMailer, SendSuccess
from labor.adapters.repository import AbstractLaborRepository, VersionConflictError
from labor.adapters.users import AbstractUserDirectory
from labor.domain.model import Adresse, CustomUser, Gesundheitsamt, Labor, Rolle, TestTyp
from labor.domain.results import UserCreated
from labor.service_layer.timeouts import Timeouts
from labor.service_layer.unit_of_work import AbstractUnitOfWork, SqlAlchemyUnitOfWork


class FakeLaborRepository(AbstractLaborRepository):
    def __init__(self, labore=()):
        super().__init__()
        self._labore = {labor.id: labor for labor in labore}
        self.criteria_seen = []

    def _add(self, labor):
        now = datetime.now(timezone.utc)
        labor = replace(labor, id=labor.id or str(uuid.uuid4()), version=0, erzeugt=now, aktualisiert=now)
        self._labore[labor.id] = labor
        return labor

    def _get(self, labor_id):
        return self._labore.get(labor_id)

    def _exists(self, labor_id):
        return labor_id in self._labore

    def _list(self):
        return sorted(self._labore.values(), key=lambda labor: labor.name)

    def _find(self, criteria):
        self.criteria_seen.append(list(criteria))
        return self._list()

    def _update(self, labor, expected_version):
        current = self._labore.get(labor.id)
        if current is None or current.version != expected_version:
            raise VersionConflictError(labor.id, expected_version)
        updated = replace(labor, version=current.version + 1, aktualisiert=datetime.now(timezone.utc))
        self._labore[labor.id] = updated
        return updated

    def _delete(self, labor_id):
        return 1 if self._labore.pop(labor_id, None) is not None else 0

    def _find_names_by_prefix(self, prefix):
        return sorted({labor.name for labor in self._labore.values() if labor.name.lower().startswith(prefix.lower())})

    def _find_version(self, labor_id):
        labor = self._labore.get(labor_id)
        return None if labor is None else labor.version


class FakeUserDirectory(AbstractUserDirectory):
    def __init__(self, users=()):
        super().__init__()
        self._users = {user.username: user for user in users}

    def _find_by_username(self, username):
        return self._users.get(username)

    def _create(self, username, password, authorities):
        user = CustomUser(id=str(uuid.uuid4()), username=username, password=password, authorities=authorities)
        self._users[username] = user
        return UserCreated(user)

    def _verify(self, plain_password, encoded_password):
        return plain_password == encoded_password


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self, labore=(), users=()):
        self.labore = FakeLaborRepository(labore)
        self.users = FakeUserDirectory(users)
        self.committed = False

    def _commit(self):
        self.committed = True

    def rollback(self):
        pass


class FakeMailer(AbstractMailer):
    def __init__(self, result=None):
        self.sent = []
        self.result = result or SendSuccess()

    def send(self, neues_labor):
        self.sent.append(neues_labor)
        return self.result


def make_labor(**changes) -> Labor:
    labor = Labor(
        id=None,
        name="Chicken",
        adresse=Adresse("Erstestrasse", 3, "12345", "München"),
        telefonnummer="12345678",
        fax="87654321",
        labor_tests=(TestTyp.Antikoerper, TestTyp.Blut),
        testet_auf_corona=True,
        zustaendiges_gesundheitsamt=Gesundheitsamt(
            "Bayern", "München", Adresse("Weißwurststrasse", 1, "12345", "München")
        ),
    )
    return replace(labor, **changes)


ADMIN = CustomUser(id="10000000-0000-0000-0000-000000000000", username="admin", password="p",
                   authorities=(Rolle.ADMIN, Rolle.LABOR, Rolle.ACTUATOR))
ALPHA = CustomUser(id="10000000-0000-0000-0000-000000000001", username="alpha1", password="p",
                   authorities=(Rolle.LABOR,))


@pytest.fixture
def labor_factory():
    """Build a valid Labor, overriding any field by keyword."""
    return make_labor


@pytest.fixture
def admin():
    return ADMIN


@pytest.fixture
def alpha():
    return ALPHA


@pytest.fixture
def fake_uow():
    """One fake unit of work with the users admin and alpha1 and no labore."""
    return FakeUnitOfWork(users=[ADMIN, ALPHA])


@pytest.fixture
def fake_uow_factory(fake_uow):
    return lambda: fake_uow


@pytest.fixture
def fake_mailer():
    return FakeMailer()


@pytest.fixture
def mailer_factory():
    return FakeMailer


@pytest.fixture
def timeouts():
    return Timeouts(short=5.0, long=10.0)


@pytest.fixture
def password_context():
    """Fast hashing for tests."""
    return CryptContext(schemes=["pbkdf2_sha256"])


@pytest.fixture
def sqlite_session_factory(tmp_path):
    """File based SQLite, shared by the worker threads of the service."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'labor.db'}",
        connect_args={"check_same_thread": False},
    )
    orm.create_tables(engine)

    yield sessionmaker(bind=engine)

    engine.dispose()


@pytest.fixture
def sqlite_uow_factory(sqlite_session_factory, password_context):
    return functools.partial(SqlAlchemyUnitOfWork, sqlite_session_factory, password_context)


@pytest.fixture
def sqlite_users(sqlite_uow_factory):
    """Store admin and alpha1 with password "p"."""
    with sqlite_uow_factory() as uow:
        uow.users.create(ADMIN)
        uow.users.create(ALPHA)
        uow.commit()
    return sqlite_uow_factory


@pytest.fixture
def postgres_session_factory():
    """PostgreSQL from the DB_* settings, with the isolation level used in production."""
    engine = create_engine(config.get_postgres_uri(), isolation_level="REPEATABLE READ")
    try:
        engine.connect().close()
    except OperationalError:
        engine.dispose()
        pytest.skip("PostgreSQL is not reachable")
    orm.create_tables(engine)

    yield sessionmaker(bind=engine)

    orm.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def postgres_uow_factory(postgres_session_factory, password_context):
    return functools.partial(SqlAlchemyUnitOfWork, postgres_session_factory, password_context)
