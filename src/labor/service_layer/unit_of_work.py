# pylint: disable=attribute-defined-outside-init
from __future__ import annotations
import abc
import functools
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

import config
from labor.adapters import repository, users


class AbstractUnitOfWork(abc.ABC):
    labore: repository.AbstractLaborRepository
    users: users.AbstractUserDirectory

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(self, *args):
        self.rollback()

    def commit(self):
        self._commit()

    @abc.abstractmethod
    def _commit(self):
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self):
        raise NotImplementedError


@functools.lru_cache(maxsize=None)
def default_session_factory():
    # engine is built on first use so importing the module needs no database driver
    return sessionmaker(
        bind=create_engine(
            config.get_postgres_uri(),
            isolation_level="REPEATABLE READ",
        )
    )


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    def __init__(self, session_factory=None, password_context=None):
        self.session_factory = session_factory or default_session_factory()
        self.password_context = password_context or users.pwd_context

    def __enter__(self):
        self.session = self.session_factory()  # type: Session
        self.labore = repository.SqlAlchemyLaborRepository(self.session)
        self.users = users.SqlAlchemyUserDirectory(self.session, self.password_context)
        return super().__enter__()

    def __exit__(self, *args):
        super().__exit__(*args)
        self.session.close()

    def _commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
