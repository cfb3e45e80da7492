"""User directory: principals with encoded passwords and granted roles."""

import abc
import logging
import uuid
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError

from labor.adapters import orm
from labor.domain.model import CustomUser
from labor.domain.results import CreateUserResult, UserCreated, UsernameExists

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def canonical_username(username: str) -> str:
    return username.strip().lower()


class AbstractUserDirectory(abc.ABC):

    def find_by_username(self, username: str) -> Optional[CustomUser]:
        return self._find_by_username(canonical_username(username))

    def create(self, user: CustomUser) -> CreateUserResult:
        """Store a new principal. The password is encoded before it is stored."""
        username = canonical_username(user.username)
        if self._find_by_username(username) is not None:
            logger.info(f"Username {username} already exists")
            return UsernameExists(username)
        return self._create(username, user.password, tuple(user.authorities))

    def verify_password(self, user: CustomUser, plain_password: str) -> bool:
        return self._verify(plain_password, user.password)

    @abc.abstractmethod
    def _find_by_username(self, username: str) -> Optional[CustomUser]:
        raise NotImplementedError

    @abc.abstractmethod
    def _create(self, username: str, password: str, authorities) -> CreateUserResult:
        raise NotImplementedError

    @abc.abstractmethod
    def _verify(self, plain_password: str, encoded_password: str) -> bool:
        raise NotImplementedError


class SqlAlchemyUserDirectory(AbstractUserDirectory):
    def __init__(self, session, password_context: CryptContext = pwd_context):
        super().__init__()
        self.session = session
        self.password_context = password_context

    def _find_by_username(self, username):
        row = self.session.execute(
            select(orm.users).where(orm.users.c.username == username)
        ).first()
        return orm.row_to_user(row) if row else None

    def _create(self, username, password, authorities):
        user = CustomUser(
            id=str(uuid.uuid4()),
            username=username,
            password=self.password_context.hash(password),
            authorities=authorities,
        )
        try:
            self.session.execute(
                insert(orm.users).values(
                    id=user.id,
                    username=user.username,
                    password=user.password,
                    authorities=list(user.authorities),
                )
            )
        except IntegrityError:
            # lost the race on the unique username
            self.session.rollback()
            logger.info(f"Username {username} was created concurrently")
            return UsernameExists(username)
        logger.info(f"Created user {username} with roles {list(authorities)}")
        return UserCreated(user)

    def _verify(self, plain_password, encoded_password):
        return self.password_context.verify(plain_password, encoded_password)
