"""
Result types returned by the service layer.

Expected business outcomes (not found, forbidden, stale version, ...) are
returned as one of these values instead of being raised. Callers dispatch on
the type with isinstance().
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from labor.domain.model import CustomUser, Labor
from labor.domain.validation import ConstraintViolation


@dataclass(frozen=True)
class Success:
    labor: Labor


@dataclass(frozen=True)
class Found:
    labore: Tuple[Labor, ...]


@dataclass(frozen=True)
class Deleted:
    count: int


@dataclass(frozen=True)
class Allowed:
    pass


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class AccessForbidden:
    """The caller lacks the required role. roles is None for unknown principals."""
    roles: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class ConstraintViolations:
    violations: Tuple[ConstraintViolation, ...]


@dataclass(frozen=True)
class InvalidAccount:
    """A new labor was submitted without a usable account."""
    pass


@dataclass(frozen=True)
class UsernameExists:
    username: str


@dataclass(frozen=True)
class VersionInvalid:
    version: str


@dataclass(frozen=True)
class VersionOutdated:
    version: int


@dataclass(frozen=True)
class Timeout:
    """An external call exceeded its budget. Safe to retry."""
    operation: str


@dataclass(frozen=True)
class UserCreated:
    user: CustomUser


AccessDecision = Union[Allowed, AccessForbidden, NotFound]
FindByIdResult = Union[Success, NotFound, AccessForbidden, Timeout]
SearchResult = Union[Found, Timeout]
CreateResult = Union[Success, ConstraintViolations, InvalidAccount, UsernameExists, Timeout]
UpdateResult = Union[Success, ConstraintViolations, NotFound, VersionInvalid, VersionOutdated, Timeout]
PatchResult = Union[UpdateResult, AccessForbidden]
DeleteResult = Union[Deleted, Timeout]
CreateUserResult = Union[UserCreated, UsernameExists]
