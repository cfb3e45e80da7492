"""Domain model for laboratory records."""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Optional, Tuple


class TestTyp(enum.Enum):
    """Test types offered by a laboratory, serialized by their short code."""

    Antikoerper = "A"
    Blut = "B"
    DNS = "D"

    # keep pytest from collecting the enum as a test class
    __test__ = False

    def __str__(self):
        return self.value

    @classmethod
    def build(cls, value: Optional[str]) -> Optional["TestTyp"]:
        """Look up a test type by code or name, ignoring case. Unknown values give None."""
        if value is None:
            return None
        return _TEST_TYP_LOOKUP.get(value.lower())


_TEST_TYP_LOOKUP = MappingProxyType(
    {key: typ for typ in TestTyp for key in (typ.value.lower(), typ.name.lower())}
)


class Rolle:
    """Granted authorities used by the service."""
    ADMIN = "ROLE_ADMIN"
    KUNDE = "ROLE_KUNDE"
    LABOR = "ROLE_LABOR"
    ACTUATOR = "ROLE_ACTUATOR"


@dataclass(frozen=True)
class Adresse:
    strasse: str
    hausnummer: int
    plz: str
    ort: str


@dataclass(frozen=True)
class Gesundheitsamt:
    """Health authority to which the COVID test results are reported."""
    bundesland: str
    landkreis: str
    adresse: Adresse


@dataclass(frozen=True)
class CustomUser:
    id: Optional[str]
    username: str
    password: str = field(repr=False)
    authorities: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Labor:
    """
    Aggregate root for a laboratory.

    id and version are assigned by the store. username is set once at creation.
    user carries the candidate account of a create request and is never stored
    with the record.
    """
    id: Optional[str]
    name: str
    adresse: Adresse
    telefonnummer: str
    fax: str
    labor_tests: Tuple[TestTyp, ...]
    testet_auf_corona: bool
    zustaendiges_gesundheitsamt: Gesundheitsamt
    version: int = 0
    username: Optional[str] = None
    erzeugt: Optional[datetime] = field(default=None, compare=False)
    aktualisiert: Optional[datetime] = field(default=None, compare=False)
    user: Optional[CustomUser] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class PatchOperation:
    """A single JSON-Patch like mutation: op is add, replace or remove."""
    op: str
    path: str
    value: str
