"""Validation of Labor values against declarative field constraints."""

import re
from dataclasses import dataclass
from typing import Callable, List, NamedTuple

from labor.domain.model import Labor

MAX_FAX_LENGTH = 15
PLZ_PATTERN = re.compile(r"^\d{5}$")


@dataclass(frozen=True)
class ConstraintViolation:
    key: str
    message: str


class Rule(NamedTuple):
    key: str
    message: str
    is_valid: Callable[[Labor], bool]


DEFAULT_RULES = (
    Rule("labor.fax.notEmpty", "Fax is required.",
         lambda labor: bool(labor.fax)),
    Rule("labor.fax.pattern", f"Max {MAX_FAX_LENGTH} digits are allowed.",
         lambda labor: len(labor.fax or "") <= MAX_FAX_LENGTH),
    Rule("adresse.plz.notEmpty", "ZIP code is required.",
         lambda labor: bool(labor.adresse.plz)),
    Rule("adresse.plz.pattern", "ZIP code does not consist of 5 digits.",
         lambda labor: PLZ_PATTERN.match(labor.adresse.plz or "") is not None),
    Rule("adresse.ort.notEmpty", "Location is required.",
         lambda labor: bool(labor.adresse.ort)),
    Rule("labor.laborTests.unique", "Test types must not be listed twice.",
         lambda labor: len(set(labor.labor_tests)) == len(labor.labor_tests)),
)


class LaborValidator:
    """
    Evaluates every rule against a Labor and collects all violations in one pass.

    The validator holds no state besides its rules, so one instance is built at
    start-up and shared by all requests.
    """

    def __init__(self, rules=DEFAULT_RULES):
        self.rules = tuple(rules)

    def validate(self, labor: Labor) -> List[ConstraintViolation]:
        return [
            ConstraintViolation(rule.key, rule.message)
            for rule in self.rules
            if not rule.is_valid(labor)
        ]
