"""
Translate search query parameters into SQLAlchemy filter predicates.

Supported parameters: name, plz, ort, telefonnummer, fax. Every parameter must
carry exactly one value; anything else yields None for that parameter, which the
service treats as "no results". Values are matched literally.
"""

import logging
from typing import List, Mapping, Optional, Sequence

from sqlalchemy.sql.elements import ColumnElement

from labor.adapters.orm import labore

logger = logging.getLogger(__name__)

Criterion = ColumnElement


def _name(value: str) -> Criterion:
    return labore.c.name.icontains(value, autoescape=True)


def _telefonnummer(value: str) -> Criterion:
    return labore.c.telefonnummer.icontains(value, autoescape=True)


def _fax(value: str) -> Criterion:
    return labore.c.fax.icontains(value, autoescape=True)


def _plz(value: str) -> Criterion:
    # prefix search
    return labore.c.adresse["plz"].as_string().startswith(value, autoescape=True)


def _ort(value: str) -> Criterion:
    return labore.c.adresse["ort"].as_string().icontains(value, autoescape=True)


CRITERIA_BUILDERS = {
    "name": _name,
    "plz": _plz,
    "ort": _ort,
    "telefonnummer": _telefonnummer,
    "fax": _fax,
}


def build_criterion(property_name: str, values: Optional[Sequence[str]]) -> Optional[Criterion]:
    """Predicate for one query parameter, or None if it cannot be built."""
    if values is None or len(values) != 1:
        return None

    builder = CRITERIA_BUILDERS.get(property_name)
    if builder is None:
        logger.debug(f"Unknown search property {property_name}")
        return None
    return builder(values[0])


def build_criteria(query_params: Mapping[str, Sequence[str]]) -> List[Optional[Criterion]]:
    """One predicate (or None) per query parameter, in parameter order."""
    criteria = [build_criterion(key, values) for key, values in query_params.items()]
    logger.debug(f"#Criteria: {len(criteria)}")
    return criteria
