"""Apply JSON-Patch like operations to a Labor value."""

import logging
from dataclasses import replace
from typing import Iterable

from labor.domain.model import Labor, PatchOperation, TestTyp

logger = logging.getLogger(__name__)

NAME_PATH = "/name"
TELEFONNUMMER_PATH = "/telefonnummer"
LABOR_TESTS_PATH = "/laborTests"


def apply_patch(labor: Labor, operations: Iterable[PatchOperation]) -> Labor:
    """
    Return a new Labor with the operations applied.

    All replace operations run first, then all add operations, then all remove
    operations, so a remove always wins over an add of the same test type.
    Unknown paths and unknown test type codes are ignored.
    """
    operations = list(operations)

    patched = labor
    for op in _ops(operations, "replace"):
        patched = _replace(patched, op)
    for op in _ops(operations, "add"):
        patched = _add_labor_test(patched, op)
    for op in _ops(operations, "remove"):
        patched = _remove_labor_test(patched, op)
    return patched


def _ops(operations, kind):
    return [op for op in operations if op.op == kind]


def _replace(labor: Labor, op: PatchOperation) -> Labor:
    if op.path == NAME_PATH:
        return replace(labor, name=op.value)
    if op.path == TELEFONNUMMER_PATH:
        return replace(labor, telefonnummer=op.value)
    logger.debug(f"Ignoring replace on unsupported path {op.path}")
    return labor


def _add_labor_test(labor: Labor, op: PatchOperation) -> Labor:
    if op.path != LABOR_TESTS_PATH:
        return labor
    test_typ = TestTyp.build(op.value)
    if test_typ is None or test_typ in labor.labor_tests:
        return labor
    return replace(labor, labor_tests=labor.labor_tests + (test_typ,))


def _remove_labor_test(labor: Labor, op: PatchOperation) -> Labor:
    if op.path != LABOR_TESTS_PATH:
        return labor
    test_typ = TestTyp.build(op.value)
    if test_typ is None:
        return labor
    return replace(labor, labor_tests=tuple(t for t in labor.labor_tests if t != test_typ))
