"""
Read-only value queries, separate from the Labor use cases.
Both are used for client-side helpers (autocompletion, cheap version polling).
"""
import logging
from typing import List, Optional

from labor.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


def find_names_by_prefix(prefix: str, uow: AbstractUnitOfWork) -> List[str]:
    """Distinct labor names starting with prefix, ignoring case, sorted."""
    with uow:
        names = uow.labore.find_names_by_prefix(prefix)
    logger.debug(f"find_names_by_prefix({prefix}): {len(names)} names")
    return names


def find_version_by_id(labor_id: str, uow: AbstractUnitOfWork) -> Optional[int]:
    with uow:
        return uow.labore.find_version(labor_id)
