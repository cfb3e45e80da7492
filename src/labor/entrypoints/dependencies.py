"""
Providers for the collaborators of the API, resolved through FastAPI's Depends.
Tests swap them with app.dependency_overrides.
"""
import functools
import logging

from fastapi import Depends

from labor.adapters.file_store import MinIOFileStore
from labor.adapters.mailer import SmtpMailer
from labor.domain.validation import LaborValidator
from labor.service_layer.file_service import LaborFileService
from labor.service_layer.services import LaborService
from labor.service_layer.timeouts import Timeouts
from labor.service_layer.unit_of_work import SqlAlchemyUnitOfWork

logger = logging.getLogger(__name__)

# stateless, shared by all requests
VALIDATOR = LaborValidator()


def get_uow_factory():
    return SqlAlchemyUnitOfWork


@functools.lru_cache(maxsize=None)
def get_timeouts() -> Timeouts:
    return Timeouts.from_config()


@functools.lru_cache(maxsize=None)
def get_mailer():
    return SmtpMailer()


@functools.lru_cache(maxsize=None)
def get_file_store():
    logger.info("Connecting to MinIO")
    return MinIOFileStore.from_config()


def get_labor_service(
    uow_factory=Depends(get_uow_factory),
    mailer=Depends(get_mailer),
    timeouts: Timeouts = Depends(get_timeouts),
) -> LaborService:
    return LaborService(uow_factory, mailer, validator=VALIDATOR, timeouts=timeouts)


def get_file_service(
    uow_factory=Depends(get_uow_factory),
    file_store=Depends(get_file_store),
    timeouts: Timeouts = Depends(get_timeouts),
) -> LaborFileService:
    return LaborFileService(uow_factory, file_store, timeouts)
