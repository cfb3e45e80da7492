"""Files (images, videos) attached to a labor. The labor id is the filename."""

import logging
from typing import Callable, Optional

from labor.adapters.file_store import AbstractFileStore, StoredFile
from labor.service_layer.timeouts import Timeouts, run_blocking
from labor.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


class LaborFileService:
    def __init__(
        self,
        uow_factory: Callable[[], AbstractUnitOfWork],
        file_store: AbstractFileStore,
        timeouts: Timeouts = Timeouts(),
    ):
        self.uow_factory = uow_factory
        self.file_store = file_store
        self.timeouts = timeouts

    def _labor_exists(self, labor_id):
        with self.uow_factory() as uow:
            return uow.labore.exists(labor_id)

    async def find_file(self, labor_id: str) -> Optional[StoredFile]:
        if not await run_blocking(self.timeouts.short, self._labor_exists, labor_id):
            logger.debug(f"find_file: no labor {labor_id}")
            return None
        return await run_blocking(self.timeouts.long, self.file_store.fetch, labor_id)

    def _replace_file(self, data, labor_id, content_type):
        if self.file_store.exists(labor_id):
            self.file_store.delete_all(labor_id)
        return self.file_store.store(data, labor_id, content_type)

    async def save(self, data: bytes, labor_id: str, content_type: str) -> Optional[str]:
        """Store the file for an existing labor, replacing an older one. None if the labor is unknown."""
        if not await run_blocking(self.timeouts.short, self._labor_exists, labor_id):
            logger.debug(f"save: no labor {labor_id}")
            return None
        reference = await run_blocking(self.timeouts.long, self._replace_file, data, labor_id, content_type)
        logger.info(f"Saved file for labor {labor_id} ({content_type}, {len(data)} bytes)")
        return reference
