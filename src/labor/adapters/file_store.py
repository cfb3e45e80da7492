"""Binary object store for files attached to laboratories, backed by MinIO."""

import abc
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

from minio import Minio
from minio.error import S3Error

import config

logger = logging.getLogger(__name__)


class FileStoreError(Exception):
    """Exception raised when the object store fails."""
    pass


@dataclass(frozen=True)
class StoredFile:
    filename: str
    content_type: str
    data: bytes

    @property
    def length(self) -> int:
        return len(self.data)


class AbstractFileStore(abc.ABC):

    @abc.abstractmethod
    def exists(self, filename: str) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    def store(self, data: bytes, filename: str, content_type: str) -> str:
        """Store the bytes under filename and return a reference to the new object."""
        raise NotImplementedError

    @abc.abstractmethod
    def fetch(self, filename: str) -> Optional[StoredFile]:
        raise NotImplementedError

    @abc.abstractmethod
    def delete_all(self, filename: str) -> None:
        raise NotImplementedError


class MinIOFileStore(AbstractFileStore):
    """MinIO implementation: one object per filename in a single bucket."""

    def __init__(self, client: Minio, bucket_name: str = "labor-files"):
        self.client = client
        self.bucket_name = bucket_name
        self._ensure_bucket_exists()

    @classmethod
    def from_config(cls, minio_config: Optional[dict] = None) -> "MinIOFileStore":
        minio_config = minio_config or config.get_minio_config()
        client = Minio(
            endpoint=minio_config["endpoint"],
            access_key=minio_config["access_key"],
            secret_key=minio_config["secret_key"],
            secure=minio_config["secure"]
        )
        return cls(client, minio_config["bucket_name"])

    def _ensure_bucket_exists(self):
        """Ensure the bucket exists, create if it doesn't."""
        try:
            if not self.client.bucket_exists(self.bucket_name):
                self.client.make_bucket(self.bucket_name)
                logger.info(f"Created MinIO bucket: {self.bucket_name}")
        except S3Error as e:
            logger.error(f"Failed to ensure bucket exists: {e}")
            raise FileStoreError(f"Bucket {self.bucket_name} not available: {e}") from e

    def exists(self, filename):
        try:
            self.client.stat_object(self.bucket_name, filename)
            return True
        except S3Error as e:
            if e.code in ("NoSuchKey", "NoSuchObject"):
                return False
            logger.error(f"Failed to stat {filename}: {e}")
            raise FileStoreError(f"Failed to stat {filename}: {e}") from e

    def store(self, data, filename, content_type):
        try:
            result = self.client.put_object(
                bucket_name=self.bucket_name,
                object_name=filename,
                data=BytesIO(data),
                length=len(data),
                content_type=content_type
            )
            logger.info(f"Stored {len(data)} bytes at {filename} ({content_type})")
            return getattr(result, "etag", None) or filename
        except S3Error as e:
            logger.error(f"Failed to store {filename}: {e}")
            raise FileStoreError(f"Failed to store {filename}: {e}") from e

    def fetch(self, filename):
        response = None
        try:
            stat = self.client.stat_object(self.bucket_name, filename)
            response = self.client.get_object(self.bucket_name, filename)
            data = response.read()
            logger.info(f"Retrieved {len(data)} bytes from {filename}")
            return StoredFile(filename=filename, content_type=stat.content_type, data=data)
        except S3Error as e:
            if e.code in ("NoSuchKey", "NoSuchObject"):
                logger.debug(f"No file stored at {filename}")
                return None
            logger.error(f"Failed to retrieve {filename}: {e}")
            raise FileStoreError(f"Failed to retrieve {filename}: {e}") from e
        finally:
            if response is not None:
                response.close()
                response.release_conn()

    def delete_all(self, filename):
        try:
            self.client.remove_object(self.bucket_name, filename)
            logger.debug(f"Removed {filename}")
        except S3Error as e:
            logger.error(f"Failed to remove {filename}: {e}")
            raise FileStoreError(f"Failed to remove {filename}: {e}") from e
