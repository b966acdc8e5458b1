"""MinIO implementation of the BlobStore interface."""

import logging
import mimetypes
import os
from pathlib import Path

from minio import Minio
from minio.error import S3Error

from transcode_worker.exceptions import (
    StorageDownloadError,
    StorageNotFoundError,
    StorageUploadError,
)

from .interfaces import BlobStore

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = ("NoSuchKey", "NoSuchBucket", "NoSuchObject")


class MinioBlobStore(BlobStore):
    """Moves staged files to and from one bucket on an S3-compatible store."""

    def __init__(self, client: Minio, bucket_name: str):
        self._client = client
        self._bucket_name = bucket_name

    def fetch(self, object_name: str, destination: Path) -> Path:
        extra = {"bucket_name": self._bucket_name, "object_name": object_name}
        response = None
        try:
            response = self._client.get_object(
                bucket_name=self._bucket_name,
                object_name=object_name,
            )
            destination.parent.mkdir(parents=True, exist_ok=True)
            with open(destination, "wb") as f:
                for chunk in response.stream(1024 * 1024):
                    f.write(chunk)
        except S3Error as e:
            logger.exception("Object download failed", extra=extra)
            destination.unlink(missing_ok=True)
            if e.code in NOT_FOUND_CODES:
                raise StorageNotFoundError(object_name, e) from e
            raise StorageDownloadError(object_name, e) from e
        except Exception as e:
            logger.exception("Object download failed", extra=extra)
            destination.unlink(missing_ok=True)
            raise StorageDownloadError(object_name, e) from e
        finally:
            if response is not None:
                response.close()
                response.release_conn()

        logger.info(
            "File downloaded from storage", extra={**extra, "path": str(destination)}
        )
        return destination

    def publish(self, source: Path, object_name: str) -> bool:
        if not source.exists():
            logger.info(
                "No file found to upload, skipping",
                extra={"path": str(source), "object_name": object_name},
            )
            return False

        content_type, _ = mimetypes.guess_type(source.name)
        content_type = content_type or "application/octet-stream"
        try:
            with open(source, "rb") as data:
                self._client.put_object(
                    bucket_name=self._bucket_name,
                    object_name=object_name,
                    data=data,
                    length=os.path.getsize(source),
                    content_type=content_type,
                )
        except Exception as e:
            logger.exception(
                "Object upload failed",
                extra={"bucket_name": self._bucket_name, "object_name": object_name},
            )
            raise StorageUploadError(object_name, e) from e

        logger.info(
            "File uploaded to storage",
            extra={"bucket_name": self._bucket_name, "object_name": object_name},
        )
        return True
