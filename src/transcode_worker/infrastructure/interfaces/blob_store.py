"""Abstract interface for blob storage operations."""

from abc import ABC, abstractmethod
from pathlib import Path


class BlobStore(ABC):
    """Abstract base class for object storage backends."""

    @abstractmethod
    def fetch(self, object_name: str, destination: Path) -> Path:
        """
        Downloads an object into the staging area.

        Args:
            object_name: The object key in the bucket.
            destination: Local path the object is written to.

        Returns:
            The local path, readable as soon as this returns.

        Raises:
            StorageNotFoundError: If the object does not exist.
            StorageDownloadError: If the download fails.
        """

    @abstractmethod
    def publish(self, source: Path, object_name: str) -> bool:
        """
        Uploads a staged file.

        Args:
            source: Local file to upload.
            object_name: The destination key in the bucket.

        Returns:
            True if the file was uploaded, False if there was no file to upload.

        Raises:
            StorageUploadError: If the upload fails.
        """
