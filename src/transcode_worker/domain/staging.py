"""Local staging area for a job's source and derived files."""

import logging
import os
from pathlib import Path

from transcode_worker.domain.models import AUDIO_ROLE, VIDEO_ROLE, JobDescriptor
from transcode_worker.exceptions import MalformedJobError

logger = logging.getLogger(__name__)


class StagingArea:
    """Maps jobs to paths under the input and output directories."""

    def __init__(
        self,
        root: str | Path,
        input_dir: str = "input",
        output_dir: str = "output",
    ):
        self._root = Path(root)
        self.input_dir = self._root / input_dir
        self.output_dir = self._root / output_dir

    def prepare(self) -> None:
        """Creates the input and output directories if they are missing."""
        self.input_dir.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def source_path(self, job: JobDescriptor) -> Path:
        return self._staged(self.input_dir, job.object_key)

    def audio_path(self, job: JobDescriptor, extension: str = "mp3") -> Path:
        return self._staged(
            self.output_dir, f"{job.base_name}-{AUDIO_ROLE}.{extension}"
        )

    def video_path(self, job: JobDescriptor) -> Path:
        return self._staged(
            self.output_dir, f"{job.base_name}-{VIDEO_ROLE}.{job.extension}"
        )

    def _staged(self, directory: Path, name: str) -> Path:
        """
        Joins a key-derived name onto a staging directory.

        Raises:
            MalformedJobError: If the resulting path lies outside the directory.
        """
        path = directory / name
        if not path.resolve().is_relative_to(directory.resolve()):
            raise MalformedJobError(name)
        return path

    def ensure_parent(self, path: Path) -> Path:
        """Creates the parent directory of a staged path (keys may contain '/')."""
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    def remove(self, path: Path) -> bool:
        """
        Deletes a staged file.

        Returns:
            True if the file was deleted, False if there was nothing to delete.

        Raises:
            OSError: If the file exists but cannot be removed.
        """
        try:
            os.unlink(path)
        except FileNotFoundError:
            logger.info("No file found to delete", extra={"path": str(path)})
            return False
        logger.info("Staged file deleted", extra={"path": str(path)})
        return True
