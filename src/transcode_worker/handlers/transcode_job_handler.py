"""Handler that drives one transcode job through the pipeline."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from pathlib import Path

from transcode_worker.domain import JobDescriptor, JobResult, JobStage, StagingArea
from transcode_worker.domain.models import (
    AUDIO_ROLE,
    VIDEO_ROLE,
    destination_key,
    destination_prefix,
    format_timestamp,
)
from transcode_worker.exceptions import JobFailedError, TranscodeWorkerError
from transcode_worker.infrastructure.interfaces import BlobStore, MediaEngine

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def settle_all(*aws: Awaitable) -> tuple[list, list[Exception]]:
    """
    Waits for every awaitable to finish and collects all outcomes.

    A failure in one branch does not cancel the others. Exceptions that are
    not TranscodeWorkerError are re-raised once every branch has settled.

    Returns:
        Tuple of (results in submission order, errors).
    """
    outcomes = await asyncio.gather(*aws, return_exceptions=True)
    results, errors = [], []
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, TranscodeWorkerError):
                raise outcome
            errors.append(outcome)
            results.append(None)
        else:
            results.append(outcome)
    return results, errors


class TranscodeJobHandler:
    """Orchestrates download, transform, upload and cleanup for one job."""

    def __init__(
        self,
        storage: BlobStore,
        engine: MediaEngine,
        staging: StagingArea,
        output_prefix: str = "output",
        audio_extension: str = "mp3",
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._storage = storage
        self._engine = engine
        self._staging = staging
        self._output_prefix = output_prefix
        self._audio_extension = audio_extension
        self._clock = clock

    async def process(self, job: JobDescriptor) -> JobResult:
        """
        Runs a job from download to local cleanup.

        Args:
            job: The job parsed from a queue message.

        Returns:
            JobResult describing what was published.

        Raises:
            JobFailedError: If download, probe, either derivation or either
                upload fails. The remaining stages are not run, but staged
                files are still removed.
        """
        source = self._staging.source_path(job)
        audio_out = self._staging.audio_path(job, self._audio_extension)
        video_out = self._staging.video_path(job)
        try:
            return await self._run_stages(job, source, audio_out, video_out)
        finally:
            # Staged files never outlive the job, whatever its outcome.
            await self.cleanup(audio_out, video_out, source, key=job.object_key)

    async def _run_stages(
        self, job: JobDescriptor, source: Path, audio_out: Path, video_out: Path
    ) -> JobResult:
        key = job.object_key
        logger.info(
            "Starting download",
            extra={"key": key, "stage": JobStage.DOWNLOADING.value},
        )
        try:
            await asyncio.to_thread(self._storage.fetch, key, source)
        except TranscodeWorkerError as e:
            raise JobFailedError(key, JobStage.DOWNLOADING.value, [e]) from e

        try:
            metadata = await self._engine.probe(source)
        except TranscodeWorkerError as e:
            raise JobFailedError(key, JobStage.PROBED.value, [e]) from e

        logger.info(
            "Converting",
            extra={
                "key": key,
                "stage": JobStage.TRANSFORMING.value,
                "video_width": metadata.video_width,
            },
        )
        self._staging.ensure_parent(audio_out)
        self._staging.ensure_parent(video_out)
        (audio_extracted, video_resized), errors = await settle_all(
            self._engine.extract_audio(source, audio_out, metadata),
            self._engine.derive_silent_video(
                source, video_out, metadata, self._progress_logger(job)
            ),
        )
        if errors:
            raise JobFailedError(key, JobStage.TRANSFORMING.value, errors)

        # One timestamp for every artifact of the job.
        prefix = destination_prefix(
            self._output_prefix, job.base_name, format_timestamp(self._clock())
        )
        audio_key = destination_key(
            prefix, job.base_name, AUDIO_ROLE, self._audio_extension
        )
        video_key = destination_key(prefix, job.base_name, VIDEO_ROLE, job.extension)
        logger.info(
            "Uploading",
            extra={"key": key, "stage": JobStage.UPLOADING.value, "prefix": prefix},
        )
        (audio_published, video_published), errors = await settle_all(
            asyncio.to_thread(self._storage.publish, audio_out, audio_key),
            asyncio.to_thread(self._storage.publish, video_out, video_key),
        )
        if errors:
            raise JobFailedError(key, JobStage.UPLOADING.value, errors)

        published = []
        if audio_published:
            published.append(audio_key)
        if video_published:
            published.append(video_key)
        return JobResult(
            key=key,
            destination_prefix=prefix,
            published_keys=published,
            audio_extracted=bool(audio_extracted),
            video_resized=bool(video_resized),
        )

    async def cleanup(self, *paths: Path, key: str = "") -> list[bool]:
        """
        Deletes staged files concurrently.

        Missing files are skipped. Removal errors are logged and do not fail
        the job.

        Returns:
            Per path, whether a file was deleted.
        """
        extra = {"key": key, "stage": JobStage.CLEANING_UP.value}
        outcomes = await asyncio.gather(
            *(asyncio.to_thread(self._staging.remove, path) for path in paths),
            return_exceptions=True,
        )
        deleted = []
        for path, outcome in zip(paths, outcomes):
            if isinstance(outcome, OSError):
                logger.warning(
                    "Staged file could not be deleted",
                    extra={**extra, "path": str(path)},
                    exc_info=outcome,
                )
                deleted.append(False)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                deleted.append(outcome)
        logger.info("Files deleted locally", extra=extra)
        return deleted

    def _progress_logger(self, job: JobDescriptor) -> Callable[[int], None]:
        def on_progress(percent: int) -> None:
            logger.info(
                "Converting %s: %s%%",
                job.base_name,
                percent,
                extra={"key": job.object_key, "percent": percent},
            )

        return on_progress
