"""Worker that drains the job queue and then stops its host."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from transcode_worker.domain import JobStage, QueueMessage
from transcode_worker.exceptions import (
    AckError,
    JobFailedError,
    LifecycleError,
    MalformedJobError,
    TranscodeWorkerError,
)
from transcode_worker.handlers import TranscodeJobHandler
from transcode_worker.infrastructure.interfaces import HostController, JobSource

logger = logging.getLogger(__name__)


@dataclass
class DrainSummary:
    """Counts of what happened during one drain of the queue."""

    processed: int = 0
    failed: int = 0
    malformed: int = 0
    ack_failed: int = 0

    @property
    def received(self) -> int:
        return self.processed + self.failed + self.malformed


class Worker:
    """Processes queued jobs one at a time until the queue reports empty."""

    def __init__(
        self,
        source: JobSource,
        handler: TranscodeJobHandler,
        host: HostController | None = None,
        shutdown_delay_seconds: float = 0.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._source = source
        self._handler = handler
        self._host = host
        self._shutdown_delay_seconds = shutdown_delay_seconds
        self._sleep = sleep
        # Broker clients such as pika channels must stay on a single thread.
        self._source_executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="job-source"
        )

    async def run(self) -> DrainSummary:
        """Drains the queue, then stops the host if one is configured."""
        try:
            summary = await self.drain()
        finally:
            self._source_executor.shutdown(wait=False)
        logger.info(
            "Nothing to process",
            extra={
                "received": summary.received,
                "processed": summary.processed,
                "failed": summary.failed,
                "malformed": summary.malformed,
                "ack_failed": summary.ack_failed,
            },
        )
        await self.stop_host()
        return summary

    async def drain(self) -> DrainSummary:
        """
        Polls for one message at a time and processes it until none is returned.

        Per-job errors are logged and the message is left for the queue to
        redeliver. Unexpected exceptions propagate and end the worker.
        """
        summary = DrainSummary()
        while True:
            messages = await self._on_source_thread(self._source.receive_next)
            if not messages:
                return summary
            for message in messages:
                await self._on_message(message, summary)

    async def stop_host(self) -> None:
        if self._host is None:
            logger.info("No host controller configured, leaving host running")
            return
        if self._shutdown_delay_seconds > 0:
            logger.info(
                "Waiting before stopping host",
                extra={"delay_seconds": self._shutdown_delay_seconds},
            )
            await self._sleep(self._shutdown_delay_seconds)
        logger.info("Stopping host")
        try:
            await asyncio.to_thread(self._host.stop)
        except LifecycleError:
            logger.exception("Host stop failed, host keeps running")

    async def _on_source_thread(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._source_executor, func, *args)

    async def _on_message(self, message: QueueMessage, summary: DrainSummary) -> None:
        """Handles a single received message."""
        logger.info(
            "Message received",
            extra={"message_id": message.message_id, "stage": JobStage.RECEIVED.value},
        )

        try:
            job = self._source.parse(message)
        except MalformedJobError as e:
            logger.exception(
                "Invalid message format",
                extra={"message_id": message.message_id, "error": str(e)},
            )
            summary.malformed += 1
            await self._on_source_thread(self._source.release, message)
            return

        try:
            result = await self._handler.process(job)
        except TranscodeWorkerError as e:
            stage = e.stage if isinstance(e, JobFailedError) else None
            logger.exception(
                "Job failed", extra={"key": job.object_key, "stage": stage}
            )
            summary.failed += 1
            await self._on_source_thread(self._source.release, message)
            return

        summary.processed += 1
        try:
            await self._on_source_thread(self._source.acknowledge, message)
        except AckError:
            logger.exception(
                "Message could not be deleted and will be redelivered",
                extra={"key": job.object_key, "stage": JobStage.ACKNOWLEDGED.value},
            )
            summary.ack_failed += 1
            return

        logger.info(
            "Message processed successfully",
            extra={
                "key": job.object_key,
                "stage": JobStage.ACKNOWLEDGED.value,
                "prefix": result.destination_prefix,
                "published": result.published_keys,
            },
        )
