"""
Transcode Worker.

Entry point for the queue-driven transcode worker. It:
- Drains the job queue one message at a time.
- Splits each source video into an audio track and a silent rendition.
- Publishes both to object storage under a time-stamped prefix.
- Stops its compute host once the queue is empty.
- Emits structured JSON logs with Datadog trace context.
"""

import asyncio

from ddtrace import patch_all

from transcode_worker.config import load_config
from transcode_worker.dependencies import build_worker
from transcode_worker.logging import setup_logging


def main():
    """Starts the worker and runs it until the queue is drained."""
    patch_all()
    config = load_config()
    logger = setup_logging(config.service_name, config.log_level, config.log_file)
    logger.info(
        "Service initialized, draining queue",
        extra={"queue_backend": config.queue_backend},
    )
    worker = build_worker(config)
    asyncio.run(worker.run())


if __name__ == "__main__":
    main()
