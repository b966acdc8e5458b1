"""Dependency construction for the transcode worker."""

import logging

import boto3
import pika
from minio import Minio

from transcode_worker.config import AppConfig
from transcode_worker.domain import StagingArea
from transcode_worker.handlers import TranscodeJobHandler
from transcode_worker.infrastructure import (
    Ec2HostController,
    FFmpegEngine,
    MinioBlobStore,
    RabbitMQJobSource,
    SqsJobSource,
)
from transcode_worker.infrastructure.interfaces import (
    BlobStore,
    HostController,
    JobSource,
    MediaEngine,
)
from transcode_worker.worker import Worker

logger = logging.getLogger(__name__)


def build_job_source(config: AppConfig) -> JobSource:
    """Returns the job source for the configured queue backend."""
    if config.queue_backend == "rabbitmq":
        credentials = pika.PlainCredentials(
            config.rabbitmq.user, config.rabbitmq.password
        )
        parameters = pika.ConnectionParameters(
            host=config.rabbitmq.host,
            credentials=credentials,
            heartbeat=0,
        )
        connection = pika.BlockingConnection(parameters)
        source = RabbitMQJobSource(connection.channel(), config.rabbitmq)
        source.setup()
        return source

    client = boto3.client("sqs", region_name=config.sqs.region)
    return SqsJobSource(client, config.sqs)


def build_blob_store(config: AppConfig) -> BlobStore:
    """Returns the blob store for the configured bucket."""
    blob = config.blob_store
    try:
        client = Minio(
            endpoint=blob.endpoint,
            access_key=blob.access_key,
            secret_key=blob.secret_key,
            secure=blob.secure,
            region=blob.region,
        )
    except Exception:
        logger.exception(
            "Blob store client initialization failed",
            extra={"endpoint": blob.endpoint, "user": blob.access_key},
        )
        raise
    return MinioBlobStore(client, blob.bucket_name)


def build_media_engine(config: AppConfig) -> MediaEngine:
    """Returns the ffmpeg-backed media engine."""
    return FFmpegEngine(config.media)


def build_host_controller(config: AppConfig) -> HostController | None:
    """Returns the host controller, or None when no instance id is configured."""
    if not config.host.instance_id:
        logger.info("HOST_INSTANCE_ID not set, host will not be stopped after drain")
        return None
    client = boto3.client("ec2", region_name=config.host.region)
    return Ec2HostController(client, config.host.instance_id)


def build_handler(
    config: AppConfig, storage: BlobStore, engine: MediaEngine
) -> TranscodeJobHandler:
    """Returns the job handler with a prepared staging area."""
    staging = StagingArea(
        config.staging.root, config.staging.input_dir, config.staging.output_dir
    )
    staging.prepare()
    return TranscodeJobHandler(
        storage,
        engine,
        staging,
        output_prefix=config.output_prefix,
        audio_extension=config.media.audio_extension,
    )


def build_worker(config: AppConfig) -> Worker:
    """Returns a fully wired worker."""
    handler = build_handler(
        config, build_blob_store(config), build_media_engine(config)
    )
    return Worker(
        build_job_source(config),
        handler,
        build_host_controller(config),
        shutdown_delay_seconds=config.host.shutdown_delay_seconds,
    )
