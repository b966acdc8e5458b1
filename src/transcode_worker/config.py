"""Application configuration loaded from environment variables."""

import os
from typing import Literal

from pydantic import BaseModel

from transcode_worker.domain.models import AudioDetection


class SqsConfig(BaseModel, frozen=True):
    """SQS queue configuration."""

    queue_url: str
    region: str
    wait_time_seconds: int = 0
    visibility_timeout: int | None = None


class QueueConfig(BaseModel, frozen=True):
    """RabbitMQ job queue and dead-letter queue configuration."""

    name: str = "transcode_jobs"
    max_delivery_count: int = 3
    dlq_name: str = "transcode_jobs_dlq"


class RabbitMQConfig(BaseModel, frozen=True):
    """
    RabbitMQ connection configuration.

    Jobs are published straight to the queue by default. Setting both
    exchange_name and binding_key also binds the queue to an existing exchange.
    """

    host: str
    user: str
    password: str
    exchange_name: str | None = None
    binding_key: str | None = None
    queue_config: QueueConfig = QueueConfig()


class BlobStoreConfig(BaseModel, frozen=True):
    """S3-compatible object storage configuration."""

    endpoint: str
    access_key: str
    secret_key: str
    bucket_name: str
    region: str | None = None
    secure: bool = True


class MediaConfig(BaseModel, frozen=True):
    """Probe and transcode settings."""

    max_width: int = 1080
    target_width: int = 1080
    target_height: int = 720
    audio_extension: str = "mp3"
    audio_detection: AudioDetection = AudioDetection.STREAM_COUNT
    probe_timeout: float | None = None
    transcode_timeout: float | None = None
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"


class StagingConfig(BaseModel, frozen=True):
    """Local staging area layout."""

    root: str = "."
    input_dir: str = "input"
    output_dir: str = "output"


class HostConfig(BaseModel, frozen=True):
    """Compute host lifecycle configuration."""

    instance_id: str | None = None
    region: str
    shutdown_delay_seconds: float = 0.0


class AppConfig(BaseModel, frozen=True):
    """Root application configuration."""

    service_name: str = "transcode-worker"
    queue_backend: Literal["sqs", "rabbitmq"] = "sqs"
    output_prefix: str = "output"
    log_level: str = "INFO"
    log_file: str | None = None
    sqs: SqsConfig
    rabbitmq: RabbitMQConfig
    blob_store: BlobStoreConfig
    media: MediaConfig
    staging: StagingConfig
    host: HostConfig


def _optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def _flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config() -> AppConfig:
    """Loads configuration from environment variables."""
    region = os.getenv("AWS_REGION", "us-east-1")
    return AppConfig(
        service_name=os.getenv("SERVICE_NAME", "transcode-worker"),
        queue_backend=os.getenv("QUEUE_BACKEND", "sqs"),
        output_prefix=os.getenv("OUTPUT_PREFIX", "output"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=_optional("LOG_FILE"),
        sqs=SqsConfig(
            queue_url=os.getenv("SQS_QUEUE_URL", ""),
            region=region,
            wait_time_seconds=int(os.getenv("SQS_WAIT_TIME_SECONDS", "0")),
            visibility_timeout=_optional("SQS_VISIBILITY_TIMEOUT"),
        ),
        rabbitmq=RabbitMQConfig(
            host=os.getenv("RABBITMQ_HOST", "rabbitmq"),
            user=os.getenv("RABBITMQ_USER", ""),
            password=os.getenv("RABBITMQ_PASSWORD", ""),
            exchange_name=_optional("RABBITMQ_EXCHANGE"),
            binding_key=_optional("RABBITMQ_BINDING_KEY"),
            queue_config=QueueConfig(
                name=os.getenv("RABBITMQ_QUEUE", "transcode_jobs"),
                max_delivery_count=int(os.getenv("RABBITMQ_DELIVERY_LIMIT", "3")),
                dlq_name=os.getenv("RABBITMQ_DLQ", "transcode_jobs_dlq"),
            ),
        ),
        blob_store=BlobStoreConfig(
            endpoint=os.getenv("BLOB_ENDPOINT", "s3.amazonaws.com"),
            access_key=os.getenv("BLOB_ACCESS_KEY", ""),
            secret_key=os.getenv("BLOB_SECRET_KEY", ""),
            bucket_name=os.getenv("BLOB_BUCKET", ""),
            region=region,
            secure=_flag("BLOB_SECURE", True),
        ),
        media=MediaConfig(
            max_width=int(os.getenv("MEDIA_MAX_WIDTH", "1080")),
            target_width=int(os.getenv("MEDIA_TARGET_WIDTH", "1080")),
            target_height=int(os.getenv("MEDIA_TARGET_HEIGHT", "720")),
            audio_detection=os.getenv("MEDIA_AUDIO_DETECTION", "stream_count"),
            probe_timeout=_optional("MEDIA_PROBE_TIMEOUT"),
            transcode_timeout=_optional("MEDIA_TRANSCODE_TIMEOUT"),
            ffmpeg_binary=os.getenv("FFMPEG_BINARY", "ffmpeg"),
            ffprobe_binary=os.getenv("FFPROBE_BINARY", "ffprobe"),
        ),
        staging=StagingConfig(root=os.getenv("STAGING_ROOT", ".")),
        host=HostConfig(
            instance_id=_optional("HOST_INSTANCE_ID"),
            region=region,
            shutdown_delay_seconds=float(
                os.getenv("HOST_SHUTDOWN_DELAY_SECONDS", "0")
            ),
        ),
    )
