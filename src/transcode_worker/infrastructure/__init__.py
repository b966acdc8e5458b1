"""Infrastructure implementations."""

from .ec2_host_controller import Ec2HostController
from .ffmpeg_engine import FFmpegEngine
from .minio_blob_store import MinioBlobStore
from .rabbitmq_job_source import RabbitMQJobSource
from .sqs_job_source import SqsJobSource

__all__ = [
    "Ec2HostController",
    "FFmpegEngine",
    "MinioBlobStore",
    "RabbitMQJobSource",
    "SqsJobSource",
]
