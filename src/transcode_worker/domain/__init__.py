"""Domain layer containing job models and the local staging area."""

from .models import (
    AudioDetection,
    JobDescriptor,
    JobResult,
    JobStage,
    QueueMessage,
    StreamInfo,
    StreamMetadata,
)
from .staging import StagingArea

__all__ = [
    "AudioDetection",
    "JobDescriptor",
    "JobResult",
    "JobStage",
    "QueueMessage",
    "StagingArea",
    "StreamInfo",
    "StreamMetadata",
]
