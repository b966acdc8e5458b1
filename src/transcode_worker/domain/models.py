"""Domain models for the transcode worker."""

from datetime import datetime
from enum import Enum
from pathlib import PurePosixPath
from typing import Any

from pydantic import BaseModel, Field

AUDIO_ROLE = "audio"
VIDEO_ROLE = "vid"


class AudioDetection(str, Enum):
    """Rule used to decide whether a source carries an audio track."""

    STREAM_COUNT = "stream_count"
    STREAM_KIND = "stream_kind"


class JobStage(str, Enum):
    """Pipeline stages a job moves through."""

    RECEIVED = "received"
    DOWNLOADING = "downloading"
    PROBED = "probed"
    TRANSFORMING = "transforming"
    UPLOADING = "uploading"
    CLEANING_UP = "cleaning_up"
    ACKNOWLEDGED = "acknowledged"


class QueueMessage(BaseModel, frozen=True):
    """A raw message handed out by a job source."""

    receipt_handle: str
    body: str
    message_id: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)


class JobDescriptor(BaseModel, frozen=True):
    """Represents one transcode job parsed from a queue message."""

    key: str

    @property
    def object_key(self) -> str:
        """Blob key with the '+' space escape removed."""
        return self.key.replace("+", " ")

    @property
    def extension(self) -> str:
        return self.object_key.rsplit(".", 1)[-1]

    @property
    def base_name(self) -> str:
        return self.object_key.rsplit(".", 1)[0]

    def is_well_formed(self) -> bool:
        name = self.object_key
        if "." not in name:
            return False
        # Staged paths are built from the key, so it must stay relative.
        if name.startswith("/") or ".." in PurePosixPath(name).parts:
            return False
        return bool(self.base_name) and bool(self.extension)


class StreamInfo(BaseModel, frozen=True):
    """A single stream reported by the media probe."""

    index: int
    kind: str
    codec_name: str | None = None
    width: int | None = None
    height: int | None = None


class StreamMetadata(BaseModel, frozen=True):
    """Probe result for a staged source file."""

    streams: list[StreamInfo] = Field(default_factory=list)
    duration: float | None = None

    @property
    def video_width(self) -> int | None:
        for stream in self.streams:
            if stream.kind == "video":
                return stream.width
        # Containers that report no codec_type still expose the first stream.
        if self.streams:
            return self.streams[0].width
        return None

    def has_audio(self, detection: AudioDetection) -> bool:
        """Returns whether the source has an audio track worth extracting."""
        if detection == AudioDetection.STREAM_KIND:
            return any(stream.kind == "audio" for stream in self.streams)
        return len(self.streams) == 2


class JobResult(BaseModel, frozen=True):
    """Result of a completed job pipeline."""

    key: str
    destination_prefix: str
    published_keys: list[str]
    audio_extracted: bool
    video_resized: bool


def format_timestamp(moment: datetime) -> str:
    """Formats an aware datetime as ISO-8601 UTC with millisecond precision."""
    text = moment.isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def destination_prefix(output_prefix: str, base_name: str, timestamp: str) -> str:
    """Builds the shared prefix for every artifact published by one job."""
    return f"{output_prefix}/{base_name}-{timestamp}"


def destination_key(prefix: str, base_name: str, role: str, extension: str) -> str:
    """Builds the object key for one published artifact."""
    return f"{prefix}/{base_name}-{role}.{extension}"
