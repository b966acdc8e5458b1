"""Abstract interfaces for infrastructure dependencies."""

from .blob_store import BlobStore
from .host_controller import HostController
from .job_source import JobSource
from .media_engine import MediaEngine, ProgressCallback

__all__ = [
    "BlobStore",
    "HostController",
    "JobSource",
    "MediaEngine",
    "ProgressCallback",
]
