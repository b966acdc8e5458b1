"""Message handlers."""

from .transcode_job_handler import TranscodeJobHandler, settle_all

__all__ = ["TranscodeJobHandler", "settle_all"]
