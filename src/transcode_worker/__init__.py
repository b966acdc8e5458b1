"""Queue-driven video transcode worker."""

__version__ = "0.1.0"
