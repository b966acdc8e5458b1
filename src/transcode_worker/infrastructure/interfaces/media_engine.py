"""Abstract interface for media inspection and transcoding."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from transcode_worker.domain.models import StreamMetadata

ProgressCallback = Callable[[int], None]


class MediaEngine(ABC):
    """Abstract base class for media engines."""

    @abstractmethod
    async def probe(self, source: Path) -> StreamMetadata:
        """
        Inspects the stream layout of a media file.

        Raises:
            ProbeError: If the file is unreadable or not a media container.
        """

    @abstractmethod
    async def extract_audio(
        self, source: Path, destination: Path, metadata: StreamMetadata
    ) -> bool:
        """
        Writes the audio track of ``source`` to ``destination``.

        Returns:
            False if the source has no audio track and nothing was written,
            True once the audio file is complete.

        Raises:
            EngineError: If the engine fails.
        """

    @abstractmethod
    async def derive_silent_video(
        self,
        source: Path,
        destination: Path,
        metadata: StreamMetadata,
        on_progress: ProgressCallback | None = None,
    ) -> bool:
        """
        Writes ``source`` without audio to ``destination``, downscaling wide sources.

        Returns:
            True if the rendition was resized, False if the original
            resolution was kept.

        Raises:
            EngineError: If the engine fails.
        """
