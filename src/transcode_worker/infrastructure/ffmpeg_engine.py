"""ffmpeg/ffprobe implementation of the MediaEngine interface."""

import asyncio
import json
import logging
import math
from collections import deque
from pathlib import Path

from transcode_worker.config import MediaConfig
from transcode_worker.domain.models import StreamInfo, StreamMetadata
from transcode_worker.exceptions import EngineError, ProbeError

from .interfaces import MediaEngine, ProgressCallback

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 20


def parse_probe_output(data: dict) -> StreamMetadata:
    """Converts ffprobe's JSON output into stream metadata."""
    streams = [
        StreamInfo(
            index=raw.get("index", position),
            kind=raw.get("codec_type", "unknown"),
            codec_name=raw.get("codec_name"),
            width=raw.get("width"),
            height=raw.get("height"),
        )
        for position, raw in enumerate(data.get("streams") or [])
    ]
    duration = None
    raw_duration = (data.get("format") or {}).get("duration")
    if raw_duration is not None:
        try:
            duration = float(raw_duration)
        except (TypeError, ValueError):
            duration = None
    return StreamMetadata(streams=streams, duration=duration)


def parse_progress_line(line: str, duration: float | None) -> int | None:
    """
    Parses one line of ``ffmpeg -progress`` output into a percentage.

    Returns None for lines that carry no position information.
    """
    key, _, value = line.partition("=")
    if key == "progress" and value == "end":
        return 100
    # out_time_ms is reported in microseconds as well, despite its name.
    if key not in ("out_time_us", "out_time_ms") or not duration:
        return None
    try:
        seconds = int(value) / 1_000_000
    except ValueError:
        return None
    return max(0, min(100, math.ceil(seconds / duration * 100)))


async def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()


class FFmpegEngine(MediaEngine):
    """Probes and transcodes staged files with the ffmpeg command line tools."""

    def __init__(self, config: MediaConfig):
        self._config = config

    async def probe(self, source: Path) -> StreamMetadata:
        cmd = [
            self._config.ffprobe_binary,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            str(source),
        ]
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProbeError(str(source), "ffprobe could not be started", e) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self._config.probe_timeout
            )
        except asyncio.TimeoutError as e:
            await _terminate(process)
            raise ProbeError(
                str(source), f"ffprobe timed out after {self._config.probe_timeout}s", e
            ) from e

        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="ignore").strip()
            raise ProbeError(str(source), detail or f"exit code {process.returncode}")

        try:
            data = json.loads(stdout.decode("utf-8", errors="ignore"))
            metadata = parse_probe_output(data)
        except ValueError as e:
            raise ProbeError(str(source), "unreadable ffprobe output", e) from e

        if not metadata.streams:
            raise ProbeError(str(source), "no streams found")

        logger.info(
            "Source probed",
            extra={
                "path": str(source),
                "streams": len(metadata.streams),
                "video_width": metadata.video_width,
            },
        )
        return metadata

    def audio_command(self, source: Path, destination: Path) -> list[str]:
        return [
            self._config.ffmpeg_binary,
            "-y",
            "-nostdin",
            "-v",
            "error",
            "-i",
            str(source),
            "-vn",
            str(destination),
        ]

    def silent_video_command(
        self, source: Path, destination: Path, resize: bool
    ) -> list[str]:
        cmd = [
            self._config.ffmpeg_binary,
            "-y",
            "-nostdin",
            "-v",
            "error",
            "-i",
            str(source),
            "-an",
        ]
        if resize:
            cmd += [
                "-vf",
                f"scale={self._config.target_width}:{self._config.target_height}",
            ]
        cmd += ["-progress", "pipe:1", "-nostats", str(destination)]
        return cmd

    def needs_resize(self, metadata: StreamMetadata) -> bool:
        width = metadata.video_width
        return width is not None and width > self._config.max_width

    async def extract_audio(
        self, source: Path, destination: Path, metadata: StreamMetadata
    ) -> bool:
        if not metadata.has_audio(self._config.audio_detection):
            logger.info(
                "No audio detected, skipping extraction",
                extra={"path": str(source), "streams": len(metadata.streams)},
            )
            return False

        await self._run(self.audio_command(source, destination), source)
        logger.info("Audio extracted", extra={"path": str(destination)})
        return True

    async def derive_silent_video(
        self,
        source: Path,
        destination: Path,
        metadata: StreamMetadata,
        on_progress: ProgressCallback | None = None,
    ) -> bool:
        resize = self.needs_resize(metadata)
        await self._run(
            self.silent_video_command(source, destination, resize),
            source,
            duration=metadata.duration,
            on_progress=on_progress,
        )
        logger.info(
            "Silent video derived",
            extra={"path": str(destination), "resized": resize},
        )
        return resize

    async def _run(
        self,
        cmd: list[str],
        source: Path,
        duration: float | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """Runs one ffmpeg invocation, reporting progress and killing it on timeout."""
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EngineError(str(source), "ffmpeg could not be started", e) from e

        stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        last_progress = -1

        async def read_progress():
            nonlocal last_progress
            while True:
                line = await process.stdout.readline()
                if not line:
                    break
                percent = parse_progress_line(
                    line.decode("utf-8", errors="ignore").strip(), duration
                )
                if percent is not None and percent > last_progress:
                    last_progress = percent
                    if on_progress:
                        on_progress(percent)

        async def read_stderr():
            while True:
                line = await process.stderr.readline()
                if not line:
                    break
                stderr_tail.append(line.decode("utf-8", errors="ignore").rstrip())

        try:
            await asyncio.wait_for(
                asyncio.gather(read_progress(), read_stderr(), process.wait()),
                timeout=self._config.transcode_timeout,
            )
        except asyncio.TimeoutError as e:
            raise EngineError(
                str(source),
                f"ffmpeg timed out after {self._config.transcode_timeout}s",
                e,
            ) from e
        finally:
            await _terminate(process)

        if process.returncode != 0:
            detail = "\n".join(stderr_tail) or f"exit code {process.returncode}"
            raise EngineError(str(source), detail)
