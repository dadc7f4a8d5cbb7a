"""
ffprobe / ffmpeg wrappers used during ingestion.

Both calls are best-effort from the pipeline's point of view: the duration
probe reports 0 on any failure, and frame extraction raises ``ProbeError`` so
the caller can substitute a placeholder thumbnail.
"""
from __future__ import annotations

import asyncio
import json
import logging
import math
import subprocess
from pathlib import Path

from lifetube.core.config import get_settings
from lifetube.core.metrics import PROBE_FAILURES_TOTAL

logger = logging.getLogger(__name__)
settings = get_settings()


class ProbeError(RuntimeError):
    pass


class MediaProbe:

    def __init__(
        self,
        ffprobe: str = settings.ffprobe_binary,
        ffmpeg: str = settings.ffmpeg_binary,
        timeout: float = settings.probe_timeout_seconds,
    ):
        self.ffprobe = ffprobe
        self.ffmpeg = ffmpeg
        self.timeout = timeout

    async def probe_duration(self, video_path: Path) -> int:
        """Whole seconds of media duration, 0 when unknown."""
        cmd = [
            self.ffprobe, "-v", "quiet", "-print_format", "json",
            "-show_format", str(video_path),
        ]
        try:
            out = await asyncio.to_thread(
                subprocess.run, cmd, capture_output=True, text=True, timeout=self.timeout,
            )
            if out.returncode != 0:
                raise ProbeError(f"ffprobe exited with {out.returncode}")
            duration = float(json.loads(out.stdout).get("format", {}).get("duration") or 0)
            if not math.isfinite(duration) or duration < 0:
                return 0
            return int(math.floor(duration))
        except Exception as e:
            logger.warning(f"Duration probe failed for {video_path.name}: {e}")
            PROBE_FAILURES_TOTAL.inc()
            return 0

    async def extract_frame(self, video_path: Path, output_path: Path) -> Path:
        """Grab one frame at the configured offset, scaled to the thumbnail size."""
        cmd = [
            self.ffmpeg, "-ss", str(settings.thumbnail_offset_seconds),
            "-i", str(video_path),
            "-frames:v", "1",
            "-s", settings.thumbnail_size,
            str(output_path),
            "-y", "-loglevel", "error",
        ]
        try:
            await asyncio.to_thread(subprocess.run, cmd, check=True, timeout=self.timeout)
        except subprocess.CalledProcessError as e:
            raise ProbeError(f"Frame extraction failed: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise ProbeError(f"Frame extraction timed out ({self.timeout:.0f}s limit)") from e
        except OSError as e:
            raise ProbeError(f"Cannot run {self.ffmpeg}: {e}") from e

        if not output_path.exists() or output_path.stat().st_size == 0:
            raise ProbeError("Frame extraction produced no image")
        return output_path
