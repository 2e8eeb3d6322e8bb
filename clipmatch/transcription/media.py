"""Thin wrapper around the ffmpeg/ffprobe command-line tools."""

from __future__ import annotations

import logging
import subprocess

from clipmatch.config import settings
from clipmatch.errors import MediaToolError

logger = logging.getLogger(__name__)


class MediaTool:
    """Runs ffprobe/ffmpeg as external processes.

    Every call has a timeout; a non-zero exit or a timeout surfaces as
    :class:`MediaToolError` carrying the tool's stderr.
    """

    def __init__(
        self,
        ffmpeg_path: str | None = None,
        ffprobe_path: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.ffmpeg_path = ffmpeg_path or settings.ffmpeg_path
        self.ffprobe_path = ffprobe_path or settings.ffprobe_path
        self.timeout = timeout or settings.media_timeout

    def _run(self, cmd: list[str]) -> str:
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise MediaToolError(f"{cmd[0]} timed out after {self.timeout}s") from exc
        except FileNotFoundError as exc:
            raise MediaToolError(f"{cmd[0]} not found; is ffmpeg installed?") from exc

        if result.returncode != 0:
            raise MediaToolError(
                f"{cmd[0]} exited with status {result.returncode}",
                stderr=result.stderr.strip(),
            )
        return result.stdout

    def probe_duration(self, path: str) -> float:
        """Return the duration of *path* in seconds."""
        out = self._run(
            [
                self.ffprobe_path,
                "-v",
                "error",
                "-show_entries",
                "format=duration",
                "-of",
                "default=nk=1:nw=1",
                path,
            ]
        )
        try:
            return float(out.strip())
        except ValueError as exc:
            raise MediaToolError(f"Could not determine duration of {path}", stderr=out) from exc

    def encode(
        self,
        input_path: str,
        output_path: str,
        bitrate_kbps: int,
        start: float | None = None,
        duration: float | None = None,
        sample_rate: int | None = None,
        channels: int = 1,
    ) -> str:
        """Extract and/or re-encode audio into *output_path*.

        ``start``/``duration`` select a time range; omit both to re-encode the
        whole file.  Returns *output_path*.
        """
        cmd = [self.ffmpeg_path, "-y", "-nostdin", "-hide_banner", "-loglevel", "error"]
        if start is not None:
            cmd += ["-ss", f"{start:.3f}"]
        if duration is not None:
            cmd += ["-t", f"{duration:.3f}"]
        cmd += [
            "-i",
            input_path,
            "-vn",
            "-ac",
            str(channels),
            "-ar",
            str(sample_rate or settings.sample_rate),
            "-b:a",
            f"{bitrate_kbps}k",
            output_path,
        ]
        self._run(cmd)
        return output_path
