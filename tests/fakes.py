"""Test doubles shared by the transcription tests."""

from __future__ import annotations

import os
from pathlib import Path

from clipmatch.errors import MediaToolError

MB = 1024 * 1024


class FakeMedia:
    """Stands in for ffmpeg/ffprobe; writes sparse files of a chosen size."""

    def __init__(
        self,
        duration: float,
        chunk_bytes: int = 1 * MB,
        compress_bytes: int = 1 * MB,
        fail_chunks: tuple[int, ...] = (),
    ) -> None:
        self.duration = duration
        self.chunk_bytes = chunk_bytes
        self.compress_bytes = compress_bytes
        self.fail_chunks = fail_chunks
        self.encodes: list[dict] = []

    def probe_duration(self, path: str) -> float:
        return self.duration

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
        self.encodes.append(
            {"output": output_path, "bitrate": bitrate_kbps, "start": start, "duration": duration}
        )
        name = os.path.basename(output_path)
        if any(name == f"chunk_{i}.m4a" for i in self.fail_chunks):
            raise MediaToolError("ffmpeg exited with status 1", stderr="Invalid data")
        size = self.chunk_bytes if start is not None else self.compress_bytes
        with open(output_path, "wb") as f:
            f.truncate(size)
        return output_path


def make_audio(tmp_path: Path, size: int, name: str = "talk.mp3") -> str:
    path = tmp_path / name
    with open(path, "wb") as f:
        f.truncate(size)
    return str(path)
