"""Split audio that exceeds the transcription size ceiling into overlapping chunks.

Two tiers:

1. One-shot compression (mono, 16 kHz, low bitrate, then an ultra-low
   bitrate pass).  If that fits under the ceiling the caller uploads the
   compressed file directly and no deduplication is needed.
2. Overlapping chunks.  The timeline is walked in steps of
   ``chunk_duration - overlap`` so speech cut at a chunk boundary is heard
   whole in the next chunk; the transcriber later removes the duplicates.
"""

from __future__ import annotations

import logging
import math
import os
from collections.abc import Iterator
from dataclasses import dataclass

from clipmatch.config import Settings, settings
from clipmatch.errors import ChunkingExhaustedError, MediaToolError, TooShortError
from clipmatch.transcription.media import MediaTool
from clipmatch.transcription.models import AudioChunk

logger = logging.getLogger(__name__)

# Fraction of the ceiling targeted when sizing chunks from the source bitrate
SIZE_SAFETY_RATIO = 0.8


@dataclass(frozen=True)
class ChunkingConfig:
    """Size and timing limits for chunk extraction (seconds, bytes, kbit/s)."""

    size_ceiling: int = 24 * 1024 * 1024
    max_chunk_duration: float = 300.0
    min_chunk_duration: float = 60.0
    overlap: float = 30.0
    min_audio_duration: float = 1.0
    chunk_bitrate_kbps: int = 64
    recompress_bitrate_kbps: int = 32
    compress_bitrate_kbps: int = 48
    ultra_compress_bitrate_kbps: int = 24
    sample_rate: int = 16000

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> ChunkingConfig:
        return cls(
            size_ceiling=cfg.max_upload_bytes,
            max_chunk_duration=cfg.max_chunk_duration,
            min_chunk_duration=cfg.min_chunk_duration,
            overlap=cfg.chunk_overlap,
            min_audio_duration=cfg.min_audio_duration,
            chunk_bitrate_kbps=cfg.chunk_bitrate_kbps,
            recompress_bitrate_kbps=cfg.recompress_bitrate_kbps,
            compress_bitrate_kbps=cfg.compress_bitrate_kbps,
            ultra_compress_bitrate_kbps=cfg.ultra_compress_bitrate_kbps,
            sample_rate=cfg.sample_rate,
        )


def compute_chunk_duration(file_size: int, total_duration: float, config: ChunkingConfig) -> float:
    """Chunk length that keeps a source-bitrate slice under 80% of the ceiling.

    Clamped to ``[min_chunk_duration, max_chunk_duration]``.
    """
    bytes_per_second = file_size / total_duration
    by_size = SIZE_SAFETY_RATIO * config.size_ceiling / bytes_per_second
    return max(config.min_chunk_duration, min(config.max_chunk_duration, by_size))


def plan_chunk_windows(
    total_duration: float, chunk_duration: float, overlap: float
) -> list[tuple[float, float]]:
    """Return ``(start, duration)`` pairs covering ``[0, total_duration)``.

    Consecutive windows start ``chunk_duration - overlap`` apart; the last
    window is cut at *total_duration* and nothing is planned past it.

    Raises:
        ValueError: If the overlap is not shorter than the chunk.
    """
    step = chunk_duration - overlap
    if step <= 0:
        msg = f"Overlap ({overlap}s) must be shorter than the chunk ({chunk_duration}s)"
        raise ValueError(msg)

    windows: list[tuple[float, float]] = []
    start = 0.0
    while start < total_duration:
        duration = min(chunk_duration, total_duration - start)
        windows.append((start, duration))
        if start + duration >= total_duration:
            break
        start += step
    return windows


def expected_chunk_count(total_duration: float, chunk_duration: float, overlap: float) -> int:
    """Closed form of ``len(plan_chunk_windows(...))``."""
    if total_duration <= chunk_duration:
        return 1
    return 1 + math.ceil((total_duration - chunk_duration) / (chunk_duration - overlap))


@dataclass(frozen=True)
class ChunkPlan:
    """How one file will be walked: timings in seconds, ``count`` planned chunks."""

    total_duration: float
    chunk_duration: float
    overlap: float
    count: int


class AudioChunker:
    """Compresses or chunks one audio file so every upload fits the ceiling."""

    def __init__(self, media: MediaTool | None = None, config: ChunkingConfig | None = None) -> None:
        self.media = media or MediaTool()
        self.config = config or ChunkingConfig.from_settings()

    def fits(self, path: str) -> bool:
        return os.path.getsize(path) <= self.config.size_ceiling

    def compress_to_fit(self, audio_path: str, temp_dir: str) -> str | None:
        """Try whole-file compression; return the compressed path if it fits.

        Runs a normal low-bitrate pass and then an ultra-low pass.  Returns
        ``None`` when neither brings the file under the ceiling.
        """
        for bitrate in (self.config.compress_bitrate_kbps, self.config.ultra_compress_bitrate_kbps):
            out_path = os.path.join(temp_dir, f"compressed_{bitrate}k.m4a")
            try:
                self.media.encode(
                    audio_path,
                    out_path,
                    bitrate_kbps=bitrate,
                    sample_rate=self.config.sample_rate,
                )
            except MediaToolError as exc:
                logger.warning("Compression at %dk failed: %s %s", bitrate, exc, exc.stderr)
                continue

            size = os.path.getsize(out_path)
            logger.info("Compressed at %dk to %.1f MB", bitrate, size / 1024 / 1024)
            if size <= self.config.size_ceiling:
                return out_path
            os.remove(out_path)
        return None

    def split_into_chunks(self, audio_path: str, temp_dir: str) -> list[AudioChunk] | None:
        """Chunk *audio_path*, or return ``None`` if it already fits the ceiling."""
        if self.fits(audio_path):
            return None
        return list(self.iter_chunks(audio_path, temp_dir))

    def plan(self, audio_path: str) -> ChunkPlan:
        """Probe *audio_path* and work out how it will be chunked.

        Raises:
            ValueError: If *audio_path* is empty.
            TooShortError: If the audio is shorter than ``min_audio_duration``.
        """
        file_size = os.path.getsize(audio_path)
        if file_size == 0:
            raise ValueError(f"Audio file is empty: {audio_path}")

        total_duration = self.media.probe_duration(audio_path)
        if total_duration < self.config.min_audio_duration:
            raise TooShortError(
                f"Audio is {total_duration:.1f}s; minimum is {self.config.min_audio_duration:.1f}s"
            )

        chunk_duration = compute_chunk_duration(file_size, total_duration, self.config)
        overlap = min(self.config.overlap, chunk_duration / 2)
        plan = ChunkPlan(
            total_duration=total_duration,
            chunk_duration=chunk_duration,
            overlap=overlap,
            count=len(plan_chunk_windows(total_duration, chunk_duration, overlap)),
        )
        logger.info(
            "Splitting %.0fs of audio (%.1f MB) into ~%d chunks of %.0fs with %.0fs overlap",
            total_duration,
            file_size / 1024 / 1024,
            plan.count,
            chunk_duration,
            overlap,
        )
        return plan

    def iter_chunks(
        self, audio_path: str, temp_dir: str, plan: ChunkPlan | None = None
    ) -> Iterator[AudioChunk]:
        """Yield overlapping chunks one at a time, in timeline order.

        A failed extraction skips forward by the nominal chunk duration.
        *plan* is computed with :meth:`plan` when not given.

        Raises:
            ValueError: If *audio_path* is empty.
            TooShortError: If the audio is shorter than ``min_audio_duration``.
            ChunkingExhaustedError: If the first chunk fails, or more than half
                of the planned chunks fail.
        """
        plan = plan or self.plan(audio_path)
        total_duration = plan.total_duration
        chunk_duration = plan.chunk_duration
        overlap = plan.overlap
        planned = plan.count

        failures = 0
        index = 0
        start = 0.0
        while start < total_duration:
            duration = min(chunk_duration, total_duration - start)
            chunk_path = os.path.join(temp_dir, f"chunk_{index}.m4a")
            try:
                chunk = self._extract(audio_path, chunk_path, start, duration, index)
            except MediaToolError as exc:
                if index == 0:
                    raise ChunkingExhaustedError(
                        f"First chunk failed to extract: {exc}"
                    ) from exc
                failures += 1
                logger.warning(
                    "Chunk %d (%.0fs-%.0fs) failed, skipping: %s",
                    index,
                    start,
                    start + duration,
                    exc,
                )
                if failures * 2 > planned:
                    raise ChunkingExhaustedError(
                        f"{failures} of {planned} chunks failed to extract"
                    ) from exc
                start += chunk_duration
                index += 1
                continue

            yield chunk
            if start + duration >= total_duration:
                break
            start += chunk_duration - overlap
            index += 1

    def _extract(
        self, audio_path: str, chunk_path: str, start: float, duration: float, index: int
    ) -> AudioChunk:
        self.media.encode(
            audio_path,
            chunk_path,
            bitrate_kbps=self.config.chunk_bitrate_kbps,
            start=start,
            duration=duration,
            sample_rate=self.config.sample_rate,
        )
        size = os.path.getsize(chunk_path)
        if size > self.config.size_ceiling:
            logger.info("Chunk %d is %.1f MB, recompressing", index, size / 1024 / 1024)
            recompressed = chunk_path + ".tmp.m4a"
            self.media.encode(
                chunk_path,
                recompressed,
                bitrate_kbps=self.config.recompress_bitrate_kbps,
                sample_rate=self.config.sample_rate,
            )
            os.replace(recompressed, chunk_path)
            size = os.path.getsize(chunk_path)

        return AudioChunk(
            path=chunk_path,
            start_offset=start,
            duration=duration,
            byte_size=size,
            index=index,
        )
