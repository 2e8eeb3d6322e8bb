"""Keeps clips chosen one at a time from landing on the same stretch of video."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from clipmatch.transcription.models import TranscriptSegment, VideoTranscript, span

logger = logging.getLogger(__name__)


@dataclass
class Placement:
    """Where a clip finally landed after overlap resolution."""

    start_offset: float
    end_offset: float
    segments: list[TranscriptSegment] = field(default_factory=list)
    shifted: bool = False


class OverlapGuard:
    """Tracks claimed time ranges per video.

    Each claim reserves ``[start - buffer, end + buffer]`` (start clamped to
    zero).  A conflicting range is shifted by ``+shift, -shift, +2*shift,
    -2*shift, ...`` for at most *max_attempts* tries; if nothing is free the
    original range is accepted anyway.
    """

    def __init__(self, buffer: float = 10.0, shift: float = 30.0, max_attempts: int = 4) -> None:
        self.buffer = buffer
        self.shift = shift
        self.max_attempts = max_attempts
        self._claimed: dict[str, list[tuple[float, float]]] = {}

    def overlaps(self, video_id: str, start: float, end: float) -> bool:
        return any(
            start < claimed_end and end > claimed_start
            for claimed_start, claimed_end in self._claimed.get(video_id, [])
        )

    def claim(self, video_id: str, start: float, end: float) -> None:
        self._claimed.setdefault(video_id, []).append(
            (max(0.0, start - self.buffer), end + self.buffer)
        )

    def shifts(self) -> list[float]:
        """Offsets tried in order: +s, -s, +2s, -2s, ..."""
        return [
            self.shift * (k // 2 + 1) * (1 if k % 2 == 0 else -1)
            for k in range(self.max_attempts)
        ]

    def resolve(self, transcript: VideoTranscript, start: float, end: float) -> Placement:
        """Find a free placement for ``[start, end]`` and claim it."""
        video_id = transcript.video_id
        if not self.overlaps(video_id, start, end):
            self.claim(video_id, start, end)
            return Placement(start, end)

        for delta in self.shifts():
            lo = max(0.0, start + delta)
            hi = min(transcript.total_duration, end + delta)
            if hi <= lo:
                continue
            segments = transcript.segments_between(lo, hi)
            if not segments:
                continue
            snapped_start, snapped_end = span(segments)
            if self.overlaps(video_id, snapped_start, snapped_end):
                continue
            logger.debug(
                "Shifted %s clip %.1f-%.1f to %.1f-%.1f",
                video_id,
                start,
                end,
                snapped_start,
                snapped_end,
            )
            self.claim(video_id, snapped_start, snapped_end)
            return Placement(snapped_start, snapped_end, segments, shifted=True)

        logger.warning(
            "No free range near %.1f-%.1f in %s; accepting overlapping clip",
            start,
            end,
            video_id,
        )
        self.claim(video_id, start, end)
        return Placement(start, end)

    def reset(self) -> None:
        self._claimed.clear()
