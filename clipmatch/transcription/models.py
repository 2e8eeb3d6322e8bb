"""Data models for the audio-to-transcript pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TranscriptSegment:
    """One timed utterance. Offsets and durations are in seconds."""

    text: str
    offset: float
    duration: float

    @property
    def end(self) -> float:
        return self.offset + self.duration


@dataclass(frozen=True)
class AudioChunk:
    """A temporary slice of a larger audio file."""

    path: str
    start_offset: float
    duration: float
    byte_size: int
    index: int

    @property
    def end_offset(self) -> float:
        return self.start_offset + self.duration


@dataclass
class RawTranscription:
    """Transcription service output with timestamps relative to the uploaded file."""

    segments: list[tuple[str, float, float]]  # (text, start, end)
    language: str | None = None


@dataclass
class VideoTranscript:
    """The ordered segments of one source video."""

    video_id: str
    segments: list[TranscriptSegment]
    total_duration: float = field(default=0.0)

    def __post_init__(self) -> None:
        if not self.total_duration and self.segments:
            self.total_duration = max(s.end for s in self.segments)

    def window(self, start_index: int, size: int) -> list[TranscriptSegment]:
        """Return up to *size* consecutive segments starting at *start_index*."""
        return self.segments[start_index : min(start_index + size, len(self.segments))]

    def segments_between(self, start: float, end: float) -> list[TranscriptSegment]:
        """Segments that overlap the half-open interval ``[start, end)``."""
        return [s for s in self.segments if s.end > start and s.offset < end]


def join_text(segments: list[TranscriptSegment]) -> str:
    return " ".join(s.text for s in segments)


def span(segments: list[TranscriptSegment]) -> tuple[float, float]:
    """Start of the first segment and end of the last one."""
    return segments[0].offset, segments[-1].end
