"""Deterministic default match used when the reasoning service gives no answer."""

from __future__ import annotations

from collections.abc import Sequence

from clipmatch.matching.models import InputPassage, MatchRecord, QualityTier
from clipmatch.transcription.models import TranscriptSegment, VideoTranscript, join_text, span

DEFAULT_CONFIDENCE = 0.3
FAILURE_CONFIDENCE = 0.1
DEFAULT_WINDOW = 10

DEFAULT_REASON = "Default match - best available segment from video"
FAILURE_REASON = "Default match - reasoning service unavailable"


def midpoint_window(transcript: VideoTranscript, size: int = DEFAULT_WINDOW) -> list[TranscriptSegment]:
    """Up to *size* consecutive segments centred on the transcript's midpoint."""
    segments = transcript.segments
    if not segments:
        return []
    start = max(0, len(segments) // 2 - size // 2)
    return transcript.window(start, size)


def default_match(
    passage: InputPassage,
    transcripts: Sequence[VideoTranscript],
    confidence: float = DEFAULT_CONFIDENCE,
    reason: str = DEFAULT_REASON,
) -> MatchRecord:
    """Build the fallback record for *passage*.

    Always points into the first video that has any segments.  If no video
    has segments, the record covers ``0.0-0.0`` of the first video.
    """
    if not transcripts:
        raise ValueError("default_match needs at least one transcript")

    transcript = next((t for t in transcripts if t.segments), transcripts[0])
    window = midpoint_window(transcript)
    start, end = span(window) if window else (0.0, 0.0)

    return MatchRecord(
        passage_id=passage.id,
        passage_text=passage.text,
        video_id=transcript.video_id,
        start_offset=start,
        end_offset=end,
        matched_text=join_text(window),
        confidence=confidence,
        quality_tier=QualityTier.ACCEPTABLE,
        rationale=reason,
        is_fallback=True,
    )
