"""Sliding-window candidate generation over one video transcript."""

from __future__ import annotations

from collections.abc import Sequence

from clipmatch.matching.models import Candidate
from clipmatch.transcription.models import VideoTranscript, join_text, span

DEFAULT_WINDOW_SIZES: tuple[int, ...] = (10, 20)
MIN_CANDIDATE_CHARS = 100


def build_candidates(
    transcript: VideoTranscript,
    window_sizes: Sequence[int] = DEFAULT_WINDOW_SIZES,
    min_chars: int = MIN_CANDIDATE_CHARS,
) -> list[Candidate]:
    """Slide each window size over *transcript* with a half-window step.

    Windows are ordered by size, then by position.  A transcript with fewer
    segments than the smallest window yields one whole-transcript window.
    Windows whose text is shorter than *min_chars* are dropped.

    Args:
        transcript: Ordered segments of one video.
        window_sizes: Window lengths, counted in segments.
        min_chars: Minimum concatenated text length worth scoring.

    Returns:
        List of :class:`Candidate` instances.
    """
    segments = transcript.segments
    if not segments:
        return []

    sizes = sorted({s for s in window_sizes if s > 0})
    if not sizes:
        raise ValueError(f"window_sizes must contain a positive size, got {window_sizes!r}")
    if len(segments) < sizes[0]:
        sizes = [len(segments)]

    candidates: list[Candidate] = []
    for size in sizes:
        step = max(1, size // 2)
        for i in range(0, len(segments) - size + 1, step):
            window = transcript.window(i, size)
            text = join_text(window)
            if len(text) < min_chars:
                continue
            start, end = span(window)
            candidates.append(
                Candidate(
                    video_id=transcript.video_id,
                    start_offset=start,
                    end_offset=end,
                    text=text,
                    window_size=size,
                    segment_index=i,
                )
            )

    return candidates


class CandidateWindower:
    """Holds windowing parameters so the engine can build candidates per video."""

    def __init__(
        self,
        window_sizes: Sequence[int] = DEFAULT_WINDOW_SIZES,
        min_chars: int = MIN_CANDIDATE_CHARS,
    ) -> None:
        self.window_sizes = tuple(window_sizes)
        self.min_chars = min_chars

    def __call__(self, transcript: VideoTranscript) -> list[Candidate]:
        return build_candidates(transcript, self.window_sizes, self.min_chars)

    def build_all(self, transcripts: Sequence[VideoTranscript]) -> list[list[Candidate]]:
        """Candidates per video, in the order of *transcripts*."""
        return [self(t) for t in transcripts]
