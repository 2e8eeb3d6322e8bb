"""Duplicate-utterance policy for transcripts merged from overlapping chunks.

Consecutive chunks share ``overlap`` seconds of audio, so the same sentence
is usually transcribed twice with slightly different boundaries and
wording.  The pass below is greedy and local: each segment is compared with
the last accepted one, and a replacement is re-checked against its new
neighbour.
"""

from __future__ import annotations

from clipmatch.transcription.models import TranscriptSegment

OVERLAP_THRESHOLD = 0.5
LENGTH_RATIO = 1.5


def overlap_seconds(a: TranscriptSegment, b: TranscriptSegment) -> float:
    return max(0.0, min(a.end, b.end) - max(a.offset, b.offset))


def is_duplicate(
    a: TranscriptSegment, b: TranscriptSegment, threshold: float = OVERLAP_THRESHOLD
) -> bool:
    """True if the shared time covers more than *threshold* of either segment."""
    shared = overlap_seconds(a, b)
    if shared <= 0:
        return False
    for seg in (a, b):
        if seg.duration > 0 and shared / seg.duration > threshold:
            return True
    return False


def pick_better(
    kept: TranscriptSegment,
    incoming: TranscriptSegment,
    length_ratio: float = LENGTH_RATIO,
    reference_start: float | None = None,
) -> TranscriptSegment:
    """Choose which of two duplicates survives.

    A substantially longer text (more than *length_ratio* times the other)
    wins.  Otherwise the segment whose start lines up better with
    *reference_start* (normally the end of the preceding accepted segment)
    wins.  Without a reference, or on a tie, *kept* survives.
    """
    kept_len = len(kept.text)
    incoming_len = len(incoming.text)
    if incoming_len > kept_len * length_ratio:
        return incoming
    if kept_len > incoming_len * length_ratio:
        return kept

    if reference_start is None:
        return kept
    if abs(incoming.offset - reference_start) < abs(kept.offset - reference_start):
        return incoming
    return kept


def deduplicate_segments(segments: list[TranscriptSegment]) -> list[TranscriptSegment]:
    """Sort by offset and drop duplicates in one left-to-right pass.

    Segments sharing an offset are always treated as duplicates.  Running the
    pass on its own output changes nothing.
    """
    ordered = sorted(segments, key=lambda s: (s.offset, s.duration))
    accepted: list[TranscriptSegment] = []

    for seg in ordered:
        accepted.append(seg)
        # A replacement can make the new last segment collide with the one
        # before it, so merge backwards until neighbours are distinct.
        while len(accepted) >= 2 and _collides(accepted[-2], accepted[-1]):
            incoming = accepted.pop()
            kept = accepted.pop()
            reference = accepted[-1].end if accepted else None
            accepted.append(pick_better(kept, incoming, reference_start=reference))

    return accepted


def _collides(a: TranscriptSegment, b: TranscriptSegment) -> bool:
    return a.offset == b.offset or is_duplicate(a, b)
