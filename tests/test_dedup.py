"""Tests for overlap-duplicate removal in merged chunk transcripts."""

from __future__ import annotations

from clipmatch.transcription.dedup import (
    deduplicate_segments,
    is_duplicate,
    overlap_seconds,
    pick_better,
)
from clipmatch.transcription.models import TranscriptSegment


def seg(text: str, offset: float, duration: float) -> TranscriptSegment:
    return TranscriptSegment(text=text, offset=offset, duration=duration)


# ---------------------------------------------------------------------------
# Pairwise rules
# ---------------------------------------------------------------------------


class TestIsDuplicate:
    def test_disjoint(self) -> None:
        assert not is_duplicate(seg("a", 0, 5), seg("b", 5, 5))

    def test_mostly_overlapping(self) -> None:
        assert is_duplicate(seg("a", 0, 10), seg("a", 2, 10))

    def test_small_overlap_not_duplicate(self) -> None:
        assert overlap_seconds(seg("a", 0, 10), seg("b", 8, 10)) == 2
        assert not is_duplicate(seg("a", 0, 10), seg("b", 8, 10))

    def test_short_segment_contained_in_long_one(self) -> None:
        """Judged against either segment, so containment always counts."""
        assert is_duplicate(seg("long", 0, 60), seg("short", 10, 2))


class TestPickBetter:
    def test_much_longer_text_wins(self) -> None:
        kept = seg("hello", 0, 5)
        incoming = seg("hello there everyone", 1, 5)
        assert pick_better(kept, incoming) is incoming
        assert pick_better(incoming, kept) is incoming

    def test_closer_start_wins_when_lengths_similar(self) -> None:
        kept = seg("hello world", 12, 5)
        incoming = seg("hello world!", 10.2, 5)
        assert pick_better(kept, incoming, reference_start=10.0) is incoming

    def test_no_reference_keeps_first(self) -> None:
        kept = seg("hello world", 12, 5)
        incoming = seg("hello world!", 10.2, 5)
        assert pick_better(kept, incoming) is kept


# ---------------------------------------------------------------------------
# Whole-list pass
# ---------------------------------------------------------------------------


class TestDeduplicateSegments:
    def test_removes_overlap_duplicate(self) -> None:
        segments = [
            seg("intro", 0, 10),
            seg("the key point is focus", 170, 15),
            seg("the key point is focus.", 170.4, 14.5),
            seg("next topic", 190, 10),
        ]
        result = deduplicate_segments(segments)
        assert [s.text for s in result] == ["intro", "the key point is focus", "next topic"]

    def test_sorts_by_offset(self) -> None:
        result = deduplicate_segments([seg("b", 10, 5), seg("a", 0, 5)])
        assert [s.text for s in result] == ["a", "b"]

    def test_same_offset_is_always_duplicate(self) -> None:
        result = deduplicate_segments([seg("x", 5, 1), seg("y", 5, 40)])
        assert len(result) == 1

    def test_no_adjacent_duplicates_remain(self) -> None:
        segments = [
            seg("a a a a", 0, 10),
            seg("b", 9, 2),
            seg("b b b b b b b b b b b b", 5, 10),
            seg("c", 30, 5),
        ]
        result = deduplicate_segments(segments)
        for left, right in zip(result, result[1:]):
            assert not is_duplicate(left, right)
            assert left.offset != right.offset

    def test_idempotent(self) -> None:
        segments = [
            seg("one", 0, 4),
            seg("one!", 0.5, 4),
            seg("two two two two", 3, 6),
            seg("two", 4, 5),
            seg("three", 20, 3),
            seg("three", 20, 3),
        ]
        once = deduplicate_segments(segments)
        assert deduplicate_segments(once) == once

    def test_empty(self) -> None:
        assert deduplicate_segments([]) == []
