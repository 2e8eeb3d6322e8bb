"""Tests for candidate windows and the per-video candidate quota."""

from __future__ import annotations

import pytest

from clipmatch.matching.models import Candidate
from clipmatch.matching.quota import allocate_candidates, allocate_quotas, subsample_evenly
from clipmatch.matching.windowing import CandidateWindower, build_candidates
from clipmatch.transcription.models import TranscriptSegment, VideoTranscript

FILLER = "this sentence is long enough to matter"  # 38 chars


def make_transcript(video_id: str, count: int, seconds: float = 10.0, text: str = FILLER) -> VideoTranscript:
    return VideoTranscript(
        video_id=video_id,
        segments=[
            TranscriptSegment(text=f"{text} {i}", offset=i * seconds, duration=seconds)
            for i in range(count)
        ],
    )


# ---------------------------------------------------------------------------
# Windowing
# ---------------------------------------------------------------------------


class TestBuildCandidates:
    def test_hundred_segment_video(self) -> None:
        """1000 s, 100 segments, sizes 10/20 with half-window steps."""
        transcript = make_transcript("talk", 100)
        candidates = build_candidates(transcript)

        tens = [c for c in candidates if c.window_size == 10]
        twenties = [c for c in candidates if c.window_size == 20]
        assert len(tens) == 19  # i = 0, 5, ..., 90
        assert len(twenties) == 9  # i = 0, 10, ..., 80
        assert tens[0].start_offset == 0
        assert tens[0].end_offset == 100
        assert tens[-1].end_offset == 1000
        assert twenties[1].start_offset == 100

    def test_candidate_text_is_full_window(self) -> None:
        transcript = make_transcript("talk", 10)
        [candidate] = build_candidates(transcript, window_sizes=(10,))
        assert candidate.text == " ".join(s.text for s in transcript.segments)
        assert candidate.segment_index == 0

    def test_short_transcript_yields_single_window(self) -> None:
        transcript = make_transcript("clip", 4)
        [candidate] = build_candidates(transcript)
        assert candidate.window_size == 4
        assert candidate.start_offset == 0
        assert candidate.end_offset == 40

    def test_short_text_windows_dropped(self) -> None:
        transcript = make_transcript("terse", 12, text="ok")
        assert build_candidates(transcript) == []

    def test_empty_transcript(self) -> None:
        assert build_candidates(VideoTranscript(video_id="empty", segments=[])) == []

    def test_invalid_sizes(self) -> None:
        with pytest.raises(ValueError):
            build_candidates(make_transcript("talk", 10), window_sizes=(0,))

    def test_windower_build_all_keeps_video_order(self) -> None:
        windower = CandidateWindower(window_sizes=(10,))
        per_video = windower.build_all([make_transcript("a", 10), make_transcript("b", 20)])
        assert [len(c) for c in per_video] == [1, 3]
        assert {c.video_id for c in per_video[1]} == {"b"}


# ---------------------------------------------------------------------------
# Quota
# ---------------------------------------------------------------------------


class TestAllocateQuotas:
    @pytest.mark.parametrize(
        ("budget", "videos", "expected"),
        [
            (50, 1, [50]),
            (50, 3, [17, 17, 16]),
            (30, 4, [8, 8, 7, 7]),
            (80, 80, [1] * 80),
            (2, 3, [1, 1, 0]),
        ],
    )
    def test_split(self, budget: int, videos: int, expected: list[int]) -> None:
        assert allocate_quotas(budget, videos) == expected

    @pytest.mark.parametrize("budget", [0, 1, 29, 50, 80, 101])
    @pytest.mark.parametrize("videos", [1, 2, 3, 7])
    def test_sum_equals_budget(self, budget: int, videos: int) -> None:
        assert sum(allocate_quotas(budget, videos)) == budget

    def test_no_videos(self) -> None:
        assert allocate_quotas(50, 0) == []

    def test_negative_budget(self) -> None:
        with pytest.raises(ValueError):
            allocate_quotas(-1, 2)


class TestSubsampleEvenly:
    def test_keeps_all_when_under_quota(self) -> None:
        assert subsample_evenly([1, 2, 3], 5) == [1, 2, 3]

    def test_stride_spread(self) -> None:
        assert subsample_evenly(list(range(10)), 4) == [0, 2, 5, 7]

    def test_zero_quota(self) -> None:
        assert subsample_evenly([1, 2, 3], 0) == []


class TestAllocateCandidates:
    def test_single_video_under_budget_keeps_everything(self) -> None:
        """28 candidates from the 100-segment video all fit a budget of 50."""
        per_video = [build_candidates(make_transcript("talk", 100))]
        selected = allocate_candidates(per_video, 50)
        assert len(selected) == 28

    def test_budget_respected_and_shared(self) -> None:
        per_video = [build_candidates(make_transcript(v, 100)) for v in ("a", "b", "c")]
        selected = allocate_candidates(per_video, 30)

        assert len(selected) == 30
        counts = {v: sum(1 for c in selected if c.video_id == v) for v in ("a", "b", "c")}
        assert counts == {"a": 10, "b": 10, "c": 10}

    def test_video_order_and_timeline_spread(self) -> None:
        per_video = [build_candidates(make_transcript(v, 100)) for v in ("a", "b")]
        selected = allocate_candidates(per_video, 10)

        assert [c.video_id for c in selected] == ["a"] * 5 + ["b"] * 5
        starts = [c.start_offset for c in selected[:5]]
        assert starts == sorted(starts)
        assert starts[0] == 0
        assert starts[-1] >= 500

    def test_unused_quota_not_redistributed(self) -> None:
        short = [
            Candidate(video_id="short", start_offset=0, end_offset=10, text="x" * 120, window_size=1)
        ]
        long = build_candidates(make_transcript("long", 100))
        selected = allocate_candidates([short, long], 10)
        assert len(selected) == 6
