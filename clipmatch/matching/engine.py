"""Top-level matching: passages + transcripts in, one clip per passage out.

Usage:
    engine = MatchingEngine()
    transcripts = engine.load_transcripts({"talk": "talk.mp3"})
    records = engine.match(parse_thread(text), transcripts, UsageConfig.from_level("medium"))
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from clipmatch.cache import TTLCache
from clipmatch.config import Settings, settings
from clipmatch.errors import NoTranscriptsError
from clipmatch.matching.batch_matcher import BatchMatcher
from clipmatch.matching.fallback import FAILURE_CONFIDENCE, FAILURE_REASON, default_match
from clipmatch.matching.models import (
    Candidate,
    InputPassage,
    MatchRecord,
    QualityTier,
    Selection,
)
from clipmatch.matching.overlap import OverlapGuard
from clipmatch.matching.quota import allocate_candidates
from clipmatch.matching.windowing import CandidateWindower
from clipmatch.pipeline_config import UsageConfig
from clipmatch.transcription.chunker import AudioChunker
from clipmatch.transcription.models import VideoTranscript, join_text
from clipmatch.transcription.pipeline import transcribe_audio_file
from clipmatch.transcription.transcriber import Transcriber

logger = logging.getLogger(__name__)


class MatchingEngine:
    """Coordinates windowing, quota allocation, the matcher and fallbacks.

    All collaborators can be injected; defaults are built from *cfg*.  The
    engine owns the transcript cache, so reusing one engine across runs
    avoids transcribing the same video twice.
    """

    def __init__(
        self,
        matcher: BatchMatcher | None = None,
        windower: CandidateWindower | None = None,
        cache: TTLCache[str, VideoTranscript] | None = None,
        transcriber: Transcriber | None = None,
        chunker: AudioChunker | None = None,
        cfg: Settings = settings,
    ) -> None:
        self.cfg = cfg
        self._matcher = matcher
        self.windower = windower or CandidateWindower(cfg.window_sizes, cfg.min_candidate_chars)
        self.cache = cache if cache is not None else TTLCache(
            capacity=cfg.cache_capacity, ttl_seconds=cfg.cache_ttl_seconds
        )
        self.transcriber = transcriber
        self.chunker = chunker

    @property
    def matcher(self) -> BatchMatcher:
        # Built lazily so transcript-only use needs no Anthropic key.
        if self._matcher is None:
            self._matcher = BatchMatcher(cfg=self.cfg)
        return self._matcher

    # ------------------------------------------------------------------
    # Transcripts
    # ------------------------------------------------------------------

    def load_transcript(self, video_id: str, audio_path: str) -> VideoTranscript:
        """Return the transcript for *video_id*, transcribing *audio_path* on a miss."""
        cached = self.cache.get(video_id)
        if cached is not None:
            logger.info("Using cached transcript for %s", video_id)
            return cached

        transcript = transcribe_audio_file(
            audio_path, video_id, transcriber=self.transcriber, chunker=self.chunker
        )
        logger.info("Transcribed %s: %d segments", video_id, len(transcript.segments))
        self.cache.set(video_id, transcript)
        return transcript

    def load_transcripts(self, sources: Mapping[str, str]) -> list[VideoTranscript]:
        """Transcribe every ``video_id -> audio_path`` pair, skipping failures.

        Raises:
            NoTranscriptsError: If no video could be transcribed.
        """
        transcripts: list[VideoTranscript] = []
        for video_id, audio_path in sources.items():
            try:
                transcripts.append(self.load_transcript(video_id, audio_path))
            except Exception:
                logger.exception("Failed to transcribe %s (%s)", video_id, audio_path)

        if not transcripts:
            raise NoTranscriptsError("No video transcripts could be obtained")
        return transcripts

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def match(
        self,
        passages: Sequence[InputPassage],
        transcripts: Sequence[VideoTranscript],
        usage: UsageConfig | None = None,
    ) -> list[MatchRecord]:
        """Produce exactly one :class:`MatchRecord` per passage, in input order.

        Raises:
            NoTranscriptsError: If *transcripts* is empty.
        """
        if not transcripts:
            raise NoTranscriptsError("No video transcripts could be obtained")
        if not passages:
            return []
        usage = usage or UsageConfig()

        candidates = allocate_candidates(self.windower.build_all(transcripts), usage.max_candidates)
        logger.info(
            "Matching %d passages against %d candidates from %d videos (%s mode)",
            len(passages),
            len(candidates),
            len(transcripts),
            usage.mode,
        )

        if not candidates:
            logger.warning("No usable candidates; every passage gets a default match")
            return [default_match(p, transcripts) for p in passages]

        if usage.quality_mode:
            return self._match_individually(passages, candidates, transcripts, usage)
        return self._match_batch(passages, candidates, transcripts, usage)

    def _match_batch(
        self,
        passages: Sequence[InputPassage],
        candidates: list[Candidate],
        transcripts: Sequence[VideoTranscript],
        usage: UsageConfig,
    ) -> list[MatchRecord]:
        try:
            selections = self.matcher.match_batch(passages, candidates, usage)
        except Exception:
            logger.exception("Batch matching failed; using default matches")
            return [
                default_match(p, transcripts, FAILURE_CONFIDENCE, FAILURE_REASON)
                for p in passages
            ]

        records: list[MatchRecord] = []
        for index, passage in enumerate(passages):
            selection = selections.get(index)
            if selection is None:
                logger.warning("No valid selection for passage %s; using default", passage.id)
                records.append(default_match(passage, transcripts))
                continue
            records.append(_record(passage, candidates[selection.candidate_index], selection))
        return records

    def _match_individually(
        self,
        passages: Sequence[InputPassage],
        candidates: list[Candidate],
        transcripts: Sequence[VideoTranscript],
        usage: UsageConfig,
    ) -> list[MatchRecord]:
        by_id = {t.video_id: t for t in transcripts}
        guard = OverlapGuard(
            buffer=self.cfg.overlap_buffer,
            shift=self.cfg.overlap_shift,
            max_attempts=self.cfg.max_shift_attempts,
        )

        records: list[MatchRecord] = []
        for passage in passages:
            try:
                selection = self.matcher.match_single(passage, candidates, usage)
            except Exception:
                logger.exception("Matching failed for passage %s; using default", passage.id)
                records.append(
                    default_match(passage, transcripts, FAILURE_CONFIDENCE, FAILURE_REASON)
                )
                continue

            if selection is None:
                records.append(default_match(passage, transcripts))
                continue

            candidate = candidates[selection.candidate_index]
            record = _record(passage, candidate, selection)
            placement = guard.resolve(
                by_id[candidate.video_id], candidate.start_offset, candidate.end_offset
            )
            if placement.shifted:
                record.start_offset = placement.start_offset
                record.end_offset = placement.end_offset
                record.matched_text = join_text(placement.segments)
            records.append(record)
        return records


def _record(passage: InputPassage, candidate: Candidate, selection: Selection) -> MatchRecord:
    return MatchRecord(
        passage_id=passage.id,
        passage_text=passage.text,
        video_id=candidate.video_id,
        start_offset=candidate.start_offset,
        end_offset=candidate.end_offset,
        matched_text=candidate.text,
        confidence=selection.confidence,
        quality_tier=selection.quality,
        rationale=selection.reason,
    )


# ---------------------------------------------------------------------------
# Thread and result helpers
# ---------------------------------------------------------------------------


def parse_thread(text: str, separator: str = "---") -> list[InputPassage]:
    """Split a thread into passages ``tweet-1 .. tweet-n`` on *separator*."""
    parts = [part.strip() for part in text.split(separator)]
    parts = [part for part in parts if part]
    if not parts:
        raise ValueError("Thread contains no tweets")
    return [InputPassage(id=f"tweet-{i}", text=part) for i, part in enumerate(parts, start=1)]


def match_statistics(records: Sequence[MatchRecord]) -> dict[str, Any]:
    """Summary counts and confidence figures for a matching run."""
    by_quality = {tier.value: 0 for tier in QualityTier}
    for record in records:
        by_quality[record.quality_tier.value] += 1

    confidences = [r.confidence for r in records]
    return {
        "total": len(records),
        "by_quality": by_quality,
        "fallbacks": sum(1 for r in records if r.is_fallback),
        "average_confidence": sum(confidences) / len(confidences) if confidences else 0.0,
        "min_confidence": min(confidences, default=0.0),
        "max_confidence": max(confidences, default=0.0),
    }


def group_by_video(
    records: Sequence[MatchRecord], video_ids: Sequence[str] = ()
) -> dict[str, list[MatchRecord]]:
    """Group records per video, each list ordered by start offset.

    Every id in *video_ids* gets a key even when it received no clips.
    """
    grouped: dict[str, list[MatchRecord]] = {video_id: [] for video_id in video_ids}
    for record in records:
        grouped.setdefault(record.video_id, []).append(record)
    for clips in grouped.values():
        clips.sort(key=lambda r: r.start_offset)
    return grouped
