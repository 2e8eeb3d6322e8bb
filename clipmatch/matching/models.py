"""Data models for candidate generation and passage matching."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class QualityTier(StrEnum):
    """Coarse, caller-facing confidence label supplied by the reasoning service."""

    PERFECT = "perfect"
    EXCELLENT = "excellent"
    GOOD = "good"
    ACCEPTABLE = "acceptable"

    @classmethod
    def parse(cls, label: str | None) -> QualityTier:
        """Map a free-form label to a tier; anything unknown is ``ACCEPTABLE``."""
        try:
            return cls((label or "").strip().lower())
        except ValueError:
            return cls.ACCEPTABLE


@dataclass(frozen=True)
class InputPassage:
    """One short text to be matched (a tweet in a thread)."""

    id: str
    text: str


@dataclass(frozen=True)
class Candidate:
    """A time-bounded window of one video's transcript."""

    video_id: str
    start_offset: float
    end_offset: float
    text: str
    window_size: int
    segment_index: int = 0


@dataclass
class MatchRecord:
    """The single final match for one passage."""

    passage_id: str
    passage_text: str
    video_id: str
    start_offset: float
    end_offset: float
    matched_text: str
    confidence: float
    quality_tier: QualityTier
    rationale: str
    is_fallback: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "passage_id": self.passage_id,
            "passage_text": self.passage_text,
            "video_id": self.video_id,
            "start_offset": self.start_offset,
            "end_offset": self.end_offset,
            "matched_text": self.matched_text,
            "confidence": self.confidence,
            "quality_tier": self.quality_tier.value,
            "rationale": self.rationale,
            "is_fallback": self.is_fallback,
        }


@dataclass(frozen=True)
class Selection:
    """One parsed choice from the reasoning service, before resolution."""

    passage_index: int
    candidate_index: int
    score: int  # 0-100 as returned
    quality: QualityTier
    reason: str

    @property
    def confidence(self) -> float:
        return clamp_confidence(self.score / 100)


def clamp_confidence(value: float) -> float:
    return max(0.0, min(1.0, value))
