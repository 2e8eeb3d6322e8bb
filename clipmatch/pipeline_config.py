"""Matching configuration: usage-level enums and the UsageConfig dataclass."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum


class UsageLevel(StrEnum):
    """How much reasoning-service budget a matching run may spend."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MatchingMode(StrEnum):
    """Fast path (one shared call) or quality path (one call per passage)."""

    BATCH = "batch"
    INDIVIDUAL = "individual"


@dataclass(frozen=True)
class UsageConfig:
    """Immutable per-run budget for the reasoning service.

    ``max_candidates`` caps how many candidate windows go into one request,
    ``max_tokens`` caps the response length.  ``model`` overrides
    ``settings.llm_model`` when set.
    """

    max_candidates: int = 50
    max_tokens: int = 2000
    quality_mode: bool = False
    model: str | None = None

    def __post_init__(self) -> None:
        if self.max_candidates < 1:
            raise ValueError(f"max_candidates must be positive, got {self.max_candidates}")
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")

    @property
    def mode(self) -> MatchingMode:
        return MatchingMode.INDIVIDUAL if self.quality_mode else MatchingMode.BATCH

    @classmethod
    def from_level(
        cls,
        level: str | UsageLevel,
        quality_mode: bool = False,
        model: str | None = None,
    ) -> UsageConfig:
        """Build the preset for *level*, optionally switching to quality mode."""
        if isinstance(level, str):
            level = UsageLevel(level)
        return replace(USAGE_PRESETS[level], quality_mode=quality_mode, model=model)


USAGE_PRESETS: dict[UsageLevel, UsageConfig] = {
    UsageLevel.LOW: UsageConfig(max_candidates=30, max_tokens=1500),
    UsageLevel.MEDIUM: UsageConfig(max_candidates=50, max_tokens=2000),
    UsageLevel.HIGH: UsageConfig(max_candidates=80, max_tokens=4000),
}
