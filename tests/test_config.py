"""Tests for Settings, usage levels, and UsageConfig presets."""

from __future__ import annotations

import dataclasses

import pytest

from clipmatch.config import Settings, get_settings
from clipmatch.pipeline_config import USAGE_PRESETS, MatchingMode, UsageConfig, UsageLevel

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestSettings:
    def test_defaults(self) -> None:
        cfg = Settings(_env_file=None)  # type: ignore[call-arg]
        assert cfg.transcription_provider == "whisper"
        assert cfg.max_upload_bytes == 24 * 1024 * 1024
        assert cfg.chunk_overlap == 30.0
        assert cfg.window_sizes == (10, 20)
        assert cfg.overlap_buffer == 10.0
        assert cfg.cache_capacity == 500
        assert cfg.parse_retries == 0

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LLM_MODEL", "claude-opus-4-20250514")
        monkeypatch.setenv("CHUNK_OVERLAP", "15")
        cfg = Settings(_env_file=None)  # type: ignore[call-arg]
        assert cfg.llm_model == "claude-opus-4-20250514"
        assert cfg.chunk_overlap == 15.0

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()


# ---------------------------------------------------------------------------
# Enum tests
# ---------------------------------------------------------------------------


class TestUsageLevel:
    def test_values(self) -> None:
        assert UsageLevel.LOW.value == "low"
        assert UsageLevel.MEDIUM.value == "medium"
        assert UsageLevel.HIGH.value == "high"

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            UsageLevel("extreme")

    def test_is_str_subclass(self) -> None:
        """Enum values behave as plain strings for JSON serialization."""
        assert isinstance(UsageLevel.HIGH, str)


# ---------------------------------------------------------------------------
# UsageConfig tests
# ---------------------------------------------------------------------------


class TestUsageConfig:
    def test_defaults_match_medium(self) -> None:
        assert UsageConfig() == USAGE_PRESETS[UsageLevel.MEDIUM]

    def test_presets(self) -> None:
        assert USAGE_PRESETS[UsageLevel.LOW].max_candidates == 30
        assert USAGE_PRESETS[UsageLevel.MEDIUM].max_candidates == 50
        assert USAGE_PRESETS[UsageLevel.HIGH].max_candidates == 80

    def test_from_level_string(self) -> None:
        usage = UsageConfig.from_level("high")
        assert usage.max_candidates == 80
        assert usage.max_tokens == 4000
        assert usage.mode is MatchingMode.BATCH

    def test_from_level_quality_and_model(self) -> None:
        usage = UsageConfig.from_level(UsageLevel.LOW, quality_mode=True, model="claude-x")
        assert usage.quality_mode is True
        assert usage.mode is MatchingMode.INDIVIDUAL
        assert usage.model == "claude-x"
        # presets themselves are untouched
        assert USAGE_PRESETS[UsageLevel.LOW].quality_mode is False

    def test_frozen(self) -> None:
        usage = UsageConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            usage.max_candidates = 10  # type: ignore[misc]

    @pytest.mark.parametrize("field", ["max_candidates", "max_tokens"])
    def test_rejects_non_positive(self, field: str) -> None:
        with pytest.raises(ValueError, match=field):
            UsageConfig(**{field: 0})
