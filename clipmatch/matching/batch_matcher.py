"""Reasoning-service client that picks the best candidate for each passage."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import anthropic
from anthropic import Anthropic

from clipmatch.config import Settings, settings
from clipmatch.errors import MatchingServiceError
from clipmatch.matching.models import Candidate, InputPassage, Selection
from clipmatch.matching.protocol import (
    MATCH_TOOL,
    TOOL_NAME,
    build_batch_prompt,
    build_single_prompt,
    parse_response,
)
from clipmatch.pipeline_config import UsageConfig

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert at matching tweets to the most relevant segments of "
    "video transcripts. Judge topical relevance, specific examples, and "
    "supporting context rather than keyword overlap. Always pick exactly one "
    "segment per tweet, even when no segment is a strong match."
)


class BatchMatcher:
    """Sends passages and candidates to Claude and parses the selections.

    Args:
        client: Pre-built ``Anthropic`` client (tests inject a mock).
        cfg: Settings used for the model, timeouts and output mode.
    """

    def __init__(self, client: Any | None = None, cfg: Settings = settings) -> None:
        self.cfg = cfg
        self.client = client or Anthropic(
            api_key=cfg.anthropic_api_key or None,
            timeout=cfg.request_timeout,
            max_retries=cfg.max_retries,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def match_batch(
        self,
        passages: Sequence[InputPassage],
        candidates: Sequence[Candidate],
        usage: UsageConfig,
    ) -> dict[int, Selection]:
        """Select one candidate per passage in a single request.

        Passages left without a valid selection are re-asked up to
        ``parse_retries`` times.  Returns a mapping from passage index to
        selection; missing keys mean the caller should fall back.

        Raises:
            MatchingServiceError: If the service call itself fails.
        """
        if not passages or not candidates:
            return {}

        selections = self._ask_batch(list(passages), candidates, usage)

        for attempt in range(self.cfg.parse_retries):
            missing = [i for i in range(len(passages)) if i not in selections]
            if not missing:
                break
            logger.info(
                "Retrying %d passage(s) without a valid selection (attempt %d/%d)",
                len(missing),
                attempt + 1,
                self.cfg.parse_retries,
            )
            retried = self._ask_batch([passages[i] for i in missing], candidates, usage)
            for local_index, selection in retried.items():
                original = missing[local_index]
                selections[original] = Selection(
                    passage_index=original,
                    candidate_index=selection.candidate_index,
                    score=selection.score,
                    quality=selection.quality,
                    reason=selection.reason,
                )

        return selections

    def match_single(
        self,
        passage: InputPassage,
        candidates: Sequence[Candidate],
        usage: UsageConfig,
    ) -> Selection | None:
        """Select the best candidate for one passage, or ``None`` if unparsable."""
        if not candidates:
            return None

        prompt = build_single_prompt(
            passage,
            candidates,
            max_chars=self.cfg.single_candidate_chars,
            structured=self.cfg.use_structured_output,
        )
        for attempt in range(self.cfg.parse_retries + 1):
            response = self._create(prompt, usage)
            selection = parse_response(response, 1, len(candidates)).get(0)
            if selection is not None:
                return selection
            logger.warning(
                "No valid selection for passage %s (attempt %d)", passage.id, attempt + 1
            )
        return None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ask_batch(
        self,
        passages: list[InputPassage],
        candidates: Sequence[Candidate],
        usage: UsageConfig,
    ) -> dict[int, Selection]:
        prompt = build_batch_prompt(
            passages,
            candidates,
            max_chars=self.cfg.batch_candidate_chars,
            structured=self.cfg.use_structured_output,
        )
        response = self._create(prompt, usage)
        selections = parse_response(response, len(passages), len(candidates))
        logger.info(
            "Batch request: %d passages, %d candidates, %d valid selections",
            len(passages),
            len(candidates),
            len(selections),
        )
        return selections

    def _create(self, prompt: str, usage: UsageConfig) -> Any:
        kwargs: dict[str, Any] = {
            "model": usage.model or self.cfg.llm_model,
            "max_tokens": usage.max_tokens,
            "temperature": self.cfg.llm_temperature,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self.cfg.use_structured_output:
            kwargs["tools"] = [MATCH_TOOL]
            kwargs["tool_choice"] = {"type": "tool", "name": TOOL_NAME}

        try:
            return self.client.messages.create(**kwargs)
        except anthropic.APIError as exc:
            raise MatchingServiceError(f"Reasoning service call failed: {exc}") from exc
