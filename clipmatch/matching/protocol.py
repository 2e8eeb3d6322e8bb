"""Request/response protocol with the reasoning service.

Requests list the passages as ``TWEET_<i>`` and the candidates as
``SEGMENT_<j>``.  The preferred answer is a ``record_matches`` tool call whose
input is validated with pydantic.  When no usable tool call comes back, the
text is parsed line by line against the legacy protocol::

    MATCH_<i>: SEGMENT_<j> | SCORE:<0-100> | QUALITY:<tier> | REASON:<text>
    BEST_MATCH: SEGMENT_<j> | SCORE:<0-100> | QUALITY:<tier> | REASON:<text>

Anything unparsable, out of range, or repeated is discarded; the first valid
selection for a passage wins.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from clipmatch.matching.models import Candidate, InputPassage, QualityTier, Selection

logger = logging.getLogger(__name__)

TOOL_NAME = "record_matches"

_TIERS = [t.value for t in QualityTier]

MATCH_TOOL: dict[str, Any] = {
    "name": TOOL_NAME,
    "description": (
        "Record the single best video segment for each tweet. "
        "Call this once with one entry per tweet."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "matches": {
                "type": "array",
                "description": "One entry per tweet.",
                "items": {
                    "type": "object",
                    "properties": {
                        "tweet_index": {
                            "type": "integer",
                            "description": "The N in TWEET_N.",
                        },
                        "segment_index": {
                            "type": "integer",
                            "description": "The N in SEGMENT_N of the chosen segment.",
                        },
                        "score": {
                            "type": "integer",
                            "description": "Match strength 0-100.",
                        },
                        "quality": {
                            "type": "string",
                            "enum": _TIERS,
                            "description": "Overall match quality.",
                        },
                        "reason": {
                            "type": "string",
                            "description": "One-line explanation of the choice.",
                        },
                    },
                    "required": ["tweet_index", "segment_index", "score", "quality", "reason"],
                },
            },
        },
        "required": ["matches"],
    },
}

_FIELDS = (
    r"SEGMENT_(\d+)\s*\|\s*SCORE:\s*(\d+)\s*\|\s*QUALITY:\s*(\w+)\s*\|\s*REASON:\s*(.+?)\s*$"
)
MATCH_LINE_RE = re.compile(r"^\s*MATCH_(\d+):\s*" + _FIELDS)
BEST_MATCH_LINE_RE = re.compile(r"^\s*BEST_MATCH:\s*" + _FIELDS)


class ToolMatch(BaseModel):
    """Schema for one entry of the ``record_matches`` tool input."""

    tweet_index: int = Field(ge=0)
    segment_index: int = Field(ge=0)
    score: int
    quality: str
    reason: str = ""


# ---------------------------------------------------------------------------
# Prompt construction
# ---------------------------------------------------------------------------


def _video_label(video_id: str) -> str:
    return video_id.rstrip("/").rsplit("/", 1)[-1]


def format_candidates(candidates: Sequence[Candidate], max_chars: int) -> str:
    """Render candidates as ``SEGMENT_<i>`` blocks, text cut to *max_chars*."""
    return "\n\n".join(
        f"SEGMENT_{i} ({_video_label(c.video_id)}, "
        f"{c.start_offset:.1f}-{c.end_offset:.1f}s):\n\"{c.text[:max_chars]}\""
        for i, c in enumerate(candidates)
    )


def build_batch_prompt(
    passages: Sequence[InputPassage],
    candidates: Sequence[Candidate],
    max_chars: int = 500,
    structured: bool = True,
) -> str:
    tweets = "\n\n".join(f'TWEET_{i}: "{p.text}"' for i, p in enumerate(passages))
    line = (
        "MATCH_{n}: SEGMENT_[number] | SCORE:[0-100] | "
        "QUALITY:[perfect/excellent/good/acceptable] | REASON:[one line explanation]"
    )
    example = "\n".join(line.format(n=n) for n in range(min(len(passages), 2)))
    if len(passages) > 2:
        example += "\n..."

    if structured:
        answer = (
            f"Call the {TOOL_NAME} tool with one entry per tweet. If you cannot call "
            f"tools, reply with one line per tweet in this exact format:\n\n{example}"
        )
    else:
        answer = f"Return in this exact format, one line per tweet:\n\n{example}"

    return (
        "Find the SINGLE BEST video segment for each tweet. Each tweet MUST get "
        "exactly ONE match.\n\n"
        f"TWEETS:\n{tweets}\n\n"
        f"VIDEO SEGMENTS:\n{format_candidates(candidates, max_chars)}\n\n"
        "For each tweet, select the ONE segment that best matches its content. Even "
        "if the match isn't perfect, choose the most relevant segment available.\n\n"
        f"{answer}\n\n"
        "IMPORTANT: Every tweet MUST have a match. Choose the best available segment "
        "even if the relevance is low."
    )


def build_single_prompt(
    passage: InputPassage,
    candidates: Sequence[Candidate],
    max_chars: int = 800,
    structured: bool = True,
) -> str:
    line = (
        "BEST_MATCH: SEGMENT_[number] | SCORE:[0-100] | "
        "QUALITY:[perfect/excellent/good/acceptable] | REASON:[detailed explanation]"
    )
    if structured:
        answer = (
            f"Call the {TOOL_NAME} tool with a single entry using tweet_index 0. If you "
            f"cannot call tools, reply in this exact format:\n{line}"
        )
    else:
        answer = f"Return in this exact format:\n{line}"

    return (
        "Find the SINGLE BEST video segment that matches this tweet.\n\n"
        f'TWEET_0: "{passage.text}"\n\n'
        f"VIDEO SEGMENTS:\n{format_candidates(candidates, max_chars)}\n\n"
        "Select the ONE segment that best matches the tweet's content. Consider:\n"
        "- Direct relevance to the tweet's main topic\n"
        "- Specific examples or stories mentioned\n"
        "- Context that supports the tweet's message\n"
        "- Quality of the match over mere keyword presence\n\n"
        f"{answer}"
    )


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _accept(
    found: dict[int, Selection],
    selection: Selection,
    num_passages: int,
    num_candidates: int,
) -> None:
    if selection.passage_index >= num_passages:
        logger.debug("Dropping selection for unknown passage %d", selection.passage_index)
        return
    if selection.candidate_index >= num_candidates:
        logger.debug("Dropping out-of-range SEGMENT_%d", selection.candidate_index)
        return
    found.setdefault(selection.passage_index, selection)


def parse_match_lines(
    text: str, num_passages: int, num_candidates: int
) -> dict[int, Selection]:
    """Parse ``MATCH_<i>`` (and ``BEST_MATCH`` as passage 0) lines from *text*."""
    found: dict[int, Selection] = {}
    for line in text.splitlines():
        match = MATCH_LINE_RE.match(line)
        if match:
            passage_index = int(match.group(1))
            groups = match.groups()[1:]
        else:
            match = BEST_MATCH_LINE_RE.match(line)
            if not match:
                continue
            passage_index = 0
            groups = match.groups()

        segment, score, quality, reason = groups
        _accept(
            found,
            Selection(
                passage_index=passage_index,
                candidate_index=int(segment),
                score=int(score),
                quality=QualityTier.parse(quality),
                reason=reason,
            ),
            num_passages,
            num_candidates,
        )
    return found


def parse_tool_input(
    data: Any, num_passages: int, num_candidates: int
) -> dict[int, Selection]:
    """Validate a ``record_matches`` tool input; bad entries are skipped."""
    if isinstance(data, str):
        data = json.loads(data)
    entries = data.get("matches") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        logger.warning("Tool input has no matches list: %r", data)
        entries = []

    found: dict[int, Selection] = {}
    for entry in entries:
        try:
            item = ToolMatch.model_validate(entry)
        except ValidationError as exc:
            logger.debug("Dropping invalid tool entry %r: %s", entry, exc)
            continue
        _accept(
            found,
            Selection(
                passage_index=item.tweet_index,
                candidate_index=item.segment_index,
                score=item.score,
                quality=QualityTier.parse(item.quality),
                reason=item.reason.strip(),
            ),
            num_passages,
            num_candidates,
        )
    return found


def response_text(response: Any) -> str:
    """Concatenate the text blocks of a Messages API response."""
    return "\n".join(
        block.text for block in response.content if getattr(block, "type", None) == "text"
    )


def parse_response(response: Any, num_passages: int, num_candidates: int) -> dict[int, Selection]:
    """Extract selections from a Messages API response.

    Tool-use blocks are preferred; text blocks are only parsed when no tool
    block yields a selection.
    """
    found: dict[int, Selection] = {}
    for block in response.content:
        if getattr(block, "type", None) != "tool_use" or block.name != TOOL_NAME:
            continue
        try:
            selections = parse_tool_input(block.input, num_passages, num_candidates)
        except json.JSONDecodeError:
            logger.warning("Tool input was not valid JSON, falling back to text")
            continue
        for index, selection in selections.items():
            found.setdefault(index, selection)

    if found:
        return found
    return parse_match_lines(response_text(response), num_passages, num_candidates)
