"""Fair distribution of the per-request candidate budget across videos."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TypeVar

from clipmatch.matching.models import Candidate

logger = logging.getLogger(__name__)

T = TypeVar("T")


def allocate_quotas(budget: int, num_videos: int) -> list[int]:
    """Split *budget* into *num_videos* shares that sum exactly to *budget*.

    Every video gets ``budget // num_videos``; the first ``budget % num_videos``
    videos get one more.
    """
    if num_videos <= 0:
        return []
    if budget < 0:
        raise ValueError(f"budget must be non-negative, got {budget}")
    base, remainder = divmod(budget, num_videos)
    return [base + 1 if i < remainder else base for i in range(num_videos)]


def subsample_evenly(items: Sequence[T], quota: int) -> list[T]:
    """Keep *quota* items spread evenly over *items* by index stride.

    Returns everything when there are no more items than the quota.
    """
    count = len(items)
    if count <= quota:
        return list(items)
    if quota <= 0:
        return []
    stride = count / quota
    return [items[int(i * stride)] for i in range(quota)]


def allocate_candidates(
    per_video: Sequence[Sequence[Candidate]], budget: int
) -> list[Candidate]:
    """Apply the fair quota to each video's candidates and flatten in video order.

    The position of a candidate in the returned list is its per-call index
    (``SEGMENT_<i>``) in the request sent to the reasoning service.
    """
    quotas = allocate_quotas(budget, len(per_video))
    selected: list[Candidate] = []
    for video_candidates, quota in zip(per_video, quotas, strict=True):
        # Timeline order, so the stride spreads picks across the whole video
        candidates = sorted(video_candidates, key=lambda c: (c.start_offset, c.window_size))
        kept = subsample_evenly(candidates, quota)
        if len(kept) < len(candidates):
            logger.info(
                "Video %s: kept %d of %d candidates (quota %d)",
                candidates[0].video_id,
                len(kept),
                len(candidates),
                quota,
            )
        selected.extend(kept)
    return selected
