"""Loaders for pre-built transcripts (WebVTT and JSON formats)."""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from clipmatch.transcription.models import TranscriptSegment, VideoTranscript


def _parse_vtt_timestamp(ts: str) -> float:
    """Convert a VTT timestamp (HH:MM:SS.mmm) to seconds."""
    parts = ts.strip().split(":")
    if len(parts) == 3:
        hours, minutes, seconds = parts
    elif len(parts) == 2:
        hours = "0"
        minutes, seconds = parts
    else:
        return 0.0
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def parse_vtt(content: str) -> list[TranscriptSegment]:
    """Parse a WebVTT file into transcript segments.

    Handles timestamps like ``00:01:23.456 --> 00:01:30.789`` (and the SRT
    comma variant).  Inline voice tags (``<v Name>``) and other markup are
    stripped; speakers are not tracked.
    """
    segments: list[TranscriptSegment] = []

    timestamp_re = re.compile(
        r"(\d{1,2}:\d{2}(?::\d{2})?[.,]\d{3})\s*-->\s*(\d{1,2}:\d{2}(?::\d{2})?[.,]\d{3})"
    )
    tag_re = re.compile(r"<[^>]+>")

    lines = content.strip().splitlines()
    i = 0
    while i < len(lines):
        line = lines[i].strip()
        match = timestamp_re.search(line)
        if match:
            start = _parse_vtt_timestamp(match.group(1).replace(",", "."))
            end = _parse_vtt_timestamp(match.group(2).replace(",", "."))

            # Collect text lines until blank line or next timestamp / end
            text_lines: list[str] = []
            i += 1
            while i < len(lines) and lines[i].strip() and not timestamp_re.search(lines[i]):
                text_lines.append(lines[i].strip())
                i += 1

            full_text = tag_re.sub("", " ".join(text_lines)).strip()
            if full_text and end > start:
                segments.append(TranscriptSegment(text=full_text, offset=start, duration=end - start))
        else:
            i += 1

    return segments


def _segment_from_item(item: dict[str, Any], ms: bool = False) -> TranscriptSegment:
    scale = 1000.0 if ms else 1.0
    text = str(item.get("text", "")).strip()
    if "offset" in item:
        offset = float(item["offset"]) / scale
        duration = float(item.get("duration", 0.0)) / scale
    else:
        offset = float(item.get("start", item.get("start_time", 0.0))) / scale
        end = float(item.get("end", item.get("end_time", offset * scale))) / scale
        duration = end - offset
    return TranscriptSegment(text=text, offset=offset, duration=max(0.0, duration))


def parse_json(content: str) -> list[TranscriptSegment]:
    """Parse a JSON transcript.

    Supported formats:

    Internal / caption-scraper format (seconds)::

        {"segments": [{"text": "...", "offset": s, "duration": s}]}
        [{"text": "...", "offset": s, "duration": s}]

    OpenAI Whisper ``verbose_json`` (seconds)::

        {"language": "en", "segments": [{"text": "...", "start": s, "end": s}]}

    AssemblyAI (milliseconds)::

        {"utterances": [{"speaker": "A", "text": "...", "start": ms, "end": ms}]}

    Empty-text items are dropped.
    """
    data = json.loads(content)

    if isinstance(data, list):
        items, ms = data, False
    elif "utterances" in data:
        items, ms = data["utterances"], True
    elif "segments" in data:
        items, ms = data["segments"], False
    else:
        msg = f"Unrecognized JSON transcript format. Keys: {list(data.keys())}"
        raise ValueError(msg)

    segments = [_segment_from_item(item, ms=ms) for item in items]
    return [s for s in segments if s.text]


def parse_transcript(content: str, format: str) -> list[TranscriptSegment]:
    """Dispatch to the correct parser based on *format*.

    Args:
        content: Raw transcript text.
        format: ``"vtt"``, ``"srt"`` or ``"json"``.

    Returns:
        Parsed transcript segments, sorted by offset.

    Raises:
        ValueError: If *format* is not recognized.
    """
    dispatch: dict[str, Callable[[str], list[TranscriptSegment]]] = {
        "vtt": parse_vtt,
        "srt": parse_vtt,
        "json": parse_json,
    }

    parser = dispatch.get(format)
    if parser is None:
        msg = f"Unknown transcript format: {format!r}. Supported: {list(dispatch.keys())}"
        raise ValueError(msg)

    return sorted(parser(content), key=lambda s: s.offset)


def load_transcript_file(path: str | Path, video_id: str | None = None) -> VideoTranscript:
    """Read a transcript file and wrap it as a :class:`VideoTranscript`.

    The format comes from the file extension; *video_id* defaults to the
    file stem.
    """
    path = Path(path)
    fmt = path.suffix.lstrip(".").lower()
    segments = parse_transcript(path.read_text(encoding="utf-8"), fmt)
    return VideoTranscript(video_id=video_id or path.stem, segments=segments)
