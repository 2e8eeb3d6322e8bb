"""Tests for pre-built transcript loaders (VTT/SRT/JSON)."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from clipmatch.transcription.parsers import (
    load_transcript_file,
    parse_json,
    parse_transcript,
    parse_vtt,
)

SAMPLE_VTT = """WEBVTT

1
00:00:01.000 --> 00:00:04.500
<v Alice>Welcome to the show.

2
00:00:05.000 --> 00:00:09.250
Today we talk about focus
and deep work.

3
00:01:00.000 --> 00:01:00.000
zero length cue
"""

SAMPLE_SRT = """1
00:00:01,000 --> 00:00:03,000
First line

2
00:00:03,500 --> 00:00:06,000
Second line
"""


class TestParseVtt:
    def test_segments_and_times(self) -> None:
        segments = parse_vtt(SAMPLE_VTT)
        assert len(segments) == 2
        assert segments[0].text == "Welcome to the show."
        assert segments[0].offset == 1.0
        assert segments[0].duration == 3.5
        assert segments[1].text == "Today we talk about focus and deep work."
        assert segments[1].end == 9.25

    def test_srt_comma_timestamps(self) -> None:
        segments = parse_transcript(SAMPLE_SRT, "srt")
        assert [s.offset for s in segments] == [1.0, 3.5]

    def test_minute_second_timestamps(self) -> None:
        segments = parse_vtt("WEBVTT\n\n01:02.000 --> 01:05.500\nshort form\n")
        assert segments[0].offset == 62.0
        assert segments[0].duration == 3.5


class TestParseJson:
    def test_offset_duration_list(self) -> None:
        content = json.dumps([{"text": "hi", "offset": 2.0, "duration": 1.5}])
        [seg] = parse_json(content)
        assert (seg.text, seg.offset, seg.duration) == ("hi", 2.0, 1.5)

    def test_whisper_segments(self) -> None:
        content = json.dumps(
            {"language": "en", "segments": [{"text": " hello", "start": 1.0, "end": 2.5}]}
        )
        [seg] = parse_json(content)
        assert seg.text == "hello"
        assert seg.duration == 1.5

    def test_assemblyai_milliseconds(self) -> None:
        content = json.dumps(
            {"utterances": [{"speaker": "A", "text": "hey", "start": 1500, "end": 4000}]}
        )
        [seg] = parse_json(content)
        assert seg.offset == 1.5
        assert seg.duration == 2.5

    def test_empty_text_dropped(self) -> None:
        content = json.dumps([{"text": "", "offset": 0, "duration": 1}])
        assert parse_json(content) == []

    def test_unknown_shape_raises(self) -> None:
        with pytest.raises(ValueError, match="Unrecognized"):
            parse_json(json.dumps({"captions": []}))


class TestParseTranscript:
    def test_sorted_by_offset(self) -> None:
        content = json.dumps(
            [
                {"text": "b", "offset": 10, "duration": 1},
                {"text": "a", "offset": 0, "duration": 1},
            ]
        )
        assert [s.text for s in parse_transcript(content, "json")] == ["a", "b"]

    def test_unknown_format(self) -> None:
        with pytest.raises(ValueError, match="Unknown transcript format"):
            parse_transcript("", "docx")


class TestLoadTranscriptFile:
    def test_video_id_defaults_to_stem(self, tmp_path: Path) -> None:
        path = tmp_path / "keynote.vtt"
        path.write_text(SAMPLE_VTT, encoding="utf-8")

        transcript = load_transcript_file(path)

        assert transcript.video_id == "keynote"
        assert len(transcript.segments) == 2
        assert transcript.total_duration == 9.25

    def test_explicit_video_id(self, tmp_path: Path) -> None:
        path = tmp_path / "t.json"
        path.write_text(json.dumps([{"text": "x", "offset": 0, "duration": 1}]), encoding="utf-8")
        assert load_transcript_file(path, "panel").video_id == "panel"
