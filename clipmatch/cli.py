"""Command-line entry point: match a tweet thread against one or more videos.

Entry point
-----------
Run as a module::

    python -m clipmatch.cli thread.txt \\
        --audio keynote=recordings/keynote.mp3 \\
        --transcript panel=transcripts/panel.vtt \\
        --usage high --output clips.json

Use ``--help`` for full argument documentation.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from clipmatch.errors import ClipMatchError, NoTranscriptsError
from clipmatch.pipeline_config import UsageConfig, UsageLevel

logger = logging.getLogger(__name__)


# ── CLI entry point ────────────────────────────────────────────────────────


def _build_arg_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="python -m clipmatch.cli",
        description=(
            "Tweet-to-clip matcher\n\n"
            "Splits a thread on '---' lines, transcribes or loads each video's\n"
            "transcript, and picks one clip per tweet using Claude. Results are\n"
            "written as JSON together with run statistics."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "thread",
        metavar="THREAD_FILE",
        help="Text file holding the thread; tweets are separated by '---'.",
    )
    parser.add_argument(
        "--audio",
        nargs="+",
        metavar="ID=PATH",
        default=[],
        help="Audio files to transcribe, as VIDEO_ID=PATH pairs.",
    )
    parser.add_argument(
        "--transcript",
        nargs="+",
        metavar="ID=PATH",
        default=[],
        help="Existing transcripts (.vtt, .srt, .json), as VIDEO_ID=PATH pairs.",
    )
    parser.add_argument(
        "--usage",
        choices=[level.value for level in UsageLevel],
        default=UsageLevel.MEDIUM.value,
        help="Reasoning budget: candidates per request and response length (default: medium).",
    )
    parser.add_argument(
        "--quality",
        action="store_true",
        default=False,
        help="Match each tweet with its own request and avoid overlapping clips (slower).",
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Override the Claude model from settings.",
    )
    parser.add_argument(
        "--output",
        metavar="PATH",
        default=None,
        help="Write the JSON result here instead of stdout.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug logging.",
    )

    return parser


def _parse_source(value: str) -> tuple[str, str]:
    """Parse a 'VIDEO_ID=PATH' pair.

    Raises ValueError if the format is invalid.
    """
    video_id, sep, path = value.partition("=")
    if not sep or not video_id or not path:
        msg = f"Invalid source {value!r}. Expected VIDEO_ID=PATH, e.g. keynote=talk.mp3."
        raise ValueError(msg)
    return video_id, path


def main(argv: list[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.audio and not args.transcript:
        parser.error("Provide at least one --audio or --transcript source.")

    try:
        audio = dict(_parse_source(s) for s in args.audio)
        transcript_files = dict(_parse_source(s) for s in args.transcript)
    except ValueError as exc:
        parser.error(str(exc))

    # SDK imports deferred until arguments are valid
    from clipmatch.matching.engine import MatchingEngine, match_statistics, parse_thread
    from clipmatch.transcription.parsers import load_transcript_file

    try:
        passages = parse_thread(Path(args.thread).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        print(f"ERROR: Could not read thread: {exc}", file=sys.stderr)
        return 1

    try:
        transcripts = [
            load_transcript_file(path, video_id) for video_id, path in transcript_files.items()
        ]
    except (OSError, ValueError) as exc:
        print(f"ERROR: Could not load transcript: {exc}", file=sys.stderr)
        return 1

    engine = MatchingEngine()
    try:
        if audio:
            try:
                transcripts.extend(engine.load_transcripts(audio))
            except NoTranscriptsError:
                if not transcripts:
                    raise
                logger.warning("No audio could be transcribed; using transcript files only")
        usage = UsageConfig.from_level(args.usage, quality_mode=args.quality, model=args.model)
        records = engine.match(passages, transcripts, usage)
    except ClipMatchError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    result = {
        "matches": [r.to_dict() for r in records],
        "statistics": match_statistics(records),
    }
    payload = json.dumps(result, indent=2)
    if args.output:
        Path(args.output).write_text(payload + "\n", encoding="utf-8")
        logger.info("Wrote %d matches to %s", len(records), args.output)
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
