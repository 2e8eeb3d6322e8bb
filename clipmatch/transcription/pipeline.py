"""End-to-end transcription: size check -> compress -> chunk -> transcribe -> merge."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterable

from clipmatch.errors import TranscriptionExhaustedError
from clipmatch.transcription.chunker import AudioChunker
from clipmatch.transcription.dedup import deduplicate_segments
from clipmatch.transcription.models import (
    AudioChunk,
    RawTranscription,
    TranscriptSegment,
    VideoTranscript,
)
from clipmatch.transcription.transcriber import (
    FATAL_SERVICE_ERRORS,
    Transcriber,
    get_transcriber,
)

logger = logging.getLogger(__name__)


def to_segments(raw: RawTranscription, shift: float = 0.0) -> list[TranscriptSegment]:
    """Convert relative ``(text, start, end)`` tuples to absolute segments.

    Empty-text and zero-duration results are dropped.
    """
    segments: list[TranscriptSegment] = []
    for text, start, end in raw.segments:
        text = text.strip()
        duration = end - start
        if not text or duration <= 0:
            continue
        segments.append(TranscriptSegment(text=text, offset=start + shift, duration=duration))
    return segments


class ChunkTranscriber:
    """Transcribes chunks one at a time and merges them into one ordered store."""

    def __init__(self, transcriber: Transcriber) -> None:
        self.transcriber = transcriber

    def transcribe_chunks(
        self, chunks: Iterable[AudioChunk], expected: int | None = None
    ) -> list[TranscriptSegment]:
        """Transcribe *chunks* in order and return deduplicated absolute segments.

        Each chunk file is deleted once it has been transcribed (or has
        failed).  *expected* is the planned chunk count when *chunks* is a
        lazy iterator; it only affects the early-abort threshold.

        Authentication, permission and rate-limit errors from the service
        are not counted as chunk failures; they propagate unchanged.

        Raises:
            TranscriptionExhaustedError: If more than half of the chunks fail.
                The last chunk error is chained as ``__cause__``.
        """
        merged: list[TranscriptSegment] = []
        attempted = 0
        failed = 0
        last_error: Exception | None = None

        for chunk in chunks:
            attempted += 1
            try:
                raw = self.transcriber.transcribe(chunk.path)
            except FATAL_SERVICE_ERRORS:
                raise
            except Exception as exc:
                failed += 1
                last_error = exc
                logger.exception(
                    "Transcription failed for chunk %d (%.0fs-%.0fs)",
                    chunk.index,
                    chunk.start_offset,
                    chunk.end_offset,
                )
                if expected and failed * 2 > expected:
                    raise TranscriptionExhaustedError(
                        f"{failed} of {expected} chunks failed to transcribe"
                    ) from exc
                continue
            finally:
                _remove_quietly(chunk.path)

            segments = to_segments(raw, shift=chunk.start_offset)
            logger.info("Chunk %d: %d segments", chunk.index, len(segments))
            merged.extend(segments)

        if attempted and failed * 2 > attempted:
            raise TranscriptionExhaustedError(
                f"{failed} of {attempted} chunks failed to transcribe"
            ) from last_error

        deduped = deduplicate_segments(merged)
        logger.info(
            "Merged %d chunk segments into %d after overlap dedup", len(merged), len(deduped)
        )
        return deduped


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


def transcribe_audio_file(
    audio_path: str,
    video_id: str,
    transcriber: Transcriber | None = None,
    chunker: AudioChunker | None = None,
) -> VideoTranscript:
    """Transcribe one audio file of any size into a :class:`VideoTranscript`.

    Files within the upload ceiling are sent as-is.  Larger files are first
    compressed; if that is not enough they are chunked with overlap.  Every
    temporary file lives in a ``TemporaryDirectory`` that is removed however
    this function exits.

    Errors from a direct (unchunked) upload propagate unchanged so the caller
    can react to authentication or rate-limit failures; the chunked path lets
    the same service errors through.
    """
    transcriber = transcriber or get_transcriber()
    chunker = chunker or AudioChunker()

    if chunker.fits(audio_path):
        logger.info("%s is within the upload limit, transcribing directly", audio_path)
        segments = to_segments(transcriber.transcribe(audio_path))
        return VideoTranscript(video_id=video_id, segments=segments)

    with tempfile.TemporaryDirectory(prefix="clipmatch-") as temp_dir:
        compressed = chunker.compress_to_fit(audio_path, temp_dir)
        if compressed is not None:
            logger.info("Compression brought %s under the limit", audio_path)
            segments = to_segments(transcriber.transcribe(compressed))
            return VideoTranscript(video_id=video_id, segments=segments)

        logger.info("%s still exceeds the limit after compression, chunking", audio_path)
        plan = chunker.plan(audio_path)
        segments = ChunkTranscriber(transcriber).transcribe_chunks(
            chunker.iter_chunks(audio_path, temp_dir, plan), expected=plan.count
        )
        return VideoTranscript(video_id=video_id, segments=segments)
