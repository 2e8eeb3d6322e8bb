"""Exception hierarchy for the transcription and matching pipeline."""

from __future__ import annotations


class ClipMatchError(Exception):
    """Base class for all pipeline errors."""


class MediaToolError(ClipMatchError):
    """ffmpeg/ffprobe exited non-zero, timed out, or produced no output."""

    def __init__(self, message: str, stderr: str = "") -> None:
        super().__init__(message)
        self.stderr = stderr


class TooShortError(ClipMatchError):
    """Audio is shorter than the minimum duration worth transcribing."""


class ChunkingExhaustedError(ClipMatchError):
    """The first chunk, or more than half of all chunks, failed to extract."""


class TranscriptionExhaustedError(ClipMatchError):
    """More than half of the chunks failed to transcribe."""


class NoTranscriptsError(ClipMatchError):
    """A matching run was started without any video transcripts."""


class MatchingServiceError(ClipMatchError):
    """The reasoning service call failed (connection, timeout, or API error)."""
