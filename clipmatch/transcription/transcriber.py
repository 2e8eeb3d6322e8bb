"""Transcription service backends (OpenAI Whisper, AssemblyAI)."""

from __future__ import annotations

from typing import Any, Protocol

import openai
from openai import OpenAI

from clipmatch.config import Settings, settings
from clipmatch.transcription.models import RawTranscription

# Account-level failures: every remaining chunk would fail the same way.
FATAL_SERVICE_ERRORS: tuple[type[Exception], ...] = (
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    openai.RateLimitError,
)


class Transcriber(Protocol):
    """Anything that turns one audio file into relative-timestamp segments."""

    def transcribe(self, audio_path: str) -> RawTranscription: ...


class WhisperTranscriber:
    """OpenAI Whisper via ``audio.transcriptions`` with segment timestamps.

    Whisper rejects uploads over 25 MB; callers are expected to compress or
    chunk first (see :mod:`clipmatch.transcription.chunker`).
    """

    def __init__(self, client: Any | None = None, cfg: Settings = settings) -> None:
        self.client = client or OpenAI(
            api_key=cfg.openai_api_key or None,  # None -> SDK reads OPENAI_API_KEY
            timeout=cfg.request_timeout,
            max_retries=cfg.max_retries,
        )
        self.model = cfg.whisper_model
        self.language = cfg.transcription_language

    def transcribe(self, audio_path: str) -> RawTranscription:
        with open(audio_path, "rb") as audio_file:
            response = self.client.audio.transcriptions.create(
                file=audio_file,
                model=self.model,
                language=self.language,
                response_format="verbose_json",
                timestamp_granularities=["segment"],
                temperature=0.2,
            )

        segments = [
            (seg.text, float(seg.start), float(seg.end))
            for seg in (getattr(response, "segments", None) or [])
        ]
        return RawTranscription(segments=segments, language=getattr(response, "language", None))


class AssemblyAITranscriber:
    """AssemblyAI SDK transcription; utterance times arrive in milliseconds."""

    def __init__(self, cfg: Settings = settings) -> None:
        import assemblyai as aai  # type: ignore[import-untyped]  # no stubs; import inside function

        aai.settings.api_key = cfg.assemblyai_api_key
        self._aai = aai
        # speech_models (plural) is required by the current AssemblyAI API.
        self.config = aai.TranscriptionConfig(
            speech_models=["universal-3-pro"],
            language_code=cfg.transcription_language,
            speaker_labels=True,
        )

    def transcribe(self, audio_path: str) -> RawTranscription:
        transcriber = self._aai.Transcriber()
        transcript = transcriber.transcribe(audio_path, config=self.config)
        if transcript.status == self._aai.TranscriptStatus.error:
            raise RuntimeError(f"Transcription failed: {transcript.error}")

        utterances = transcript.utterances or []
        return RawTranscription(
            segments=[(u.text, u.start / 1000.0, u.end / 1000.0) for u in utterances],
            language=getattr(transcript, "language_code", None),
        )


def get_transcriber(cfg: Settings = settings) -> Transcriber:
    """Build the backend named by ``cfg.transcription_provider``.

    Raises:
        ValueError: If the provider is not recognized.
    """
    dispatch: dict[str, type[WhisperTranscriber] | type[AssemblyAITranscriber]] = {
        "whisper": WhisperTranscriber,
        "openai": WhisperTranscriber,
        "assemblyai": AssemblyAITranscriber,
    }
    backend = dispatch.get(cfg.transcription_provider.lower())
    if backend is None:
        msg = (
            f"Unknown transcription provider: {cfg.transcription_provider!r}. "
            f"Supported: {list(dispatch.keys())}"
        )
        raise ValueError(msg)
    return backend(cfg=cfg)
