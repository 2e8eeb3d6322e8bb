from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    assemblyai_api_key: str = ""  # Only needed with transcription_provider="assemblyai"

    # Reasoning service
    llm_model: str = "claude-sonnet-4-20250514"
    llm_temperature: float = 0.2
    request_timeout: float = 300.0
    max_retries: int = 2
    use_structured_output: bool = True
    parse_retries: int = 0

    # Transcription service
    transcription_provider: str = "whisper"
    whisper_model: str = "whisper-1"
    transcription_language: str = "en"
    max_upload_bytes: int = 24 * 1024 * 1024  # Whisper rejects > 25 MB

    # Media tool
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    media_timeout: float = 120.0

    # Audio chunking (seconds / kbit/s)
    min_audio_duration: float = 1.0
    max_chunk_duration: float = 300.0
    min_chunk_duration: float = 60.0
    chunk_overlap: float = 30.0
    chunk_bitrate_kbps: int = 64
    recompress_bitrate_kbps: int = 32
    compress_bitrate_kbps: int = 48
    ultra_compress_bitrate_kbps: int = 24
    sample_rate: int = 16000

    # Candidate windows
    window_sizes: tuple[int, ...] = (10, 20)
    min_candidate_chars: int = 100
    batch_candidate_chars: int = 500
    single_candidate_chars: int = 800

    # Overlap guard
    overlap_buffer: float = 10.0
    overlap_shift: float = 30.0
    max_shift_attempts: int = 4

    # Transcript cache
    cache_ttl_seconds: float = 24 * 60 * 60
    cache_capacity: int = 500

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
