"""Application configuration. Loads from env vars."""
from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    """App settings. Override via environment variables."""

    # Audio: mono float32 internally; PCM 16-bit mono 16kHz on the wire
    SAMPLE_RATE: int = 16000
    SAMPLE_WIDTH: int = 2  # 16-bit
    CHANNELS: int = 1

    # Frame: 20ms @ 16kHz = 320 samples = 640 bytes (VAD granularity)
    FRAME_MS: int = 20
    FRAME_BYTES: int = 640  # 320 * 2

    # Diarization-oriented buffering (short windows keep speaker turns local)
    DIARIZATION_CHUNK_SECONDS: float = 10.0
    DIARIZATION_OVERLAP_SECONDS: float = 1.0

    # Transcription-oriented buffering (session pipeline)
    TRANSCRIPTION_CHUNK_SECONDS: float = 60.0
    TRANSCRIPTION_OVERLAP_SECONDS: float = 2.0
    MIN_CHUNK_SECONDS: float = 5.0  # tail shorter than this is too short to be useful
    DISCARD_SHORT_TAIL: bool = True

    # Speaker label stabilization
    STABILIZER_REQUIRED_CONSECUTIVE: int = 2
    STABILIZER_SHORT_SEGMENT_SECONDS: float = 0.3  # shorter segments inherit current label
    SMOOTHING_MIN_DURATION_SECONDS: float = 0.5  # A-B-A spikes shorter than this are merged

    # Meeting classification
    CLASSIFIER_FULL_DURATION_SECONDS: float = 60.0
    CLASSIFIER_FULL_SEGMENT_COUNT: int = 20
    CLASSIFIER_EMBEDDING_STRATEGY: Literal["first", "centroid"] = "first"
    CLASSIFIER_CONFIDENT_THRESHOLD: float = 0.8

    # External calls (per chunk)
    EXTERNAL_CALL_TIMEOUT_SECONDS: float = 120.0
    MAX_CONCURRENT_CHUNKS: int = 1  # in-flight chunks per session; results still applied in order

    # ASR backend: "local" | "cloudflare"
    ASR_BACKEND: Literal["local", "cloudflare"] = "local"

    # Cloudflare Workers AI (when ASR_BACKEND=cloudflare)
    CLOUDFLARE_ACCOUNT_ID: str = ""
    CLOUDFLARE_API_TOKEN: str = ""
    CLOUDFLARE_TIMEOUT_SECONDS: float = 30.0

    # Local Whisper (when ASR_BACKEND=local); model loaded once at startup
    LOCAL_WHISPER_MODEL: str = "base"  # base | small | medium | large-v3
    LOCAL_WHISPER_DEVICE: Literal["cpu", "cuda"] = "cpu"
    LOCAL_WHISPER_COMPUTE_TYPE: Literal["int8", "float16"] = "int8"
    LOCAL_WHISPER_BEAM_SIZE: int = 5
    LOCAL_WHISPER_WORD_TIMESTAMPS: bool = True

    # Diarization backend: "gap" (VAD + gap alternation) | "none" (unknown speaker)
    DIARIZATION_BACKEND: Literal["gap", "none"] = "gap"
    DIARIZATION_SPEAKER_GAP_SEC: float = 0.5  # gap (sec) to alternate speaker
    DIARIZATION_MAX_SPEAKERS: int = 2
    DIARIZATION_VAD_AGGRESSIVENESS: int = 2
    DIARIZATION_MIN_SPEECH_SEC: float = 0.2  # drop speech regions shorter than this

    # Logging: level (DEBUG, INFO, WARNING, ERROR); file path empty = console only
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"


def get_settings() -> Settings:
    return Settings()
