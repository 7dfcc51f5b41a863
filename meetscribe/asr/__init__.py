"""ASR: swappable Whisper-compatible transcribers."""
from .base import ASRResult, SegmentTimestamp, Transcriber, WordTimestamp
from .local_whisper import LocalWhisperEngine, load_whisper_model
from .cloudflare import CloudflareWhisperEngine

__all__ = [
    "ASRResult",
    "SegmentTimestamp",
    "Transcriber",
    "WordTimestamp",
    "LocalWhisperEngine",
    "CloudflareWhisperEngine",
    "load_whisper_model",
]
