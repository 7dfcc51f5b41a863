"""
Transcriber: abstract capability interface for Whisper-compatible ASR.

Implementations: LocalWhisperEngine (faster-whisper), CloudflareWhisperEngine.
All run heavy work in executor to avoid blocking the event loop.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import numpy as np


@dataclass
class WordTimestamp:
    """Single word with start/end in seconds."""

    word: str
    start: float
    end: float


@dataclass
class SegmentTimestamp:
    """One segment: start/end in seconds, text."""

    start: float
    end: float
    text: str


@dataclass
class ASRResult:
    """Result of one transcribe call."""

    text: str
    confidence: float  # 0.0–1.0 estimate
    word_timestamps: list[WordTimestamp] | None = None  # if available
    segments: list[SegmentTimestamp] | None = None


class Transcriber(ABC):
    """
    Abstract transcriber. Accepts float32 mono audio (normalized [-1, 1]).
    transcribe() is async; implementations may run sync work in executor.
    Raises TranscriptionUnavailable when the backend cannot serve requests.
    """

    @abstractmethod
    async def transcribe(self, audio: "np.ndarray", is_final: bool = True) -> ASRResult:
        """
        Transcribe one chunk of audio.
        - is_final=False: faster decode, may change.
        - is_final=True: stable decode, word_timestamps if available.
        Must not block event loop; run heavy work in executor.
        """
        ...

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """Expected sample rate (e.g. 16000)."""
        ...
