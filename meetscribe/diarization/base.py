"""
Diarizer: abstract capability interface for "who spoke when".

Implementations: GapDiarizer (VAD + gap alternation), NullDiarizer.
Segments are returned relative to the chunk start.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from meetscribe.diarization.models import DiarizationResult

if TYPE_CHECKING:
    from meetscribe.audio.chunk_buffer import AudioChunk


class Diarizer(ABC):
    """
    Abstract diarizer. diarize() is async; implementations may run sync work in executor.
    Returning DiarizationResult.unavailable() is not an error.
    """

    @abstractmethod
    async def diarize(self, chunk: "AudioChunk") -> DiarizationResult:
        """Partition one chunk into speaker segments (chunk-relative seconds)."""
        ...


class NullDiarizer(Diarizer):
    """Diarization disabled: every chunk is attributed to an unknown speaker."""

    async def diarize(self, chunk: "AudioChunk") -> DiarizationResult:
        return DiarizationResult.unavailable()
