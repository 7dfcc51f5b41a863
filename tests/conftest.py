# File: tests/conftest.py

import asyncio

import numpy as np
import pytest

from meetscribe.asr.base import ASRResult, Transcriber
from meetscribe.audio.chunk_buffer import AudioChunk, AudioChunkBuffer
from meetscribe.diarization.base import Diarizer
from meetscribe.diarization.models import DiarizationResult, RawSpeakerSegment

SAMPLE_RATE = 16000


def marked_audio(marker: int, seconds: float, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """Constant-valued audio; the value identifies which chunk a backend received."""
    return np.full(int(round(seconds * sample_rate)), marker / 100.0, dtype=np.float32)


def marker_of(audio: np.ndarray) -> int:
    if audio.size == 0:
        return -1
    return int(round(float(audio[0]) * 100))


def seg(speaker, start, end, embedding=()):
    return RawSpeakerSegment(speaker_id=speaker, start=start, end=end, confidence=0.9, embedding=tuple(embedding))


class FakeTranscriber(Transcriber):
    """Answers per audio marker; optional per-marker delay and failure."""

    def __init__(self, texts=None, delays=None, failures=None, default_text="hello world"):
        self.texts = texts or {}
        self.delays = delays or {}
        self.failures = failures or {}
        self.default_text = default_text
        self.calls = []
        self.completed = []

    async def transcribe(self, audio, is_final=True):
        key = marker_of(audio)
        self.calls.append(key)
        await asyncio.sleep(self.delays.get(key, 0))
        if key in self.failures:
            raise self.failures[key]
        self.completed.append(key)
        return ASRResult(text=self.texts.get(key, self.default_text), confidence=1.0)

    @property
    def sample_rate(self):
        return SAMPLE_RATE


class FakeDiarizer(Diarizer):
    """Returns canned segments per audio marker (chunk-relative times)."""

    def __init__(self, segments=None, error=None):
        self.segments = segments or {}
        self.error = error
        self.calls = 0

    async def diarize(self, chunk: AudioChunk):
        self.calls += 1
        if self.error is not None:
            raise self.error
        found = self.segments.get(marker_of(chunk.samples))
        if found is None:
            return DiarizationResult.unavailable()
        return DiarizationResult(segments=tuple(found))


@pytest.fixture
def one_second_buffer():
    """1s chunks, no overlap, 0.5s minimum tail."""
    return AudioChunkBuffer(
        target_duration=1.0,
        overlap_duration=0.0,
        min_chunk_duration=0.5,
        sample_rate=SAMPLE_RATE,
    )
