"""
LocalWhisperEngine: Whisper-compatible transcriber using faster-whisper.

- Model loaded ONCE at startup (singleton, injected at construction).
- Audio: float32 mono [-1, 1] at SAMPLE_RATE.
- Runs in executor so event loop stays responsive.
"""
from __future__ import annotations

import asyncio
from typing import Any

import numpy as np

from meetscribe.asr.base import ASRResult, SegmentTimestamp, Transcriber, WordTimestamp
from meetscribe.config import get_settings
from meetscribe.errors import TranscriptionUnavailable

# Type for shared WhisperModel (loaded at startup)
WhisperModelT = Any


def load_whisper_model() -> WhisperModelT:
    """Load faster-whisper model once. Called at startup when ASR_BACKEND=local."""
    try:
        from faster_whisper import WhisperModel
    except ImportError as err:
        raise TranscriptionUnavailable(
            "faster-whisper is required for ASR_BACKEND=local (pip install 'meetscribe[local]')"
        ) from err
    settings = get_settings()
    return WhisperModel(
        settings.LOCAL_WHISPER_MODEL,
        device=settings.LOCAL_WHISPER_DEVICE,
        compute_type=settings.LOCAL_WHISPER_COMPUTE_TYPE,
    )


class LocalWhisperEngine(Transcriber):
    """
    Local Whisper via faster-whisper. Uses shared model (singleton).
    transcribe() is async; heavy work runs in executor.
    """

    def __init__(self, model: WhisperModelT | None = None) -> None:
        """
        model: shared WhisperModel instance (loaded at app startup).
        If None, every transcribe() raises TranscriptionUnavailable.
        """
        self._model = model

    def _transcribe_sync(self, audio: np.ndarray, is_final: bool) -> ASRResult:
        if self._model is None:
            raise TranscriptionUnavailable("local Whisper model not loaded")

        settings = get_settings()
        word_timestamps = is_final and settings.LOCAL_WHISPER_WORD_TIMESTAMPS

        segments, _ = self._model.transcribe(
            audio,
            beam_size=settings.LOCAL_WHISPER_BEAM_SIZE if is_final else 1,
            vad_filter=True,
            vad_parameters=dict(min_silence_duration_ms=300, speech_pad_ms=100),
            condition_on_previous_text=is_final,
            word_timestamps=word_timestamps,
        )

        parts: list[str] = []
        word_ts: list[WordTimestamp] = []
        seg_ts: list[SegmentTimestamp] = []

        for seg in segments:
            t = (seg.text or "").strip()
            if t:
                parts.append(t)
                seg_ts.append(SegmentTimestamp(start=seg.start, end=seg.end, text=t))
            if word_timestamps and getattr(seg, "words", None):
                for w in seg.words:
                    word_ts.append(WordTimestamp(word=(w.word or "").strip(), start=w.start, end=w.end))

        text = " ".join(parts).strip()
        return ASRResult(
            text=text,
            confidence=1.0 if text else 0.0,
            word_timestamps=word_ts or None,
            segments=seg_ts or None,
        )

    async def transcribe(self, audio: np.ndarray, is_final: bool = True) -> ASRResult:
        """Run _transcribe_sync in executor so event loop is not blocked."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._transcribe_sync, audio, is_final)

    @property
    def sample_rate(self) -> int:
        return get_settings().SAMPLE_RATE
