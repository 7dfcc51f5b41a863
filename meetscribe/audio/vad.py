"""
VADProcessor: Voice Activity Detection on 20ms PCM frames.

Uses webrtcvad (aggressiveness 0–3). Detects speech vs silence per frame.
The gap diarizer uses this to find speech regions inside a chunk.
"""
from __future__ import annotations

import numpy as np
import webrtcvad

from meetscribe.audio.receiver import float32_to_pcm_bytes
from meetscribe.config import get_settings


class VADProcessor:
    """
    Wraps webrtcvad. Frame must be exactly 10, 20, or 30 ms of 16 kHz mono PCM.
    We use 20ms frames (320 samples = 640 bytes).
    """

    def __init__(self, aggressiveness: int = 2, sample_rate: int | None = None) -> None:
        """
        aggressiveness: 0 (least aggressive) to 3 (most aggressive).
        Higher = more frames classified as silence.
        """
        self._vad = webrtcvad.Vad(aggressiveness)
        settings = get_settings()
        self._frame_ms = settings.FRAME_MS
        self._sample_rate = sample_rate or settings.SAMPLE_RATE
        self._frame_samples = self._sample_rate * self._frame_ms // 1000
        self._frame_bytes = self._frame_samples * settings.SAMPLE_WIDTH

    def is_speech(self, frame: bytes) -> bool:
        """
        Returns True if frame contains speech, False if silence/noise.
        frame must be exactly frame_bytes (e.g. 640 for 20ms @ 16kHz).
        """
        if len(frame) != self._frame_bytes:
            return False
        return self._vad.is_speech(frame, self._sample_rate)

    def speech_flags(self, audio: np.ndarray) -> list[bool]:
        """Classify float32 mono audio frame by frame; a trailing partial frame is ignored."""
        pcm = float32_to_pcm_bytes(audio)
        flags: list[bool] = []
        for offset in range(0, len(pcm) - self._frame_bytes + 1, self._frame_bytes):
            flags.append(self.is_speech(pcm[offset : offset + self._frame_bytes]))
        return flags

    @property
    def frame_ms(self) -> int:
        return self._frame_ms

    @property
    def frame_bytes(self) -> int:
        return self._frame_bytes

    @property
    def frame_samples(self) -> int:
        return self._frame_samples
