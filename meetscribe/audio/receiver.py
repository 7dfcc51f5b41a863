"""
AudioReceiver: accepts raw PCM audio from WebSocket and yields float32 samples.

- Expects PCM 16-bit little-endian mono at SAMPLE_RATE.
- Odd trailing bytes (half a sample) are kept for the next message.
- to_mono_float32() normalizes capture buffers (int16 or float, mono or
  multi-channel, any rate) to the session contract: mono float32 at SAMPLE_RATE.
"""
from __future__ import annotations

from typing import Sequence

import numpy as np

from meetscribe.config import get_settings
from meetscribe.errors import AudioFormatInvalid


def pcm_bytes_to_float32(pcm_bytes: bytes) -> np.ndarray:
    """Convert PCM 16-bit mono bytes to float32 [-1.0, 1.0]."""
    samples = np.frombuffer(pcm_bytes, dtype=np.int16)
    return samples.astype(np.float32) / 32768.0


def float32_to_pcm_bytes(audio: np.ndarray) -> bytes:
    """Convert float32 [-1, 1] to PCM 16-bit mono bytes."""
    samples = (np.asarray(audio, dtype=np.float32) * 32767).clip(-32768, 32767).astype(np.int16)
    return samples.tobytes()


def to_mono_float32(
    samples: np.ndarray | Sequence[float],
    sample_rate: int,
    target_rate: int,
) -> np.ndarray:
    """
    Convert a capture buffer to mono float32 at target_rate.

    - 2-D input is (frames, channels); channels are averaged to mono.
    - int16 input is scaled to [-1, 1].
    - Rate conversion picks the nearest source frame (no filtering), which is
      enough for speech models that resample internally anyway.
    Raises AudioFormatInvalid on unusable input.
    """
    if sample_rate <= 0 or target_rate <= 0:
        raise AudioFormatInvalid(f"sample rate must be positive (got {sample_rate})")
    arr = np.asarray(samples)
    if arr.ndim == 0 or arr.ndim > 2:
        raise AudioFormatInvalid(f"expected 1-D or (frames, channels) audio, got shape {arr.shape}")
    if arr.dtype == np.int16:
        arr = arr.astype(np.float32) / 32768.0
    elif not np.issubdtype(arr.dtype, np.number):
        raise AudioFormatInvalid(f"unsupported sample dtype {arr.dtype}")
    arr = arr.astype(np.float32, copy=False)
    if arr.ndim == 2:
        if arr.shape[1] == 0:
            raise AudioFormatInvalid("audio buffer has zero channels")
        arr = arr.mean(axis=1, dtype=np.float32)
    if sample_rate != target_rate and arr.size:
        ratio = sample_rate / target_rate
        target_count = int(arr.size / ratio)
        idx = (np.arange(target_count) * ratio).astype(np.int64)
        arr = arr[idx[idx < arr.size]]
    return arr


class AudioReceiver:
    """
    Buffers incoming binary WebSocket messages and returns whole samples.
    Any remainder (odd byte) is kept for the next message.
    """

    def __init__(self, sample_rate: int | None = None) -> None:
        settings = get_settings()
        self._sample_rate = sample_rate or settings.SAMPLE_RATE
        self._buffer = bytearray()
        self._total_samples = 0

    def feed(self, data: bytes) -> np.ndarray:
        """Append raw PCM bytes; return all complete samples as float32."""
        self._buffer.extend(data)
        usable = len(self._buffer) - (len(self._buffer) % 2)
        if usable == 0:
            return np.zeros(0, dtype=np.float32)
        samples = pcm_bytes_to_float32(bytes(self._buffer[:usable]))
        del self._buffer[:usable]
        self._total_samples += samples.size
        return samples

    @property
    def elapsed_seconds(self) -> float:
        """Audio time received so far (session seconds)."""
        return self._total_samples / float(self._sample_rate)

    def remaining_bytes(self) -> int:
        """Bytes left in buffer (incomplete sample)."""
        return len(self._buffer)
