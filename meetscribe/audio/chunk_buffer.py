"""
AudioChunkBuffer: accumulates mono samples and emits fixed-duration, overlapping chunks.

- Target duration: 10s for diarization-oriented buffering, 60s for
  transcription-oriented buffering (see for_diarization / for_transcription).
- Overlap: the trailing overlap_duration of every emitted chunk is kept at the
  start of the next one (speaker and acoustic continuity).
- Timeline: each chunk carries its start time in recording seconds; the next
  chunk starts at start + target_duration - overlap_duration.
- Sources: microphone ("mic") and system audio ("system") are buffered
  separately and only mixed when a chunk is emitted. Single-stream callers
  just use add_samples(), which feeds the mic source.

Logic:
1. add_samples() appends a capture buffer to one source. The elapsed-time
   marker of the very first buffer of a recording sets the first chunk start;
   after that the timeline only advances by chunk arithmetic.
2. Once either source holds target_samples, the first target_samples of each
   source are mixed and emitted, and each source keeps its samples from
   (target - overlap) onward.
3. flush() emits whatever un-emitted audio remains (end of recording).

Mixing: when both sources carry sound they are summed, and the sum is scaled
down if its peak exceeds MIX_PEAK_LIMIT. Otherwise the non-silent source is
used as is.

One writer at a time: all mutations happen under a lock.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from meetscribe.config import get_settings
from meetscribe.errors import AudioFormatInvalid

logger = logging.getLogger(__name__)

MIC = "mic"
SYSTEM = "system"
SOURCES = (MIC, SYSTEM)

# A source counts as silent when no sample exceeds this amplitude
SILENCE_THRESHOLD = 0.001
# Mixed peaks above this are scaled down (no hard clipping)
MIX_PEAK_LIMIT = 0.95


@dataclass(frozen=True, eq=False)
class AudioChunk:
    """
    One bounded window of mono float32 samples on the recording timeline.
    Consumed once by the transcriber/diarizer; samples are read-only.
    """

    index: int
    samples: np.ndarray
    start_time: float  # seconds since recording start
    sample_rate: int

    def __post_init__(self) -> None:
        self.samples.setflags(write=False)

    @property
    def duration(self) -> float:
        return len(self.samples) / float(self.sample_rate)

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration


@dataclass(frozen=True)
class BufferStats:
    """Diagnostics snapshot of the buffer."""

    duration: float
    sample_count: int
    rms: float
    start_time: float
    mic_duration: float = 0.0
    system_duration: float = 0.0
    mic_rms: float = 0.0
    system_rms: float = 0.0

    def describe(self) -> str:
        return (
            f"Duration: {self.duration:.1f}s ({self.sample_count} samples)\n"
            f"RMS: {self.rms:.4f}\n"
            f"Mic: {self.mic_duration:.1f}s (RMS: {self.mic_rms:.4f})\n"
            f"System: {self.system_duration:.1f}s (RMS: {self.system_rms:.4f})\n"
            f"Start time: {self.start_time:.1f}s"
        )


def _rms(samples: np.ndarray) -> float:
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples.astype(np.float64) ** 2)))


def _has_sound(samples: np.ndarray) -> bool:
    return samples.size > 0 and bool(np.any(np.abs(samples) > SILENCE_THRESHOLD))


def _padded(samples: np.ndarray, length: int) -> np.ndarray:
    out = np.zeros(length, dtype=np.float32)
    out[: samples.size] = samples
    return out


def mix_sources(mic: np.ndarray, system: np.ndarray) -> np.ndarray:
    """
    Combine mic and system windows that start at the same recording time.
    The result is as long as the longer window; a shorter one is zero-padded.
    """
    length = max(mic.size, system.size)
    has_mic = _has_sound(mic)
    has_system = _has_sound(system)

    if has_mic and has_system:
        mixed = _padded(mic, length) + _padded(system, length)
        peak = float(np.max(np.abs(mixed)))
        if peak > MIX_PEAK_LIMIT:
            mixed *= MIX_PEAK_LIMIT / peak
        return mixed
    if has_system:
        return _padded(system, length)
    # Mic only, or both silent
    return _padded(mic if mic.size else system, length)


class AudioChunkBuffer:
    """
    Fixed-duration, overlapping chunker on a single recording timeline.
    Returns AudioChunk objects instead of invoking callbacks so the caller
    decides where processing happens.
    """

    def __init__(
        self,
        target_duration: float | None = None,
        overlap_duration: float | None = None,
        min_chunk_duration: float | None = None,
        sample_rate: int | None = None,
    ) -> None:
        settings = get_settings()
        self._target_duration = (
            target_duration if target_duration is not None else settings.DIARIZATION_CHUNK_SECONDS
        )
        self._overlap_duration = (
            overlap_duration if overlap_duration is not None else settings.DIARIZATION_OVERLAP_SECONDS
        )
        self._min_chunk_duration = min_chunk_duration if min_chunk_duration is not None else 0.0
        self._sample_rate = sample_rate or settings.SAMPLE_RATE

        if self._target_duration <= 0:
            raise ValueError("target_duration must be positive")
        if not 0 <= self._overlap_duration < self._target_duration:
            raise ValueError("overlap_duration must be in [0, target_duration)")

        # Samples per chunk (e.g. 10s * 16000 = 160000)
        self._target_samples = int(round(self._target_duration * self._sample_rate))
        # Retained overlap in samples (e.g. 1s * 16000 = 16000)
        self._overlap_samples = int(round(self._overlap_duration * self._sample_rate))

        self._lock = threading.Lock()
        self._parts: dict[str, list[np.ndarray]] = {source: [] for source in SOURCES}
        self._counts = dict.fromkeys(SOURCES, 0)
        # Samples not yet part of any emitted chunk
        self._fresh = dict.fromkeys(SOURCES, 0)
        self._chunk_start_time = 0.0
        self._timeline_started = False
        self._next_index = 0

    @classmethod
    def for_diarization(cls, **overrides) -> "AudioChunkBuffer":
        """10s windows, 1s overlap: diarization models work best on short windows."""
        settings = get_settings()
        kwargs = {
            "target_duration": settings.DIARIZATION_CHUNK_SECONDS,
            "overlap_duration": settings.DIARIZATION_OVERLAP_SECONDS,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    @classmethod
    def for_transcription(cls, **overrides) -> "AudioChunkBuffer":
        """60s windows, 2s overlap, 5s minimum useful tail."""
        settings = get_settings()
        kwargs = {
            "target_duration": settings.TRANSCRIPTION_CHUNK_SECONDS,
            "overlap_duration": settings.TRANSCRIPTION_OVERLAP_SECONDS,
            "min_chunk_duration": settings.MIN_CHUNK_SECONDS,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    def add_samples(
        self,
        samples: np.ndarray | Sequence[float],
        elapsed_time: float | None = None,
        source: str = MIC,
    ) -> AudioChunk | None:
        """
        Append mono samples to one source. elapsed_time is the recording time
        at the END of this buffer; only the first buffer of a recording uses it.
        Returns a chunk once target_duration is buffered, else None.
        Use poll() to drain further chunks when one buffer spans several.
        """
        if source not in SOURCES:
            raise ValueError(f"unknown audio source {source!r}")
        arr = np.array(samples, dtype=np.float32)
        if arr.ndim != 1:
            raise AudioFormatInvalid(f"expected mono samples, got shape {arr.shape}")
        with self._lock:
            if arr.size:
                if not self._timeline_started:
                    if elapsed_time is not None:
                        self._chunk_start_time = max(0.0, elapsed_time - arr.size / float(self._sample_rate))
                    self._timeline_started = True
                self._parts[source].append(arr)
                self._counts[source] += arr.size
                self._fresh[source] += arr.size
            return self._emit_ready_locked()

    def add_mic_samples(
        self, samples: np.ndarray | Sequence[float], elapsed_time: float | None = None
    ) -> AudioChunk | None:
        return self.add_samples(samples, elapsed_time, source=MIC)

    def add_system_samples(
        self, samples: np.ndarray | Sequence[float], elapsed_time: float | None = None
    ) -> AudioChunk | None:
        return self.add_samples(samples, elapsed_time, source=SYSTEM)

    def poll(self) -> AudioChunk | None:
        """Return the next ready chunk without adding samples."""
        with self._lock:
            return self._emit_ready_locked()

    def flush(self) -> AudioChunk | None:
        """
        Force emit the remaining audio (end of recording), regardless of the
        minimum duration. Returns None when nothing new is buffered; the
        retained overlap alone was already part of the previous chunk.
        """
        with self._lock:
            if max(self._fresh.values()) == 0:
                self._clear_locked()
                return None
            data = {source: self._concat_locked(source) for source in SOURCES}
            start = self._chunk_start_time
            chunk = AudioChunk(
                index=self._next_index,
                samples=mix_sources(data[MIC], data[SYSTEM]),
                start_time=start,
                sample_rate=self._sample_rate,
            )
            self._next_index += 1
            self._clear_locked()
            self._chunk_start_time = start + chunk.duration
        logger.info("Flushing %.1fs chunk #%d at %.1fs", chunk.duration, chunk.index, chunk.start_time)
        return chunk

    def reset(self) -> None:
        """Clear all accumulated state, including the timeline."""
        with self._lock:
            self._clear_locked()
            self._chunk_start_time = 0.0
            self._timeline_started = False
            self._next_index = 0

    def is_too_short(self, chunk: AudioChunk) -> bool:
        """True if chunk is below min_chunk_duration (caller decides whether to discard)."""
        return chunk.duration < self._min_chunk_duration

    @property
    def duration(self) -> float:
        """Buffered audio in seconds of the longer source (includes retained overlap)."""
        return max(self._counts.values()) / float(self._sample_rate)

    @property
    def target_duration(self) -> float:
        return self._target_duration

    @property
    def overlap_duration(self) -> float:
        return self._overlap_duration

    @property
    def min_chunk_duration(self) -> float:
        return self._min_chunk_duration

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def chunks_emitted(self) -> int:
        return self._next_index

    def stats(self) -> BufferStats:
        with self._lock:
            data = {source: self._concat_locked(source) for source in SOURCES}
            mixed = mix_sources(data[MIC], data[SYSTEM])
            return BufferStats(
                duration=mixed.size / float(self._sample_rate),
                sample_count=mixed.size,
                rms=_rms(mixed),
                start_time=self._chunk_start_time,
                mic_duration=data[MIC].size / float(self._sample_rate),
                system_duration=data[SYSTEM].size / float(self._sample_rate),
                mic_rms=_rms(data[MIC]),
                system_rms=_rms(data[SYSTEM]),
            )

    def _concat_locked(self, source: str) -> np.ndarray:
        parts = self._parts[source]
        if not parts:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(parts)

    def _clear_locked(self) -> None:
        for source in SOURCES:
            self._parts[source] = []
            self._counts[source] = 0
            self._fresh[source] = 0

    def _emit_ready_locked(self) -> AudioChunk | None:
        if max(self._counts.values()) < self._target_samples:
            return None
        windows = {}
        for source in SOURCES:
            data = self._concat_locked(source)
            windows[source] = data[: self._target_samples]
            # Keep overlap for continuity: retained audio starts at (target - overlap)
            rest = data[self._target_samples - self._overlap_samples :]
            self._parts[source] = [rest] if rest.size else []
            self._counts[source] = rest.size
            self._fresh[source] = max(0, data.size - self._target_samples)

        start = self._chunk_start_time
        # Next chunk start accounts for overlap
        self._chunk_start_time = start + self._target_duration - self._overlap_duration
        chunk = AudioChunk(
            index=self._next_index,
            samples=mix_sources(windows[MIC], windows[SYSTEM]),
            start_time=start,
            sample_rate=self._sample_rate,
        )
        self._next_index += 1
        logger.info("Emitting %.1fs chunk #%d at %.1fs", chunk.duration, chunk.index, chunk.start_time)
        return chunk
