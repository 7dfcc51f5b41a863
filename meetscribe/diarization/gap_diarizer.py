"""
GapDiarizer: lightweight diarization fallback (no neural model).

- Speech regions come from webrtcvad on 20ms frames; silences shorter than
  merge_gap are bridged.
- Speaker ids alternate when a region starts at least speaker_gap_sec after the
  previous one ended (turn-taking heuristic), bounded by max_speakers.
- Each region gets a normalized log band-energy embedding so the meeting
  classifier can still measure speaker separation.

Limitations (MUST be kept in sync with product behavior):
- Overlapping speech is not separated; single channel only.
- Speaker ids are chunk-local ("speaker_0", "speaker_1"); no identity inference.
- Accuracy depends on mic quality and distance; use a model-backed Diarizer
  where available.
"""
from __future__ import annotations

import asyncio
import logging

import numpy as np

from meetscribe.audio.chunk_buffer import AudioChunk
from meetscribe.audio.vad import VADProcessor
from meetscribe.config import get_settings
from meetscribe.diarization.base import Diarizer
from meetscribe.diarization.models import DiarizationResult, RawSpeakerSegment

logger = logging.getLogger(__name__)

EMBEDDING_BANDS = 16


def _speaker_id(index: int) -> str:
    return f"speaker_{index}"


def band_energy_embedding(audio: np.ndarray, bands: int = EMBEDDING_BANDS) -> tuple[float, ...]:
    """Unit-length vector of mean log energies in equal-width spectral bands."""
    if audio.size < 2:
        return ()
    spectrum = np.abs(np.fft.rfft(audio.astype(np.float64))) ** 2
    edges = np.linspace(0, spectrum.size, bands + 1).astype(int)
    energies = np.array(
        [spectrum[lo:hi].mean() if hi > lo else 0.0 for lo, hi in zip(edges[:-1], edges[1:])]
    )
    vec = np.log1p(energies)
    vec = vec - vec.mean()
    norm = np.linalg.norm(vec)
    if norm == 0:
        return ()
    return tuple(float(v) for v in vec / norm)


class GapDiarizer(Diarizer):
    """
    VAD + gap-based alternation. Stateless across chunks: ids restart at
    speaker_0 for each chunk, like any chunk-local diarizer.
    """

    def __init__(
        self,
        speaker_gap_sec: float | None = None,
        max_speakers: int | None = None,
        aggressiveness: int | None = None,
        min_speech_sec: float | None = None,
        merge_gap_sec: float = 0.2,
    ) -> None:
        settings = get_settings()
        self._speaker_gap_sec = (
            speaker_gap_sec if speaker_gap_sec is not None else settings.DIARIZATION_SPEAKER_GAP_SEC
        )
        self._max_speakers = max_speakers if max_speakers is not None else settings.DIARIZATION_MAX_SPEAKERS
        self._aggressiveness = (
            aggressiveness if aggressiveness is not None else settings.DIARIZATION_VAD_AGGRESSIVENESS
        )
        self._min_speech_sec = (
            min_speech_sec if min_speech_sec is not None else settings.DIARIZATION_MIN_SPEECH_SEC
        )
        self._merge_gap_sec = merge_gap_sec

    def speech_regions(self, flags: list[bool], frame_sec: float) -> list[tuple[float, float]]:
        """Turn per-frame speech flags into (start, end) regions in seconds."""
        regions: list[tuple[float, float]] = []
        start: int | None = None
        for i, speech in enumerate(flags):
            if speech and start is None:
                start = i
            elif not speech and start is not None:
                regions.append((start * frame_sec, i * frame_sec))
                start = None
        if start is not None:
            regions.append((start * frame_sec, len(flags) * frame_sec))

        merged: list[tuple[float, float]] = []
        for region in regions:
            if merged and region[0] - merged[-1][1] < self._merge_gap_sec:
                merged[-1] = (merged[-1][0], region[1])
            else:
                merged.append(region)
        return [r for r in merged if r[1] - r[0] >= self._min_speech_sec]

    def assign_speakers(self, regions: list[tuple[float, float]]) -> list[int]:
        """Gap-based alternation: switch speaker when the silence before a region is long enough."""
        indices: list[int] = []
        current = 0
        last_end: float | None = None
        for start, end in regions:
            if last_end is not None and start - last_end >= self._speaker_gap_sec:
                current = (current + 1) % max(1, self._max_speakers)
            indices.append(current)
            last_end = end
        return indices

    def _diarize_sync(self, chunk: AudioChunk) -> DiarizationResult:
        vad = VADProcessor(aggressiveness=self._aggressiveness, sample_rate=chunk.sample_rate)
        flags = vad.speech_flags(chunk.samples)
        frame_sec = vad.frame_ms / 1000.0
        regions = self.speech_regions(flags, frame_sec)
        indices = self.assign_speakers(regions)

        segments: list[RawSpeakerSegment] = []
        for (start, end), index in zip(regions, indices):
            lo = int(start * chunk.sample_rate)
            hi = int(end * chunk.sample_rate)
            first = int(start / frame_sec)
            last = max(first + 1, int(end / frame_sec))
            window = flags[first:last]
            quality = sum(window) / len(window) if window else 0.0
            segments.append(
                RawSpeakerSegment(
                    speaker_id=_speaker_id(index),
                    start=start,
                    end=end,
                    confidence=quality,
                    embedding=band_energy_embedding(chunk.samples[lo:hi]),
                )
            )
        logger.debug(
            "Gap diarizer: chunk #%d -> %d regions, %d speakers",
            chunk.index,
            len(segments),
            len({s.speaker_id for s in segments}),
        )
        return DiarizationResult(segments=tuple(segments))

    async def diarize(self, chunk: AudioChunk) -> DiarizationResult:
        """Run VAD and assignment in executor so the event loop is not blocked."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._diarize_sync, chunk)
