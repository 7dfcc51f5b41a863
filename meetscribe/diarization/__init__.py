"""
Speaker-aware side of the pipeline.

- Diarizer capability interface and the gap-based fallback diarizer.
- Hysteresis label stabilization and A-B-A temporal smoothing.

Limitations (see gap_diarizer.py):
- Speaker ids are chunk-local; labels are approximate, no identity inference.
"""
from __future__ import annotations

from meetscribe.diarization.base import Diarizer, NullDiarizer
from meetscribe.diarization.models import (
    DiarizationResult,
    RawSpeakerSegment,
    StabilizedSegment,
    format_speaker_name,
)
from meetscribe.diarization.smoother import TemporalSmoother
from meetscribe.diarization.stabilizer import SpeakerLabelStabilizer, StabilizationStats

__all__ = [
    "Diarizer",
    "NullDiarizer",
    "DiarizationResult",
    "RawSpeakerSegment",
    "StabilizedSegment",
    "format_speaker_name",
    "TemporalSmoother",
    "SpeakerLabelStabilizer",
    "StabilizationStats",
]
