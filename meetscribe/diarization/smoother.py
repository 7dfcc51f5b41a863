"""
TemporalSmoother: collapse isolated short speaker spikes.

Pattern: prev.speaker == next.speaker != curr.speaker and curr is shorter than
min_duration_for_change -> curr takes the surrounding speaker (keeps its own
start/end).

Single left-to-right pass, not a fixed point: position i sees its left
neighbour as already processed (possibly rewritten) and its right neighbour as
original; visited positions are never revisited. So A-B-C-A with B and C both
short stays as is, while A-B-A-B-A rewrites every short B.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Sequence, TypeVar

from meetscribe.config import get_settings
from meetscribe.diarization.models import RawSpeakerSegment, StabilizedSegment

SegmentT = TypeVar("SegmentT", RawSpeakerSegment, StabilizedSegment)


class TemporalSmoother:
    """Post-pass over a finalized segment list. Inputs are never mutated."""

    def __init__(self, min_duration_for_change: float | None = None) -> None:
        if min_duration_for_change is None:
            min_duration_for_change = get_settings().SMOOTHING_MIN_DURATION_SECONDS
        self._min_duration = min_duration_for_change
        self.last_smoothed = 0

    def smooth(self, segments: Sequence[SegmentT]) -> list[SegmentT]:
        """Return a new list with short A-B-A spikes relabelled. Fewer than 3 segments: unchanged."""
        result = list(segments)
        self.last_smoothed = 0
        if len(result) < 3:
            return result

        for i in range(1, len(result) - 1):
            prev, curr, nxt = result[i - 1], result[i], result[i + 1]
            if (
                prev.speaker_id == nxt.speaker_id
                and prev.speaker_id != curr.speaker_id
                and curr.duration < self._min_duration
            ):
                result[i] = replace(curr, speaker_id=prev.speaker_id)
                self.last_smoothed += 1
        return result

    @property
    def min_duration_for_change(self) -> float:
        return self._min_duration
