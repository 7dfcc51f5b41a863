"""
Speaker label stabilization (hysteresis).

Diarizers flip labels on noise: A -> B -> A within a second or two. A change
is committed only after required_consecutive corroborating observations of
the same new label; until then the current label is kept ("suppressed").

Rules:
- raw == current: clear pending, return current.
- raw == pending: pending_count += 1; commit when it reaches required_consecutive.
- raw is a third label: it becomes the new pending label with count 1.
- In stabilize_sequence(), segments shorter than short_segment_duration
  inherit the current stable label and do not touch the counter.

Statistics are diagnostic only; they never influence decisions.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Sequence

from meetscribe.config import get_settings
from meetscribe.diarization.models import RawSpeakerSegment, StabilizedSegment
from meetscribe.diarization.smoother import SegmentT, TemporalSmoother

logger = logging.getLogger(__name__)


@dataclass
class StabilizationStats:
    stable_segments: int = 0  # segments that matched the current label
    pending_changes: int = 0  # observations that started or extended a pending change
    committed_changes: int = 0
    suppressed_changes: int = 0  # changes held back for lack of evidence
    short_segments_inherited: int = 0
    temporal_smooths: int = 0  # A-B-A spikes merged

    @property
    def suppression_rate(self) -> float:
        total = self.committed_changes + self.suppressed_changes
        return self.suppressed_changes / total if total > 0 else 0.0

    def describe(self) -> str:
        return (
            "Stabilization Stats:\n"
            f"- Stable segments: {self.stable_segments}\n"
            f"- Committed changes: {self.committed_changes}\n"
            f"- Suppressed changes: {self.suppressed_changes} ({int(self.suppression_rate * 100)}%)\n"
            f"- Short segments inherited: {self.short_segments_inherited}\n"
            f"- Temporal smooths: {self.temporal_smooths}"
        )


class SpeakerLabelStabilizer:
    """
    Per-session hysteresis state. One instance per recording session; do not share.
    """

    def __init__(
        self,
        required_consecutive: int | None = None,
        short_segment_duration: float | None = None,
    ) -> None:
        settings = get_settings()
        self._required_consecutive = (
            required_consecutive
            if required_consecutive is not None
            else settings.STABILIZER_REQUIRED_CONSECUTIVE
        )
        self._short_segment_duration = (
            short_segment_duration
            if short_segment_duration is not None
            else settings.STABILIZER_SHORT_SEGMENT_SECONDS
        )
        if self._required_consecutive < 1:
            raise ValueError("required_consecutive must be >= 1")

        self._lock = threading.RLock()
        self._pending_label: str | None = None
        self._pending_count: int = 0
        self._last_stable_label: str | None = None
        self._stats = StabilizationStats()

    def stabilize(self, raw_label: str, current_label: str | None = None) -> str:
        """
        Stabilize one raw label against the current stable label
        (None for the first segment: the raw label is accepted as is).
        Returns the label to use; may be current_label if the change is not confirmed.
        """
        with self._lock:
            current = current_label if current_label is not None else raw_label
            if not raw_label:
                return current

            if raw_label == current:
                self._pending_label = None
                self._pending_count = 0
                self._last_stable_label = current
                self._stats.stable_segments += 1
                return current

            if raw_label == self._pending_label:
                self._pending_count += 1
                self._stats.pending_changes += 1
                if self._pending_count >= self._required_consecutive:
                    self._pending_label = None
                    self._pending_count = 0
                    self._last_stable_label = raw_label
                    self._stats.committed_changes += 1
                    logger.debug("Speaker change committed: %s -> %s", current, raw_label)
                    return raw_label
            else:
                self._pending_label = raw_label
                self._pending_count = 1
                self._stats.pending_changes += 1
                # A single observation can be enough (required_consecutive == 1)
                if self._pending_count >= self._required_consecutive:
                    self._pending_label = None
                    self._pending_count = 0
                    self._last_stable_label = raw_label
                    self._stats.committed_changes += 1
                    return raw_label

            self._stats.suppressed_changes += 1
            return current

    def stabilize_sequence(
        self,
        segments: Sequence[RawSpeakerSegment],
        current_label: str | None = None,
    ) -> list[StabilizedSegment]:
        """Stabilize segments in temporal order. Short segments inherit the current stable label."""
        result: list[StabilizedSegment] = []
        with self._lock:
            current = current_label
            for seg in segments:
                if current is not None and (seg.duration < self._short_segment_duration or not seg.speaker_id):
                    result.append(StabilizedSegment.from_raw(seg, current))
                    self._stats.short_segments_inherited += 1
                    continue
                if not seg.speaker_id:
                    # nothing to inherit yet
                    result.append(StabilizedSegment.from_raw(seg, ""))
                    continue
                current = self.stabilize(seg.speaker_id, current)
                result.append(StabilizedSegment.from_raw(seg, current))
        return result

    def temporal_smooth(
        self,
        segments: Sequence[SegmentT],
        min_duration_for_change: float | None = None,
    ) -> list[SegmentT]:
        """Merge short A-B-A spikes. Run on a finalized list only, never interleaved with stabilize()."""
        smoother = TemporalSmoother(min_duration_for_change)
        smoothed = smoother.smooth(segments)
        with self._lock:
            self._stats.temporal_smooths += smoother.last_smoothed
        return smoothed

    def reset(self) -> None:
        with self._lock:
            self._pending_label = None
            self._pending_count = 0
            self._last_stable_label = None
            self._stats = StabilizationStats()

    @property
    def pending_label(self) -> str | None:
        return self._pending_label

    @property
    def pending_count(self) -> int:
        return self._pending_count

    @property
    def last_stable_label(self) -> str | None:
        return self._last_stable_label

    @property
    def required_consecutive(self) -> int:
        return self._required_consecutive

    @property
    def stats(self) -> StabilizationStats:
        return self._stats
