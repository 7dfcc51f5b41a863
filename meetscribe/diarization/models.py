"""
Speaker segment structures for the diarization side of the pipeline.

- RawSpeakerSegment: one diarizer output unit. speaker_id is model-local and
  not stable across chunks; start/end are seconds relative to the chunk start.
- StabilizedSegment: same shape, speaker_id replaced by the hysteresis-stable
  label; raw_speaker_id keeps what the diarizer said.
- DiarizationResult: the segments of one chunk plus time-range helpers.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field, replace

SPEAKER_PREFIX = "Speaker "

_TRAILING_NUMBER = re.compile(r"(\d+)$")


@dataclass(frozen=True)
class RawSpeakerSegment:
    """
    One diarizer segment.

    start, end: seconds (chunk-relative as produced, absolute after offset()).
    confidence: model quality score.
    embedding: fixed-length voice embedding; empty when the backend has none.
    """

    speaker_id: str
    start: float
    end: float
    confidence: float = 0.0
    embedding: tuple[float, ...] = ()

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"segment ends before it starts ({self.start} > {self.end})")

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class StabilizedSegment:
    """A segment whose speaker_id passed the hysteresis test."""

    speaker_id: str
    start: float
    end: float
    confidence: float = 0.0
    embedding: tuple[float, ...] = ()
    raw_speaker_id: str = ""

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"segment ends before it starts ({self.start} > {self.end})")

    @property
    def duration(self) -> float:
        return self.end - self.start

    @classmethod
    def from_raw(cls, raw: RawSpeakerSegment, label: str) -> "StabilizedSegment":
        return cls(
            speaker_id=label,
            start=raw.start,
            end=raw.end,
            confidence=raw.confidence,
            embedding=raw.embedding,
            raw_speaker_id=raw.speaker_id,
        )


@dataclass(frozen=True)
class DiarizationResult:
    """
    Output of one diarize() call.
    available=False means the backend could not produce speaker information;
    that is treated like "no segments" (unknown speaker), not as an error.
    """

    segments: tuple[RawSpeakerSegment, ...] = field(default_factory=tuple)
    available: bool = True

    @classmethod
    def unavailable(cls) -> "DiarizationResult":
        return cls(segments=(), available=False)

    @property
    def speaker_count(self) -> int:
        return len({s.speaker_id for s in self.segments})

    def speakers(self) -> list[str]:
        """Unique speaker ids, sorted."""
        return sorted({s.speaker_id for s in self.segments})

    def segments_between(self, start_time: float, end_time: float) -> list[RawSpeakerSegment]:
        """Segments touching [start_time, end_time]."""
        return [s for s in self.segments if s.end >= start_time and s.start <= end_time]

    def dominant_speaker(self, start_time: float, end_time: float) -> str | None:
        """Speaker with the most overlapping time in the range; None if nobody spoke."""
        times: dict[str, float] = {}
        for seg in self.segments_between(start_time, end_time):
            overlap = min(seg.end, end_time) - max(seg.start, start_time)
            times[seg.speaker_id] = times.get(seg.speaker_id, 0.0) + max(0.0, overlap)
        if not times:
            return None
        return max(times.items(), key=lambda kv: kv[1])[0]

    def speaking_times(self) -> dict[str, float]:
        """Total speaking time per speaker (seconds)."""
        times: dict[str, float] = {}
        for seg in self.segments:
            times[seg.speaker_id] = times.get(seg.speaker_id, 0.0) + seg.duration
        return times

    def offset(self, seconds: float) -> "DiarizationResult":
        """Shift all segments by seconds (chunk-relative -> recording time)."""
        shifted = tuple(replace(s, start=s.start + seconds, end=s.end + seconds) for s in self.segments)
        return DiarizationResult(segments=shifted, available=self.available)


def parse_numeric_id(speaker_id: str) -> int | None:
    """Trailing number of a speaker id ("speaker_0" -> 0, "2" -> 2), or None."""
    match = _TRAILING_NUMBER.search(speaker_id)
    return int(match.group(1)) if match else None


def format_speaker_name(speaker_id: str) -> str:
    """
    Display name for a speaker id.
    Bare numbers are already 1-based ("2" -> "Speaker 2"); "speaker_N" ids are
    0-based ("speaker_0" -> "Speaker 1"); anything else is shown as is.
    """
    if speaker_id.isdigit():
        return f"{SPEAKER_PREFIX}{int(speaker_id)}"
    number = parse_numeric_id(speaker_id)
    if number is not None:
        return f"{SPEAKER_PREFIX}{number + 1}"
    return f"{SPEAKER_PREFIX}{speaker_id}"
