"""
Transcript structures produced by the session pipeline.

- AlignedSegment: a text span attributed to a speaker (None = unknown).
- TranscriptChunk: one processed chunk; appended in index order, never mutated.
  A failed chunk keeps its slot with error set, so gaps in the transcript are
  attributable to a chunk index.
- ProcessedMeeting: what finish_processing() returns.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from meetscribe.meeting.classifier import MeetingClassification


@dataclass(frozen=True)
class AlignedSegment:
    text: str
    speaker: str | None
    start_time: float  # recording seconds
    end_time: float


@dataclass(frozen=True)
class TranscriptChunk:
    index: int
    start_time: float
    duration: float
    transcript: str
    segments: tuple[AlignedSegment, ...] = ()
    processing_time: float = 0.0  # seconds from dispatch to result
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration


@dataclass(frozen=True)
class ProcessedMeeting:
    transcript: str
    chunks: tuple[TranscriptChunk, ...]
    total_duration: float
    processing_time: float
    failed_chunks: tuple[int, ...] = ()
    classification: "MeetingClassification | None" = None
    speakers: tuple[str, ...] = field(default_factory=tuple)
