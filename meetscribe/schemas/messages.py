"""
JSON messages sent over WS /ws/meeting.

session        -> once, on connect
chunk          -> per processed chunk, in index order
classification -> whenever the meeting type / confidence is recomputed
final          -> once, after the stream ends and every chunk is processed
"""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from meetscribe.diarization.models import format_speaker_name
from meetscribe.meeting.classifier import MeetingClassification
from meetscribe.transcript.models import AlignedSegment, ProcessedMeeting, TranscriptChunk


class SessionMessage(BaseModel):
    type: Literal["session"] = "session"
    session_id: str


class SegmentPayload(BaseModel):
    text: str
    speaker: str | None = Field(None, description="Stable speaker label; null when unknown")
    speaker_name: str | None = Field(None, description="Display name, e.g. 'Speaker 1'")
    start_time: float
    end_time: float

    @classmethod
    def from_segment(cls, seg: AlignedSegment) -> "SegmentPayload":
        return cls(
            text=seg.text,
            speaker=seg.speaker,
            speaker_name=format_speaker_name(seg.speaker) if seg.speaker else None,
            start_time=seg.start_time,
            end_time=seg.end_time,
        )


class ChunkMessage(BaseModel):
    type: Literal["chunk"] = "chunk"
    index: int
    start_time: float
    duration: float
    transcript: str = ""
    segments: list[SegmentPayload] = Field(default_factory=list)
    processing_time: float = 0.0
    error: str | None = None

    @classmethod
    def from_chunk(cls, chunk: TranscriptChunk) -> "ChunkMessage":
        return cls(
            index=chunk.index,
            start_time=chunk.start_time,
            duration=chunk.duration,
            transcript=chunk.transcript,
            segments=[SegmentPayload.from_segment(s) for s in chunk.segments],
            processing_time=chunk.processing_time,
            error=chunk.error,
        )


class ClassificationMessage(BaseModel):
    type: Literal["classification"] = "classification"
    speaker_count: int
    meeting_type: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    is_confident: bool
    detected_at: datetime

    @classmethod
    def from_classification(cls, c: MeetingClassification) -> "ClassificationMessage":
        return cls(
            speaker_count=c.speaker_count,
            meeting_type=c.meeting_type.value,
            confidence=c.confidence,
            is_confident=c.is_confident,
            detected_at=c.detected_at,
        )


class FinalMessage(BaseModel):
    type: Literal["final"] = "final"
    transcript: str
    total_duration: float
    processing_time: float
    chunk_count: int
    failed_chunks: list[int] = Field(default_factory=list)
    speakers: list[str] = Field(default_factory=list)
    classification: ClassificationMessage | None = None

    @classmethod
    def from_meeting(cls, meeting: ProcessedMeeting) -> "FinalMessage":
        return cls(
            transcript=meeting.transcript,
            total_duration=meeting.total_duration,
            processing_time=meeting.processing_time,
            chunk_count=len(meeting.chunks),
            failed_chunks=list(meeting.failed_chunks),
            speakers=list(meeting.speakers),
            classification=(
                ClassificationMessage.from_classification(meeting.classification)
                if meeting.classification
                else None
            ),
        )
