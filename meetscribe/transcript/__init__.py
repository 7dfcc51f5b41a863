"""Transcript handling: speaker alignment, ordered chunk application, combined text."""
from .aligner import TranscriptSpeakerAligner
from .merger import TranscriptMerger, combine_chunks
from .models import AlignedSegment, ProcessedMeeting, TranscriptChunk

__all__ = [
    "AlignedSegment",
    "ProcessedMeeting",
    "TranscriptChunk",
    "TranscriptMerger",
    "TranscriptSpeakerAligner",
    "combine_chunks",
]
