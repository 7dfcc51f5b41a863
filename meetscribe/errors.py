"""
Error taxonomy for the chunk pipeline.

A chunk failure is recorded on that chunk's TranscriptChunk and surfaced as the
session's last_error; it never aborts the session.
"""
from __future__ import annotations


class MeetingScribeError(Exception):
    """Base for all pipeline errors."""


class TranscriptionUnavailable(MeetingScribeError):
    """The transcription backend could not be reached or loaded."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        message = "Transcription service not available"
        super().__init__(f"{message}: {detail}" if detail else message)


class AudioFormatInvalid(MeetingScribeError):
    """Incoming audio does not match the mono / sample-rate contract."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        message = "Invalid audio format for processing"
        super().__init__(f"{message}: {detail}" if detail else message)


class ProcessingFailed(MeetingScribeError):
    """Catch-all for a chunk pipeline failure (including external-call timeouts)."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Processing failed: {reason}")
