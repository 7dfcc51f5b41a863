"""Pydantic schemas for WebSocket messages."""
from meetscribe.schemas.messages import (
    ChunkMessage,
    ClassificationMessage,
    FinalMessage,
    SegmentPayload,
    SessionMessage,
)

__all__ = [
    "ChunkMessage",
    "ClassificationMessage",
    "FinalMessage",
    "SegmentPayload",
    "SessionMessage",
]
