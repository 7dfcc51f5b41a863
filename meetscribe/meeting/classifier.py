"""
MeetingClassifier: one-on-one vs group, with a confidence score.

meeting type from the number of distinct speakers:
  2 -> ONE_ON_ONE, >2 -> GROUP, 0 or 1 -> UNKNOWN (monologue or waiting for others)

confidence = 0.4 * duration + 0.4 * separation + 0.2 * segment count, where
  duration   = min(total speech / 60s, 1)
  separation = 1 - mean pairwise cosine similarity of per-speaker embeddings
  segments   = min(segment count / 20, 1)

The representative embedding per speaker is the first one seen ("first"), or
the mean of all of them ("centroid").
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import combinations
from typing import Literal, Sequence

import numpy as np

from meetscribe.config import get_settings
from meetscribe.diarization.models import RawSpeakerSegment, StabilizedSegment

logger = logging.getLogger(__name__)

DURATION_WEIGHT = 0.4
SEPARATION_WEIGHT = 0.4
SEGMENT_COUNT_WEIGHT = 0.2

# Used when speakers exist but fewer than two carry an embedding
NO_EMBEDDING_SEPARATION = 0.5

EmbeddingStrategy = Literal["first", "centroid"]


class MeetingType(str, enum.Enum):
    ONE_ON_ONE = "one_on_one"
    GROUP = "group"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        return {
            MeetingType.ONE_ON_ONE: "1:1",
            MeetingType.GROUP: "Group",
            MeetingType.UNKNOWN: "Unknown",
        }[self]

    @classmethod
    def from_speaker_count(cls, speaker_count: int) -> "MeetingType":
        if speaker_count == 2:
            return cls.ONE_ON_ONE
        if speaker_count > 2:
            return cls.GROUP
        return cls.UNKNOWN


@dataclass(frozen=True)
class MeetingClassification:
    speaker_count: int
    meeting_type: MeetingType
    confidence: float
    detected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    confident_threshold: float = 0.8

    @property
    def is_confident(self) -> bool:
        return self.confidence > self.confident_threshold and self.speaker_count > 0


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; 0 for vectors of different length or zero norm."""
    if len(a) != len(b) or len(a) == 0:
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denominator = np.linalg.norm(va) * np.linalg.norm(vb)
    if denominator == 0:
        return 0.0
    return float(np.dot(va, vb) / denominator)


class MeetingClassifier:
    """Stateless: classify() recomputes from the segments it is given."""

    def __init__(
        self,
        embedding_strategy: EmbeddingStrategy | None = None,
        full_duration: float | None = None,
        full_segment_count: int | None = None,
        confident_threshold: float | None = None,
    ) -> None:
        settings = get_settings()
        self._strategy = embedding_strategy or settings.CLASSIFIER_EMBEDDING_STRATEGY
        self._full_duration = full_duration if full_duration is not None else settings.CLASSIFIER_FULL_DURATION_SECONDS
        self._full_segment_count = (
            full_segment_count if full_segment_count is not None else settings.CLASSIFIER_FULL_SEGMENT_COUNT
        )
        self._confident_threshold = (
            confident_threshold if confident_threshold is not None else settings.CLASSIFIER_CONFIDENT_THRESHOLD
        )
        if self._strategy not in ("first", "centroid"):
            raise ValueError(f"unknown embedding strategy {self._strategy!r}")

    def classify(self, segments: Sequence[RawSpeakerSegment | StabilizedSegment]) -> MeetingClassification:
        speakers = {s.speaker_id for s in segments if s.speaker_id}
        speaker_count = len(speakers)
        meeting_type = MeetingType.from_speaker_count(speaker_count)
        confidence = self.confidence(segments)
        logger.debug(
            "Detected %d speakers - Type: %s (confidence %.2f)",
            speaker_count,
            meeting_type.display_name,
            confidence,
        )
        return MeetingClassification(
            speaker_count=speaker_count,
            meeting_type=meeting_type,
            confidence=confidence,
            confident_threshold=self._confident_threshold,
        )

    def confidence(self, segments: Sequence[RawSpeakerSegment | StabilizedSegment]) -> float:
        total_duration = sum(s.duration for s in segments)
        duration_confidence = min(total_duration / self._full_duration, 1.0) if self._full_duration > 0 else 1.0
        separation_confidence = self.separation_confidence(segments)
        segment_confidence = (
            min(len(segments) / self._full_segment_count, 1.0) if self._full_segment_count > 0 else 1.0
        )
        score = (
            DURATION_WEIGHT * duration_confidence
            + SEPARATION_WEIGHT * separation_confidence
            + SEGMENT_COUNT_WEIGHT * segment_confidence
        )
        return min(max(score, 0.0), 1.0)

    def separation_confidence(self, segments: Sequence[RawSpeakerSegment | StabilizedSegment]) -> float:
        """1 - mean pairwise cosine similarity between speakers; 1.0 with fewer than 2 speakers."""
        speakers = {s.speaker_id for s in segments if s.speaker_id}
        if len(speakers) < 2:
            return 1.0

        embeddings = self.speaker_embeddings(segments)
        if len(embeddings) < 2:
            return NO_EMBEDDING_SEPARATION

        similarities = [cosine_similarity(a, b) for a, b in combinations(embeddings.values(), 2)]
        separation = 1.0 - sum(similarities) / len(similarities)
        return min(max(separation, 0.0), 1.0)

    def speaker_embeddings(
        self, segments: Sequence[RawSpeakerSegment | StabilizedSegment]
    ) -> dict[str, tuple[float, ...]]:
        """Representative embedding per speaker, in first-seen order."""
        grouped: dict[str, list[tuple[float, ...]]] = {}
        for seg in segments:
            if seg.speaker_id and seg.embedding:
                grouped.setdefault(seg.speaker_id, []).append(seg.embedding)
        if self._strategy == "first":
            return {speaker: vectors[0] for speaker, vectors in grouped.items()}

        centroids: dict[str, tuple[float, ...]] = {}
        for speaker, vectors in grouped.items():
            lengths = {len(v) for v in vectors}
            if len(lengths) != 1:
                # mixed dimensions cannot be averaged; fall back to the first vector
                centroids[speaker] = vectors[0]
                continue
            centroids[speaker] = tuple(float(x) for x in np.mean(np.asarray(vectors, dtype=np.float64), axis=0))
        return centroids

    @property
    def embedding_strategy(self) -> str:
        return self._strategy
