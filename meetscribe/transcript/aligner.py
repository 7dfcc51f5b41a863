"""
TranscriptSpeakerAligner: coarse proportional word-to-speaker alignment.

No acoustic word boundaries: words are assumed to be spread evenly over the
chunk (words_per_second = word_count / chunk_duration), and each speaker
segment takes the words whose index falls in
[start * words_per_second, end * words_per_second).

- No speaker segments: one span covering the whole chunk, speaker None.
- Empty or out-of-range index windows produce nothing for that segment.
- Repeated speakers are kept as separate spans (no merging here).
"""
from __future__ import annotations

import logging
from typing import Sequence

from meetscribe.diarization.models import RawSpeakerSegment, StabilizedSegment
from meetscribe.transcript.models import AlignedSegment

logger = logging.getLogger(__name__)


def _word_window(
    seg: StabilizedSegment | RawSpeakerSegment,
    words_per_second: float,
    word_count: int,
) -> tuple[int, int] | None:
    start_idx = max(0, int(seg.start * words_per_second))
    end_idx = min(int(seg.end * words_per_second), word_count)
    if start_idx >= word_count or start_idx >= end_idx:
        return None
    return start_idx, end_idx


class TranscriptSpeakerAligner:
    def align(
        self,
        transcript: str,
        segments: Sequence[StabilizedSegment | RawSpeakerSegment],
        chunk_start: float,
        chunk_duration: float,
    ) -> list[AlignedSegment]:
        """
        segments: speaker segments with chunk-relative times.
        Returns spans with absolute (recording) times.
        """
        if not segments:
            return [
                AlignedSegment(
                    text=transcript,
                    speaker=None,
                    start_time=chunk_start,
                    end_time=chunk_start + chunk_duration,
                )
            ]

        words = transcript.split()
        if not words:
            return []
        if chunk_duration <= 0:
            raise ValueError(f"chunk_duration must be positive (got {chunk_duration})")

        words_per_second = len(words) / chunk_duration
        aligned: list[AlignedSegment] = []
        for seg in segments:
            window = _word_window(seg, words_per_second, len(words))
            if window is None:
                continue
            aligned.append(
                AlignedSegment(
                    text=" ".join(words[window[0] : window[1]]),
                    speaker=seg.speaker_id or None,
                    start_time=chunk_start + seg.start,
                    end_time=chunk_start + seg.end,
                )
            )
        logger.debug("Aligned %d words into %d spans (%d segments)", len(words), len(aligned), len(segments))
        return aligned

    @staticmethod
    def word_ranges(
        word_count: int,
        segments: Sequence[StabilizedSegment | RawSpeakerSegment],
        chunk_duration: float,
    ) -> list[tuple[int, int]]:
        """Word index ranges align() uses, one per segment that produces a span."""
        if word_count == 0 or chunk_duration <= 0:
            return []
        words_per_second = word_count / chunk_duration
        windows = (_word_window(seg, words_per_second, word_count) for seg in segments)
        return [w for w in windows if w is not None]
