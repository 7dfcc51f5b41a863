"""
TranscriptMerger: applies chunk results to session state in strict index order.

External calls finish in any order (different latencies, concurrent chunks).
Results are held here until every lower index has been applied, then handed
to on_apply one by one. The session transcript is therefore append-only and
ordered by chunk index.
"""
from __future__ import annotations

import logging
from typing import Callable, Generic, Iterable, TypeVar

from meetscribe.diarization.models import format_speaker_name
from meetscribe.transcript.models import TranscriptChunk

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TranscriptMerger(Generic[T]):
    """
    Reorder buffer keyed by chunk index.
    on_apply is called synchronously from submit(), in index order.
    """

    def __init__(self, on_apply: Callable[[int, T], None], first_index: int = 0) -> None:
        self._on_apply = on_apply
        self._next_index = first_index
        self._pending: dict[int, T] = {}

    def submit(self, index: int, item: T) -> int:
        """Hold item until all lower indices are applied. Returns how many items were applied now."""
        if index < self._next_index or index in self._pending:
            raise ValueError(f"chunk #{index} submitted twice")
        self._pending[index] = item
        if index != self._next_index:
            logger.debug("Chunk #%d finished early; waiting for #%d", index, self._next_index)
        applied = 0
        while self._next_index in self._pending:
            ready = self._pending.pop(self._next_index)
            current = self._next_index
            self._next_index += 1
            self._on_apply(current, ready)
            applied += 1
        return applied

    def reset(self, first_index: int = 0) -> None:
        self._pending.clear()
        self._next_index = first_index

    @property
    def next_index(self) -> int:
        return self._next_index

    @property
    def waiting(self) -> list[int]:
        """Indices that finished but are blocked behind a lower one."""
        return sorted(self._pending)


def combine_chunks(chunks: Iterable[TranscriptChunk]) -> str:
    """
    Session transcript: aligned spans of all successful chunks ordered by index,
    one line per span ("Speaker 1: text", or plain text when unattributed).
    """
    lines: list[str] = []
    for chunk in sorted(chunks, key=lambda c: c.index):
        if chunk.failed:
            continue
        for seg in chunk.segments:
            text = seg.text.strip()
            if not text:
                continue
            if seg.speaker:
                lines.append(f"{format_speaker_name(seg.speaker)}: {text}")
            else:
                lines.append(text)
    return "\n".join(lines)
