"""
MeetingSession: one recording session = one pipeline context.

Flow per chunk:
  AudioChunkBuffer -> [Transcriber, Diarizer] (async, concurrent)
  -> TranscriptMerger (strict index order)
  -> stabilize -> temporal smooth -> align -> append TranscriptChunk
  -> recompute MeetingClassification over all segments so far

Ordering: external calls may overlap (MAX_CONCURRENT_CHUNKS) and finish in any
order; their effects are applied in chunk-index order only. Buffering new
audio is never blocked by an in-flight call.

Failures: a failed or timed-out chunk is appended with error set and becomes
last_error; later chunks still run. Diarizer errors degrade to "unknown
speaker" for that chunk.

All methods must be called from the event loop thread that owns the session.
No state is shared between sessions.
"""
from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Sequence

import numpy as np

from meetscribe.asr.base import Transcriber
from meetscribe.audio.chunk_buffer import MIC, SOURCES, AudioChunk, AudioChunkBuffer
from meetscribe.audio.receiver import to_mono_float32
from meetscribe.config import get_settings
from meetscribe.diarization.base import Diarizer, NullDiarizer
from meetscribe.diarization.models import DiarizationResult, RawSpeakerSegment, StabilizedSegment
from meetscribe.diarization.stabilizer import SpeakerLabelStabilizer
from meetscribe.errors import AudioFormatInvalid, MeetingScribeError, ProcessingFailed
from meetscribe.meeting.classifier import MeetingClassification, MeetingClassifier
from meetscribe.transcript.aligner import TranscriptSpeakerAligner
from meetscribe.transcript.merger import TranscriptMerger, combine_chunks
from meetscribe.transcript.models import ProcessedMeeting, TranscriptChunk

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ChunkOutcome:
    """Result of the external calls for one chunk, before it is applied."""

    chunk: AudioChunk
    transcript: str
    segments: tuple[RawSpeakerSegment, ...]
    latency: float
    error: MeetingScribeError | None = None


class MeetingSession:
    """
    Per-session pipeline context. Owns its buffer, stabilizer and transcript;
    safe to run many sessions side by side.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        diarizer: Diarizer | None = None,
        *,
        session_id: str | None = None,
        chunk_buffer: AudioChunkBuffer | None = None,
        stabilizer: SpeakerLabelStabilizer | None = None,
        classifier: MeetingClassifier | None = None,
        aligner: TranscriptSpeakerAligner | None = None,
        smoothing_min_duration: float | None = None,
        call_timeout: float | None = None,
        max_concurrent_chunks: int | None = None,
        discard_short_tail: bool | None = None,
        on_chunk: Callable[[TranscriptChunk], None] | None = None,
        on_classification: Callable[[MeetingClassification], None] | None = None,
    ) -> None:
        settings = get_settings()
        self._session_id = session_id or uuid.uuid4().hex[:12]
        self._transcriber = transcriber
        self._diarizer = diarizer or NullDiarizer()
        self._buffer = chunk_buffer or AudioChunkBuffer.for_transcription()
        self._sample_rate = self._buffer.sample_rate
        self._stabilizer = stabilizer or SpeakerLabelStabilizer()
        self._classifier = classifier or MeetingClassifier()
        self._aligner = aligner or TranscriptSpeakerAligner()
        self._smoothing_min_duration = (
            smoothing_min_duration
            if smoothing_min_duration is not None
            else settings.SMOOTHING_MIN_DURATION_SECONDS
        )
        self._call_timeout = call_timeout if call_timeout is not None else settings.EXTERNAL_CALL_TIMEOUT_SECONDS
        self._semaphore = asyncio.Semaphore(max(1, max_concurrent_chunks or settings.MAX_CONCURRENT_CHUNKS))
        self._discard_short_tail = (
            discard_short_tail if discard_short_tail is not None else settings.DISCARD_SHORT_TAIL
        )
        self._on_chunk = on_chunk
        self._on_classification = on_classification

        self._state_lock = threading.Lock()
        self._merger: TranscriptMerger[_ChunkOutcome] = TranscriptMerger(self._apply)
        self._tasks: set[asyncio.Task] = set()
        # Bumped on reset/cancel; results from an older generation are dropped
        self._generation = 0

        self._chunks: list[TranscriptChunk] = []
        self._segments: list[StabilizedSegment] = []  # recording-time segments, all chunks
        self._classification: MeetingClassification | None = None
        self._received_samples: dict[str, int] = {}
        self._accepting = True

        # Observable progress
        self.current_chunk_index: int = -1  # last applied chunk
        self.total_chunks: int = 0  # dispatched chunks
        self.last_error: MeetingScribeError | None = None
        self.is_processing: bool = False

    # ------------------------------------------------------------------ input

    def add_audio_buffer(
        self,
        samples: np.ndarray | Sequence[float],
        sample_rate: int | None = None,
        elapsed_time: float | None = None,
        source: str = MIC,
    ) -> int:
        """
        Append one capture buffer (any rate / channel layout, converted to mono
        float32 at the session rate). source is "mic" or "system"; the two are
        mixed when a chunk is emitted. elapsed_time is the recording time at the
        end of the buffer; derived from the source's sample count when omitted.
        Returns the number of chunks dispatched for processing.

        Must be called on the session's event loop. A call without a running
        loop raises RuntimeError before any audio is buffered.
        """
        loop = asyncio.get_running_loop()
        if source not in SOURCES:
            raise ValueError(f"unknown audio source {source!r}")
        if not self._accepting:
            logger.debug("Session %s: audio after finish/cancel ignored", self._session_id)
            return 0
        try:
            mono = to_mono_float32(samples, sample_rate or self._sample_rate, self._sample_rate)
        except AudioFormatInvalid as e:
            logger.warning("Session %s: dropped audio buffer: %s", self._session_id, e)
            self.last_error = e
            return 0

        self._received_samples[source] = self._received_samples.get(source, 0) + mono.size
        if elapsed_time is None:
            elapsed_time = self._received_samples[source] / float(self._sample_rate)

        dispatched = 0
        chunk = self._buffer.add_samples(mono, elapsed_time, source=source)
        while chunk is not None:
            self._dispatch(chunk, loop)
            dispatched += 1
            chunk = self._buffer.poll()
        return dispatched

    # ------------------------------------------------------------- processing

    def _dispatch(self, chunk: AudioChunk, loop: asyncio.AbstractEventLoop) -> None:
        self.total_chunks += 1
        task = loop.create_task(self._process(chunk, self._generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _diarize(self, chunk: AudioChunk) -> DiarizationResult:
        try:
            return await self._diarizer.diarize(chunk)
        except Exception as e:
            logger.warning("Diarization failed for chunk #%d, speaker unknown: %s", chunk.index, e)
            return DiarizationResult.unavailable()

    async def _call_backends(self, chunk: AudioChunk) -> tuple[str, DiarizationResult]:
        result, diarization = await asyncio.gather(
            self._transcriber.transcribe(chunk.samples, is_final=True),
            self._diarize(chunk),
        )
        return result.text, diarization

    async def _process(self, chunk: AudioChunk, generation: int) -> None:
        started = time.monotonic()
        logger.info("Processing chunk #%d (t=%.0fs)", chunk.index, chunk.start_time)
        error: MeetingScribeError | None = None
        text = ""
        diarization = DiarizationResult.unavailable()
        try:
            async with self._semaphore:
                text, diarization = await asyncio.wait_for(self._call_backends(chunk), timeout=self._call_timeout)
        except asyncio.TimeoutError:
            error = ProcessingFailed(f"chunk #{chunk.index} timed out after {self._call_timeout:g}s")
        except MeetingScribeError as e:
            error = e
        except Exception as e:
            logger.exception("Unexpected error processing chunk #%d", chunk.index)
            error = ProcessingFailed(str(e) or type(e).__name__)

        if generation != self._generation:
            return
        outcome = _ChunkOutcome(
            chunk=chunk,
            transcript=text,
            segments=tuple(sorted(diarization.segments, key=lambda s: s.start)),
            latency=time.monotonic() - started,
            error=error,
        )
        self._merger.submit(chunk.index, outcome)

    def _apply(self, index: int, outcome: _ChunkOutcome) -> None:
        """
        Called by the merger in strict index order. Never raises: anything that
        goes wrong here is recorded as a failed chunk so later indices still apply.
        """
        chunk = outcome.chunk
        classification: MeetingClassification | None = None
        with self._state_lock:
            error = outcome.error
            transcript_chunk: TranscriptChunk | None = None
            if error is None:
                try:
                    transcript_chunk, shifted, classification = self._build_chunk(index, outcome)
                except Exception as e:
                    logger.exception("Session %s: could not apply chunk #%d", self._session_id, index)
                    error = ProcessingFailed(str(e) or type(e).__name__)
                else:
                    self._segments.extend(shifted)
                    if classification is not None:
                        previous = self._classification
                        if previous is None or previous.meeting_type != classification.meeting_type:
                            logger.info(
                                "Meeting type: %s (%d speakers, confidence %.2f)",
                                classification.meeting_type.display_name,
                                classification.speaker_count,
                                classification.confidence,
                            )
                        self._classification = classification

            if transcript_chunk is None:
                logger.warning("Failed to process chunk #%d: %s", index, error)
                self.last_error = error
                transcript_chunk = TranscriptChunk(
                    index=index,
                    start_time=chunk.start_time,
                    duration=chunk.duration,
                    transcript="",
                    processing_time=outcome.latency,
                    error=str(error),
                )
            else:
                logger.info(
                    "Chunk #%d processed in %.2fs (%d words, %d spans)",
                    index,
                    outcome.latency,
                    len(outcome.transcript.split()),
                    len(transcript_chunk.segments),
                )
            self._chunks.append(transcript_chunk)
            self.current_chunk_index = index

        self._notify(transcript_chunk, classification)

    def _build_chunk(
        self, index: int, outcome: _ChunkOutcome
    ) -> tuple[TranscriptChunk, list[StabilizedSegment], MeetingClassification | None]:
        """Stabilize, smooth, align and classify one chunk without touching session state."""
        chunk = outcome.chunk
        # Carry the stable label across chunk boundaries
        stabilized = self._stabilizer.stabilize_sequence(
            outcome.segments, current_label=self._stabilizer.last_stable_label
        )
        smoothed = self._stabilizer.temporal_smooth(stabilized, self._smoothing_min_duration)
        aligned = self._aligner.align(outcome.transcript, smoothed, chunk.start_time, chunk.duration)
        transcript_chunk = TranscriptChunk(
            index=index,
            start_time=chunk.start_time,
            duration=chunk.duration,
            transcript=outcome.transcript,
            segments=tuple(aligned),
            processing_time=outcome.latency,
        )
        shifted = [replace(s, start=s.start + chunk.start_time, end=s.end + chunk.start_time) for s in smoothed]
        classification = self._classifier.classify(self._segments + shifted) if shifted else None
        return transcript_chunk, shifted, classification

    def _notify(self, chunk: TranscriptChunk, classification: MeetingClassification | None) -> None:
        try:
            if self._on_chunk is not None:
                self._on_chunk(chunk)
            if classification is not None and self._on_classification is not None:
                self._on_classification(classification)
        except Exception:
            logger.exception("Session %s: listener failed for chunk #%d", self._session_id, chunk.index)

    # -------------------------------------------------------------- lifecycle

    async def finish_processing(self) -> ProcessedMeeting:
        """Flush remaining audio, wait for every dispatched chunk, return the combined result."""
        self.is_processing = True
        self._accepting = False
        try:
            tail = self._buffer.flush()
            if tail is not None:
                if self._discard_short_tail and self._buffer.is_too_short(tail):
                    logger.info(
                        "Discarding %.1fs tail (< %.1fs minimum)", tail.duration, self._buffer.min_chunk_duration
                    )
                else:
                    self._dispatch(tail, asyncio.get_running_loop())
            await self._wait_for_tasks()
            return self.result()
        finally:
            self.is_processing = False

    async def cancel(self) -> None:
        """
        Stop the session: drop buffered audio, cancel in-flight calls.
        Chunks already applied stay as they are.
        """
        self._accepting = False
        self._generation += 1
        tail = self._buffer.flush()
        if tail is not None:
            logger.info("Cancel: dropped %.1fs of unprocessed audio", tail.duration)
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._merger.reset(first_index=self._buffer.chunks_emitted)

    def reset(self) -> None:
        """Cancel everything and clear all state for a new recording."""
        self._generation += 1
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._buffer.reset()
        self._stabilizer.reset()
        self._merger.reset()
        with self._state_lock:
            self._chunks.clear()
            self._segments.clear()
            self._classification = None
        self._received_samples.clear()
        self._accepting = True
        self.current_chunk_index = -1
        self.total_chunks = 0
        self.last_error = None
        self.is_processing = False
        logger.info("Session %s reset", self._session_id)

    async def _wait_for_tasks(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ---------------------------------------------------------------- results

    def result(self) -> ProcessedMeeting:
        with self._state_lock:
            chunks = tuple(sorted(self._chunks, key=lambda c: c.index))
            speakers = tuple(sorted({s.speaker_id for s in self._segments if s.speaker_id}))
            classification = self._classification
        last = chunks[-1] if chunks else None
        return ProcessedMeeting(
            transcript=combine_chunks(chunks),
            chunks=chunks,
            total_duration=(last.start_time + last.duration) if last else 0.0,
            processing_time=sum(c.processing_time for c in chunks),
            failed_chunks=tuple(c.index for c in chunks if c.failed),
            classification=classification,
            speakers=speakers,
        )

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def chunks(self) -> tuple[TranscriptChunk, ...]:
        with self._state_lock:
            return tuple(self._chunks)

    @property
    def segments(self) -> tuple[StabilizedSegment, ...]:
        with self._state_lock:
            return tuple(self._segments)

    @property
    def classification(self) -> MeetingClassification | None:
        return self._classification

    @property
    def processing_progress(self) -> float:
        if self.total_chunks == 0:
            return 0.0
        return len(self._chunks) / self.total_chunks

    @property
    def stabilizer(self) -> SpeakerLabelStabilizer:
        return self._stabilizer

    @property
    def buffer(self) -> AudioChunkBuffer:
        return self._buffer
