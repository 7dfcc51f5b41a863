"""
WebSocketManager: one WebSocket = one MeetingSession.

Inbound:  binary PCM 16-bit mono at SAMPLE_RATE; text {"type": "stop"} ends the stream.
Outbound: JSON messages (see schemas/messages.py), written by a single sender
task draining an outbox queue so session callbacks never await the socket.

On stop the session is finished: the tail is flushed, every dispatched chunk
is processed, and a "final" message is sent if the socket is still open. On
disconnect the session is cancelled and no final message is sent.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from meetscribe.asr.base import Transcriber
from meetscribe.audio import AudioReceiver
from meetscribe.diarization.base import Diarizer
from meetscribe.meeting.classifier import MeetingClassification
from meetscribe.schemas.messages import ChunkMessage, ClassificationMessage, FinalMessage, SessionMessage
from meetscribe.session import MeetingSession
from meetscribe.transcript.models import TranscriptChunk

logger = logging.getLogger(__name__)


def _is_stop(text: str) -> bool:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return text.strip().lower() == "stop"
    return isinstance(payload, dict) and payload.get("type") == "stop"


class WebSocketManager:
    """Bridges one WebSocket connection to one MeetingSession."""

    def __init__(self, websocket: WebSocket, transcriber: Transcriber, diarizer: Diarizer | None = None) -> None:
        self._ws = websocket
        self._receiver = AudioReceiver()
        self._outbox: asyncio.Queue[str | None] = asyncio.Queue()
        self._sender_task: asyncio.Task[Any] | None = None
        self._closed = False
        self._session = MeetingSession(
            transcriber,
            diarizer,
            on_chunk=self._on_chunk,
            on_classification=self._on_classification,
        )

    @property
    def session(self) -> MeetingSession:
        return self._session

    def _on_chunk(self, chunk: TranscriptChunk) -> None:
        self._outbox.put_nowait(ChunkMessage.from_chunk(chunk).model_dump_json())

    def _on_classification(self, classification: MeetingClassification) -> None:
        self._outbox.put_nowait(ClassificationMessage.from_classification(classification).model_dump_json())

    async def _sender(self) -> None:
        while True:
            payload = await self._outbox.get()
            if payload is None:
                break
            if self._closed:
                continue
            try:
                await self._ws.send_text(payload)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.info("Session %s: client gone, dropping outbound messages (%s)", self._session.session_id, e)
                self._closed = True

    async def run(self) -> None:
        """Receive audio until stop (finish and send final) or disconnect (cancel)."""
        session_id = self._session.session_id
        logger.info("Session %s: connected", session_id)
        self._outbox.put_nowait(SessionMessage(session_id=session_id).model_dump_json())
        self._sender_task = asyncio.create_task(self._sender())

        try:
            while not self._closed:
                try:
                    msg = await self._ws.receive()
                except (WebSocketDisconnect, RuntimeError) as e:
                    logger.info("Session %s: receive ended (%s)", session_id, e)
                    self._closed = True
                    break
                if msg.get("type") == "websocket.disconnect":
                    self._closed = True
                    break
                data = msg.get("bytes")
                if data is not None:
                    samples = self._receiver.feed(data)
                    if samples.size:
                        self._session.add_audio_buffer(samples, elapsed_time=self._receiver.elapsed_seconds)
                    continue
                text = msg.get("text")
                if text and _is_stop(text):
                    logger.info("Session %s: stop requested", session_id)
                    break
        finally:
            if self._closed:
                # Client is gone: nobody is waiting for the remaining chunks
                await self._session.cancel()
                result = self._session.result()
                logger.info(
                    "Session %s: disconnected, cancelled after %d chunks (%d failed)",
                    session_id,
                    len(result.chunks),
                    len(result.failed_chunks),
                )
            else:
                result = await self._session.finish_processing()
                logger.info(
                    "Session %s: finished %d chunks (%.1fs audio, %d failed)",
                    session_id,
                    len(result.chunks),
                    result.total_duration,
                    len(result.failed_chunks),
                )
                self._outbox.put_nowait(FinalMessage.from_meeting(result).model_dump_json())
            self._outbox.put_nowait(None)
            await self._sender_task

    @property
    def closed(self) -> bool:
        return self._closed
