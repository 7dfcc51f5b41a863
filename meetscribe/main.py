"""
FastAPI app: WebSocket endpoint for meeting transcription with speaker labels.

Client sends binary PCM 16-bit mono at SAMPLE_RATE, then {"type": "stop"}.
Server responds with JSON messages:
  { "type": "session", "session_id": ... }
  { "type": "chunk", "index", "start_time", "duration", "segments": [...], "error" }
  { "type": "classification", "meeting_type", "speaker_count", "confidence", ... }
  { "type": "final", "transcript", "total_duration", "processing_time", "failed_chunks", ... }
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from meetscribe import __version__
from meetscribe.asr.base import Transcriber
from meetscribe.asr.cloudflare import CloudflareWhisperEngine
from meetscribe.asr.local_whisper import LocalWhisperEngine, load_whisper_model
from meetscribe.config import get_settings
from meetscribe.diarization.base import Diarizer, NullDiarizer
from meetscribe.diarization.gap_diarizer import GapDiarizer
from meetscribe.errors import TranscriptionUnavailable
from meetscribe.websocket_manager import WebSocketManager

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Set in lifespan so WebSocket route can get the transcriber without Request
_current_app: FastAPI | None = None


def setup_logging() -> None:
    """Root logging from LOG_LEVEL; also write to LOG_FILE when set."""
    settings = get_settings()
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


def get_transcriber(app: FastAPI | None = None) -> Transcriber:
    """Return transcriber based on config. Local uses the singleton model from app.state."""
    a = app or _current_app
    if a is None:
        raise RuntimeError("App not initialized (lifespan not run?)")
    settings = get_settings()
    if settings.ASR_BACKEND == "cloudflare":
        return CloudflareWhisperEngine()
    model = getattr(a.state, "whisper_model", None)
    return LocalWhisperEngine(model=model)


def get_diarizer() -> Diarizer:
    settings = get_settings()
    if settings.DIARIZATION_BACKEND == "none":
        return NullDiarizer()
    return GapDiarizer()


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _current_app
    _current_app = app
    setup_logging()
    settings = get_settings()
    app.state.whisper_model = None
    # Load Whisper model once at startup when using local backend (singleton)
    if settings.ASR_BACKEND == "local":
        try:
            app.state.whisper_model = load_whisper_model()
        except TranscriptionUnavailable as e:
            logger.error("Local transcription unavailable, chunks will fail: %s", e)
    logger.info(
        "meetscribe %s ready (asr=%s, diarization=%s)",
        __version__,
        settings.ASR_BACKEND,
        settings.DIARIZATION_BACKEND,
    )
    yield
    app.state.whisper_model = None
    _current_app = None


app = FastAPI(
    title="Meeting Transcription",
    description="WebSocket meeting transcription with stable speaker labels and meeting-type detection",
    version=__version__,
    lifespan=lifespan,
)


@app.websocket("/ws/meeting")
async def websocket_meeting(websocket: WebSocket) -> None:
    """
    WebSocket: client sends raw PCM 16-bit mono (binary) and {"type": "stop"} to end.
    Server sends session / chunk / classification / final JSON messages.
    """
    await websocket.accept()
    manager = WebSocketManager(websocket, get_transcriber(), get_diarizer())
    try:
        await manager.run()
    except WebSocketDisconnect:
        logger.info("Session %s: client disconnected", manager.session.session_id)
        return
    if not manager.closed:
        await websocket.close()


@app.get("/health")
async def health() -> dict:
    settings = get_settings()
    return {
        "status": "ok",
        "version": __version__,
        "asr_backend": settings.ASR_BACKEND,
        "diarization_backend": settings.DIARIZATION_BACKEND,
    }
