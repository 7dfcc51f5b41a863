"""
CloudflareWhisperEngine: Whisper via Cloudflare Workers AI.

Accepts float32 audio; converts to PCM bytes for API.
Runs HTTP call in executor to avoid blocking event loop.
"""
from __future__ import annotations

import asyncio
import logging

import httpx
import numpy as np

from meetscribe.asr.base import ASRResult, Transcriber
from meetscribe.audio.receiver import float32_to_pcm_bytes
from meetscribe.config import get_settings
from meetscribe.errors import TranscriptionUnavailable

logger = logging.getLogger(__name__)

WHISPER_URL = "https://api.cloudflare.com/client/v4/accounts/{account_id}/ai/run/@cf/openai/whisper"


def parse_whisper_response(data: dict) -> str:
    """Pull transcript text out of a Workers AI response body."""
    result = data.get("result", data)
    if isinstance(result, dict):
        text = result.get("text", result.get("transcript", ""))
    elif isinstance(result, str):
        text = result
    else:
        text = ""
    return (text or "").strip()


def _sync_transcribe_cloudflare(pcm_bytes: bytes) -> ASRResult:
    """Blocking HTTP call; run in executor."""
    settings = get_settings()
    account_id = settings.CLOUDFLARE_ACCOUNT_ID
    token = settings.CLOUDFLARE_API_TOKEN
    if not account_id or not token:
        raise TranscriptionUnavailable("CLOUDFLARE_ACCOUNT_ID / CLOUDFLARE_API_TOKEN not set")

    url = WHISPER_URL.format(account_id=account_id)
    headers = {"Authorization": f"Bearer {token}"}
    body = {"audio": list(pcm_bytes)}

    try:
        with httpx.Client(timeout=settings.CLOUDFLARE_TIMEOUT_SECONDS) as client:
            resp = client.post(url, headers=headers, json=body)
    except httpx.HTTPError as e:
        raise TranscriptionUnavailable(f"Cloudflare request failed: {e}") from e
    if resp.status_code != 200:
        logger.warning("Cloudflare Whisper returned HTTP %s", resp.status_code)
        raise TranscriptionUnavailable(f"Cloudflare returned HTTP {resp.status_code}")

    text = parse_whisper_response(resp.json())
    return ASRResult(text=text, confidence=1.0 if text else 0.0)


class CloudflareWhisperEngine(Transcriber):
    """
    Remote Whisper via Cloudflare Workers AI.
    async transcribe() runs HTTP in executor; no partial/final distinction.
    """

    async def transcribe(self, audio: np.ndarray, is_final: bool = True) -> ASRResult:
        """Convert audio to PCM, run HTTP in executor. is_final ignored (one pass)."""
        pcm_bytes = float32_to_pcm_bytes(audio)
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, _sync_transcribe_cloudflare, pcm_bytes)

    @property
    def sample_rate(self) -> int:
        return get_settings().SAMPLE_RATE
