"""Audio pipeline: receive, format conversion, overlapping chunk buffer, VAD."""
from .receiver import AudioReceiver, pcm_bytes_to_float32, to_mono_float32
from .chunk_buffer import MIC, SYSTEM, AudioChunk, AudioChunkBuffer, BufferStats, mix_sources
from .vad import VADProcessor

__all__ = [
    "AudioReceiver",
    "AudioChunk",
    "AudioChunkBuffer",
    "BufferStats",
    "MIC",
    "SYSTEM",
    "VADProcessor",
    "mix_sources",
    "pcm_bytes_to_float32",
    "to_mono_float32",
]
