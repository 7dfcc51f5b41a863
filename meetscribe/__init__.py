"""Live meeting transcription core: chunking, speaker-label stabilization, alignment, meeting classification."""

__version__ = "0.1.0"
