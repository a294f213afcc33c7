"""
Error taxonomy for the subtitle pipeline.

Every failure the pipeline can surface is a SubtitlePipelineError subclass
with its own user-facing title. Where a builtin exception describes the
same kind of failure (missing file, OS write error) the class also derives
from it, so callers that only know the builtin still catch it.
"""

from typing import List, Optional


class SubtitlePipelineError(Exception):
    """Base class for all pipeline errors."""
    title = "Subtitle generation failed"
    is_failure = True


class MediaNotFoundError(SubtitlePipelineError, FileNotFoundError):
    """The input media file (or a PCM source's file) does not exist."""
    title = "Input file not found"


class ModelNotFoundError(MediaNotFoundError):
    """The Whisper model file or directory does not exist."""
    title = "Whisper model not found"


class DecodeError(SubtitlePipelineError):
    """The input container is unreadable, corrupt, or has no audio stream."""
    title = "Could not decode audio"


class PipelineIOError(SubtitlePipelineError, OSError):
    """Writing the temporary WAV or the output SRT failed."""
    title = "Could not write file"


class ModelLoadError(SubtitlePipelineError):
    """The recognition engine failed to initialize a model."""
    title = "Failed to load Whisper model"


class EngineNotReadyError(SubtitlePipelineError, RuntimeError):
    """Transcription was attempted before a model finished loading."""
    title = "Whisper model not loaded"


class EngineError(SubtitlePipelineError, RuntimeError):
    """The recognition engine failed for a reason unrelated to cancellation."""
    title = "Transcription failed"


class TranscriptionCancelled(SubtitlePipelineError):
    """
    Cooperative stop requested by the caller.

    Not a failure: ``entries`` holds whatever was collected before the stop
    so the caller can decide whether to keep or discard it.
    """
    title = "Processing cancelled"
    is_failure = False

    def __init__(self, message: str = "Transcription was cancelled.",
                 entries: Optional[List] = None):
        super().__init__(message)
        self.entries = list(entries or [])


def describe_error(exc: BaseException) -> str:
    """Build the human-readable message shown to the user for an error."""
    if isinstance(exc, TranscriptionCancelled):
        return f"{exc.title}."
    if isinstance(exc, SubtitlePipelineError):
        detail = str(exc)
        return f"{exc.title}: {detail}" if detail else exc.title
    return f"Unexpected error: {exc}"
