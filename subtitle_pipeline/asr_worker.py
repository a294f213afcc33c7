"""
ASR Worker — Speech-to-text using Faster-Whisper.

Wraps a CTranslate2 Whisper model behind the small contract the
orchestrator relies on: load a model once, report readiness, and lazily
yield timestamped segments for a normalized PCM source.
"""

import os
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from .errors import ModelLoadError, ModelNotFoundError

logger = logging.getLogger(__name__)

# Model names faster-whisper can download by itself
KNOWN_MODEL_SIZES = (
    "tiny", "tiny.en", "base", "base.en", "small", "small.en",
    "medium", "medium.en", "large-v1", "large-v2", "large-v3", "large",
    "distil-small.en", "distil-medium.en", "distil-large-v2",
    "distil-large-v3", "large-v3-turbo", "turbo",
)


@dataclass(frozen=True)
class TranscriptSegment:
    """A single recognized segment with timestamps in seconds."""
    start_sec: float
    end_sec: float
    text: str

    def __repr__(self):
        return (f"TranscriptSegment({self.start_sec:.2f}–{self.end_sec:.2f}s, "
                f"'{self.text[:40]}')")


class WhisperEngine:
    """
    Automatic Speech Recognition using Faster-Whisper.

    One instance holds one loaded model. It is not safe for two jobs to
    transcribe through it at the same time; TranscriptionOrchestrator
    serializes access.
    """

    def __init__(self, config=None):
        self.compute_type = getattr(config, "compute_type", "int8")
        self.device = getattr(config, "device", "cpu")
        self.beam_size = getattr(config, "beam_size", 5)
        self.vad_filter = getattr(config, "vad_filter", False)

        # Thread count: 0 = auto-detect
        raw_threads = getattr(config, "threads", 0)
        if raw_threads <= 0:
            self.cpu_threads = os.cpu_count() or 4
        else:
            self.cpu_threads = raw_threads

        self._model = None
        self._model_name: Optional[str] = None
        self._language: Optional[str] = None
        self._load_lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return self._model is not None

    @property
    def model_name(self) -> Optional[str]:
        return self._model_name

    def load_model(self, model: str, language: str = "auto"):
        """
        Load a Whisper model by size name or from a local model directory.

        Args:
            model: faster-whisper size name ("small", "large-v3", ...) or a
                   path to a CTranslate2-converted model.
            language: Language code, or "auto" to let Whisper detect it.

        Raises:
            ModelNotFoundError: If model is neither a known size nor an existing path.
            ModelLoadError: If the engine fails to initialize the model.
        """
        model = str(model)
        if model not in KNOWN_MODEL_SIZES and not Path(model).exists():
            raise ModelNotFoundError(f"Whisper model not found: {model}")

        with self._load_lock:
            self._language = None if language in (None, "", "auto") else language

            # Only reload if the model changed
            if self._model is not None and self._model_name == model:
                logger.debug(f"Model '{model}' already loaded")
                return

            self._model = None
            self._model_name = model

            logger.info(
                f"Loading Faster-Whisper model '{model}' "
                f"(device={self.device}, compute_type={self.compute_type}, "
                f"threads={self.cpu_threads})"
            )

            try:
                from faster_whisper import WhisperModel

                self._model = WhisperModel(
                    model,
                    device=self.device,
                    compute_type=self.compute_type,
                    cpu_threads=self.cpu_threads
                )
            except Exception as e:
                self._model_name = None
                raise ModelLoadError(f"{model}: {e}") from e

            logger.info("Faster-Whisper model loaded successfully.")

    def transcribe(self, source, cancel: Optional[threading.Event] = None) -> Iterator[TranscriptSegment]:
        """
        Lazily transcribe a normalized PcmSource.

        The returned iterator is one-shot. It stops pulling segments from the
        model as soon as ``cancel`` is set.
        """
        model = self._model
        audio = source.read()

        segments_iter, info = model.transcribe(
            audio,
            beam_size=self.beam_size,
            language=self._language,
            vad_filter=self.vad_filter,
        )

        if self._language is None:
            logger.info(
                f"Detected language: {info.language} "
                f"(probability: {info.language_probability:.2f})"
            )

        for seg in segments_iter:
            if cancel is not None and cancel.is_set():
                break

            text = seg.text.strip()
            if not text:
                continue

            yield TranscriptSegment(
                start_sec=seg.start,
                end_sec=max(seg.end, seg.start),
                text=text
            )
