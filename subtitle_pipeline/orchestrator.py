"""
Pipeline Orchestrator — Coordinates the subtitle generation pipeline.

Stages:
  1. Model Loading + Audio Normalization (in parallel)
  2. Transcription (Faster-Whisper), streamed segment by segment
  3. SRT Output
"""

import time
import queue
import logging
import threading
from pathlib import Path
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Callable, List

from .audio_normalizer import AudioNormalizer, PcmSource
from .asr_worker import WhisperEngine
from .decoder import AudioDecoder
from .errors import (
    EngineError,
    EngineNotReadyError,
    MediaNotFoundError,
    TranscriptionCancelled,
)
from .srt_writer import SRTWriter, format_clock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubtitleEntry:
    """A single subtitle entry ready for SRT output."""
    index: int
    start_sec: float
    end_sec: float
    text: str

    @property
    def duration(self) -> float:
        return self.end_sec - self.start_sec

    def __repr__(self):
        return (f"Sub#{self.index}({self.start_sec:.2f}–{self.end_sec:.2f}s, "
                f"'{self.text[:50]}')")


# Type alias for segment sinks: (entry: SubtitleEntry, progress: float) -> None
SegmentCallback = Optional[Callable[[SubtitleEntry, float], None]]


class QueueSink:
    """
    Segment sink that hands entries to another thread through a queue.

    The orchestrator calls sinks inline, so a slow consumer delays
    transcription; putting (entry, progress) on a queue keeps that cheap.
    """

    def __init__(self, maxsize: int = 0):
        self.queue: "queue.Queue" = queue.Queue(maxsize=maxsize)

    def __call__(self, entry: SubtitleEntry, progress: float):
        self.queue.put((entry, progress))

    def drain(self) -> List[tuple]:
        """Return everything queued so far without blocking."""
        items = []
        while True:
            try:
                items.append(self.queue.get_nowait())
            except queue.Empty:
                return items


class TranscriptionOrchestrator:
    """
    Drives the recognition engine over one PcmSource and turns its segments
    into indexed SubtitleEntry objects.

    Only one run() may use the engine at a time; concurrent callers wait.
    """

    def __init__(self, engine: WhisperEngine):
        self.engine = engine
        self._lock = threading.Lock()

    def run(
        self,
        source: PcmSource,
        on_segment: SegmentCallback = None,
        cancel: Optional[threading.Event] = None
    ) -> List[SubtitleEntry]:
        """
        Transcribe a normalized source.

        Args:
            source: PcmSource produced by AudioNormalizer.
            on_segment: Called synchronously with each new entry and the
                        progress fraction (0.0-1.0) before the next segment.
            cancel: Event checked at every segment boundary.

        Returns:
            Entries indexed 1..N in the order the engine produced them.

        Raises:
            MediaNotFoundError: If the source or its file is missing.
            EngineNotReadyError: If no model has been loaded.
            TranscriptionCancelled: If cancel was set; carries the partial entries.
            EngineError: For any other failure raised by the engine.
        """
        if source is None or not Path(source.path).exists():
            raise MediaNotFoundError("Audio file not found for transcription.")
        if not self.engine.is_ready:
            raise EngineNotReadyError("Whisper model not loaded. Call load_model() first.")

        if cancel is None:
            cancel = threading.Event()

        with self._lock:
            return self._run_locked(source, on_segment, cancel)

    def _run_locked(self, source, on_segment, cancel) -> List[SubtitleEntry]:
        total_sec = source.duration_sec
        entries: List[SubtitleEntry] = []
        progress = 0.0

        segments = None
        try:
            try:
                segments = iter(self.engine.transcribe(source, cancel))
            except Exception as e:
                self._raise_engine_failure(e, cancel, entries)

            while not cancel.is_set():
                try:
                    segment = next(segments)
                except StopIteration:
                    break
                except Exception as e:
                    self._raise_engine_failure(e, cancel, entries)

                if cancel.is_set():
                    break

                entry = SubtitleEntry(
                    index=len(entries) + 1,
                    start_sec=segment.start_sec,
                    end_sec=segment.end_sec,
                    text=segment.text
                )
                entries.append(entry)

                if total_sec > 0:
                    progress = max(progress, min(1.0, segment.end_sec / total_sec))
                else:
                    progress = 1.0

                logger.debug(f"{entry} ({progress:.1%})")
                if on_segment:
                    on_segment(entry, progress)
        finally:
            close = getattr(segments, "close", None)
            if close is not None:
                close()

        if cancel.is_set():
            raise TranscriptionCancelled(entries=entries)

        return entries

    @staticmethod
    def _raise_engine_failure(error: Exception, cancel: threading.Event, entries):
        """Reclassify an engine failure as cancellation if a stop was requested."""
        if cancel.is_set():
            logger.warning(f"Engine error after cancellation was requested: {error}")
            raise TranscriptionCancelled(entries=entries) from error
        raise EngineError(str(error) or type(error).__name__) from error


class SubtitlePipeline:
    """
    Main pipeline for subtitle generation.

    Usage:
        config = load_config()
        pipeline = SubtitlePipeline(config)
        pipeline.process("video.mp4", "video.srt")
    """

    def __init__(self, config, engine: Optional[WhisperEngine] = None,
                 normalizer: Optional[AudioNormalizer] = None):
        self.config = config

        self.normalizer = normalizer or AudioNormalizer(
            decoder=AudioDecoder(ffmpeg_timeout=config.audio.ffmpeg_timeout),
            resample_filter=config.audio.resample_filter,
            temp_dir=config.audio.temp_dir,
            temp_prefix=config.audio.temp_prefix,
        )
        self.engine = engine or WhisperEngine(config.asr)
        self.orchestrator = TranscriptionOrchestrator(self.engine)
        self.writer = SRTWriter()

    def load_model(self):
        """Load the configured Whisper model (no-op if already loaded)."""
        self.engine.load_model(self.config.asr.model, self.config.asr.language)

    def process(
        self,
        input_path: Path,
        output_path: Optional[Path] = None,
        on_segment: SegmentCallback = None,
        cancel: Optional[threading.Event] = None,
        on_duration: Optional[Callable[[float], None]] = None
    ) -> List[SubtitleEntry]:
        """
        Run the full subtitle generation pipeline.

        Args:
            input_path: Path to the input audio/video file.
            output_path: Path for the output .srt file (default: input with .srt).
            on_segment: Optional sink for each entry and progress fraction.
            cancel: Optional event; setting it stops at the next segment.
            on_duration: Optional callback given the normalized audio length
                         in seconds before transcription starts.

        Returns:
            List of generated SubtitleEntry objects.

        Raises:
            TranscriptionCancelled: If cancelled. No SRT is written.
        """
        input_path = Path(input_path)
        output_path = Path(output_path) if output_path else input_path.with_suffix(".srt")
        if cancel is None:
            cancel = threading.Event()
        start_time = time.monotonic()

        logger.info(f"{'='*60}")
        logger.info("Whisper Subtitle Generator")
        logger.info(f"Input:  {input_path}")
        logger.info(f"Output: {output_path}")
        logger.info(f"ASR:    Faster-Whisper {self.config.asr.model} ({self.config.asr.compute_type})")
        logger.info(f"{'='*60}")

        source = self._prepare(input_path)

        with source:
            total_sec = source.duration_sec
            logger.info(f"Audio duration: {total_sec:.1f}s")
            if on_duration:
                on_duration(total_sec)
            logger.info("Starting transcription...")

            try:
                entries = self.orchestrator.run(source, on_segment, cancel)
            except TranscriptionCancelled as e:
                logger.info(f"Processing cancelled after {len(e.entries)} segments; "
                            f"partial results discarded.")
                raise

        self.writer.write(entries, output_path)

        elapsed = time.monotonic() - start_time
        logger.info(f"{'='*60}")
        logger.info(f"Pipeline complete in {elapsed:.1f}s")
        logger.info(f"  Subtitles: {len(entries)} entries")
        logger.info(f"  Speech:    {format_clock(sum(e.duration for e in entries))} "
                    f"of {format_clock(total_sec)}")
        logger.info(f"  Output: {output_path}")
        logger.info(f"{'='*60}")

        preview = self.writer.write_preview(entries, max_entries=5)
        if preview:
            logger.info(f"Preview:\n{preview}")

        return entries

    def _prepare(self, input_path: Path) -> PcmSource:
        """Load the model and normalize the audio in parallel."""
        if self.engine.is_ready:
            return self.normalizer.normalize(input_path)

        with ThreadPoolExecutor(max_workers=2) as executor:
            load_future = executor.submit(self.load_model)
            audio_future = executor.submit(self.normalizer.normalize, input_path)

            try:
                source = audio_future.result()
            except Exception:
                load_future.cancel()
                raise

            try:
                load_future.result()
            except Exception:
                source.close()
                raise

        return source
