"""
Whisper Subtitle Generator — CLI Entry Point

Usage:
    python main.py video.mp4
    python main.py video.mp4 -o subtitles.srt
    python main.py podcast.mp3 --model medium --language en
"""

import sys
import argparse
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from config import load_config
from subtitle_pipeline.errors import describe_error, SubtitlePipelineError, TranscriptionCancelled
from subtitle_pipeline.orchestrator import SubtitlePipeline
from subtitle_pipeline.srt_writer import format_clock, format_timestamp

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130


def setup_logging(level: str = "INFO", log_file: str = None):
    """Configure logging for the application."""
    log_format = (
        "%(asctime)s | %(levelname)-7s | %(name)-20s | %(message)s"
    )
    date_format = "%H:%M:%S"

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=log_format,
        datefmt=date_format,
        handlers=handlers
    )

    # Suppress noisy third-party loggers
    logging.getLogger("faster_whisper").setLevel(logging.WARNING)
    logging.getLogger("ctranslate2").setLevel(logging.WARNING)


def print_banner():
    """Print the application banner."""
    banner = """
==========================================================
          Whisper Subtitle Generator

  Any audio/video file  ->  SRT subtitles
  Powered by Faster-Whisper
  100% Offline  |  CPU Optimized
==========================================================
"""
    print(banner)


class ConsoleProgress:
    """Prints a progress bar and the latest line of dialogue per segment."""

    bar_width = 30

    def __init__(self, show_text: bool = True):
        self.show_text = show_text
        self.total_sec = None

    def set_total(self, total_sec: float):
        self.total_sec = total_sec

    def __call__(self, entry, progress: float):
        filled = int(self.bar_width * progress)
        bar = "#" * filled + "-" * (self.bar_width - filled)
        position = format_clock(entry.end_sec)
        if self.total_sec is not None:
            position += f" / {format_clock(self.total_sec)}"
        print(
            f"\r  [{bar}] {progress * 100:5.1f}%  Processing: {position:<20}",
            end="", flush=True
        )
        if self.show_text:
            print(
                f"\n    [{format_timestamp(entry.start_sec)} → "
                f"{format_timestamp(entry.end_sec)}] {entry.text}"
            )


def run_job(pipeline: SubtitlePipeline, input_path: Path, output_path: Path,
            on_segment=None) -> int:
    """
    Run one transcription job on a worker thread.

    The main thread only waits, so Ctrl+C sets the cancel event and the
    pipeline stops cleanly at the next segment boundary.
    """
    cancel = threading.Event()
    on_duration = getattr(on_segment, "set_total", None)

    with ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(pipeline.process, input_path, output_path,
                                 on_segment, cancel, on_duration)
        while True:
            try:
                entries = future.result()
                break
            except KeyboardInterrupt:
                if not cancel.is_set():
                    print("\n\n  [WARN] Cancelling after the current segment...")
                    cancel.set()
            except TranscriptionCancelled as e:
                print(f"\n  [STOP] {describe_error(e)}")
                return EXIT_CANCELLED
            except SubtitlePipelineError as e:
                print(f"\n  [ERROR] {describe_error(e)}")
                return EXIT_ERROR
            except Exception as e:
                logging.exception("Unexpected error")
                print(f"\n  [ERROR] {describe_error(e)}")
                return EXIT_ERROR

    print(f"\n  [OK] Subtitles saved to: {output_path}")
    print(f"  [INFO] Total entries: {len(entries)}")
    return EXIT_OK


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Whisper Subtitle Generator — Generate SRT subtitles from any "
                    "audio or video file, fully offline.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py movie.mp4                    # Basic usage
  python main.py movie.mp4 -o my_subs.srt     # Custom output path
  python main.py movie.mp4 --model base       # Faster, less accurate
  python main.py movie.mp4 -m models/large-v3 # Local converted model
  python main.py movie.mp4 --language hi      # Force Hindi language
        """
    )

    parser.add_argument(
        "input",
        type=Path,
        help="Path to the input media file (.mp4, .mkv, .mp3, .wav, .flac, etc.)"
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output SRT file path (default: same name as input with .srt extension)"
    )
    parser.add_argument(
        "-m", "--model",
        default=None,
        help="Whisper model size or model directory (default: from config.yaml)"
    )
    parser.add_argument(
        "-l", "--language",
        default=None,
        help="Language code (e.g., 'en', 'hi', 'es') or 'auto'. Default: from config.yaml"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to custom config.yaml file"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress all output except the progress bar"
    )

    args = parser.parse_args(argv)

    # ── Validate input ──
    if not args.input.exists():
        print(f"Error: Input file not found: {args.input}")
        return EXIT_ERROR

    # ── Determine output path ──
    output_path = args.output or args.input.with_suffix(".srt")

    # ── Load config ──
    config = load_config(args.config)
    config.update_from_args(args)

    # ── Setup logging ──
    log_level = "DEBUG" if args.verbose else ("WARNING" if args.quiet else config.logging.level)
    setup_logging(level=log_level, log_file=config.logging.file)

    # ── Banner ──
    if not args.quiet:
        print_banner()
        print(f"  Input:    {args.input}")
        print(f"  Output:   {output_path}")
        print(f"  Model:    Faster-Whisper {config.asr.model} ({config.asr.compute_type})")
        if config.asr.language and config.asr.language != "auto":
            print(f"  Language: {config.asr.language}")
        else:
            print(f"  Language: Auto-detect")
        print()

    pipeline = SubtitlePipeline(config)
    progress = ConsoleProgress(show_text=not args.quiet)
    return run_job(pipeline, args.input, output_path, on_segment=progress)


if __name__ == "__main__":
    sys.exit(main())
