"""
SRT Writer — Standard SubRip subtitle file generator.

Converts SubtitleEntry objects into properly formatted .srt files
with HH:MM:SS,mmm timestamps and UTF-8 encoding.
"""

import logging
from datetime import timedelta
from pathlib import Path
from typing import List, Union

from .errors import PipelineIOError

logger = logging.getLogger(__name__)

Seconds = Union[float, int, timedelta]


def _to_millis(value: Seconds) -> int:
    if isinstance(value, timedelta):
        value = value.total_seconds()
    return max(0, int(round(value * 1000)))


def format_timestamp(value: Seconds) -> str:
    """
    Convert seconds (or a timedelta) to SRT timestamp format: HH:MM:SS,mmm

    Hours are not wrapped at 24 and grow past two digits when needed.

    Args:
        value: Time in seconds (e.g., 125.340) or a timedelta.

    Returns:
        Formatted timestamp string (e.g., "00:02:05,340")
    """
    total_ms = _to_millis(value)
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def format_clock(value: Seconds) -> str:
    """Short display time: M:SS below one hour, H:MM:SS above."""
    total = _to_millis(value) // 1000
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


class SRTWriter:
    """
    Writes subtitle entries to a standard SRT (SubRip) file.

    SRT format:
        1
        00:00:01,200 --> 00:00:04,800
        Hello everyone, welcome to the show.

        2
        00:00:05,100 --> 00:00:06,300
        Thanks for having me.
    """

    def write(self, entries: List, output_path: Path):
        """
        Write subtitle entries to an SRT file.

        Args:
            entries: SubtitleEntry objects, already in index order.
            output_path: Path for the output .srt file.

        Raises:
            PipelineIOError: If the file cannot be written.
        """
        output_path = Path(output_path)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, "w", encoding="utf-8", newline="\n") as f:
                f.write(self.render(entries))
        except OSError as e:
            raise PipelineIOError(f"Failed to write subtitles to {output_path}: {e}") from e

        logger.info(
            f"SRT written: {len(entries)} subtitles → {output_path}"
        )

    def render(self, entries: List) -> str:
        """Render entries as SRT text. An empty list renders as an empty string."""
        blocks = []
        for entry in entries:
            blocks.append(
                f"{entry.index}\n"
                f"{format_timestamp(entry.start_sec)} --> "
                f"{format_timestamp(entry.end_sec)}\n"
                f"{entry.text}\n"
                "\n"
            )
        return "".join(blocks)

    def write_preview(self, entries: List, max_entries: int = 10) -> str:
        """
        Generate a text preview of the subtitle entries.

        Args:
            entries: List of SubtitleEntry objects.
            max_entries: Maximum entries to include in preview.

        Returns:
            Formatted string preview.
        """
        lines = []
        shown = min(len(entries), max_entries)

        for entry in entries[:shown]:
            ts_start = format_timestamp(entry.start_sec)
            ts_end = format_timestamp(entry.end_sec)
            text_preview = entry.text[:80]
            if len(entry.text) > 80:
                text_preview += "..."
            lines.append(f"  [{ts_start} → {ts_end}] {text_preview}")

        if len(entries) > shown:
            lines.append(f"  ... and {len(entries) - shown} more entries")

        return "\n".join(lines)
