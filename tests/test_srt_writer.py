"""
Tests for the SRT Writer module.
"""

import pytest
from datetime import timedelta
from subtitle_pipeline.errors import PipelineIOError
from subtitle_pipeline.orchestrator import SubtitleEntry
from subtitle_pipeline.srt_writer import SRTWriter, format_clock, format_timestamp


@pytest.fixture
def writer():
    return SRTWriter()


@pytest.fixture
def sample_entries():
    return [
        SubtitleEntry(1, 1.2, 4.8, "Hello everyone, welcome to the show."),
        SubtitleEntry(2, 5.1, 6.3, "Thanks for having me."),
        SubtitleEntry(3, 6.5, 10.2, "Today we're going to talk about something amazing."),
        SubtitleEntry(4, 10.5, 11.8, "Let's begin."),
    ]


class TestTimestampFormat:
    """Test SRT timestamp formatting."""

    def test_zero(self):
        assert format_timestamp(0.0) == "00:00:00,000"

    def test_simple_seconds(self):
        assert format_timestamp(5.0) == "00:00:05,000"

    def test_milliseconds(self):
        assert format_timestamp(1.234) == "00:00:01,234"

    def test_minutes(self):
        assert format_timestamp(65.5) == "00:01:05,500"

    def test_hours(self):
        assert format_timestamp(3661.123) == "01:01:01,123"

    def test_hour_minute_second_millis(self):
        assert format_timestamp(timedelta(hours=1, minutes=2, seconds=3, milliseconds=4)) == "01:02:03,004"

    def test_hours_not_wrapped_at_24(self):
        assert format_timestamp(timedelta(hours=25, seconds=1)) == "25:00:01,000"

    def test_hours_beyond_two_digits(self):
        assert format_timestamp(100 * 3600.0) == "100:00:00,000"

    def test_negative_clamps_to_zero(self):
        assert format_timestamp(-1.0) == "00:00:00,000"

    def test_fractional_milliseconds(self):
        # 1.5556 → should round to 556ms
        assert format_timestamp(1.5556) == "00:00:01,556"

    def test_rounding_carries_into_seconds(self):
        assert format_timestamp(59.9996) == "00:01:00,000"


class TestClockFormat:

    def test_under_an_hour(self):
        assert format_clock(65.0) == "1:05"

    def test_over_an_hour(self):
        assert format_clock(3725.0) == "1:02:05"


class TestSRTWrite:
    """Test SRT file writing."""

    def test_single_entry_exact_output(self, writer, tmp_path):
        entries = [SubtitleEntry(1, 1.0, 2.5, "Hello")]
        output = tmp_path / "hello.srt"
        writer.write(entries, output)
        assert output.read_bytes() == b"1\n00:00:01,000 --> 00:00:02,500\nHello\n\n"

    def test_write_utf8_encoding(self, writer, tmp_path):
        entries = [SubtitleEntry(1, 0.0, 1.0, "Héllo wörld — ñ 字幕")]
        output = tmp_path / "utf8.srt"
        writer.write(entries, output)
        raw = output.read_bytes()
        assert not raw.startswith(b"\xef\xbb\xbf")
        assert "Héllo wörld — ñ 字幕" in raw.decode("utf-8")

    def test_write_keeps_entry_indices(self, writer, sample_entries, tmp_path):
        output = tmp_path / "indexed.srt"
        writer.write(sample_entries, output)
        blocks = output.read_text(encoding="utf-8").split("\n\n")
        indices = [b.split("\n")[0] for b in blocks if b]
        assert indices == ["1", "2", "3", "4"]

    def test_four_lines_per_block(self, writer, sample_entries, tmp_path):
        output = tmp_path / "blocks.srt"
        writer.write(sample_entries, output)
        lines = output.read_text(encoding="utf-8").split("\n")
        # Trailing "" after the final newline
        assert len(lines) == 4 * len(sample_entries) + 1
        assert lines[1] == "00:00:01,200 --> 00:00:04,800"
        assert lines[3] == ""

    def test_write_empty_entries(self, writer, tmp_path):
        output = tmp_path / "empty.srt"
        writer.write([], output)
        assert output.exists()
        assert output.read_bytes() == b""

    def test_write_creates_parent_dirs(self, writer, sample_entries, tmp_path):
        output = tmp_path / "sub" / "dir" / "test.srt"
        writer.write(sample_entries, output)
        assert output.exists()

    def test_write_failure_raises_io_error(self, writer, sample_entries, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")
        with pytest.raises(PipelineIOError):
            writer.write(sample_entries, blocker / "out.srt")


class TestPreview:
    """Test the preview formatter."""

    def test_preview_limits_entries(self, writer, sample_entries):
        preview = writer.write_preview(sample_entries, max_entries=2)
        lines = preview.strip().split("\n")
        assert len(lines) == 3  # 2 entries + "and X more"
        assert "2 more" in lines[-1]

    def test_preview_truncates_long_text(self, writer):
        long_text = "A" * 100
        entries = [SubtitleEntry(1, 0.0, 1.0, long_text)]
        preview = writer.write_preview(entries)
        assert "..." in preview

    def test_preview_empty(self, writer):
        preview = writer.write_preview([])
        assert preview == ""
