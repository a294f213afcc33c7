"""
Audio Decoder — Generic decode-to-float and resampling.

Opens any media file as interleaved float32 PCM at its native sample rate.
libsndfile (via soundfile) handles WAV/FLAC/OGG/MP3 directly; anything it
cannot open (MP4, MKV, M4A, AAC, ...) is piped through FFmpeg instead.
"""

import json
import logging
import subprocess
import numpy as np
import resampy
import soundfile as sf
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from .errors import DecodeError

logger = logging.getLogger(__name__)


@dataclass
class DecodedAudio:
    """Float32 samples shaped (frames, channels) at their native rate."""
    samples: np.ndarray
    sample_rate: int

    @property
    def channels(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.samples.shape[0] / self.sample_rate


class AudioDecoder:
    """Decodes media files to float PCM using libsndfile, then FFmpeg."""

    def __init__(self, ffmpeg_timeout: int = 600):
        self.ffmpeg_timeout = ffmpeg_timeout

    def open(self, path: Path) -> DecodedAudio:
        """
        Decode a media file into float32 interleaved samples.

        Raises:
            DecodeError: If neither libsndfile nor FFmpeg can read the file.
        """
        path = Path(path)
        try:
            samples, sample_rate = sf.read(str(path), dtype="float32", always_2d=True)
            logger.debug(f"Decoded {path.name} with libsndfile")
            return DecodedAudio(samples=samples, sample_rate=int(sample_rate))
        except (sf.SoundFileError, RuntimeError) as e:
            logger.debug(f"libsndfile cannot read {path.name} ({e}), trying FFmpeg")

        return self._decode_with_ffmpeg(path)

    def _decode_with_ffmpeg(self, path: Path) -> DecodedAudio:
        """Decode through an FFmpeg pipe as raw little-endian float32."""
        sample_rate, channels = self._probe_stream(path)

        cmd = [
            "ffmpeg",
            "-i", str(path),
            "-vn",                          # No video
            "-acodec", "pcm_f32le",         # 32-bit float PCM
            "-f", "f32le",                  # Raw samples to stdout
            "-ar", str(sample_rate),
            "-ac", str(channels),
            "-loglevel", "error",
            "pipe:1"
        ]
        logger.debug(f"FFmpeg command: {' '.join(cmd)}")

        proc = self._run(cmd)
        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()
            raise DecodeError(f"FFmpeg could not decode {path.name}: {stderr}")

        samples = np.frombuffer(proc.stdout, dtype="<f4")
        usable = len(samples) - len(samples) % channels
        samples = samples[:usable].reshape(-1, channels).astype(np.float32, copy=False)

        logger.debug(
            f"Decoded {path.name} with FFmpeg: {samples.shape[0]} frames, "
            f"{channels} ch @ {sample_rate}Hz"
        )
        return DecodedAudio(samples=samples, sample_rate=sample_rate)

    def _probe_stream(self, path: Path) -> Tuple[int, int]:
        """Return (sample_rate, channels) of the first audio stream via ffprobe."""
        cmd = [
            "ffprobe",
            "-v", "error",
            "-select_streams", "a:0",
            "-show_entries", "stream=sample_rate,channels",
            "-of", "json",
            str(path)
        ]
        proc = self._run(cmd)
        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()
            raise DecodeError(f"Unreadable media container {path.name}: {stderr}")

        try:
            streams = json.loads(proc.stdout or b"{}").get("streams", [])
            stream = streams[0]
            sample_rate, channels = int(stream["sample_rate"]), int(stream["channels"])
        except (ValueError, LookupError, TypeError) as e:
            raise DecodeError(f"No audio stream found in {path.name}") from e

        if sample_rate <= 0 or channels <= 0:
            raise DecodeError(
                f"Invalid audio stream in {path.name}: {sample_rate}Hz, {channels} ch"
            )
        return sample_rate, channels

    def _run(self, cmd) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(cmd, capture_output=True, timeout=self.ffmpeg_timeout)
        except FileNotFoundError as e:
            raise DecodeError(
                f"{cmd[0]} not found. Install FFmpeg and add it to PATH to "
                f"decode video containers.\n"
                f"Download: https://ffmpeg.org/download.html"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise DecodeError(f"{cmd[0]} timed out after {self.ffmpeg_timeout}s") from e


def resample(
    samples: np.ndarray,
    source_rate: int,
    target_rate: int,
    filter: str = "kaiser_best"
) -> np.ndarray:
    """
    Resample (frames, channels) float samples with a band-limited sinc filter.

    Returns the input unchanged when the rates already match. Input too
    short to yield a single output frame resamples to an empty array.
    """
    if source_rate == target_rate or samples.shape[0] == 0:
        return samples

    out_frames = int(samples.shape[0] * (float(target_rate) / source_rate))
    if out_frames < 1:
        logger.debug(f"{samples.shape[0]} frame(s) at {source_rate}Hz is under one "
                     f"frame at {target_rate}Hz, nothing to resample")
        return np.zeros((0,) + samples.shape[1:], dtype=np.float32)

    logger.debug(f"Resampling {source_rate}Hz -> {target_rate}Hz ({filter})")
    resampled = resampy.resample(samples, source_rate, target_rate, filter=filter, axis=0)
    return resampled.astype(np.float32, copy=False)
