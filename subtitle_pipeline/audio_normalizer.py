"""
Audio Normalizer — Converts any media file to Whisper's input format.

Produces 16kHz mono 16-bit PCM WAV. Files that are already in that format
are passed through untouched; everything else is decoded, resampled,
downmixed and written to a temporary WAV owned by the caller.
"""

import os
import tempfile
import logging
import numpy as np
import soundfile as sf
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .decoder import AudioDecoder, resample
from .errors import MediaNotFoundError, PipelineIOError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioFormat:
    sample_rate: int
    channels: int
    bits_per_sample: int


TARGET_FORMAT = AudioFormat(sample_rate=16000, channels=1, bits_per_sample=16)

_SUBTYPE_BITS = {"PCM_U8": 8, "PCM_S8": 8, "PCM_16": 16, "PCM_24": 24,
                 "PCM_32": 32, "FLOAT": 32, "DOUBLE": 64}

# libsndfile major formats that are RIFF/WAVE containers
_WAV_FORMATS = ("WAV", "WAVEX")

# Frames downmixed, quantized and written per step
BLOCK_FRAMES = 65536


class PcmSource:
    """
    A normalized audio file handed to the recognition engine.

    Exclusively owned by whoever called AudioNormalizer.normalize(): use it
    as a context manager (or call close()) so a temporary file is deleted
    on every exit path.
    """

    def __init__(self, path: Path, format: AudioFormat, duration_sec: float,
                 is_temporary: bool = False):
        self.path = Path(path)
        self.format = format
        self.duration_sec = duration_sec
        self.is_temporary = is_temporary
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def read(self) -> np.ndarray:
        """Read all samples as a 1-D float32 array in [-1, 1]."""
        if self._closed:
            raise ValueError(f"PcmSource for {self.path.name} is closed")
        audio, _ = sf.read(str(self.path), dtype="float32", always_2d=True)
        return audio[:, 0]

    def close(self):
        """Release the source; delete the file if the normalizer created it."""
        if self._closed:
            return
        self._closed = True
        if not self.is_temporary:
            return
        try:
            self.path.unlink()
            logger.debug(f"Cleaned up temp audio: {self.path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not delete temp audio {self.path}: {e}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self):
        return (f"PcmSource({self.path.name}, {self.format.sample_rate}Hz, "
                f"{self.format.channels}ch, {self.duration_sec:.2f}s"
                f"{', temp' if self.is_temporary else ''})")


class AudioNormalizer:
    """Decodes, resamples and downmixes audio to 16kHz mono 16-bit PCM."""

    def __init__(
        self,
        decoder: Optional[AudioDecoder] = None,
        resample_filter: str = "kaiser_best",
        temp_dir: Optional[str] = None,
        temp_prefix: str = "whisper_temp_"
    ):
        self.decoder = decoder or AudioDecoder()
        self.resample_filter = resample_filter
        self.temp_dir = temp_dir
        self.temp_prefix = temp_prefix

    def normalize(self, input_path: Path) -> PcmSource:
        """
        Produce a 16kHz mono 16-bit PCM source for an input media file.

        Args:
            input_path: Path to any audio or video file.

        Returns:
            PcmSource over the original file (fast path) or a new temp WAV.

        Raises:
            MediaNotFoundError: If the input file doesn't exist.
            DecodeError: If the input cannot be decoded.
            PipelineIOError: If the temporary WAV cannot be written.
        """
        input_path = Path(input_path)
        if not input_path.is_file():
            raise MediaNotFoundError(f"Media file not found: {input_path}")

        source = self._probe_fast_path(input_path)
        if source is not None:
            logger.info(f"Audio already 16kHz mono WAV, using as-is: {input_path.name}")
            return source

        decoded = self.decoder.open(input_path)
        logger.info(
            f"Converting audio: {input_path.name} "
            f"({decoded.sample_rate}Hz, {decoded.channels}ch, {decoded.duration:.1f}s)"
        )

        samples = resample(
            decoded.samples, decoded.sample_rate,
            TARGET_FORMAT.sample_rate, self.resample_filter
        )
        del decoded

        output = self._write_temp_wav(samples)
        duration = len(samples) / TARGET_FORMAT.sample_rate
        logger.info(f"Audio converted: {duration:.1f}s → {output}")

        return PcmSource(output, TARGET_FORMAT, duration, is_temporary=True)

    def _probe_fast_path(self, path: Path) -> Optional[PcmSource]:
        """Return a PcmSource over path if it is already a 16kHz mono WAV container."""
        if path.suffix.lower() != ".wav":
            return None
        try:
            info = sf.info(str(path))
        except Exception as e:
            logger.debug(f"WAV header probe failed for {path.name}, converting: {e}")
            return None

        if (info.format not in _WAV_FORMATS
                or info.samplerate != TARGET_FORMAT.sample_rate
                or info.channels != TARGET_FORMAT.channels):
            return None

        fmt = AudioFormat(
            sample_rate=info.samplerate,
            channels=info.channels,
            bits_per_sample=_SUBTYPE_BITS.get(info.subtype, 16),
        )
        return PcmSource(path, fmt, info.frames / info.samplerate, is_temporary=False)

    def _write_temp_wav(self, samples: np.ndarray) -> Path:
        """
        Downmix, quantize and write 16kHz float samples to a fresh temp WAV.

        Works through BLOCK_FRAMES frames at a time so the only full-length
        buffer is the resampled input.
        """
        try:
            fd, name = tempfile.mkstemp(suffix=".wav", prefix=self.temp_prefix,
                                        dir=self.temp_dir)
            os.close(fd)
        except OSError as e:
            raise PipelineIOError(f"Cannot create temporary WAV file: {e}") from e

        output = Path(name)
        try:
            with sf.SoundFile(str(output), mode="w", samplerate=TARGET_FORMAT.sample_rate,
                              channels=TARGET_FORMAT.channels, subtype="PCM_16",
                              format="WAV", endian="LITTLE") as wav:
                for start in range(0, len(samples), BLOCK_FRAMES):
                    block = samples[start:start + BLOCK_FRAMES]
                    wav.write(quantize(downmix(block)))
        except (OSError, RuntimeError, sf.SoundFileError) as e:
            output.unlink(missing_ok=True)
            raise PipelineIOError(f"Failed to write temporary WAV {output}: {e}") from e

        return output


def downmix(samples: np.ndarray) -> np.ndarray:
    """Average all channels of (frames, channels) samples into one."""
    if samples.ndim == 1:
        return samples
    if samples.shape[1] == 1:
        return samples[:, 0]
    return samples.mean(axis=1, dtype=np.float64)


def quantize(samples: np.ndarray) -> np.ndarray:
    """
    Convert float samples to int16 (written little-endian by the WAV writer).

    Each sample is clamped to [-1, 1], scaled by 32767 and rounded to the
    nearest integer (ties to even, like Python's round()). Callers pass
    one block at a time; the float64 working copy is block sized.
    """
    scaled = np.clip(samples.astype(np.float64), -1.0, 1.0) * 32767
    return np.round(scaled).astype(np.int16)
