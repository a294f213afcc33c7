"""
Shared fixtures: a scripted recognition engine and WAV builders.
"""

import threading
import numpy as np
import pytest
import soundfile as sf

from subtitle_pipeline.asr_worker import TranscriptSegment
from subtitle_pipeline.audio_normalizer import PcmSource, TARGET_FORMAT


class FakeEngine:
    """
    Recognition engine that replays a fixed list of segments.

    raise_at: index before which the engine raises ``error``.
    cancel_at: index before which the engine sets the cancel event itself
               (as if the user clicked Cancel mid-decode) and then raises.
    """

    def __init__(self, segments=None, ready=True, raise_at=None, cancel_at=None,
                 error=None, delay=0.0):
        self.segments = list(segments or [])
        self._ready = ready
        self.raise_at = raise_at
        self.cancel_at = cancel_at
        self.error = error or RuntimeError("Failed to decode during token processing")
        self.delay = delay
        self.load_calls = []
        self.pulled = 0
        self.closed = False
        self.active = 0
        self.max_active = 0
        self._active_lock = threading.Lock()

    @property
    def is_ready(self):
        return self._ready

    def load_model(self, model, language="auto"):
        self.load_calls.append((model, language))
        self._ready = True

    def transcribe(self, source, cancel=None):
        with self._active_lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            for i, seg in enumerate(self.segments):
                if self.cancel_at == i:
                    cancel.set()
                    raise self.error
                if self.raise_at == i:
                    raise self.error
                if self.delay:
                    threading.Event().wait(self.delay)
                self.pulled += 1
                yield seg
        finally:
            with self._active_lock:
                self.active -= 1
            self.closed = True


def make_segments(*spans):
    """Build TranscriptSegments from (start, end, text) tuples."""
    return [TranscriptSegment(start, end, text) for start, end, text in spans]


def write_wav(path, samples, sample_rate, subtype="PCM_16"):
    """Write float samples shaped (frames,) or (frames, channels) to a WAV."""
    sf.write(str(path), np.asarray(samples, dtype=np.float32), sample_rate, subtype=subtype)
    return path


@pytest.fixture
def temp_dir(tmp_path):
    """Isolated directory for normalizer temp files."""
    d = tmp_path / "tmp"
    d.mkdir()
    return d


@pytest.fixture
def mono_16k_wav(tmp_path):
    t = np.linspace(0, 1, 16000, endpoint=False)
    return write_wav(tmp_path / "mono16k.wav", 0.5 * np.sin(2 * np.pi * 440 * t), 16000)


@pytest.fixture
def stereo_44k_wav(tmp_path):
    t = np.linspace(0, 2, 88200, endpoint=False)
    left = 0.4 * np.sin(2 * np.pi * 440 * t)
    right = 0.4 * np.sin(2 * np.pi * 220 * t)
    return write_wav(tmp_path / "stereo44k.wav", np.stack([left, right], axis=1), 44100)


@pytest.fixture
def pcm_source(mono_16k_wav):
    """A 20-second PcmSource (duration is what drives progress)."""
    return PcmSource(mono_16k_wav, TARGET_FORMAT, duration_sec=20.0)
