"""Shared fixtures: a fake sounddevice backend, a manual clock and spectra."""

import numpy as np
import pytest

from micscope.config import GalleryConfig
from micscope.core.snapshot import AudioSnapshot, readonly_view


class FakePortAudioError(Exception):
    pass


class FakeInputStream:
    """Stands in for ``sounddevice.InputStream``; pushes audio on demand."""

    def __init__(self, backend, samplerate, channels, dtype, callback):
        self.backend = backend
        self.samplerate = samplerate
        self.channels = channels
        self.dtype = dtype
        self.callback = callback
        self.started = False
        self.closed = False

    def start(self):
        if self.backend.on_start is not None:
            self.backend.on_start()
        if self.backend.start_error is not None:
            raise self.backend.start_error
        self.started = True

    def stop(self):
        self.started = False

    def close(self):
        self.closed = True

    def feed(self, block: np.ndarray):
        data = np.asarray(block, dtype=np.float32).reshape(-1, 1)
        self.callback(data, len(data), None, None)


class FakeBackend:
    """Module-like object exposing the parts of sounddevice we use."""

    PortAudioError = FakePortAudioError

    def __init__(self):
        self.streams = []
        self.device_error = None
        self.start_error = None
        self.on_start = None

    def query_devices(self, kind=None):
        if self.device_error is not None:
            raise self.device_error
        return {"name": "fake input", "max_input_channels": 1}

    def InputStream(self, samplerate, channels, dtype, callback):
        stream = FakeInputStream(self, samplerate, channels, dtype, callback)
        self.streams.append(stream)
        return stream

    @property
    def stream(self) -> FakeInputStream:
        return self.streams[-1]


class ManualClock:
    """Monotonic clock in seconds, advanced by hand."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def clock():
    return ManualClock(start=10.0)


@pytest.fixture
def config():
    return GalleryConfig()


@pytest.fixture
def make_snapshot(config):
    """Factory building a snapshot from a magnitude vector."""

    def _make(magnitudes, timestamp_ms=0.0):
        if magnitudes is None:
            return AudioSnapshot(0.0, None, config.sample_rate, config.fft_size, timestamp_ms)
        mags = readonly_view(np.asarray(magnitudes, dtype=np.uint8))
        active = mags[mags > 0]
        level = float(active.mean() / 255.0) if active.size else 0.0
        return AudioSnapshot(level, mags, config.sample_rate, config.fft_size, timestamp_ms)

    return _make


@pytest.fixture
def silent_magnitudes(config):
    return np.zeros(config.bin_count, dtype=np.uint8)


@pytest.fixture
def random_magnitudes(config):
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, config.bin_count).astype(np.uint8)
