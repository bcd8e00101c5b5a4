"""
Microphone capture and per-frame snapshot production.

Architecture Overview
---------------------
::

    Input device
        │  sounddevice callback thread
        ▼
    sample ring (fft_size float32, guarded by a lock)
        │  AudioSource.sample(), once per animation tick
        ▼
    FrequencyAnalyser ─► shared uint8 buffer (overwritten in place)
        │
        ▼
    AudioSnapshot(level, read-only view of the buffer)

State machine: ``UNINITIALIZED → INITIALIZED → CAPTURING ⇄ STOPPED``.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from typing import Any, Callable, Optional

import numpy as np

from micscope.config import GalleryConfig
from micscope.core.analyser import FrequencyAnalyser
from micscope.core.errors import DeviceUnavailable, PermissionDenied, UnsupportedPlatform
from micscope.core.features import audio_level
from micscope.core.snapshot import AudioSnapshot, readonly_view

try:
    import sounddevice as sd
except (ImportError, OSError):  # PortAudio missing on this host
    sd = None

logger = logging.getLogger(__name__)

_PERMISSION_HINTS = ("permission", "denied", "not authorized", "not permitted")


class CaptureState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    CAPTURING = "capturing"
    STOPPED = "stopped"


def _classify_capture_error(exc: BaseException) -> Exception:
    """Map a backend failure onto the capture error taxonomy."""
    if isinstance(exc, PermissionError):
        return PermissionDenied(str(exc))
    message = str(exc).lower()
    if any(hint in message for hint in _PERMISSION_HINTS):
        return PermissionDenied(str(exc))
    return DeviceUnavailable(str(exc))


class AudioSource:
    """
    Owns the input stream and the analyser.

    Args:
        config: Gallery constants (sample rate, FFT size, analyser dB range).
        backend: Module-like object exposing ``InputStream``,
            ``query_devices`` and ``PortAudioError`` (the sounddevice API).
            Defaults to sounddevice; ``None`` means no capture capability.
        clock: Monotonic clock in seconds, used to timestamp snapshots.
    """

    _DEFAULT_BACKEND = object()

    def __init__(
        self,
        config: Optional[GalleryConfig] = None,
        backend: Any = _DEFAULT_BACKEND,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or GalleryConfig()
        self.backend = sd if backend is self._DEFAULT_BACKEND else backend
        self.clock = clock

        self.state = CaptureState.UNINITIALIZED
        self.analyser: Optional[FrequencyAnalyser] = None

        self._lock = threading.Lock()
        self._stream = None
        # Bumped by stop(); an in-flight request_capture() compares against it
        self._generation = 0

        self._samples: Optional[np.ndarray] = None
        self._buffer: Optional[np.ndarray] = None
        self._view: Optional[np.ndarray] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_capturing(self) -> bool:
        return self.state is CaptureState.CAPTURING

    def _backend_error(self) -> type:
        return getattr(self.backend, "PortAudioError", OSError)

    def initialize(self) -> None:
        """
        Allocate the analyser and shared buffers.

        Raises:
            UnsupportedPlatform: no capture backend or no input device.
        """
        if self.state is not CaptureState.UNINITIALIZED:
            return
        if self.backend is None:
            raise UnsupportedPlatform("sounddevice / PortAudio is not available")

        try:
            self.backend.query_devices(kind="input")
        except (ValueError, self._backend_error()) as exc:
            raise UnsupportedPlatform(f"No audio input device: {exc}") from exc

        cfg = self.config
        self.analyser = FrequencyAnalyser(
            fft_size=cfg.fft_size,
            sample_rate=cfg.sample_rate,
            smoothing_time_constant=cfg.smoothing_time_constant,
            min_decibels=cfg.min_decibels,
            max_decibels=cfg.max_decibels,
        )
        self._samples = np.zeros(cfg.fft_size, dtype=np.float32)
        self._buffer = np.zeros(cfg.bin_count, dtype=np.uint8)
        self._view = readonly_view(self._buffer)
        self.state = CaptureState.INITIALIZED
        logger.info(
            "Audio source initialized: fft_size=%d, sample_rate=%d",
            cfg.fft_size,
            cfg.sample_rate,
        )

    def request_capture(self) -> None:
        """
        Open the input stream and start capturing.

        Idempotent while already capturing.  If :meth:`stop` runs while
        the stream is being opened, the new stream is closed and the
        source stays stopped.

        Raises:
            PermissionDenied: the host refused microphone access.
            DeviceUnavailable: the device could not be opened.
            RuntimeError: :meth:`initialize` has not been called.
        """
        with self._lock:
            if self.state is CaptureState.UNINITIALIZED:
                raise RuntimeError("initialize() must succeed before request_capture()")
            if self.state is CaptureState.CAPTURING:
                return
            generation = self._generation

        cfg = self.config
        stream = None
        try:
            stream = self.backend.InputStream(
                samplerate=cfg.sample_rate,
                channels=cfg.channels,
                dtype="float32",
                callback=self._on_audio,
            )
            stream.start()
        except (OSError, ValueError, self._backend_error()) as exc:
            if stream is not None:
                stream.close()
            error = _classify_capture_error(exc)
            logger.warning("Microphone capture failed: %s", error)
            raise error from exc

        with self._lock:
            if generation != self._generation:
                stale = stream
            else:
                stale = None
                self._stream = stream
                self.state = CaptureState.CAPTURING

        if stale is not None:
            logger.info("Capture request superseded by stop(); discarding stream")
            self._close(stale)
            return

        logger.info("Microphone capture started")

    def stop(self) -> None:
        """Release the capture device; later samples are silent."""
        with self._lock:
            self._generation += 1
            stream, self._stream = self._stream, None
            if self.state is CaptureState.CAPTURING:
                self.state = CaptureState.STOPPED
            if self._samples is not None:
                self._samples.fill(0.0)
                self._buffer.fill(0)
            if self.analyser is not None:
                self.analyser.reset()

        if stream is not None:
            self._close(stream)
            logger.info("Microphone capture stopped")

    @staticmethod
    def _close(stream) -> None:
        stream.stop()
        stream.close()

    # ------------------------------------------------------------------
    # Audio thread
    # ------------------------------------------------------------------

    def _on_audio(self, indata, frames, time_info, status) -> None:
        if status:
            logger.debug("Input stream status: %s", status)
        block = np.asarray(indata, dtype=np.float32)
        mono = block[:, 0] if block.ndim == 2 else block

        with self._lock:
            ring = self._samples
            if ring is None:
                return
            n = len(mono)
            if n >= len(ring):
                ring[:] = mono[-len(ring):]
            elif n:
                ring[:-n] = ring[n:]
                ring[-n:] = mono

    # ------------------------------------------------------------------
    # Per-frame sampling
    # ------------------------------------------------------------------

    def sample(self) -> AudioSnapshot:
        """
        Produce this frame's snapshot.

        Call at most once per animation tick.  While not capturing the
        snapshot is silent (level 0, all-zero magnitudes); before
        :meth:`initialize` the magnitudes are ``None``.
        """
        cfg = self.config
        now_ms = self.clock() * 1000.0

        if self.state is CaptureState.UNINITIALIZED:
            return AudioSnapshot(0.0, None, cfg.sample_rate, cfg.fft_size, now_ms)

        if self.state is not CaptureState.CAPTURING:
            return AudioSnapshot(0.0, self._view, cfg.sample_rate, cfg.fft_size, now_ms)

        with self._lock:
            block = self._samples.copy()

        self.analyser.analyse(block, out=self._buffer)
        return AudioSnapshot(
            level=audio_level(self._buffer),
            magnitudes=self._view,
            sample_rate=cfg.sample_rate,
            fft_size=cfg.fft_size,
            timestamp_ms=now_ms,
        )
