"""
Frequency analyser producing byte-scaled magnitude snapshots.

Mirrors the behaviour of a browser ``AnalyserNode``: a Blackman-windowed
real FFT over the most recent ``fft_size`` samples, exponential smoothing
across calls, conversion to dB, and a linear map of
``[min_decibels, max_decibels]`` onto ``[0, 255]``.
"""

from typing import Optional

import librosa
import numpy as np
from scipy import signal as scipy_signal


class FrequencyAnalyser:
    """
    Converts time-domain blocks into uint8 magnitude vectors.

    Args:
        fft_size: Transform size in samples; must be a power of two.  The
            output has ``fft_size // 2`` bins.
        sample_rate: Sample rate of the incoming audio in Hz.
        smoothing_time_constant: Weight of the previous frame in the
            per-bin smoothing, in [0, 1).
        min_decibels: Level mapped onto byte 0.
        max_decibels: Level mapped onto byte 255.
    """

    def __init__(
        self,
        fft_size: int = 2048,
        sample_rate: int = 44100,
        smoothing_time_constant: float = 0.8,
        min_decibels: float = -100.0,
        max_decibels: float = -30.0,
    ):
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {fft_size}")
        if not 0.0 <= smoothing_time_constant < 1.0:
            raise ValueError("smoothing_time_constant must be in [0, 1)")
        if max_decibels <= min_decibels:
            raise ValueError("max_decibels must exceed min_decibels")

        self.fft_size = fft_size
        self.sample_rate = sample_rate
        self.smoothing_time_constant = smoothing_time_constant
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels

        self.window = scipy_signal.get_window("blackman", fft_size)
        # librosa includes the Nyquist bin; the analyser does not
        self.frequencies = librosa.fft_frequencies(sr=sample_rate, n_fft=fft_size)[: self.bin_count]
        self._smoothed = np.zeros(self.bin_count, dtype=np.float64)

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def reset(self) -> None:
        """Forget the smoothing history."""
        self._smoothed.fill(0.0)

    def _latest_block(self, samples: np.ndarray) -> np.ndarray:
        """Last ``fft_size`` samples, zero-padded at the front if short."""
        samples = np.asarray(samples, dtype=np.float64).ravel()
        if len(samples) >= self.fft_size:
            return samples[-self.fft_size:]
        block = np.zeros(self.fft_size, dtype=np.float64)
        if len(samples):
            block[-len(samples):] = samples
        return block

    def magnitude_spectrum(self, samples: np.ndarray) -> np.ndarray:
        """Smoothed linear magnitudes (one per bin), updating the history."""
        block = self._latest_block(samples) * self.window
        spectrum = np.abs(np.fft.rfft(block))[: self.bin_count] / self.fft_size

        tau = self.smoothing_time_constant
        self._smoothed = tau * self._smoothed + (1.0 - tau) * spectrum
        return self._smoothed

    def analyse(self, samples: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Compute the byte-scaled magnitudes for *samples*.

        Args:
            samples: Mono time-domain samples, most recent last.
            out: Optional uint8 buffer of length ``bin_count`` to write into.

        Returns:
            The uint8 magnitude vector (*out* when given).
        """
        linear = self.magnitude_spectrum(samples)
        with np.errstate(divide="ignore"):
            db = 20.0 * np.log10(linear)

        scale = 255.0 / (self.max_decibels - self.min_decibels)
        scaled = np.clip((db - self.min_decibels) * scale, 0.0, 255.0)
        scaled = np.nan_to_num(scaled, nan=0.0)

        if out is None:
            out = np.empty(self.bin_count, dtype=np.uint8)
        out[:] = np.floor(scaled).astype(np.uint8)
        return out
