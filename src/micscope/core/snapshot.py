"""
Per-frame audio snapshot shared by every visualization.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class AudioSnapshot:
    """
    One frame of audio features.

    ``magnitudes`` is a read-only view onto a buffer that the
    :class:`~micscope.core.source.AudioSource` overwrites in place on the
    next sample.  Consumers that keep history must copy values out of it.
    ``None`` means no analyser has been allocated yet.
    """

    level: float
    magnitudes: Optional[np.ndarray]
    sample_rate: int = 44100
    fft_size: int = 2048
    timestamp_ms: float = 0.0

    @property
    def has_data(self) -> bool:
        return self.magnitudes is not None

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def bin_frequency(self, index: int) -> float:
        """Centre frequency of bin *index* in Hz."""
        return bin_frequency(index, self.sample_rate, self.fft_size)


def bin_frequency(index: int, sample_rate: int, fft_size: int) -> float:
    """Map an FFT bin index to its frequency in Hz."""
    return index * sample_rate / fft_size


def readonly_view(buffer: np.ndarray) -> np.ndarray:
    """Return a view of *buffer* that consumers cannot write through."""
    view = buffer.view()
    view.flags.writeable = False
    return view


def silent_snapshot(
    sample_rate: int = 44100,
    fft_size: int = 2048,
    timestamp_ms: float = 0.0,
) -> AudioSnapshot:
    """Snapshot representing silence: level 0 and all-zero magnitudes."""
    zeros = np.zeros(fft_size // 2, dtype=np.uint8)
    return AudioSnapshot(
        level=0.0,
        magnitudes=readonly_view(zeros),
        sample_rate=sample_rate,
        fft_size=fft_size,
        timestamp_ms=timestamp_ms,
    )
