"""
Fixed gallery constants.

There is no configuration file and no command-line flags; everything the
gallery needs is a field on :class:`GalleryConfig` with a sensible default.
"""

from dataclasses import dataclass, field
from typing import Tuple


# ISO 31-band graphic equalizer centre frequencies (Hz)
ISO_31_BANDS: Tuple[float, ...] = (
    20, 25, 31.5, 40, 50, 63, 80, 100, 125, 160, 200, 250, 315, 400, 500, 630,
    800, 1000, 1250, 1600, 2000, 2500, 3150, 4000, 5000, 6300, 8000, 10000,
    12500, 16000, 20000,
)


@dataclass(frozen=True)
class GalleryConfig:
    """Constants shared by the source, the registry and the visualizations."""

    # Audio front-end
    sample_rate: int = 44100
    fft_size: int = 2048
    channels: int = 1
    smoothing_time_constant: float = 0.8
    min_decibels: float = -100.0
    max_decibels: float = -30.0

    # Frame loop
    target_fps: int = 60
    canvas_size: int = 400
    gallery_columns: int = 5
    tile_size: int = 240

    # Band edges (Hz)
    bass_band: Tuple[float, float] = (20.0, 250.0)
    mid_band: Tuple[float, float] = (250.0, 2000.0)
    treble_band: Tuple[float, float] = (2000.0, 8000.0)
    eq_band_centres: Tuple[float, ...] = field(default=ISO_31_BANDS)

    # Beat detection
    beat_threshold: float = 0.3
    beat_min_interval_ms: float = 200.0

    @property
    def bin_count(self) -> int:
        """Number of magnitude values per snapshot."""
        return self.fft_size // 2

    @property
    def nyquist(self) -> float:
        return self.sample_rate / 2.0
