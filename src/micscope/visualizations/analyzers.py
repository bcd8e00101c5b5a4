"""
Spectrum analyzers: FFT bars, 31-band EQ, harmonic series and spectral
centroid tracker.

Levels are computed in dB (floor -80) and mapped to [0, 1] before peak
hold, so held peaks decay towards the floor.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from micscope.config import ISO_31_BANDS
from micscope.core.features import (
    group_bins,
    harmonic_levels,
    octave_band_levels,
    spectral_centroid,
    spectral_rolloff,
    to_decibels,
)
from micscope.core.snapshot import AudioSnapshot
from micscope.core.temporal import (
    HistoryRing,
    PeakHold,
    SmoothedValue,
    peak_hold,
    push_history,
    smooth,
)
from micscope.visualizations.base import BLUE, DIM, GREEN, RED, YELLOW, BaseConfig, BaseVisualization

DB_FLOOR = -80.0


def db_to_unit(db) -> np.ndarray:
    """[-80, 0] dB -> [0, 1]."""
    return np.clip((np.asarray(db, dtype=np.float64) - DB_FLOOR) / -DB_FLOOR, 0.0, 1.0)


class _BarAnalyzer(BaseVisualization):
    """Bars of smoothed dB levels with per-bar peak hold."""

    n_bars = 0

    def __init__(self, config: BaseConfig):
        super().__init__(config)
        self.reset_state()

    def reset_state(self) -> None:
        self.levels = SmoothedValue(current=np.full(self.n_bars, DB_FLOOR), factor=self.cfg.smoothing)
        self.peaks = PeakHold(peak=np.zeros(self.n_bars), decay_rate=self.cfg.peak_decay)

    def measure(self, snapshot: AudioSnapshot) -> np.ndarray:
        raise NotImplementedError

    def process(self, snapshot: AudioSnapshot) -> None:
        db = self.measure(snapshot)
        smooth(self.levels, db)
        peak_hold(self.peaks, db_to_unit(db), snapshot.timestamp_ms)

    def draw_bars(self, color=GREEN) -> None:
        heights = db_to_unit(self.levels.current) * (self.height - 40)
        peaks = np.asarray(self.peaks.peak) * (self.height - 40)
        bar_w = self.width / self.n_bars
        base = self.height - 10
        for i in range(self.n_bars):
            x0 = i * bar_w + 1
            x1 = max((i + 1) * bar_w - 1, x0)
            if heights[i] > 0:
                self.draw_ctx.rectangle((x0, base - heights[i], x1, base), fill=color)
            self.draw_ctx.line((x0, base - peaks[i], x1, base - peaks[i]), fill=RED)

    def draw(self, snapshot: AudioSnapshot) -> None:
        self.draw_grid(rows=8, cols=10)
        self.draw_bars()
        self.draw_title()

    def draw_idle(self) -> None:
        self.draw_grid(rows=8, cols=10)
        self.draw_title()


# ---------------------------------------------------------------------------
# FFT analyzer
# ---------------------------------------------------------------------------

@dataclass
class FFTAnalyzerConfig(BaseConfig):
    bars: int = 128
    smoothing: float = 0.8
    peak_decay: float = 0.95


class FFTAnalyzerVisualization(_BarAnalyzer):
    """Full spectrum averaged into equal-width groups."""

    title = "FFT ANALYZER"

    def __init__(self, config: Optional[FFTAnalyzerConfig] = None):
        config = config or FFTAnalyzerConfig()
        self.n_bars = config.bars
        super().__init__(config)

    def measure(self, snapshot: AudioSnapshot) -> np.ndarray:
        return to_decibels(group_bins(snapshot.magnitudes, self.n_bars) / 255.0, DB_FLOOR)


# ---------------------------------------------------------------------------
# 31-band EQ
# ---------------------------------------------------------------------------

@dataclass
class EQAnalyzerConfig(BaseConfig):
    centres: Tuple[float, ...] = field(default=ISO_31_BANDS)
    smoothing: float = 0.8
    peak_decay: float = 0.95


class EQAnalyzerVisualization(_BarAnalyzer):
    """ISO third-octave graphic equalizer display."""

    title = "31-BAND EQ"

    def __init__(self, config: Optional[EQAnalyzerConfig] = None):
        config = config or EQAnalyzerConfig()
        self.n_bars = len(config.centres)
        super().__init__(config)

    def measure(self, snapshot: AudioSnapshot) -> np.ndarray:
        return octave_band_levels(snapshot.magnitudes, self.cfg.centres, snapshot.sample_rate, DB_FLOOR)


# ---------------------------------------------------------------------------
# Harmonic analyzer
# ---------------------------------------------------------------------------

@dataclass
class HarmonicAnalyzerConfig(BaseConfig):
    harmonics: int = 8
    smoothing: float = 0.7
    peak_decay: float = 0.95


class HarmonicAnalyzerVisualization(_BarAnalyzer):
    """Fundamental detection and the level of its first N harmonics."""

    title = "HARMONIC ANALYZER"

    def __init__(self, config: Optional[HarmonicAnalyzerConfig] = None):
        config = config or HarmonicAnalyzerConfig()
        self.n_bars = config.harmonics
        self.fundamental_hz = 0.0
        super().__init__(config)

    def reset_state(self) -> None:
        super().reset_state()
        self.fundamental_hz = 0.0

    def measure(self, snapshot: AudioSnapshot) -> np.ndarray:
        profile = harmonic_levels(snapshot.magnitudes, snapshot.sample_rate, self.n_bars, DB_FLOOR)
        self.fundamental_hz = profile.fundamental_hz
        return profile.levels_db

    def draw(self, snapshot: AudioSnapshot) -> None:
        super().draw(snapshot)
        self.draw_label(f"F0 {self.fundamental_hz:.1f} Hz", self.width / 2, 22, YELLOW)


# ---------------------------------------------------------------------------
# Spectral centroid
# ---------------------------------------------------------------------------

@dataclass
class SpectralCentroidConfig(BaseConfig):
    history: int = 300
    smoothing: float = 0.8
    peak_decay: float = 0.95
    rolloff_fraction: float = 0.85


class SpectralCentroidVisualization(BaseVisualization):
    """Scrolling centroid (brightness) and rolloff (timbre) traces."""

    title = "SPECTRAL CENTROID"

    def __init__(self, config: Optional[SpectralCentroidConfig] = None):
        super().__init__(config or SpectralCentroidConfig())
        self.cfg: SpectralCentroidConfig = self.cfg  # type: ignore[assignment]
        self.reset_state()

    @property
    def nyquist(self) -> float:
        return self.cfg.sample_rate / 2.0

    def reset_state(self) -> None:
        self.centroid = SmoothedValue(factor=self.cfg.smoothing)
        self.rolloff = 0.0
        self.brightness = 0.0
        self.centroid_history = HistoryRing(self.cfg.history, fill=0.0)
        self.peak = PeakHold(decay_rate=self.cfg.peak_decay)
        self.peak_history = HistoryRing(self.cfg.history, fill=0.0)

    def process(self, snapshot: AudioSnapshot) -> None:
        centroid = spectral_centroid(snapshot.magnitudes, snapshot.sample_rate)
        smooth(self.centroid, centroid)
        self.rolloff = spectral_rolloff(
            snapshot.magnitudes, self.cfg.rolloff_fraction, snapshot.sample_rate
        )
        self.brightness = min(centroid / (self.nyquist / 2.0), 1.0)

        push_history(self.centroid_history, self.centroid.current)
        before = self.peak.last_update_ms
        peak_hold(self.peak, self.centroid.current, snapshot.timestamp_ms)
        if self.peak.last_update_ms != before:
            push_history(self.peak_history, self.peak.peak)

    def draw(self, snapshot: AudioSnapshot) -> None:
        self.draw_grid(rows=4, cols=10)
        self.draw_polyline(self.centroid_history.values(), 0.0, self.nyquist, BLUE)
        self.draw_polyline(self.peak_history.values(), 0.0, self.nyquist, RED, width=1)
        self.draw_title()
        self.draw_label(
            f"Centroid {self.centroid.current:.0f} Hz  Rolloff {self.rolloff:.0f} Hz",
            self.width / 2,
            self.height - 16,
            DIM,
        )

    def draw_idle(self) -> None:
        self.draw_grid(rows=4, cols=10)
        self.draw_title()
