"""
Level meters: VU meter, dynamic range (loudness) and correlation meter.

All three share the same pattern: a scalar metric per frame, exponential
smoothing for ballistics, a throttled peak hold, and a history ring for
the scrolling graph.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from micscope.core.features import rms_level, stereo_split_correlation, to_decibels
from micscope.core.snapshot import AudioSnapshot
from micscope.core.temporal import (
    HistoryRing,
    PeakHold,
    SmoothedValue,
    peak_hold,
    push_history,
    smooth,
)
from micscope.visualizations.base import (
    BLUE,
    DIM,
    GREEN,
    GRID,
    RED,
    WHITE,
    YELLOW,
    BaseConfig,
    BaseVisualization,
)


# ---------------------------------------------------------------------------
# VU meter
# ---------------------------------------------------------------------------

@dataclass
class VUMeterConfig(BaseConfig):
    min_db: float = -20.0
    max_db: float = 3.0
    ballistics: float = 0.8
    peak_decay: float = 0.98
    overload_hold_ms: float = 100.0


class VUMeterVisualization(BaseVisualization):
    """RMS level on a -20..+3 dB VU scale with peak hold and overload lamp."""

    title = "VU METER"

    def __init__(self, config: Optional[VUMeterConfig] = None):
        super().__init__(config or VUMeterConfig())
        self.cfg: VUMeterConfig = self.cfg  # type: ignore[assignment]
        self.reset_state()

    def reset_state(self) -> None:
        self.level = SmoothedValue(factor=self.cfg.ballistics)
        self.peak = PeakHold(decay_rate=self.cfg.peak_decay)
        self.vu_db = self.cfg.min_db
        self.overload = False
        self._overload_ms = 0.0

    @property
    def db_span(self) -> float:
        return self.cfg.max_db - self.cfg.min_db

    def process(self, snapshot: AudioSnapshot) -> None:
        now = snapshot.timestamp_ms
        db = to_decibels(rms_level(snapshot.magnitudes))
        self.vu_db = float(np.clip(db, self.cfg.min_db, self.cfg.max_db))

        smooth(self.level, (self.vu_db - self.cfg.min_db) / self.db_span)
        peak_hold(self.peak, self.level.current, now)

        if self.vu_db > 0:
            self.overload = True
            self._overload_ms = now
        elif now - self._overload_ms > self.cfg.overload_hold_ms:
            self.overload = False

    def draw(self, snapshot: AudioSnapshot) -> None:
        x0, x1 = 20, self.width - 20
        y0, y1 = 50, 80
        span = x1 - x0
        self.draw_ctx.rectangle((x0, y0, x1, y1), fill=(34, 34, 34))

        level = self.level.current
        zones = ((0.0, 0.7, GREEN), (0.7, 0.9, YELLOW), (0.9, 1.0, RED))
        for low, high, color in zones:
            if level > low:
                self.draw_ctx.rectangle((x0 + low * span, y0, x0 + min(level, high) * span, y1), fill=color)

        px = x0 + float(self.peak.peak) * span
        self.draw_ctx.line((px, y0, px, y1), fill=WHITE, width=2)

        lamp = RED if self.overload else GRID
        self.draw_ctx.ellipse((self.width - 40, 100, self.width - 20, 120), fill=lamp)
        self.draw_title()
        self.draw_label(f"{self.vu_db:+.1f} dB", self.width / 2, 90)

    def draw_idle(self) -> None:
        self.draw_ctx.rectangle((20, 50, self.width - 20, 80), fill=(34, 34, 34))
        self.draw_title()
        self.draw_label(f"{self.cfg.min_db:+.1f} dB", self.width / 2, 90, DIM)


# ---------------------------------------------------------------------------
# Dynamic range
# ---------------------------------------------------------------------------

@dataclass
class DynamicRangeConfig(BaseConfig):
    history: int = 300
    smoothing: float = 0.8
    peak_decay: float = 0.95
    floor_db: float = -60.0


class DynamicRangeVisualization(BaseVisualization):
    """Scrolling loudness curve (dBFS-like) with peak trace and range readout."""

    title = "DYNAMIC RANGE"

    def __init__(self, config: Optional[DynamicRangeConfig] = None):
        super().__init__(config or DynamicRangeConfig())
        self.cfg: DynamicRangeConfig = self.cfg  # type: ignore[assignment]
        self.reset_state()

    def reset_state(self) -> None:
        self.loudness = SmoothedValue(current=self.cfg.floor_db, factor=self.cfg.smoothing)
        self.loudness_history = HistoryRing(self.cfg.history, fill=self.cfg.floor_db)
        self.peak = PeakHold(decay_rate=self.cfg.peak_decay)
        self.peak_history = HistoryRing(self.cfg.history, fill=0.0)
        self.dynamic_range = 0.0

    def _normalize(self, db: float) -> float:
        """Map [floor_db, 0] onto [0, 1] so peaks decay towards silence."""
        return float(np.clip((db - self.cfg.floor_db) / -self.cfg.floor_db, 0.0, 1.0))

    def process(self, snapshot: AudioSnapshot) -> None:
        db = to_decibels(rms_level(snapshot.magnitudes))
        smooth(self.loudness, db)
        push_history(self.loudness_history, self.loudness.current)

        values = self.loudness_history.values()
        self.dynamic_range = float(values.max() - values.min())

        before = self.peak.last_update_ms
        peak_hold(self.peak, self._normalize(self.loudness.current), snapshot.timestamp_ms)
        if self.peak.last_update_ms != before:
            push_history(self.peak_history, self.peak.peak)

    def draw(self, snapshot: AudioSnapshot) -> None:
        self.draw_grid(rows=6, cols=10)
        self.draw_polyline(self.loudness_history.values(), self.cfg.floor_db, 0.0, GREEN)
        self.draw_polyline(self.peak_history.values(), 0.0, 1.0, RED, width=1)
        self.draw_title()
        self.draw_label(
            f"Loudness {self.loudness.current:.1f} dB  Range {self.dynamic_range:.1f} dB",
            self.width / 2,
            self.height - 16,
        )

    def draw_idle(self) -> None:
        self.draw_grid(rows=6, cols=10)
        self.draw_title()


# ---------------------------------------------------------------------------
# Correlation meter
# ---------------------------------------------------------------------------

@dataclass
class CorrelationMeterConfig(BaseConfig):
    history: int = 200
    peak_decay: float = 0.95


class CorrelationMeterVisualization(BaseVisualization):
    """
    Pseudo-stereo correlation of the two spectrum halves.

    The peak tracks the magnitude of the correlation; its sign follows the
    most recent frame.
    """

    title = "CORRELATION METER"

    def __init__(self, config: Optional[CorrelationMeterConfig] = None):
        super().__init__(config or CorrelationMeterConfig())
        self.cfg: CorrelationMeterConfig = self.cfg  # type: ignore[assignment]
        self.reset_state()

    def reset_state(self) -> None:
        self.correlation = 0.0
        self.history = HistoryRing(self.cfg.history, fill=0.0)
        self.peak = PeakHold(decay_rate=self.cfg.peak_decay)

    @property
    def peak_correlation(self) -> float:
        return float(np.copysign(self.peak.peak, self.correlation))

    def process(self, snapshot: AudioSnapshot) -> None:
        self.correlation = stereo_split_correlation(snapshot.magnitudes)
        push_history(self.history, self.correlation)
        peak_hold(self.peak, abs(self.correlation), snapshot.timestamp_ms)

    def _x(self, value: float) -> float:
        return (value + 1.0) / 2.0 * (self.width - 40) + 20

    def draw(self, snapshot: AudioSnapshot) -> None:
        self.draw_grid(rows=4, cols=4)
        bar_y0, bar_y1 = 40, 70
        centre = self._x(0.0)
        color = GREEN if self.correlation >= 0 else RED
        self.draw_ctx.rectangle(
            (min(centre, self._x(self.correlation)), bar_y0, max(centre, self._x(self.correlation)), bar_y1),
            fill=color,
        )
        px = self._x(self.peak_correlation)
        self.draw_ctx.line((px, bar_y0, px, bar_y1), fill=YELLOW, width=2)
        self.draw_polyline(self.history.values(), -1.0, 1.0, BLUE)
        self.draw_title()
        self.draw_label(f"{self.correlation:+.3f}", self.width / 2, bar_y1 + 6)

    def draw_idle(self) -> None:
        self.draw_grid(rows=4, cols=4)
        self.draw_ctx.line((0, self.height / 2, self.width, self.height / 2), fill=GRID, width=2)
        self.draw_title()
