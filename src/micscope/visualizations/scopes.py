"""
Oscilloscope, phase scope, goniometer (pseudo-stereo point clouds) and
beat-detection scope.
"""

import colorsys
import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Tuple

import numpy as np

from micscope.core.features import (
    band_energy,
    stereo_split_correlation,
    stereo_width,
    synthesize_waveform,
)
from micscope.core.snapshot import AudioSnapshot
from micscope.core.temporal import BeatState, HistoryRing, detect_beat, push_history
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

CROSSHAIR = (102, 102, 102)
DIAGONAL = (68, 68, 68)
TRACE = (0, 255, 0)


# ---------------------------------------------------------------------------
# Oscilloscope
# ---------------------------------------------------------------------------

@dataclass
class OscilloscopeConfig(BaseConfig):
    samples: int = 512
    components: int = 256
    rows: int = 8
    cols: int = 10
    time_per_div_ms: float = 1.0
    volts_per_div: float = 0.1
    trigger_level: float = 0.0


class OscilloscopeVisualization(BaseVisualization):
    """
    Scope trace of a waveform synthesized from the spectrum.

    The trace spans the full canvas height for [-1, 1].  A dashed line
    marks the trigger level; the graticule labels are nominal.
    """

    title = "OSCILLOSCOPE"

    def __init__(self, config: Optional[OscilloscopeConfig] = None):
        super().__init__(config or OscilloscopeConfig())
        self.cfg: OscilloscopeConfig = self.cfg  # type: ignore[assignment]
        self.reset_state()

    def reset_state(self) -> None:
        self.waveform = np.zeros(self.cfg.samples, dtype=np.float64)

    @property
    def peak(self) -> float:
        return float(np.max(np.abs(self.waveform))) if self.waveform.size else 0.0

    def process(self, snapshot: AudioSnapshot) -> None:
        self.waveform = synthesize_waveform(
            snapshot.magnitudes,
            n_samples=self.cfg.samples,
            n_components=self.cfg.components,
        )

    def level_to_y(self, value: float) -> float:
        return (self.height - 1) / 2 * (1.0 - value)

    def _draw_graticule(self) -> None:
        cfg = self.cfg
        self.draw_grid(rows=cfg.rows, cols=cfg.cols)
        cx, cy = self.width / 2, self.height / 2
        self.draw_ctx.line((0, cy, self.width, cy), fill=CROSSHAIR)
        self.draw_ctx.line((cx, 0, cx, self.height), fill=CROSSHAIR)

        half = cfg.rows / 2
        for i in range(1, cfg.rows):
            y = i / cfg.rows * (self.height - 1)
            self.draw_ctx.text((4, y - 5), f"{(half - i) * cfg.volts_per_div:.1f}V", fill=DIM)
        self.draw_label(f"{cfg.time_per_div_ms:g} ms/div", cx, self.height - 14, DIM)

    def _draw_trigger(self) -> None:
        y = self.level_to_y(self.cfg.trigger_level)
        for x in range(0, self.width, 10):
            self.draw_ctx.line((x, y, min(x + 5, self.width), y), fill=RED)
        label_x = self.width - self.draw_ctx.textlength("Trigger") - 4
        self.draw_ctx.text((label_x, y - 12), "Trigger", fill=RED)

    def draw(self, snapshot: AudioSnapshot) -> None:
        self._draw_graticule()
        self._draw_trigger()
        self.draw_polyline(self.waveform, -1.0, 1.0, TRACE)
        self.draw_title()

    def draw_idle(self) -> None:
        self._draw_graticule()
        cy = self.height / 2
        self.draw_ctx.line((0, cy, self.width, cy), fill=GRID, width=2)
        self.draw_title()


# ---------------------------------------------------------------------------
# Phase scope
# ---------------------------------------------------------------------------

@dataclass
class PhaseScopeConfig(BaseConfig):
    points_per_frame: int = 10
    max_points: int = 1000
    fade_ms: float = 2000.0
    point_size: float = 2.0
    seed: Optional[int] = None


class PhaseScopeVisualization(BaseVisualization):
    """
    X/Y scatter of matching bins from the two spectrum halves.

    Each point plots bin *i* of the lower half against bin *i* of the
    upper half, both mapped to [-1, 1], so identical halves fall on the
    diagonal.  Points fade over ``fade_ms`` of snapshot time and are then
    dropped; at most ``max_points`` are kept, oldest evicted first.
    """

    title = "PHASE SCOPE"

    def __init__(self, config: Optional[PhaseScopeConfig] = None):
        super().__init__(config or PhaseScopeConfig())
        self.cfg: PhaseScopeConfig = self.cfg  # type: ignore[assignment]
        self.rng = np.random.default_rng(self.cfg.seed)
        self.reset_state()

    def reset_state(self) -> None:
        # (x, y, born_ms, intensity) with x, y in [-1, 1]
        self.points: Deque[Tuple[float, float, float, float]] = deque(maxlen=self.cfg.max_points)
        self.now_ms = 0.0

    @property
    def radius(self) -> float:
        return max(min(self.width, self.height) / 2 - 20, 0.0)

    def alpha(self, born_ms: float) -> float:
        return max(0.0, 1.0 - (self.now_ms - born_ms) / self.cfg.fade_ms)

    @staticmethod
    def point_color(x: float, y: float, alpha: float = 1.0) -> Tuple[int, int, int]:
        """Hue follows the angle, saturation and lightness the distance from centre."""
        distance = math.hypot(x, y)
        hue = (math.atan2(y, x) + math.pi) / (2 * math.pi)
        lightness = min(0.5 + distance * 0.25, 1.0)
        saturation = min(distance * 2, 1.0)
        r, g, b = colorsys.hls_to_rgb(hue % 1.0, lightness, saturation)
        return (int(r * 255 * alpha), int(g * 255 * alpha), int(b * 255 * alpha))

    def process(self, snapshot: AudioSnapshot) -> None:
        self.now_ms = snapshot.timestamp_ms
        live = [p for p in self.points if self.now_ms - p[2] < self.cfg.fade_ms]
        self.points.clear()
        self.points.extend(live)

        mags = snapshot.magnitudes
        mid = len(mags) // 2
        if mid == 0:
            return
        for i in self.rng.integers(0, mid, self.cfg.points_per_frame):
            x = mags[i] / 255.0 * 2 - 1
            y = mags[mid + i] / 255.0 * 2 - 1
            intensity = float(self.rng.uniform(0.2, 1.0))
            self.points.append((float(x), float(y), self.now_ms, intensity))

    def _draw_axes(self) -> None:
        cx, cy, r = self.width / 2, self.height / 2, self.radius
        for k in range(1, 5):
            self.draw_circle(cx, cy, r * k / 4, GRID, width=1)
        self.draw_ctx.line((cx - r, cy, cx + r, cy), fill=CROSSHAIR)
        self.draw_ctx.line((cx, cy - r, cx, cy + r), fill=CROSSHAIR)
        d = r * math.sqrt(0.5)
        self.draw_ctx.line((cx - d, cy + d, cx + d, cy - d), fill=DIAGONAL)
        self.draw_ctx.line((cx - d, cy - d, cx + d, cy + d), fill=DIAGONAL)

        self.draw_ctx.text((cx + r + 4, cy - 5), "L", fill=DIM)
        self.draw_label("R", cx, cy - r - 14, DIM)
        self.draw_title()

    def draw(self, snapshot: AudioSnapshot) -> None:
        self._draw_axes()
        cx, cy, r = self.width / 2, self.height / 2, self.radius
        for x, y, born_ms, intensity in self.points:
            alpha = self.alpha(born_ms)
            size = max(self.cfg.point_size * alpha * intensity, 0.5)
            px, py = cx + x * r, cy - y * r
            self.draw_ctx.ellipse((px - size, py - size, px + size, py + size), fill=self.point_color(x, y, alpha))
        self.draw_label("MONO", cx, cy + 6, DIM)

    def draw_idle(self) -> None:
        self._draw_axes()
        cx, cy = self.width / 2, self.height / 2
        self.draw_ctx.ellipse((cx - 2, cy - 2, cx + 2, cy + 2), fill=GRID)


# ---------------------------------------------------------------------------
# Goniometer
# ---------------------------------------------------------------------------

@dataclass
class GoniometerConfig(BaseConfig):
    points_per_frame: int = 5
    max_points: int = 500
    max_age: int = 60
    seed: Optional[int] = None


class GoniometerVisualization(BaseVisualization):
    """
    Mid/side style scatter built from random bin pairs of the two spectrum
    halves.  Each point is ``(L - R, L + R)`` and fades out with age.
    """

    title = "GONIOMETER"

    def __init__(self, config: Optional[GoniometerConfig] = None):
        super().__init__(config or GoniometerConfig())
        self.cfg: GoniometerConfig = self.cfg  # type: ignore[assignment]
        self.rng = np.random.default_rng(self.cfg.seed)
        self.reset_state()

    def reset_state(self) -> None:
        # (x, y, age, intensity)
        self.points: Deque[Tuple[float, float, int, float]] = deque(maxlen=self.cfg.max_points)
        self.correlation = 0.0
        self.width_ratio = 0.0

    @property
    def radius(self) -> float:
        return min(self.width, self.height) / 2 - 30

    def process(self, snapshot: AudioSnapshot) -> None:
        mags = snapshot.magnitudes
        self.correlation = stereo_split_correlation(mags)
        self.width_ratio = stereo_width(mags)

        aged = [(x, y, age + 1, i) for x, y, age, i in self.points if age + 1 < self.cfg.max_age]
        self.points.clear()
        self.points.extend(aged)

        mid = len(mags) // 2
        if mid == 0:
            return
        picks_l = self.rng.integers(0, mid, self.cfg.points_per_frame)
        picks_r = self.rng.integers(0, mid, self.cfg.points_per_frame)
        for li, ri in zip(picks_l, picks_r):
            left = mags[li] / 255.0
            right = mags[mid + ri] / 255.0
            intensity = float(self.rng.uniform(0.2, 1.0))
            self.points.append(((left - right) * self.radius, (left + right) * self.radius, 0, intensity))

    def _draw_axes(self) -> None:
        cx, cy, r = self.width / 2, self.height / 2, self.radius
        self.draw_circle(cx, cy, r, GRID, width=1)
        self.draw_ctx.line((cx - r, cy, cx + r, cy), fill=GRID)
        self.draw_ctx.line((cx, cy - r, cx, cy + r), fill=GRID)

    def draw(self, snapshot: AudioSnapshot) -> None:
        self._draw_axes()
        cx, cy = self.width / 2, self.height / 2
        for x, y, age, intensity in self.points:
            fade = intensity * (1.0 - age / self.cfg.max_age)
            color = (int(80 * fade), int(255 * fade), int(120 * fade))
            px, py = cx + x, cy - y
            self.draw_ctx.ellipse((px - 1.5, py - 1.5, px + 1.5, py + 1.5), fill=color)
        self.draw_title()
        self.draw_label(
            f"Corr {self.correlation:+.2f}  Width {self.width_ratio:.2f}",
            self.width / 2,
            self.height - 16,
            DIM,
        )

    def draw_idle(self) -> None:
        self._draw_axes()
        self.draw_title()


# ---------------------------------------------------------------------------
# Beat detection
# ---------------------------------------------------------------------------

@dataclass
class BeatDetectionConfig(BaseConfig):
    threshold: float = 0.3
    min_interval_ms: float = 200.0
    history: int = 200
    history_smoothing: float = 0.9


class BeatDetectionVisualization(BaseVisualization):
    """Energy-variance beat strength meter, beat trace and tempo bar."""

    title = "BEAT DETECTION SCOPE"

    # Fractional bin ranges summed into the total energy
    BANDS = ((0.0, 0.1), (0.1, 0.3), (0.3, 1.0))

    def __init__(self, config: Optional[BeatDetectionConfig] = None):
        super().__init__(config or BeatDetectionConfig())
        self.cfg: BeatDetectionConfig = self.cfg  # type: ignore[assignment]
        self.reset_state()

    def reset_state(self) -> None:
        self.beat = BeatState()
        self.beat_history = HistoryRing(self.cfg.history, fill=0.0)
        self.is_beat = False
        self.beat_count = 0

    @property
    def tempo(self) -> float:
        return self.beat.tempo_bpm

    @property
    def strength(self) -> float:
        return self.beat.beat_strength

    def total_energy(self, magnitudes: np.ndarray) -> float:
        return sum(band_energy(magnitudes, lo, hi) for lo, hi in self.BANDS)

    def process(self, snapshot: AudioSnapshot) -> None:
        energy = self.total_energy(snapshot.magnitudes)
        self.is_beat, _ = detect_beat(
            self.beat,
            energy,
            snapshot.timestamp_ms,
            threshold=self.cfg.threshold,
            min_interval_ms=self.cfg.min_interval_ms,
        )
        if self.is_beat:
            self.beat_count += 1
        # Beats render as decaying bumps
        trail = self.beat_history.latest() * self.cfg.history_smoothing
        push_history(self.beat_history, 1.0 if self.is_beat else trail)

    def draw(self, snapshot: AudioSnapshot) -> None:
        self.draw_grid(rows=4, cols=10)
        x0, x1 = 20, self.width - 20
        span = x1 - x0
        self.draw_ctx.rectangle((x0, 20, x1, 60), fill=(34, 34, 34))
        over = self.strength > self.cfg.threshold
        self.draw_ctx.rectangle((x0, 20, x0 + min(self.strength, 1.0) * span, 60), fill=RED if over else GREEN)
        tx = x0 + self.cfg.threshold * span
        self.draw_ctx.line((tx, 20, tx, 60), fill=YELLOW, width=2)

        self.draw_polyline(self.beat_history.values(), 0.0, 1.0, GREEN)

        ty = self.height - 60
        self.draw_ctx.rectangle((x0, ty, x1, ty + 40), fill=(34, 34, 34))
        self.draw_ctx.rectangle((x0, ty, x0 + min(self.tempo / 200.0, 1.0) * span, ty + 40), fill=BLUE)

        self.draw_title()
        self.draw_label(f"Strength: {self.strength:.3f}", self.width / 2, 64, RED if over else GREEN)
        self.draw_label(f"Tempo: {self.tempo:.1f} BPM", self.width / 2, self.height - 15, WHITE)

    def draw_idle(self) -> None:
        self.draw_grid(rows=4, cols=10)
        self.draw_ctx.line((0, self.height - 1, self.width, self.height - 1), fill=GRID, width=2)
        self.draw_title()
