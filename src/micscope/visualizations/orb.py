"""Pulsing orb driven by the overall level and the bass band."""

import colorsys
from dataclasses import dataclass
from typing import Optional

from micscope.core.features import bass_level
from micscope.core.snapshot import AudioSnapshot
from micscope.core.temporal import SmoothedValue, smooth
from micscope.visualizations.base import GRID, BaseConfig, BaseVisualization


@dataclass
class OrbConfig(BaseConfig):
    base_radius: float = 60.0
    max_growth: float = 100.0
    smoothing: float = 0.8
    hue_speed: float = 0.5  # degrees per frame at full level


class OrbVisualization(BaseVisualization):
    title = "ORB"

    def __init__(self, config: Optional[OrbConfig] = None):
        super().__init__(config or OrbConfig())
        self.cfg: OrbConfig = self.cfg  # type: ignore[assignment]
        self.reset_state()

    def reset_state(self) -> None:
        self.level = SmoothedValue(factor=self.cfg.smoothing)
        self.bass = SmoothedValue(factor=self.cfg.smoothing)
        self.hue = 200.0

    def process(self, snapshot: AudioSnapshot) -> None:
        smooth(self.level, snapshot.level)
        smooth(self.bass, bass_level(snapshot.magnitudes, snapshot.sample_rate, snapshot.fft_size))
        self.hue = (self.hue + self.cfg.hue_speed * (1.0 + 4.0 * self.level.current)) % 360.0

    @property
    def radius(self) -> float:
        drive = max(self.level.current, self.bass.current)
        return self.cfg.base_radius + drive * self.cfg.max_growth

    def draw(self, snapshot: AudioSnapshot) -> None:
        cx, cy = self.width / 2, self.height / 2
        radius = self.radius
        # Concentric fills approximate a radial gradient
        steps = 8
        for i in range(steps, 0, -1):
            r = radius * i / steps
            lightness = 0.35 + 0.4 * self.level.current * (1 - i / steps) + 0.1
            red, green, blue = colorsys.hls_to_rgb(self.hue / 360.0, min(lightness, 0.9), 0.7)
            color = (int(red * 255), int(green * 255), int(blue * 255))
            self.draw_ctx.ellipse((cx - r, cy - r, cx + r, cy + r), fill=color)
        self.draw_title()

    def draw_idle(self) -> None:
        cx, cy = self.width / 2, self.height / 2
        r = self.cfg.base_radius
        self.draw_ctx.ellipse((cx - r, cy - r, cx + r, cy + r), fill=(80, 80, 80), outline=GRID)
        self.draw_title()
