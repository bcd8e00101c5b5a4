"""Scrolling waterfall spectrogram."""

from dataclasses import dataclass
from typing import Optional

import numpy as np
from PIL import Image

from micscope.core.features import group_bins
from micscope.core.snapshot import AudioSnapshot
from micscope.core.temporal import SpectrumHistory, push_spectrum
from micscope.visualizations.base import BaseConfig, BaseVisualization


def build_colormap() -> np.ndarray:
    """
    256-entry RGB lookup: black → blue → cyan → green → yellow → red.

    Returns:
        uint8 array of shape (256, 3).
    """
    intensity = np.arange(256) / 255.0
    lut = np.zeros((256, 3), dtype=np.float64)

    t = intensity / 0.2
    seg = intensity < 0.2
    lut[seg, 2] = t[seg]

    seg = (intensity >= 0.2) & (intensity < 0.4)
    lut[seg, 1] = ((intensity - 0.2) / 0.2)[seg]
    lut[seg, 2] = 1.0

    seg = (intensity >= 0.4) & (intensity < 0.6)
    lut[seg, 1] = 1.0
    lut[seg, 2] = (1.0 - (intensity - 0.4) / 0.2)[seg]

    seg = (intensity >= 0.6) & (intensity < 0.8)
    lut[seg, 0] = ((intensity - 0.6) / 0.2)[seg]
    lut[seg, 1] = 1.0

    seg = intensity >= 0.8
    lut[seg, 0] = 1.0
    lut[seg, 1] = (1.0 - (intensity - 0.8) / 0.2)[seg]

    return np.floor(lut * 255).astype(np.uint8)


@dataclass
class SpectrogramConfig(BaseConfig):
    frequency_bins: int = 128
    history: int = 300


class SpectrogramVisualization(BaseVisualization):
    """Newest spectrum at the top, older rows scroll down."""

    title = "SPECTROGRAM"

    def __init__(self, config: Optional[SpectrogramConfig] = None):
        super().__init__(config or SpectrogramConfig())
        self.cfg: SpectrogramConfig = self.cfg  # type: ignore[assignment]
        self.colormap = build_colormap()
        self.reset_state()

    def reset_state(self) -> None:
        self.history = SpectrumHistory(self.cfg.history, self.cfg.frequency_bins)

    def process(self, snapshot: AudioSnapshot) -> None:
        push_spectrum(self.history, group_bins(snapshot.magnitudes, self.cfg.frequency_bins))

    def waterfall(self) -> np.ndarray:
        """(history, bins, 3) RGB image, newest row first, unscaled."""
        rows = self.history.as_array()[::-1]
        indices = np.clip(rows, 0, 255).astype(np.uint8)
        return self.colormap[indices]

    def draw(self, snapshot: AudioSnapshot) -> None:
        image = Image.fromarray(self.waterfall())
        rows = len(self.history)
        target_h = max(1, int(round(rows / self.cfg.history * self.height)))
        image = image.resize((self.width, target_h), Image.Resampling.NEAREST)
        self.canvas.paste(image, (0, 0))
        self.draw_title()
