"""Band-level ring displays (bass / mid / treble / full)."""

from typing import Dict, Optional, Sequence, Tuple

from micscope.core.features import band_level
from micscope.core.snapshot import AudioSnapshot
from micscope.visualizations.base import BLUE, GREEN, GRID, BaseConfig, BaseVisualization, Color

# (label, low Hz, high Hz, base radius, radius gain, colour)
BandRing = Tuple[str, float, float, float, float, Color]

BASS_RINGS: Sequence[BandRing] = (
    ("sub-bass", 20, 60, 20, 60, BLUE),
    ("bass", 60, 250, 30, 50, GREEN),
)
MID_RINGS: Sequence[BandRing] = (
    ("low-mid", 250, 500, 40, 60, BLUE),
    ("mid", 500, 2000, 60, 60, GREEN),
)
TREBLE_RINGS: Sequence[BandRing] = (
    ("high-mid", 2000, 4000, 50, 60, BLUE),
    ("presence", 4000, 6000, 70, 60, GREEN),
    ("brilliance", 6000, 20000, 90, 60, (200, 120, 255)),
)
FULL_RINGS: Sequence[BandRing] = (
    ("bass", 20, 250, 30, 60, BLUE),
    ("mid", 250, 2000, 70, 60, GREEN),
    ("treble", 2000, 8000, 110, 60, (255, 170, 60)),
)


class BandSpectrumVisualization(BaseVisualization):
    """Concentric rings whose radii follow the level of fixed frequency bands."""

    def __init__(
        self,
        rings: Sequence[BandRing],
        title: str,
        config: Optional[BaseConfig] = None,
    ):
        super().__init__(config)
        self.rings = tuple(rings)
        self.title = title
        self.levels: Dict[str, float] = {ring[0]: 0.0 for ring in self.rings}

    def reset_state(self) -> None:
        self.levels = {ring[0]: 0.0 for ring in self.rings}

    def process(self, snapshot: AudioSnapshot) -> None:
        for label, low, high, *_ in self.rings:
            self.levels[label] = band_level(
                snapshot.magnitudes, low, high, snapshot.sample_rate, snapshot.fft_size
            )

    def draw(self, snapshot: AudioSnapshot) -> None:
        cx, cy = self.width / 2, self.height / 2
        for label, _, _, base, gain, color in self.rings:
            self.draw_circle(cx, cy, base + self.levels[label] * gain, color)
        self.draw_title()

    def draw_idle(self) -> None:
        cx, cy = self.width / 2, self.height / 2
        for _, _, _, base, _, _ in self.rings:
            self.draw_circle(cx, cy, base, GRID, width=2)
        self.draw_title()


def bass_spectrum(config: Optional[BaseConfig] = None) -> BandSpectrumVisualization:
    return BandSpectrumVisualization(BASS_RINGS, "BASS SPECTRUM", config)


def mid_spectrum(config: Optional[BaseConfig] = None) -> BandSpectrumVisualization:
    return BandSpectrumVisualization(MID_RINGS, "MID SPECTRUM", config)


def treble_spectrum(config: Optional[BaseConfig] = None) -> BandSpectrumVisualization:
    return BandSpectrumVisualization(TREBLE_RINGS, "TREBLE SPECTRUM", config)


def full_spectrum(
    config: Optional[BaseConfig] = None,
    bands: Optional[Sequence[Tuple[float, float]]] = None,
) -> BandSpectrumVisualization:
    """Bass / mid / treble rings; *bands* overrides the three band edges."""
    rings = FULL_RINGS
    if bands is not None:
        rings = tuple(
            (label, low, high, base, gain, color)
            for (label, _, _, base, gain, color), (low, high) in zip(FULL_RINGS, bands)
        )
    return BandSpectrumVisualization(rings, "FULL AUDIO", config)
