"""
Shared scaffolding for the bundled visualizations.

Each visualization draws into its own square PIL canvas.  The frame loop
reads the canvas back with :meth:`BaseVisualization.frame` and blits it.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw

from micscope.config import GalleryConfig
from micscope.core.snapshot import AudioSnapshot

Color = Tuple[int, int, int]

BACKGROUND: Color = (0, 0, 0)
GRID: Color = (51, 51, 51)
WHITE: Color = (255, 255, 255)
BLUE: Color = (8, 155, 223)
GREEN: Color = (82, 224, 82)
YELLOW: Color = (255, 255, 0)
RED: Color = (255, 0, 0)
DIM: Color = (136, 136, 136)


@dataclass
class BaseConfig:
    """Canvas geometry and audio constants every visualization needs."""

    width: int = 400
    height: int = 400
    sample_rate: int = 44100
    fft_size: int = 2048

    @classmethod
    def from_gallery(cls, gallery: GalleryConfig, **overrides) -> "BaseConfig":
        return cls(
            width=gallery.canvas_size,
            height=gallery.canvas_size,
            sample_rate=gallery.sample_rate,
            fft_size=gallery.fft_size,
            **overrides,
        )


class BaseVisualization:
    """
    Template for a visualization: process the snapshot, then draw.

    Subclasses implement :meth:`process` (feature/state update) and
    :meth:`draw`; :meth:`draw_idle` renders the placeholder shown once
    capture stops.  Snapshots without data are skipped, leaving the last
    frame on screen.
    """

    title = ""

    def __init__(self, config: Optional[BaseConfig] = None):
        self.cfg = config or BaseConfig()
        self.canvas = Image.new("RGB", (self.cfg.width, self.cfg.height), BACKGROUND)
        self.draw_ctx = ImageDraw.Draw(self.canvas)
        self.frame_count = 0

    @property
    def width(self) -> int:
        return self.cfg.width

    @property
    def height(self) -> int:
        return self.cfg.height

    def initialize(self) -> None:
        """Reset per-session state once the canvas size is known."""
        self.canvas = Image.new("RGB", (self.cfg.width, self.cfg.height), BACKGROUND)
        self.draw_ctx = ImageDraw.Draw(self.canvas)
        self.frame_count = 0
        self.reset_state()

    def reset_state(self) -> None:
        pass

    def update(self, snapshot: AudioSnapshot) -> None:
        if snapshot.magnitudes is None:
            return
        self.process(snapshot)
        self.clear()
        self.draw(snapshot)
        self.frame_count += 1

    def render_idle_frame(self) -> None:
        self.clear()
        self.draw_idle()

    def process(self, snapshot: AudioSnapshot) -> None:
        pass

    def draw(self, snapshot: AudioSnapshot) -> None:
        raise NotImplementedError

    def draw_idle(self) -> None:
        self.draw_title()

    # ------------------------------------------------------------------
    # Drawing helpers
    # ------------------------------------------------------------------

    def clear(self, color: Color = BACKGROUND) -> None:
        self.draw_ctx.rectangle((0, 0, self.width, self.height), fill=color)

    def draw_title(self, color: Color = WHITE) -> None:
        if self.title:
            self.draw_label(self.title, self.width / 2, 6, color)

    def draw_label(self, text: str, cx: float, y: float, color: Color = WHITE) -> None:
        """Draw *text* horizontally centred on *cx*."""
        x = cx - self.draw_ctx.textlength(text) / 2
        self.draw_ctx.text((x, y), text, fill=color)

    def draw_grid(self, rows: int = 4, cols: int = 10, color: Color = GRID) -> None:
        for i in range(rows + 1):
            y = i / rows * (self.height - 1)
            self.draw_ctx.line((0, y, self.width, y), fill=color)
        for i in range(cols + 1):
            x = i / cols * (self.width - 1)
            self.draw_ctx.line((x, 0, x, self.height), fill=color)

    def draw_polyline(self, values: np.ndarray, low: float, high: float, color: Color, width: int = 2) -> None:
        """Plot *values* across the canvas, mapping [low, high] to bottom..top."""
        n = len(values)
        if n < 2:
            return
        xs = np.linspace(0, self.width - 1, n)
        span = high - low if high != low else 1.0
        ys = self.height - 1 - np.clip((np.asarray(values) - low) / span, 0.0, 1.0) * (self.height - 1)
        self.draw_ctx.line(list(zip(xs.tolist(), ys.tolist())), fill=color, width=width)

    def draw_circle(self, cx: float, cy: float, radius: float, color: Color, width: int = 3) -> None:
        radius = max(radius, 0.0)
        self.draw_ctx.ellipse((cx - radius, cy - radius, cx + radius, cy + radius), outline=color, width=width)

    def frame(self) -> np.ndarray:
        """Current canvas as a (H, W, 3) uint8 array."""
        return np.asarray(self.canvas, dtype=np.uint8)
