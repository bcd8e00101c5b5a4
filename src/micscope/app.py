"""
Gallery bootstrap: the application context and the pygame frame loop.

The :class:`Application` owns every long-lived object (config, audio
source, visualization registry, status text).  It is constructed once and
passed around explicitly; there is no module-level app state.

Keyboard / mouse controls in the gallery window:
    SPACE     start or stop listening
    click     start listening
    ESC / Q   quit
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Tuple

import numpy as np
from PIL import Image

from micscope.config import GalleryConfig
from micscope.core.errors import CaptureError
from micscope.core.snapshot import AudioSnapshot
from micscope.core.source import AudioSource, CaptureState
from micscope.registry import Visualization, VisualizationRegistry
from micscope.visualizations import default_gallery

logger = logging.getLogger(__name__)

STATUS_IDLE = "Click anywhere to start listening"
STATUS_LISTENING = "Listening..."
STATUS_STOPPED = 'Stopped. Press SPACE or click to start listening'


class Application:
    """
    Explicit application context.

    Args:
        config: Gallery constants.
        source: Audio source; built from *config* when omitted.
        visualizations: ``(id, visualization)`` pairs to register, in
            order.  Defaults to the bundled gallery.
    """

    def __init__(
        self,
        config: Optional[GalleryConfig] = None,
        source: Optional[AudioSource] = None,
        visualizations: Optional[Iterable[Tuple[str, Visualization]]] = None,
    ):
        self.config = config or GalleryConfig()
        self.source = source or AudioSource(self.config)
        self.registry = VisualizationRegistry()
        self.status = STATUS_IDLE

        if visualizations is None:
            visualizations = default_gallery(self.config)
        for viz_id, viz in visualizations:
            self.registry.register(viz_id, viz)

        self._visualizations_ready = False

    @property
    def is_active(self) -> bool:
        return self.registry.running and self.source.is_capturing

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def setup(self) -> bool:
        """
        Initialize the audio source and the visualizations.

        Returns:
            False (with :attr:`status` set) when the platform cannot
            capture audio.
        """
        if self.source.state is CaptureState.UNINITIALIZED:
            try:
                self.source.initialize()
            except CaptureError as exc:
                logger.error("Audio initialization failed: %s", exc)
                self.status = exc.status_message
                return False

        if not self._visualizations_ready:
            self.registry.initialize()
            self._visualizations_ready = True
        return True

    def start_audio(self) -> bool:
        """Start listening; capture errors become a status message."""
        if not self.setup():
            return False
        try:
            self.source.request_capture()
        except CaptureError as exc:
            self.status = exc.status_message
            return False

        if not self.source.is_capturing:
            # stop() won the race against the permission request
            return False

        self.registry.start()
        self.status = STATUS_LISTENING
        return True

    def stop_audio(self) -> None:
        self.source.stop()
        self.registry.stop()
        self.status = STATUS_STOPPED

    def toggle(self) -> bool:
        if self.is_active:
            self.stop_audio()
            return False
        return self.start_audio()

    # ------------------------------------------------------------------
    # Frame
    # ------------------------------------------------------------------

    def step(self) -> Optional[AudioSnapshot]:
        """Sample once and dispatch to every visualization."""
        if not self.registry.running:
            return None
        snapshot = self.source.sample()
        self.registry.tick(snapshot)
        return snapshot

    def compose(self) -> np.ndarray:
        """Tile every visualization canvas into one (H, W, 3) frame."""
        tile = self.config.tile_size
        cols = self.config.gallery_columns
        n = len(self.registry)
        rows = max(1, -(-n // cols))
        mosaic = Image.new("RGB", (cols * tile, rows * tile))

        for i, (_, viz) in enumerate(self.registry.items()):
            canvas = getattr(viz, "canvas", None)
            if canvas is None:
                continue
            thumb = canvas.resize((tile, tile), Image.Resampling.BILINEAR)
            mosaic.paste(thumb, ((i % cols) * tile, (i // cols) * tile))

        return np.asarray(mosaic, dtype=np.uint8)

    # ------------------------------------------------------------------
    # Window
    # ------------------------------------------------------------------

    def run(self, title: str = "micscope") -> None:
        """Open the gallery window and drive the frame loop until quit."""
        import pygame

        if not logging.getLogger().handlers:
            logging.basicConfig(
                level=logging.INFO,
                format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            )

        if not self.start_audio():
            logger.info("Auto-start failed: %s", self.status)
            self.registry.stop()

        pygame.init()
        first = self.compose()
        h, w = first.shape[:2]
        screen = pygame.display.set_mode((w, h + 32))
        pygame.display.set_caption(title)
        clock = pygame.time.Clock()
        font = pygame.font.SysFont(None, 24)

        running = True
        try:
            while running:
                for event in pygame.event.get():
                    if event.type == pygame.QUIT:
                        running = False
                    elif event.type == pygame.KEYDOWN:
                        if event.key in (pygame.K_ESCAPE, pygame.K_q):
                            running = False
                        elif event.key == pygame.K_SPACE:
                            self.toggle()
                    elif event.type == pygame.MOUSEBUTTONDOWN and not self.is_active:
                        self.start_audio()

                self.step()

                # pygame expects (W, H, 3), numpy gives (H, W, 3)
                surface = pygame.surfarray.make_surface(self.compose().swapaxes(0, 1))
                screen.fill((0, 0, 0))
                screen.blit(surface, (0, 0))
                label = font.render(self.status, True, (200, 200, 200))
                screen.blit(label, (8, h + 8))
                pygame.display.flip()

                clock.tick(self.config.target_fps)
        finally:
            self.source.stop()
            pygame.quit()


def main() -> None:
    Application().run()


if __name__ == "__main__":
    main()
