"""Microphone-reactive visualization gallery."""

from micscope.config import GalleryConfig
from micscope.core.snapshot import AudioSnapshot
from micscope.core.source import AudioSource
from micscope.registry import VisualizationRegistry

__version__ = "0.1.0"
__all__ = [
    "AudioSnapshot",
    "AudioSource",
    "GalleryConfig",
    "VisualizationRegistry",
]
