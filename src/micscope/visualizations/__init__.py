"""Bundled audio-reactive visualizations."""

from typing import List, Optional, Tuple

from micscope.config import GalleryConfig
from micscope.visualizations.analyzers import (
    EQAnalyzerConfig,
    EQAnalyzerVisualization,
    FFTAnalyzerConfig,
    FFTAnalyzerVisualization,
    HarmonicAnalyzerConfig,
    HarmonicAnalyzerVisualization,
    SpectralCentroidConfig,
    SpectralCentroidVisualization,
)
from micscope.visualizations.base import BaseConfig, BaseVisualization
from micscope.visualizations.meters import (
    CorrelationMeterConfig,
    CorrelationMeterVisualization,
    DynamicRangeConfig,
    DynamicRangeVisualization,
    VUMeterConfig,
    VUMeterVisualization,
)
from micscope.visualizations.orb import OrbConfig, OrbVisualization
from micscope.visualizations.scopes import (
    BeatDetectionConfig,
    BeatDetectionVisualization,
    GoniometerConfig,
    GoniometerVisualization,
    OscilloscopeConfig,
    OscilloscopeVisualization,
    PhaseScopeConfig,
    PhaseScopeVisualization,
)
from micscope.visualizations.spectrogram import SpectrogramConfig, SpectrogramVisualization
from micscope.visualizations.spectrum import (
    BandSpectrumVisualization,
    bass_spectrum,
    full_spectrum,
    mid_spectrum,
    treble_spectrum,
)


def default_gallery(config: Optional[GalleryConfig] = None) -> List[Tuple[str, BaseVisualization]]:
    """All bundled visualizations, in gallery order, sized from *config*."""
    gallery = config or GalleryConfig()
    base = BaseConfig.from_gallery(gallery)
    return [
        ("orb", OrbVisualization(OrbConfig.from_gallery(gallery))),
        ("bassSpectrum", bass_spectrum(base)),
        ("midSpectrum", mid_spectrum(base)),
        ("trebleSpectrum", treble_spectrum(base)),
        (
            "fullAudio",
            full_spectrum(base, (gallery.bass_band, gallery.mid_band, gallery.treble_band)),
        ),
        ("spectrogram", SpectrogramVisualization(SpectrogramConfig.from_gallery(gallery))),
        ("fftAnalyzer", FFTAnalyzerVisualization(FFTAnalyzerConfig.from_gallery(gallery))),
        ("oscilloscope", OscilloscopeVisualization(OscilloscopeConfig.from_gallery(gallery))),
        ("phaseScope", PhaseScopeVisualization(PhaseScopeConfig.from_gallery(gallery))),
        ("goniometer", GoniometerVisualization(GoniometerConfig.from_gallery(gallery))),
        ("correlationMeter", CorrelationMeterVisualization(CorrelationMeterConfig.from_gallery(gallery))),
        ("vuMeter", VUMeterVisualization(VUMeterConfig.from_gallery(gallery))),
        (
            "eqAnalyzer",
            EQAnalyzerVisualization(
                EQAnalyzerConfig.from_gallery(gallery, centres=gallery.eq_band_centres)
            ),
        ),
        ("harmonicAnalyzer", HarmonicAnalyzerVisualization(HarmonicAnalyzerConfig.from_gallery(gallery))),
        (
            "beatDetection",
            BeatDetectionVisualization(
                BeatDetectionConfig.from_gallery(
                    gallery,
                    threshold=gallery.beat_threshold,
                    min_interval_ms=gallery.beat_min_interval_ms,
                )
            ),
        ),
        ("spectralCentroid", SpectralCentroidVisualization(SpectralCentroidConfig.from_gallery(gallery))),
        ("dynamicRange", DynamicRangeVisualization(DynamicRangeConfig.from_gallery(gallery))),
    ]


__all__ = [
    "BandSpectrumVisualization",
    "BaseConfig",
    "BaseVisualization",
    "BeatDetectionVisualization",
    "CorrelationMeterVisualization",
    "DynamicRangeVisualization",
    "EQAnalyzerVisualization",
    "FFTAnalyzerVisualization",
    "GoniometerVisualization",
    "HarmonicAnalyzerVisualization",
    "OrbVisualization",
    "OscilloscopeVisualization",
    "PhaseScopeVisualization",
    "SpectralCentroidVisualization",
    "SpectrogramVisualization",
    "VUMeterVisualization",
    "default_gallery",
]
