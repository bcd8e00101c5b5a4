"""Tests for the bundled visualizations."""

import numpy as np
import pytest

from micscope.config import GalleryConfig
from micscope.visualizations import default_gallery
from micscope.visualizations.analyzers import (
    EQAnalyzerVisualization,
    FFTAnalyzerConfig,
    FFTAnalyzerVisualization,
    HarmonicAnalyzerVisualization,
    SpectralCentroidVisualization,
)
from micscope.visualizations.meters import (
    CorrelationMeterVisualization,
    DynamicRangeVisualization,
    VUMeterVisualization,
)
from micscope.visualizations.orb import OrbVisualization
from micscope.visualizations.scopes import (
    BeatDetectionVisualization,
    GoniometerConfig,
    GoniometerVisualization,
    OscilloscopeVisualization,
    PhaseScopeConfig,
    PhaseScopeVisualization,
)
from micscope.visualizations.spectrogram import (
    SpectrogramConfig,
    SpectrogramVisualization,
    build_colormap,
)
from micscope.visualizations.spectrum import bass_spectrum, full_spectrum

EXPECTED_IDS = [
    "orb",
    "bassSpectrum",
    "midSpectrum",
    "trebleSpectrum",
    "fullAudio",
    "spectrogram",
    "fftAnalyzer",
    "oscilloscope",
    "phaseScope",
    "goniometer",
    "correlationMeter",
    "vuMeter",
    "eqAnalyzer",
    "harmonicAnalyzer",
    "beatDetection",
    "spectralCentroid",
    "dynamicRange",
]


def loud(n=1024, value=255):
    return np.full(n, value, dtype=np.uint8)


class TestGallery:
    def test_ids_and_order(self):
        assert [viz_id for viz_id, _ in default_gallery()] == EXPECTED_IDS

    def test_canvas_size_from_config(self):
        for _, viz in default_gallery(GalleryConfig(canvas_size=128)):
            assert viz.frame().shape == (128, 128, 3)

    @pytest.mark.parametrize("viz_id", EXPECTED_IDS)
    def test_handles_silence_noise_and_idle(self, viz_id, make_snapshot, silent_magnitudes, random_magnitudes):
        viz = dict(default_gallery())[viz_id]
        viz.initialize()

        viz.update(make_snapshot(silent_magnitudes, 1000.0))
        for i in range(5):
            viz.update(make_snapshot(random_magnitudes, 1020.0 + 20 * i))
        assert viz.frame_count == 6
        assert viz.frame().any()

        viz.render_idle_frame()
        assert viz.frame().dtype == np.uint8

    @pytest.mark.parametrize("viz_id", EXPECTED_IDS)
    def test_skips_snapshot_without_data(self, viz_id, make_snapshot):
        viz = dict(default_gallery())[viz_id]
        viz.initialize()
        viz.update(make_snapshot(None))
        assert viz.frame_count == 0


class TestSpectrum:
    def test_levels_follow_bands(self, make_snapshot):
        viz = bass_spectrum()
        viz.update(make_snapshot(loud()))
        assert viz.levels["sub-bass"] == pytest.approx(1.0)
        assert viz.levels["bass"] == pytest.approx(1.0)

    def test_full_spectrum_band_override(self):
        viz = full_spectrum(bands=((30, 300), (300, 3000), (3000, 9000)))
        assert [ring[1:3] for ring in viz.rings] == [(30, 300), (300, 3000), (3000, 9000)]

    def test_initialize_resets_levels(self, make_snapshot):
        viz = bass_spectrum()
        viz.update(make_snapshot(loud()))
        viz.initialize()
        assert all(level == 0.0 for level in viz.levels.values())


class TestOrb:
    def test_radius_grows_with_level(self, make_snapshot, silent_magnitudes):
        viz = OrbVisualization()
        viz.update(make_snapshot(silent_magnitudes))
        quiet = viz.radius
        for _ in range(10):
            viz.update(make_snapshot(loud()))
        assert viz.radius > quiet


class TestSpectrogram:
    def test_colormap_endpoints(self):
        lut = build_colormap()
        assert lut.shape == (256, 3)
        np.testing.assert_array_equal(lut[0], [0, 0, 0])
        assert lut[255][0] == 255

    def test_history_is_copied(self, config):
        viz = SpectrogramVisualization(SpectrogramConfig(frequency_bins=16, history=4))
        buffer = np.full(1024, 200, dtype=np.uint8)
        from micscope.core.snapshot import AudioSnapshot

        viz.update(AudioSnapshot(0.5, buffer, config.sample_rate, config.fft_size))
        buffer[:] = 0
        assert viz.history.as_array()[0].min() == pytest.approx(200.0)

    def test_newest_row_first(self, make_snapshot, silent_magnitudes):
        viz = SpectrogramVisualization(SpectrogramConfig(frequency_bins=16, history=4))
        viz.update(make_snapshot(silent_magnitudes))
        viz.update(make_snapshot(loud()))
        waterfall = viz.waterfall()
        assert waterfall.shape == (2, 16, 3)
        assert waterfall[0].any()
        assert not waterfall[1].any()


class TestBarAnalyzers:
    def test_fft_bar_count(self, make_snapshot, random_magnitudes):
        viz = FFTAnalyzerVisualization(FFTAnalyzerConfig(bars=64))
        viz.update(make_snapshot(random_magnitudes, 100.0))
        assert viz.levels.current.shape == (64,)

    def test_eq_bands(self, make_snapshot, random_magnitudes):
        viz = EQAnalyzerVisualization()
        viz.update(make_snapshot(random_magnitudes, 100.0))
        assert viz.levels.current.shape == (31,)

    def test_peaks_hold_above_levels(self, make_snapshot):
        viz = FFTAnalyzerVisualization()
        viz.update(make_snapshot(loud(), 100.0))
        assert np.all(np.asarray(viz.peaks.peak) == pytest.approx(1.0, abs=1e-3))

    def test_harmonic_fundamental(self, make_snapshot):
        mags = np.zeros(1024, dtype=np.uint8)
        mags[20] = 255
        viz = HarmonicAnalyzerVisualization()
        viz.update(make_snapshot(mags, 100.0))
        assert viz.fundamental_hz == pytest.approx(20 / 1024 * 22050)


class TestMeters:
    def test_vu_silence_sits_on_floor(self, make_snapshot, silent_magnitudes):
        viz = VUMeterVisualization()
        viz.update(make_snapshot(silent_magnitudes, 100.0))
        assert viz.vu_db == -20.0
        assert not viz.overload

    def test_vu_full_scale_overloads(self, make_snapshot):
        viz = VUMeterVisualization()
        viz.update(make_snapshot(loud(), 100.0))
        assert viz.vu_db > 0
        assert viz.overload

    def test_dynamic_range_tracks_history(self, make_snapshot, silent_magnitudes):
        viz = DynamicRangeVisualization()
        viz.update(make_snapshot(silent_magnitudes, 100.0))
        for i in range(20):
            viz.update(make_snapshot(loud(), 200.0 + 20 * i))
        assert viz.dynamic_range > 0.0

    def test_correlation_meter_identical_halves(self, make_snapshot):
        half = np.linspace(10, 250, 512).astype(np.uint8)
        viz = CorrelationMeterVisualization()
        viz.update(make_snapshot(np.concatenate([half, half]), 100.0))
        assert viz.correlation == pytest.approx(1.0)
        assert viz.peak_correlation == pytest.approx(1.0)

    def test_spectral_centroid_brightness(self, make_snapshot):
        mags = np.zeros(1024, dtype=np.uint8)
        mags[1000] = 255
        viz = SpectralCentroidVisualization()
        viz.update(make_snapshot(mags, 100.0))
        assert 0.0 < viz.brightness <= 1.0


class TestScopes:
    def test_goniometer_point_budget(self, make_snapshot, random_magnitudes):
        viz = GoniometerVisualization(GoniometerConfig(points_per_frame=10, max_points=25, seed=1))
        for i in range(10):
            viz.update(make_snapshot(random_magnitudes, 100.0 + i))
        assert len(viz.points) == 25

    def test_goniometer_points_age_out(self, make_snapshot, random_magnitudes):
        viz = GoniometerVisualization(GoniometerConfig(points_per_frame=1, max_age=3, seed=1))
        for i in range(10):
            viz.update(make_snapshot(random_magnitudes, 100.0 + i))
        assert all(age < 3 for _, _, age, _ in viz.points)

    def test_beat_on_spike(self, make_snapshot, silent_magnitudes):
        viz = BeatDetectionVisualization()
        for i in range(43):
            viz.update(make_snapshot(silent_magnitudes, 1000.0 + 16 * i))
        assert viz.beat_count == 0
        viz.update(make_snapshot(loud(), 2000.0))
        assert viz.is_beat
        assert viz.beat_count == 1
        assert viz.beat_history.latest() == 1.0

    def test_beat_trail_decays(self, make_snapshot, silent_magnitudes):
        viz = BeatDetectionVisualization()
        for i in range(43):
            viz.update(make_snapshot(silent_magnitudes, 1000.0 + 16 * i))
        viz.update(make_snapshot(loud(), 2000.0))
        viz.update(make_snapshot(silent_magnitudes, 2010.0))
        assert viz.beat_history.latest() == pytest.approx(0.9)

    def test_oscilloscope_silence_is_flat(self, make_snapshot, silent_magnitudes):
        viz = OscilloscopeVisualization()
        viz.update(make_snapshot(silent_magnitudes, 100.0))
        assert viz.waveform.shape == (512,)
        assert not viz.waveform.any()
        assert viz.peak == 0.0

    def test_oscilloscope_trace_is_bounded(self, make_snapshot):
        viz = OscilloscopeVisualization()
        viz.update(make_snapshot(loud(), 100.0))
        assert viz.peak > 0.0
        assert np.all(np.abs(viz.waveform) <= 1.0)

    def test_phase_scope_point_budget(self, make_snapshot, random_magnitudes):
        viz = PhaseScopeVisualization(PhaseScopeConfig(points_per_frame=10, max_points=25, seed=1))
        for i in range(10):
            viz.update(make_snapshot(random_magnitudes, 100.0 + i))
        assert len(viz.points) == 25

    def test_phase_scope_points_fade_by_time(self, make_snapshot, random_magnitudes):
        viz = PhaseScopeVisualization(PhaseScopeConfig(points_per_frame=2, fade_ms=100.0, seed=1))
        viz.update(make_snapshot(random_magnitudes, 0.0))
        viz.update(make_snapshot(random_magnitudes, 50.0))
        assert len(viz.points) == 4
        assert viz.alpha(0.0) == pytest.approx(0.5)

        viz.update(make_snapshot(random_magnitudes, 100.0))
        assert len(viz.points) == 4
        assert all(born > 0.0 for _, _, born, _ in viz.points)

    def test_phase_scope_identical_halves_on_diagonal(self, make_snapshot):
        half = np.linspace(0, 255, 512).astype(np.uint8)
        viz = PhaseScopeVisualization(PhaseScopeConfig(seed=3))
        viz.update(make_snapshot(np.concatenate([half, half]), 100.0))
        assert all(x == pytest.approx(y) for x, y, _, _ in viz.points)
        for x, y, _, _ in viz.points:
            assert -1.0 <= x <= 1.0

    def test_phase_scope_color_fades(self):
        bright = PhaseScopeVisualization.point_color(0.5, 0.5, 1.0)
        dim = PhaseScopeVisualization.point_color(0.5, 0.5, 0.25)
        assert sum(dim) < sum(bright)
        assert PhaseScopeVisualization.point_color(0.5, 0.5, 0.0) == (0, 0, 0)
