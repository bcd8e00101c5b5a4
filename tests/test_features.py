"""Tests for stateless feature extraction."""

import numpy as np
import pytest

from micscope.core.features import (
    audio_level,
    band_energy,
    band_level,
    bass_level,
    group_bins,
    harmonic_levels,
    mid_level,
    octave_band_levels,
    rms_level,
    spectral_centroid,
    spectral_rolloff,
    stereo_split_correlation,
    stereo_width,
    synthesize_waveform,
    to_decibels,
    treble_level,
)

N_BINS = 1024


class TestAudioLevel:
    def test_silence_is_zero(self):
        assert audio_level(np.zeros(N_BINS, dtype=np.uint8)) == 0.0

    def test_none_is_zero(self):
        assert audio_level(None) == 0.0

    def test_mean_over_active_bins_only(self):
        mags = np.zeros(N_BINS, dtype=np.uint8)
        mags[:4] = [255, 255, 51, 51]
        assert audio_level(mags) == pytest.approx((255 + 255 + 51 + 51) / 4 / 255)

    def test_range(self, random_magnitudes):
        assert 0.0 <= audio_level(random_magnitudes) <= 1.0


class TestBandLevel:
    def test_full_scale_band(self):
        mags = np.full(N_BINS, 255, dtype=np.uint8)
        assert band_level(mags, 20, 250) == pytest.approx(1.0)

    def test_none_and_empty(self):
        assert band_level(None, 20, 250) == 0.0
        assert band_level(np.array([], dtype=np.uint8), 20, 250) == 0.0

    def test_inverted_range_is_empty(self):
        mags = np.full(N_BINS, 200, dtype=np.uint8)
        assert band_level(mags, 2000, 250) == 0.0

    def test_single_bin_when_edges_equal(self):
        mags = np.zeros(N_BINS, dtype=np.uint8)
        bin_hz = 44100 / 2048
        mags[10] = 255
        assert band_level(mags, 10 * bin_hz + 1, 10 * bin_hz + 1) == pytest.approx(1.0)

    def test_range_beyond_nyquist_is_clamped(self):
        mags = np.full(N_BINS, 255, dtype=np.uint8)
        assert band_level(mags, 20000, 40000) == pytest.approx(1.0)

    def test_monotonic_in_magnitudes(self, random_magnitudes):
        louder = np.minimum(random_magnitudes.astype(int) + 10, 255).astype(np.uint8)
        assert band_level(louder, 250, 2000) >= band_level(random_magnitudes, 250, 2000)

    def test_named_bands_isolate_regions(self):
        mags = np.zeros(N_BINS, dtype=np.uint8)
        bin_hz = 44100 / 2048
        mags[int(100 / bin_hz)] = 255
        assert bass_level(mags) > 0.0
        assert mid_level(mags) == 0.0
        assert treble_level(mags) == 0.0


class TestBandEnergy:
    def test_squares_normalized_values(self):
        mags = np.full(N_BINS, 255, dtype=np.uint8)
        mags[: N_BINS // 2] = 0
        assert band_energy(mags, 0.5, 1.0) == pytest.approx(1.0)
        assert band_energy(mags, 0.0, 0.5) == 0.0

    def test_empty_slice(self):
        assert band_energy(np.full(N_BINS, 255, dtype=np.uint8), 0.5, 0.5) == 0.0


class TestGroupBins:
    def test_group_means(self):
        mags = np.arange(8, dtype=np.uint8)
        np.testing.assert_allclose(group_bins(mags, 4), [0.5, 2.5, 4.5, 6.5])

    def test_trailing_bins_dropped(self):
        mags = np.arange(10, dtype=np.uint8)
        assert group_bins(mags, 3).shape == (3,)

    def test_too_many_groups(self):
        with pytest.raises(ValueError):
            group_bins(np.zeros(4, dtype=np.uint8), 8)

    def test_none_gives_zeros(self):
        np.testing.assert_array_equal(group_bins(None, 16), np.zeros(16))


class TestStereoCorrelation:
    def test_identical_halves(self):
        half = np.linspace(10, 250, N_BINS // 2).astype(np.uint8)
        mags = np.concatenate([half, half])
        assert stereo_split_correlation(mags) == pytest.approx(1.0)

    def test_mirrored_halves(self):
        half = np.linspace(10, 250, N_BINS // 2)
        mags = np.concatenate([half, 260 - half]).astype(np.uint8)
        assert stereo_split_correlation(mags) == pytest.approx(-1.0, abs=1e-3)

    def test_silence_is_zero(self):
        assert stereo_split_correlation(np.zeros(N_BINS, dtype=np.uint8)) == 0.0

    def test_constant_halves_have_no_variance(self):
        assert stereo_split_correlation(np.full(N_BINS, 100, dtype=np.uint8)) == 0.0

    def test_nearly_constant_identical_halves(self):
        half = np.array([100] * (N_BINS // 2 - 1) + [101], dtype=np.uint8)
        mags = np.concatenate([half, half])
        assert stereo_split_correlation(mags) == pytest.approx(1.0, abs=1e-6)

    def test_silent_half_against_varied_half(self):
        mags = np.zeros(N_BINS, dtype=np.uint8)
        mags[N_BINS // 2:] = np.linspace(10, 250, N_BINS // 2).astype(np.uint8)
        assert stereo_split_correlation(mags) == 0.0
        mags = mags[::-1].copy()
        assert stereo_split_correlation(mags) == 0.0

    def test_bounded(self, random_magnitudes):
        assert -1.0 <= stereo_split_correlation(random_magnitudes) <= 1.0

    def test_width_balanced(self):
        assert stereo_width(np.full(N_BINS, 100, dtype=np.uint8)) == pytest.approx(0.0)

    def test_width_one_sided(self):
        mags = np.zeros(N_BINS, dtype=np.uint8)
        mags[: N_BINS // 2] = 255
        assert stereo_width(mags) == pytest.approx(1.0, abs=1e-3)


class TestSpectralShape:
    def test_centroid_of_single_bin(self):
        mags = np.zeros(N_BINS, dtype=np.uint8)
        mags[100] = 255
        assert spectral_centroid(mags, 44100) == pytest.approx(100 * 44100 / 2048)

    def test_centroid_of_silence(self):
        assert spectral_centroid(np.zeros(N_BINS, dtype=np.uint8)) == 0.0

    def test_rolloff_flat_spectrum(self):
        mags = np.full(N_BINS, 100, dtype=np.uint8)
        rolloff = spectral_rolloff(mags, 0.85, 44100)
        expected_index = int(np.ceil(0.85 * N_BINS)) - 1
        assert rolloff == pytest.approx(expected_index * 44100 / 2048)

    def test_rolloff_not_above_nyquist(self, random_magnitudes):
        assert spectral_rolloff(random_magnitudes) <= 22050


class TestLoudness:
    def test_zero_maps_to_minus_sixty(self):
        assert to_decibels(0.0) == pytest.approx(-60.0)

    def test_floor(self):
        assert to_decibels(0.0, floor=-40.0) == -40.0

    def test_array_input(self):
        db = to_decibels(np.array([0.0, 1.0]))
        assert isinstance(db, np.ndarray)
        assert db[1] == pytest.approx(20 * np.log10(1.001))

    def test_rms_full_scale(self):
        assert rms_level(np.full(N_BINS, 255, dtype=np.uint8)) == pytest.approx(1.0)

    def test_octave_bands_shape(self, random_magnitudes):
        levels = octave_band_levels(random_magnitudes, (63, 1000, 16000))
        assert levels.shape == (3,)
        assert np.all(levels >= -80.0)

    def test_octave_bands_without_data(self):
        np.testing.assert_array_equal(octave_band_levels(None, (63, 1000)), [-80.0, -80.0])


class TestHarmonics:
    def test_finds_fundamental_and_harmonics(self):
        mags = np.zeros(N_BINS, dtype=np.uint8)
        mags[50] = 255
        mags[100] = 128
        profile = harmonic_levels(mags, 44100, n_harmonics=4)
        assert profile.fundamental_bin == 50
        assert profile.fundamental_hz == pytest.approx(50 / N_BINS * 22050)
        assert profile.levels_db[0] > profile.levels_db[1] > profile.levels_db[2]

    def test_harmonics_past_last_bin_use_floor(self):
        mags = np.zeros(N_BINS, dtype=np.uint8)
        mags[400] = 255
        profile = harmonic_levels(mags, 44100, n_harmonics=4)
        assert profile.levels_db[3] == -80.0

    def test_silence(self):
        profile = harmonic_levels(np.zeros(N_BINS, dtype=np.uint8))
        assert profile.fundamental_bin == 0
        assert profile.fundamental_hz == 0.0


class TestWaveform:
    def test_silence_is_flat(self):
        wave = synthesize_waveform(np.zeros(N_BINS, dtype=np.uint8))
        assert wave.shape == (512,)
        assert not wave.any()

    def test_missing_data_is_flat(self):
        assert not synthesize_waveform(None, n_samples=64).any()

    def test_bounded_and_starts_at_zero(self, random_magnitudes):
        wave = synthesize_waveform(random_magnitudes)
        assert np.all(np.abs(wave) <= 1.0)
        # Every component is a zero-phase sine
        assert wave[0] == 0.0
        assert np.abs(wave).max() > 0.0

    def test_single_bin_is_a_sine(self):
        mags = np.zeros(N_BINS, dtype=np.uint8)
        mags[64] = 255
        wave = synthesize_waveform(mags, n_samples=32)
        expected = np.tanh(3.0 * np.sin(np.pi * np.arange(32) * 64 / N_BINS) / 256)
        np.testing.assert_allclose(wave, expected, atol=1e-12)

    def test_only_low_components_contribute(self):
        mags = np.zeros(N_BINS, dtype=np.uint8)
        mags[300:] = 255
        assert not synthesize_waveform(mags, n_components=256).any()
