"""
Stateless feature extraction from a frequency-magnitude snapshot.

Every function takes the uint8 magnitude vector produced by the analyser
(or ``None`` when no data is available yet) and returns plain floats or
numpy arrays.  Nothing here keeps state between frames; smoothing and
history live in :mod:`micscope.core.temporal`.
"""

import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Sequence, Union

import numpy as np

# Normalized magnitude below which a pseudo-stereo bin pair is ignored
CORRELATION_NOISE_FLOOR = 0.01

# Added before log10 so silence maps to -60 dB instead of -inf
DB_EPSILON = 1e-3

ArrayOrFloat = Union[float, np.ndarray]


@dataclass
class HarmonicProfile:
    """Fundamental frequency and the dB level of each of its harmonics."""

    fundamental_hz: float
    fundamental_bin: int
    levels_db: np.ndarray  # Shape: (n_harmonics,)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _normalized(magnitudes: np.ndarray) -> np.ndarray:
    """uint8 magnitudes -> float64 in [0, 1]."""
    return np.asarray(magnitudes, dtype=np.float64) / 255.0


def audio_level(magnitudes: Optional[np.ndarray]) -> float:
    """
    Mean normalized magnitude over the active (non-zero) bins.

    Returns 0 when every bin is zero or there is no data.
    """
    if magnitudes is None:
        return 0.0
    m = np.asarray(magnitudes)
    active = m[m > 0]
    if active.size == 0:
        return 0.0
    return float(active.mean(dtype=np.float64) / 255.0)


# ---------------------------------------------------------------------------
# Band levels
# ---------------------------------------------------------------------------

def band_level(
    magnitudes: Optional[np.ndarray],
    start_hz: float,
    end_hz: float,
    sample_rate: int = 44100,
    fft_size: int = 2048,
) -> float:
    """
    Average normalized magnitude over a frequency range.

    The range maps to bins ``floor(f / bin_hz)`` and both ends are
    inclusive.  Indices are clamped to the vector; an empty range
    yields 0.

    Args:
        magnitudes: uint8 magnitude vector, or None.
        start_hz: Lower edge of the band.
        end_hz: Upper edge of the band.
        sample_rate: Capture sample rate.
        fft_size: Analyser FFT size (twice the magnitude count).

    Returns:
        Band level in [0.0, 1.0].
    """
    if magnitudes is None or len(magnitudes) == 0:
        return 0.0

    bin_hz = sample_rate / fft_size
    start_bin = max(int(math.floor(start_hz / bin_hz)), 0)
    end_bin = min(int(math.floor(end_hz / bin_hz)), len(magnitudes) - 1)

    if end_bin < start_bin:
        return 0.0

    band = np.asarray(magnitudes[start_bin:end_bin + 1], dtype=np.float64)
    return float(band.mean() / 255.0)


def bass_level(magnitudes, sample_rate: int = 44100, fft_size: int = 2048) -> float:
    return band_level(magnitudes, 20, 250, sample_rate, fft_size)


def mid_level(magnitudes, sample_rate: int = 44100, fft_size: int = 2048) -> float:
    return band_level(magnitudes, 250, 2000, sample_rate, fft_size)


def treble_level(magnitudes, sample_rate: int = 44100, fft_size: int = 2048) -> float:
    return band_level(magnitudes, 2000, 8000, sample_rate, fft_size)


def band_energy(
    magnitudes: Optional[np.ndarray],
    start_fraction: float,
    end_fraction: float,
) -> float:
    """
    Mean squared normalized magnitude over a fractional slice of the bins.

    ``start_fraction`` and ``end_fraction`` are positions in [0, 1] of the
    vector; the end index is exclusive.
    """
    if magnitudes is None or len(magnitudes) == 0:
        return 0.0
    n = len(magnitudes)
    start = int(math.floor(start_fraction * n))
    end = int(math.floor(end_fraction * n))
    if end <= start:
        return 0.0
    band = _normalized(magnitudes[start:end])
    return float(np.mean(band * band))


def group_bins(magnitudes: Optional[np.ndarray], n_groups: int) -> np.ndarray:
    """
    Collapse the magnitude vector into *n_groups* equal contiguous groups.

    Trailing bins that do not fill a whole group are dropped.  Returns the
    mean raw magnitude of each group (0-255 scale).
    """
    if magnitudes is None:
        return np.zeros(n_groups)
    group_size = len(magnitudes) // n_groups
    if group_size == 0:
        raise ValueError(
            f"Cannot split {len(magnitudes)} bins into {n_groups} groups"
        )
    trimmed = np.asarray(magnitudes[: n_groups * group_size], dtype=np.float64)
    return trimmed.reshape(n_groups, group_size).mean(axis=1)


# ---------------------------------------------------------------------------
# Pseudo-stereo
# ---------------------------------------------------------------------------

def _split_halves(magnitudes: np.ndarray):
    mid = len(magnitudes) // 2
    norm = _normalized(magnitudes)
    return norm[:mid], norm[mid:2 * mid]


def stereo_split_correlation(
    magnitudes: Optional[np.ndarray],
    noise_floor: float = CORRELATION_NOISE_FLOOR,
) -> float:
    """
    Pearson correlation between the lower and upper half of the spectrum.

    The analyser has a single channel, so the two halves stand in for a
    left/right pair.  This measures self-similarity of the spectrum, not
    real stereo phase.  Only index pairs where either side exceeds
    *noise_floor* take part.

    Returns:
        Correlation in [-1.0, 1.0]; 0 when no pair qualifies or either
        half has no variance.
    """
    if magnitudes is None or len(magnitudes) < 2:
        return 0.0

    left, right = _split_halves(magnitudes)
    mask = (left > noise_floor) | (right > noise_floor)
    if not np.any(mask):
        return 0.0

    left = left[mask]
    right = right[mask]
    # Constant halves have zero variance; centring them can leave rounding residue
    if np.ptp(left) == 0 or np.ptp(right) == 0:
        return 0.0

    left_c = left - left.mean()
    right_c = right - right.mean()

    left_var = np.mean(left_c * left_c)
    right_var = np.mean(right_c * right_c)
    variance_product = left_var * right_var
    if variance_product <= 0.0:
        return 0.0

    covariance = np.mean(left_c * right_c)
    correlation = covariance / math.sqrt(variance_product)
    return float(np.clip(correlation, -1.0, 1.0))


def stereo_width(magnitudes: Optional[np.ndarray]) -> float:
    """Relative imbalance between the two spectrum halves, in [0, 1]."""
    if magnitudes is None or len(magnitudes) < 2:
        return 0.0
    left, right = _split_halves(magnitudes)
    left_sum = float(left.sum())
    right_sum = float(right.sum())
    return abs(left_sum - right_sum) / (left_sum + right_sum + 0.001)


# ---------------------------------------------------------------------------
# Spectral shape
# ---------------------------------------------------------------------------

def spectral_centroid(
    magnitudes: Optional[np.ndarray],
    sample_rate: int = 44100,
) -> float:
    """
    Magnitude-weighted mean frequency in Hz.

    Bin *i* sits at ``i * sample_rate / fft_size`` with ``fft_size`` equal
    to twice the magnitude count.  Silence returns 0.
    """
    if magnitudes is None or len(magnitudes) == 0:
        return 0.0
    mags = _normalized(magnitudes)
    total = mags.sum()
    if total <= 0:
        return 0.0
    freqs = np.arange(len(mags)) * sample_rate / (2 * len(mags))
    return float(np.dot(freqs, mags) / total)


def spectral_rolloff(
    magnitudes: Optional[np.ndarray],
    threshold_fraction: float = 0.85,
    sample_rate: int = 44100,
) -> float:
    """
    Lowest frequency below which *threshold_fraction* of the total
    magnitude has accumulated, scanning from low to high bins.
    """
    if magnitudes is None or len(magnitudes) == 0:
        return 0.0
    mags = _normalized(magnitudes)
    cumulative = np.cumsum(mags)
    threshold = cumulative[-1] * threshold_fraction
    index = int(np.argmax(cumulative >= threshold))
    return index * sample_rate / (2 * len(mags))


# ---------------------------------------------------------------------------
# Loudness
# ---------------------------------------------------------------------------

def to_decibels(value: ArrayOrFloat, floor: float = -80.0) -> ArrayOrFloat:
    """
    Convert a normalized magnitude to dB: ``max(20*log10(v + 1e-3), floor)``.

    Accepts a scalar or a numpy array and returns the same kind.
    """
    db = np.maximum(20.0 * np.log10(np.asarray(value, dtype=np.float64) + DB_EPSILON), floor)
    if np.ndim(db) == 0:
        return float(db)
    return db


def rms_level(magnitudes: Optional[np.ndarray]) -> float:
    """Root-mean-square of the normalized magnitudes."""
    if magnitudes is None or len(magnitudes) == 0:
        return 0.0
    mags = _normalized(magnitudes)
    return float(np.sqrt(np.mean(mags * mags)))


def octave_band_levels(
    magnitudes: Optional[np.ndarray],
    centres: Sequence[float],
    sample_rate: int = 44100,
    floor: float = -80.0,
) -> np.ndarray:
    """
    dB level of the bin nearest below each centre frequency.

    Used for graphic-equalizer style displays (e.g. ISO 31-band).
    """
    if magnitudes is None or len(magnitudes) == 0:
        return np.full(len(centres), floor)
    n = len(magnitudes)
    nyquist = sample_rate / 2.0
    indices = np.floor(np.asarray(centres, dtype=np.float64) / nyquist * n).astype(int)
    indices = np.clip(indices, 0, n - 1)
    return to_decibels(_normalized(magnitudes)[indices], floor)


def harmonic_levels(
    magnitudes: Optional[np.ndarray],
    sample_rate: int = 44100,
    n_harmonics: int = 8,
    floor: float = -80.0,
) -> HarmonicProfile:
    """
    Locate the fundamental and measure its harmonic series.

    The fundamental is the strongest bin in the lower half of the spectrum
    (bin 0 excluded).  Harmonic *h* is read at ``h * fundamental_bin``;
    harmonics beyond the last bin report *floor*.
    """
    levels = np.full(n_harmonics, floor, dtype=np.float64)
    if magnitudes is None or len(magnitudes) < 2:
        return HarmonicProfile(0.0, 0, levels)

    n = len(magnitudes)
    search = np.asarray(magnitudes[1: int(math.ceil(n / 2))])
    if search.size == 0 or search.max() == 0:
        fundamental_bin = 0
    else:
        fundamental_bin = int(np.argmax(search)) + 1

    nyquist = sample_rate / 2.0
    fundamental_hz = fundamental_bin / n * nyquist

    mags = _normalized(magnitudes)
    for h in range(1, n_harmonics + 1):
        index = fundamental_bin * h
        if index < n:
            levels[h - 1] = to_decibels(mags[index], floor)

    return HarmonicProfile(fundamental_hz, fundamental_bin, levels)


# ---------------------------------------------------------------------------
# Waveform synthesis
# ---------------------------------------------------------------------------

@lru_cache(maxsize=8)
def _sine_table(n_samples: int, n_components: int, n_bins: int) -> np.ndarray:
    # Bin j sits at j / n_bins * nyquist; sample i at i / sample_rate, so the
    # phase reduces to pi * i * j / n_bins and the sample rate cancels out.
    i = np.arange(n_samples, dtype=np.float64)[:, None]
    j = np.arange(n_components, dtype=np.float64)[None, :]
    table = np.sin(np.pi * i * j / n_bins)
    table.setflags(write=False)
    return table


def synthesize_waveform(
    magnitudes: Optional[np.ndarray],
    n_samples: int = 512,
    n_components: int = 256,
) -> np.ndarray:
    """
    Rebuild a pseudo time-domain trace from the magnitude spectrum.

    Sums one zero-phase sine per bin over the lowest *n_components* bins,
    weighted by the bin's normalized magnitude, then soft-clips with
    ``tanh(3x)``.  There is no phase information, so this is a picture of
    the spectrum's content rather than the real signal.

    Returns:
        Float64 array of *n_samples* values in [-1.0, 1.0]; all zeros for
        silence or missing data.
    """
    if magnitudes is None or len(magnitudes) == 0:
        return np.zeros(n_samples, dtype=np.float64)

    n_bins = len(magnitudes)
    count = min(n_bins, n_components)
    weights = _normalized(magnitudes)[:count]
    wave = _sine_table(n_samples, count, n_bins) @ weights / n_components
    return np.tanh(3.0 * wave)
