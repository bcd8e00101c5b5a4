"""
Per-visualization temporal state: smoothing, peak hold, history rings and
energy-variance beat detection.

Each visualization owns its own instances of these state objects; nothing
here is shared between visualizations.  Update functions mutate the state
they are given and return it, so calls can be chained or assigned.

Time is always passed in explicitly as monotonic milliseconds so the
arithmetic is reproducible in tests.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Iterator, Optional, Tuple, Union

import numpy as np

ArrayOrFloat = Union[float, np.ndarray]

# ~1 second of frames at 43 fps analyser updates
ENERGY_WINDOW = 43
MAX_TEMPO_HISTORY = 50
MIN_TEMPO_BPM = 60.0
MAX_TEMPO_BPM = 200.0


# ---------------------------------------------------------------------------
# Exponential smoothing
# ---------------------------------------------------------------------------

@dataclass
class SmoothedValue:
    """Exponentially smoothed scalar or vector. Higher factor = slower."""

    current: ArrayOrFloat = 0.0
    factor: float = 0.8

    def __post_init__(self):
        if not 0.0 <= self.factor < 1.0:
            raise ValueError(f"smoothing factor must be in [0, 1), got {self.factor}")


def smooth(state: SmoothedValue, value: ArrayOrFloat) -> SmoothedValue:
    """``current = current * factor + value * (1 - factor)``."""
    if np.ndim(value) == 0 and np.ndim(state.current) == 0:
        state.current = float(state.current) * state.factor + float(value) * (1.0 - state.factor)
    else:
        state.current = (
            np.asarray(state.current, dtype=np.float64) * state.factor
            + np.asarray(value, dtype=np.float64) * (1.0 - state.factor)
        )
    return state


# ---------------------------------------------------------------------------
# Peak hold
# ---------------------------------------------------------------------------

@dataclass
class PeakHold:
    """
    Meter peak that jumps up instantly and decays geometrically.

    Updates are throttled to one per ``min_update_interval_ms`` so the
    decay speed does not depend on the frame rate.  ``peak`` may be a
    scalar or a vector (element-wise hold).
    """

    peak: ArrayOrFloat = 0.0
    decay_rate: float = 0.95
    min_update_interval_ms: float = 16.0
    last_update_ms: float = 0.0

    def __post_init__(self):
        if not 0.0 < self.decay_rate < 1.0:
            raise ValueError(f"decay_rate must be in (0, 1), got {self.decay_rate}")


def peak_hold(state: PeakHold, value: ArrayOrFloat, now_ms: float) -> PeakHold:
    """
    Rise to *value* if it is higher than the held peak, otherwise decay.

    No-op unless more than ``min_update_interval_ms`` has passed since the
    last accepted update.
    """
    if now_ms - state.last_update_ms <= state.min_update_interval_ms:
        return state

    if np.ndim(value) == 0 and np.ndim(state.peak) == 0:
        value = float(value)
        if value > state.peak:
            state.peak = value
        else:
            state.peak = float(state.peak) * state.decay_rate
    else:
        incoming = np.asarray(value, dtype=np.float64)
        held = np.broadcast_to(np.asarray(state.peak, dtype=np.float64), incoming.shape)
        state.peak = np.where(incoming > held, incoming, held * state.decay_rate)

    state.last_update_ms = now_ms
    return state


# ---------------------------------------------------------------------------
# History rings
# ---------------------------------------------------------------------------

class HistoryRing:
    """Fixed-capacity FIFO of floats; the oldest value is evicted first."""

    def __init__(self, capacity: int, fill: Optional[float] = None):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._values: Deque[float] = deque(maxlen=capacity)
        if fill is not None:
            self._values.extend([float(fill)] * capacity)

    def append(self, value: float) -> None:
        self._values.append(float(value))

    def values(self) -> np.ndarray:
        """Contents oldest-first as a fresh float64 array."""
        return np.fromiter(self._values, dtype=np.float64, count=len(self._values))

    def latest(self, default: float = 0.0) -> float:
        return self._values[-1] if self._values else default

    def clear(self) -> None:
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)

    def __repr__(self) -> str:
        return f"HistoryRing(capacity={self.capacity}, values={list(self._values)!r})"


def push_history(ring: HistoryRing, value: float) -> HistoryRing:
    """Append *value*, evicting the oldest entry when over capacity."""
    ring.append(value)
    return ring


class SpectrumHistory:
    """
    Ring of magnitude vectors for waterfall displays, oldest first.

    Vectors are copied on entry because the snapshot buffer they come from
    is overwritten on the next frame.
    """

    def __init__(self, capacity: int, width: int):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.width = width
        self._rows: Deque[np.ndarray] = deque(maxlen=capacity)

    def append(self, spectrum: np.ndarray) -> None:
        row = np.array(spectrum, dtype=np.float64, copy=True)
        if row.shape != (self.width,):
            raise ValueError(f"expected spectrum of width {self.width}, got {row.shape}")
        self._rows.append(row)

    def as_array(self) -> np.ndarray:
        """Shape (len(self), width); empty history gives shape (0, width)."""
        if not self._rows:
            return np.zeros((0, self.width))
        return np.stack(self._rows)

    def clear(self) -> None:
        self._rows.clear()

    def __len__(self) -> int:
        return len(self._rows)


def push_spectrum(history: SpectrumHistory, spectrum: np.ndarray) -> SpectrumHistory:
    """Copy *spectrum* into the waterfall history."""
    history.append(spectrum)
    return history


# ---------------------------------------------------------------------------
# Beat / tempo estimation
# ---------------------------------------------------------------------------

@dataclass
class BeatState:
    """Energy history and tempo bookkeeping for :func:`detect_beat`."""

    energy_history: HistoryRing = field(default_factory=lambda: HistoryRing(ENERGY_WINDOW))
    last_beat_ms: float = float("-inf")
    tempo_timestamps: Deque[float] = field(
        default_factory=lambda: deque(maxlen=MAX_TEMPO_HISTORY)
    )
    tempo_bpm: float = 0.0
    beat_strength: float = 0.0


def _mean_tempo(timestamps: Deque[float]) -> float:
    stamps = np.fromiter(timestamps, dtype=np.float64, count=len(timestamps))
    intervals = np.diff(stamps)
    return float(np.mean(60000.0 / intervals))


def detect_beat(
    state: BeatState,
    total_energy: float,
    now_ms: float,
    threshold: float = 0.3,
    min_interval_ms: float = 200.0,
) -> Tuple[bool, BeatState]:
    """
    Energy-variance beat heuristic.

    Pushes *total_energy* into the energy window and takes the population
    standard deviation of the window as beat strength.  A beat fires when
    the strength exceeds *threshold* and more than *min_interval_ms* has
    passed since the previous beat.

    On a beat the timestamp joins the tempo history if the interval to the
    previous accepted timestamp gives a tempo within 60-200 BPM (the first
    beat is always accepted).  The reported tempo is the mean BPM over
    consecutive accepted timestamps.

    Returns:
        ``(is_beat, state)``.
    """
    push_history(state.energy_history, total_energy)
    state.beat_strength = float(np.std(state.energy_history.values()))

    if state.beat_strength <= threshold or now_ms - state.last_beat_ms <= min_interval_ms:
        return False, state

    state.last_beat_ms = now_ms

    if not state.tempo_timestamps:
        state.tempo_timestamps.append(now_ms)
        return True, state

    interval = now_ms - state.tempo_timestamps[-1]
    if interval > 0:
        bpm = 60000.0 / interval
        if MIN_TEMPO_BPM <= bpm <= MAX_TEMPO_BPM:
            state.tempo_timestamps.append(now_ms)
            if len(state.tempo_timestamps) > 1:
                state.tempo_bpm = _mean_tempo(state.tempo_timestamps)

    return True, state
