"""
Band-limiting filter for the raw PPG channel.

Algorithm
---------
1. Carry the last finite value over NaN or infinite samples, then
   subtract the series mean (DC removal).
2. Single-pole high-pass at the low cutoff (default 0.7 Hz = 42 BPM) to
   remove baseline drift caused by pressure changes and slow motion.
3. Single-pole low-pass at the high cutoff (default 4.0 Hz = 240 BPM) to
   suppress sensor and compression noise.

Both stages are first-order exponential recursions::

    high-pass:  y[i] = a * (y[i-1] + x[i] - x[i-1])
    low-pass:   y[i] = a * y[i-1] + (1 - a) * x[i]

with ``a = 1 / (1 + pi * w)`` where ``w`` is the cutoff divided by the
Nyquist frequency.  Each recursion starts from ``y[0] = x[0]``.

The green channel is the intended input: it is the most sensitive to
haemoglobin absorption changes in skin-reflected light.
"""

from __future__ import annotations

import numpy as np
from scipy.signal import lfilter


def fill_non_finite(signal: np.ndarray) -> np.ndarray:
    """
    Replace NaN and infinite values with the previous finite value.

    Leading gaps take the first finite value; an all-invalid series becomes
    zeros.  Returns *signal* itself when every value is finite.
    """
    finite = np.isfinite(signal)
    if finite.all():
        return signal
    if not finite.any():
        return np.zeros_like(signal)

    idx = np.where(finite, np.arange(signal.size), 0)
    idx = np.maximum.accumulate(idx)
    filled = signal[idx]
    first = int(np.argmax(finite))
    filled[:first] = signal[first]
    return filled


def smoothing_factor(cutoff_hz: float, sample_rate: float) -> float:
    """Return the recursion coefficient for a first-order stage at *cutoff_hz*."""
    nyq = sample_rate / 2.0
    w = cutoff_hz / nyq
    return 1.0 / (1.0 + np.pi * w)


class BandpassFilter:
    """
    Detrend + high-pass + low-pass cascade.

    Parameters
    ----------
    sample_rate:
        Sampling frequency of the series in Hz (default 30).
    low_hz:
        High-pass cutoff (default 0.7 Hz).
    high_hz:
        Low-pass cutoff (default 4.0 Hz).
    """

    def __init__(
        self,
        sample_rate: float = 30.0,
        low_hz: float = 0.7,
        high_hz: float = 4.0,
    ) -> None:
        if not 0.0 < low_hz < high_hz:
            raise ValueError(f"invalid band {low_hz}–{high_hz} Hz")
        self.sample_rate = sample_rate
        self.low_hz = low_hz
        self.high_hz = high_hz
        self._alpha_high = smoothing_factor(low_hz, sample_rate)
        self._alpha_low = smoothing_factor(high_hz, sample_rate)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def filter(self, raw: np.ndarray) -> np.ndarray:
        """Return the band-limited version of *raw* (same length, float64)."""
        signal = np.asarray(raw, dtype=np.float64)
        if signal.size == 0:
            return signal.copy()

        signal = fill_non_finite(signal)
        signal = signal - np.mean(signal)
        signal = self.high_pass(signal)
        return self.low_pass(signal)

    def high_pass(self, signal: np.ndarray) -> np.ndarray:
        a = self._alpha_high
        zi = np.array([(1.0 - a) * signal[0]])
        out, _ = lfilter([a, -a], [1.0, -a], signal, zi=zi)
        return out

    def low_pass(self, signal: np.ndarray) -> np.ndarray:
        a = self._alpha_low
        zi = np.array([a * signal[0]])
        out, _ = lfilter([1.0 - a], [1.0, -a], signal, zi=zi)
        return out

    @property
    def coefficients(self) -> tuple[float, float]:
        """``(high_pass_alpha, low_pass_alpha)``."""
        return self._alpha_high, self._alpha_low
