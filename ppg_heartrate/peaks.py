"""
Systolic peak detection with an adaptive threshold.

A point is accepted as a peak when it is

1. a strict 5-point local maximum (greater than two neighbours each side),
2. above ``local_mean + k * local_std``, where the statistics are taken over
   a short window (default 0.4 s) centred on the point, and
3. at least ``min_distance_s`` (default 0.5 s) after the previous peak.

The local threshold follows amplitude drift over a 10 – 15 s window, which a
single global threshold cannot do.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np


def moving_stats(signal: np.ndarray, window: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Centred moving mean and standard deviation.

    The window for index ``i`` spans ``[i - window // 2, i + window // 2)``,
    clipped to the signal bounds.
    """
    x = np.asarray(signal, dtype=np.float64)
    n = x.size
    half = max(1, window // 2)

    idx = np.arange(n)
    start = np.maximum(0, idx - half)
    end = np.minimum(n, idx + half)
    count = (end - start).astype(np.float64)

    csum = np.concatenate(([0.0], np.cumsum(x)))
    csum_sq = np.concatenate(([0.0], np.cumsum(x * x)))

    mean = (csum[end] - csum[start]) / count
    var = (csum_sq[end] - csum_sq[start]) / count - mean ** 2
    return mean, np.sqrt(np.clip(var, 0.0, None))


class PeakDetector:
    """
    Adaptive-threshold peak finder.

    Parameters
    ----------
    sample_rate:
        Sampling frequency in Hz (default 30).
    window_s:
        Length of the local statistics window in seconds (default 0.4).
    threshold_k:
        Multiple of the local standard deviation a peak must exceed above
        the local mean (default 0.5).
    min_distance_s:
        Minimum spacing between accepted peaks in seconds (default 0.5,
        i.e. 15 samples at 30 Hz).
    """

    def __init__(
        self,
        sample_rate: float = 30.0,
        window_s: float = 0.4,
        threshold_k: float = 0.5,
        min_distance_s: float = 0.5,
    ) -> None:
        self.sample_rate = sample_rate
        self.window = int(sample_rate * window_s)
        self.threshold_k = threshold_k
        self.min_distance = max(1, int(round(sample_rate * min_distance_s)))

    def detect(self, filtered: np.ndarray) -> np.ndarray:
        """Return the strictly increasing indices of accepted peaks."""
        x = np.asarray(filtered, dtype=np.float64)
        n = x.size
        if n < 5:
            return np.array([], dtype=np.int64)

        mean, std = moving_stats(x, self.window)
        threshold = mean + self.threshold_k * std

        core = x[2:n - 2]
        local_max = (
            (core > x[1:n - 3]) & (core > x[3:n - 1])
            & (core > x[0:n - 4]) & (core > x[4:n])
        )
        above = core > threshold[2:n - 2]
        candidates = np.nonzero(local_max & above)[0] + 2

        peaks = []
        for i in candidates:
            if not peaks or i - peaks[-1] >= self.min_distance:
                peaks.append(int(i))
        return np.array(peaks, dtype=np.int64)
