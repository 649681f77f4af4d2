"""
Beat-to-beat interval extraction and outlier rejection.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.stats import variation


def coefficient_of_variation(values: np.ndarray) -> float | None:
    """Population std / mean, or *None* when undefined (fewer than 2 values, zero mean)."""
    arr = np.asarray(values, dtype=np.float64)
    if arr.size < 2 or np.mean(arr) == 0:
        return None
    return float(variation(arr))


@dataclass(frozen=True, eq=False)
class IntervalSet:
    raw:          np.ndarray   # samples between consecutive peaks
    clean:        np.ndarray   # raw intervals within tolerance of the median
    irregularity: float        # CV of clean intervals; 1.0 when clean is empty

    @property
    def irregularity_percent(self) -> int:
        return int(round(self.irregularity * 100))

    @property
    def mean_clean(self) -> float:
        return float(np.mean(self.clean)) if self.clean.size else 0.0


class IntervalValidator:
    """
    Turn peak positions into validated beat intervals.

    Parameters
    ----------
    tolerance:
        Intervals further than ``tolerance * median`` from the median raw
        interval are treated as motion or detection artefacts (default 0.3).
    min_peaks:
        Fewer peaks than this yields an empty clean set (default 3).
    """

    def __init__(self, tolerance: float = 0.3, min_peaks: int = 3) -> None:
        self.tolerance = tolerance
        self.min_peaks = min_peaks

    def validate(self, peaks: np.ndarray) -> IntervalSet:
        positions = np.asarray(peaks, dtype=np.int64)
        raw = np.diff(positions) if positions.size > 1 else np.array([], dtype=np.int64)
        empty = np.array([], dtype=np.int64)

        if positions.size < self.min_peaks:
            return IntervalSet(raw=raw, clean=empty, irregularity=1.0)

        median = float(np.median(raw))
        clean = raw[np.abs(raw - median) < median * self.tolerance]

        cv = coefficient_of_variation(clean)
        if cv is None:
            return IntervalSet(raw=raw, clean=empty, irregularity=1.0)
        return IntervalSet(raw=raw, clean=clean, irregularity=cv)
