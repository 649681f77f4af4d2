"""
Finger-on-lens coverage estimator.

When a finger covers the lens with the flash on, the frame becomes:
  - Dominated by red tones (light scattered through blood-filled tissue).
  - Moderately bright (the flash shines through the fingertip).
  - Red well above an absolute floor (rules out dark, empty frames).

Coverage is the fraction of the most recent samples that look like this.
Everything downstream treats coverage below 0.7 as "finger not properly
placed".
"""

from __future__ import annotations

import math
from enum import Enum, auto
from typing import Sequence

from .samples import Sample

COVERAGE_THRESHOLD = 0.7


class PlacementStatus(Enum):
    NO_FINGER = auto()   # coverage < 0.3
    PARTIAL   = auto()   # 0.3 <= coverage < 0.7
    GOOD      = auto()


class CoverageEstimator:
    """
    Heuristic check: how well is the lens covered by a finger?

    Parameters
    ----------
    window:
        Number of most recent samples inspected (default 30 ≈ 1 s at 30 Hz).
        Coverage is 0 until this many samples exist.
    brightness_min, brightness_max:
        Exclusive bounds of the optimal brightness range (0 – 255).
    red_floor:
        Red must be strictly above this value.  Default: 100.
    """

    def __init__(
        self,
        window: int = 30,
        brightness_min: float = 120.0,
        brightness_max: float = 220.0,
        red_floor: float = 100.0,
    ) -> None:
        self.window = window
        self.brightness_min = brightness_min
        self.brightness_max = brightness_max
        self.red_floor = red_floor

    def is_good(self, sample: Sample) -> bool:
        """Return *True* if *sample* looks like a well-placed finger."""
        channels = (sample.red, sample.green, sample.blue, sample.brightness)
        if not all(math.isfinite(v) and 0.0 <= v <= 255.0 for v in channels):
            return False

        bright_enough = self.brightness_min < sample.brightness < self.brightness_max
        red_dominant  = sample.red > sample.green and sample.red > sample.blue
        strong_red    = sample.red > self.red_floor

        return bright_enough and red_dominant and strong_red

    def coverage(self, samples: Sequence[Sample]) -> float:
        """Fraction (0 – 1) of the last ``window`` samples that are good."""
        if len(samples) < self.window:
            return 0.0
        recent = samples[-self.window:]
        good = sum(1 for s in recent if self.is_good(s))
        return good / len(recent)

    @staticmethod
    def placement(coverage: float) -> PlacementStatus:
        if coverage < 0.3:
            return PlacementStatus.NO_FINGER
        if coverage < COVERAGE_THRESHOLD:
            return PlacementStatus.PARTIAL
        return PlacementStatus.GOOD
