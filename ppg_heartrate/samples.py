"""
Colour samples and the rolling signal buffer.

Each captured frame is reduced to one :class:`Sample`: the mean red, green
and blue intensity of the region of interest, its overall brightness and the
capture time.  The :class:`SignalBuffer` keeps the most recent samples (15 s
at 30 Hz by default) and hands out immutable snapshots for analysis.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from itertools import islice
from typing import Deque, Tuple

import numpy as np

logger = logging.getLogger(__name__)

_CHANNELS = ("red", "green", "blue", "brightness")


@dataclass(frozen=True)
class Sample:
    red:          float
    green:        float
    blue:         float
    brightness:   float
    timestamp_ms: int

    @classmethod
    def from_rgb(
        cls, red: float, green: float, blue: float, timestamp_ms: int
    ) -> "Sample":
        """Build a sample whose brightness is the mean of the three channels."""
        brightness = (red + green + blue) / 3.0
        return cls(float(red), float(green), float(blue), float(brightness), int(timestamp_ms))


def sample_from_frame(frame: np.ndarray, timestamp_ms: int) -> Sample:
    """
    Average a BGR frame (H × W × 3) into a single :class:`Sample`.

    Parameters
    ----------
    frame:
        BGR image array, usually the region of interest under the finger.
    timestamp_ms:
        Capture time of the frame in milliseconds.
    """
    blue = float(np.mean(frame[:, :, 0]))    # channel 0 = Blue in BGR
    green = float(np.mean(frame[:, :, 1]))   # channel 1 = Green in BGR
    red = float(np.mean(frame[:, :, 2]))     # channel 2 = Red in BGR
    return Sample.from_rgb(red, green, blue, timestamp_ms)


class SignalBuffer:
    """
    Fixed-capacity rolling window of samples in arrival order.

    Parameters
    ----------
    capacity:
        Maximum number of retained samples.  Once exceeded the oldest
        sample is evicted.  Default 450 (≈ 15 s at 30 Hz).
    """

    def __init__(self, capacity: int = 450) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._samples: Deque[Sample] = deque(maxlen=capacity)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add_sample(self, sample: Sample) -> bool:
        """
        Append *sample*, evicting the oldest entry when full.

        Returns *False* (and keeps the buffer unchanged) when *sample* is
        older than the newest retained sample.
        """
        if self._samples and sample.timestamp_ms < self._samples[-1].timestamp_ms:
            logger.warning(
                "Dropping out-of-order sample (t=%d ms < %d ms).",
                sample.timestamp_ms, self._samples[-1].timestamp_ms,
            )
            return False
        self._samples.append(sample)
        return True

    def snapshot(self) -> Tuple[Sample, ...]:
        """Return an immutable copy of the current contents, oldest first."""
        return tuple(self._samples)

    def recent(self, count: int) -> Tuple[Sample, ...]:
        """Return the newest *count* samples (or fewer), oldest first."""
        if count <= 0:
            return ()
        return tuple(islice(reversed(self._samples), count))[::-1]

    def channel(self, name: str) -> np.ndarray:
        """Return one channel (``red``, ``green``, ``blue`` or ``brightness``) as float64."""
        return channel_array(self._samples, name)

    def clear(self) -> None:
        self._samples.clear()

    @property
    def capacity(self) -> int:
        return self._samples.maxlen

    @property
    def fill_ratio(self) -> float:
        """How full the rolling buffer is (0 – 1)."""
        return len(self._samples) / self._samples.maxlen

    @property
    def is_full(self) -> bool:
        return len(self._samples) == self._samples.maxlen

    @property
    def latest(self) -> Sample | None:
        return self._samples[-1] if self._samples else None

    def __len__(self) -> int:
        return len(self._samples)


def channel_array(samples, name: str) -> np.ndarray:
    """Extract channel *name* from a sequence of samples as a float64 array."""
    if name not in _CHANNELS:
        raise ValueError(f"unknown channel {name!r}; expected one of {_CHANNELS}")
    return np.fromiter((getattr(s, name) for s in samples), dtype=np.float64)
