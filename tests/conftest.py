"""
Shared synthetic-signal fixtures.

Finger samples default to red=200, blue=80 with a green channel around 120,
which gives a brightness of ≈ 133 – inside the coverage window.
"""

from __future__ import annotations

import numpy as np
import pytest

from ppg_heartrate.samples import Sample

FS = 30.0


def _timestamps(n: int, fs: float = FS, start_ms: int = 0) -> list[int]:
    return [int(round(start_ms + i * 1000.0 / fs)) for i in range(n)]


@pytest.fixture
def sine_green():
    """``sine_green(freq_hz, seconds, amplitude=5, baseline=120, noise=0, seed=0)``."""
    def _sine(freq_hz, seconds, fs=FS, amplitude=5.0, baseline=120.0, noise=0.0, seed=0):
        t = np.arange(int(round(fs * seconds))) / fs
        signal = baseline + amplitude * np.sin(2 * np.pi * freq_hz * t)
        if noise:
            signal = signal + np.random.default_rng(seed).normal(0.0, noise, t.size)
        return signal
    return _sine


@pytest.fixture
def make_samples():
    """``make_samples(green, red=200, blue=80, start_ms=0)`` → list of Sample."""
    def _make(green, red=200.0, blue=80.0, fs=FS, start_ms=0):
        green = np.asarray(green, dtype=np.float64)
        reds = np.broadcast_to(np.asarray(red, dtype=np.float64), green.shape)
        blues = np.broadcast_to(np.asarray(blue, dtype=np.float64), green.shape)
        return [
            Sample.from_rgb(r, g, b, ts)
            for r, g, b, ts in zip(reds, green, blues, _timestamps(green.size, fs, start_ms))
        ]
    return _make


@pytest.fixture
def pulse_train():
    """Gaussian beats (σ = 2 samples) at the given sample positions."""
    def _pulses(positions, n, amplitude=6.0, baseline=120.0, width=2.0):
        idx = np.arange(n, dtype=np.float64)
        signal = np.full(n, baseline)
        for p in positions:
            signal += amplitude * np.exp(-0.5 * ((idx - p) / width) ** 2)
        return signal
    return _pulses
