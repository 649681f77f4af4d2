"""
Unit tests for PeakDetector and the moving statistics behind it.
"""

from __future__ import annotations

import numpy as np
import pytest

from ppg_heartrate.peaks import PeakDetector, moving_stats


class TestMovingStats:

    def test_window_is_centred_and_clipped(self):
        x = np.arange(10, dtype=np.float64)
        mean, std = moving_stats(x, window=4)     # spans [i-2, i+2)
        assert mean[0] == pytest.approx(np.mean(x[0:2]))
        assert mean[5] == pytest.approx(np.mean(x[3:7]))
        assert mean[9] == pytest.approx(np.mean(x[7:10]))
        assert std[5] == pytest.approx(np.std(x[3:7]))

    def test_constant_signal_has_zero_std(self):
        _, std = moving_stats(np.full(50, 3.0), window=12)
        assert np.all(std >= 0.0)
        np.testing.assert_allclose(std, 0.0, atol=1e-6)


class TestPeakDetector:

    def test_clean_sinusoid_one_peak_per_beat(self):
        t = np.arange(300) / 30.0
        x = np.sin(2 * np.pi * 1.2 * t)          # 72 BPM, period 25 samples
        peaks = PeakDetector().detect(x)
        assert len(peaks) == 12
        assert np.all(np.diff(peaks) == 25)

    def test_peaks_strictly_increasing(self):
        rng = np.random.default_rng(3)
        t = np.arange(450) / 30.0
        x = np.sin(2 * np.pi * 1.0 * t) + 0.05 * rng.normal(size=t.size)
        peaks = PeakDetector().detect(x)
        assert np.all(np.diff(peaks) > 0)

    def test_minimum_spacing_enforced(self):
        x = np.zeros(60)
        x[20] = 5.0
        x[30] = 4.0      # only 10 samples after the first – too close
        x[40] = 5.0
        np.testing.assert_array_equal(PeakDetector().detect(x), [20, 40])

    def test_flat_signal_has_no_peaks(self):
        assert PeakDetector().detect(np.zeros(300)).size == 0

    def test_short_signal_has_no_peaks(self):
        assert PeakDetector().detect(np.array([0.0, 1.0, 0.0])).size == 0

    def test_tolerates_amplitude_drift(self):
        t = np.arange(450) / 30.0
        envelope = np.linspace(1.0, 10.0, t.size)
        x = envelope * np.sin(2 * np.pi * 1.2 * t)
        peaks = PeakDetector().detect(x)
        # all 18 beats found, including the small ones at the start
        assert len(peaks) == 18
        assert peaks[0] < 10

    def test_peak_must_beat_neighbours_two_each_side(self):
        x = np.zeros(40)
        x[18:23] = [1.0, 3.0, 2.0, 3.5, 1.0]   # 19 is only a 3-point max
        np.testing.assert_array_equal(PeakDetector().detect(x), [21])

    def test_spacing_scales_with_sample_rate(self):
        assert PeakDetector(sample_rate=30.0).min_distance == 15
        assert PeakDetector(sample_rate=60.0).min_distance == 30
        assert PeakDetector(sample_rate=30.0).window == 12
