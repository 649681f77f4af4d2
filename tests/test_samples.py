"""
Unit tests for Sample and SignalBuffer.
Run with:  pytest tests/
"""

from __future__ import annotations

import dataclasses

import numpy as np
import pytest

from ppg_heartrate.samples import Sample, SignalBuffer, channel_array, sample_from_frame


def _sample(ts: int, green: float = 120.0) -> Sample:
    return Sample.from_rgb(200.0, green, 80.0, ts)


class TestSample:

    def test_from_rgb_brightness_is_channel_mean(self):
        s = Sample.from_rgb(210, 120, 90, 5)
        assert s.brightness == pytest.approx(140.0)
        assert s.timestamp_ms == 5

    def test_sample_is_immutable(self):
        s = _sample(0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            s.red = 10.0

    def test_sample_from_bgr_frame(self):
        frame = np.zeros((6, 6, 3), dtype=np.uint8)
        frame[:, :, 0] = 30    # blue
        frame[:, :, 1] = 60    # green
        frame[:, :, 2] = 180   # red
        s = sample_from_frame(frame, 1234)
        assert (s.red, s.green, s.blue) == (180.0, 60.0, 30.0)
        assert s.brightness == pytest.approx(90.0)
        assert s.timestamp_ms == 1234


class TestSignalBuffer:

    def test_eviction_keeps_exactly_capacity_newest_first_out(self):
        buf = SignalBuffer(capacity=10)
        for i in range(37):
            buf.add_sample(_sample(i * 33, green=float(i)))
        assert len(buf) == 10
        assert buf.is_full
        assert [s.green for s in buf.snapshot()] == [float(i) for i in range(27, 37)]

    def test_below_capacity_keeps_everything(self):
        buf = SignalBuffer(capacity=450)
        for i in range(100):
            buf.add_sample(_sample(i))
        assert len(buf) == 100
        assert buf.fill_ratio == pytest.approx(100 / 450)
        assert not buf.is_full

    def test_out_of_order_sample_dropped(self):
        buf = SignalBuffer(capacity=5)
        assert buf.add_sample(_sample(100))
        assert not buf.add_sample(_sample(50))
        assert buf.add_sample(_sample(100))   # equal timestamps are fine
        assert [s.timestamp_ms for s in buf.snapshot()] == [100, 100]

    def test_snapshot_is_independent_of_later_pushes(self):
        buf = SignalBuffer(capacity=3)
        for i in range(3):
            buf.add_sample(_sample(i))
        snap = buf.snapshot()
        buf.add_sample(_sample(10))
        assert isinstance(snap, tuple)
        assert [s.timestamp_ms for s in snap] == [0, 1, 2]

    def test_recent_returns_newest_in_order(self):
        buf = SignalBuffer(capacity=20)
        for i in range(15):
            buf.add_sample(_sample(i))
        assert [s.timestamp_ms for s in buf.recent(4)] == [11, 12, 13, 14]
        assert len(buf.recent(100)) == 15
        assert buf.recent(0) == ()

    def test_channel_extraction(self):
        buf = SignalBuffer(capacity=4)
        for i in range(4):
            buf.add_sample(_sample(i, green=100.0 + i))
        np.testing.assert_array_equal(buf.channel("green"), [100.0, 101.0, 102.0, 103.0])
        with pytest.raises(ValueError):
            channel_array(buf.snapshot(), "alpha")

    def test_clear_empties_buffer(self):
        buf = SignalBuffer(capacity=4)
        buf.add_sample(_sample(0))
        buf.clear()
        assert len(buf) == 0
        assert buf.latest is None

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            SignalBuffer(capacity=0)
