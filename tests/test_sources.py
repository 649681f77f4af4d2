"""
Tests for the replay sample sources.
"""

from __future__ import annotations

import cv2
import numpy as np
import pytest

from ppg_heartrate.samples import Sample
from ppg_heartrate.sources import IterableSource, VideoFileSource, load_samples_csv


class TestLoadSamplesCsv:

    def test_four_columns_derive_brightness(self, tmp_path):
        path = tmp_path / "rec.csv"
        path.write_text("timestamp_ms,red,green,blue\n0,210,120,90\n33,211,121,91\n")
        samples = load_samples_csv(path)
        assert len(samples) == 2
        assert samples[0] == Sample(210.0, 120.0, 90.0, 140.0, 0)
        assert samples[1].timestamp_ms == 33

    def test_five_columns_keep_brightness(self, tmp_path):
        path = tmp_path / "rec.csv"
        path.write_text("timestamp_ms,red,green,blue,brightness\n0,210,120,90,150\n")
        assert load_samples_csv(path)[0].brightness == 150.0

    def test_wrong_column_count(self, tmp_path):
        path = tmp_path / "rec.csv"
        path.write_text("a,b,c\n1,2,3\n")
        with pytest.raises(ValueError):
            load_samples_csv(path)


class TestIterableSource:

    def test_pushes_until_unsubscribed(self):
        samples = [Sample.from_rgb(200, 120, 80, i) for i in range(10)]
        source = IterableSource(samples)
        received = []

        def callback(sample):
            received.append(sample)
            if len(received) == 4:
                source.unsubscribe()

        source.subscribe(callback)
        assert source.run() == 4
        assert received == samples[:4]

    def test_no_subscriber_pushes_nothing(self):
        assert IterableSource([Sample.from_rgb(1, 2, 3, 0)]).run() == 0


class TestVideoFileSource:

    def test_missing_file(self, tmp_path):
        with pytest.raises(RuntimeError):
            VideoFileSource(tmp_path / "missing.avi").open()

    def test_roi_is_centred(self):
        source = VideoFileSource("unused.avi", roi_fraction=0.5)
        frame = np.zeros((40, 80, 3), dtype=np.uint8)
        frame[10:30, 30:50] = 255
        roi = source.roi(frame)
        assert roi.shape == (20, 20, 3)
        assert roi.min() == 255

    def test_replays_frames_as_samples(self, tmp_path):
        path = tmp_path / "finger.avi"
        writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 30.0, (64, 48))
        if not writer.isOpened():
            pytest.skip("MJPG writer unavailable")
        frame = np.zeros((48, 64, 3), dtype=np.uint8)
        frame[:, :] = (80, 120, 200)          # BGR
        for _ in range(20):
            writer.write(frame)
        writer.release()

        source = VideoFileSource(path)
        received = []
        source.subscribe(received.append)
        assert source.run() == 20

        assert [s.timestamp_ms for s in received[:3]] == [0, 33, 67]
        assert received[0].red == pytest.approx(200, abs=5)
        assert received[0].green == pytest.approx(120, abs=5)
        assert received[0].blue == pytest.approx(80, abs=5)
