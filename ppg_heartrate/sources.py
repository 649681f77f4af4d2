"""
Sample sources that feed a :class:`~ppg_heartrate.scan_controller.ScanController`.

A source pushes one :class:`~ppg_heartrate.samples.Sample` per frame to the
callback registered with ``subscribe``.  Two replay sources are provided:

* :class:`IterableSource` – any iterable of samples, e.g. a CSV recording
  loaded with :func:`load_samples_csv`.
* :class:`VideoFileSource` – a recorded finger-on-lens video read with
  OpenCV; the centre of each frame is averaged into a sample.

Live camera capture belongs to the host application; it only needs to
implement the same two-method protocol.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Generator, Iterable, Optional, Protocol, Tuple

import cv2
import numpy as np

from .samples import Sample, sample_from_frame

logger = logging.getLogger(__name__)

SampleCallback = Callable[[Sample], None]


class SampleSource(Protocol):
    def subscribe(self, callback: SampleCallback) -> None: ...
    def unsubscribe(self) -> None: ...


def load_samples_csv(path: str | Path) -> list[Sample]:
    """
    Load a recording with columns ``timestamp_ms,red,green,blue[,brightness]``.

    The first line is treated as a header.  When the brightness column is
    missing it is derived from the channel mean.
    """
    data = np.loadtxt(path, delimiter=",", skiprows=1, ndmin=2)
    if data.shape[1] not in (4, 5):
        raise ValueError(
            f"{path}: expected 4 or 5 columns (timestamp_ms,red,green,blue[,brightness]), "
            f"got {data.shape[1]}"
        )
    samples = []
    for row in data:
        ts, red, green, blue = int(row[0]), float(row[1]), float(row[2]), float(row[3])
        if data.shape[1] == 5:
            samples.append(Sample(red, green, blue, float(row[4]), ts))
        else:
            samples.append(Sample.from_rgb(red, green, blue, ts))
    logger.info("Loaded %d samples from %s", len(samples), path)
    return samples


class IterableSource:
    """Replay a finite sequence of samples into the subscribed callback."""

    def __init__(self, samples: Iterable[Sample]) -> None:
        self._samples = samples
        self._callback: Optional[SampleCallback] = None

    def subscribe(self, callback: SampleCallback) -> None:
        self._callback = callback

    def unsubscribe(self) -> None:
        self._callback = None

    @property
    def subscribed(self) -> bool:
        return self._callback is not None

    def run(self) -> int:
        """Push samples until exhausted or unsubscribed; return how many were pushed."""
        pushed = 0
        for sample in self._samples:
            if self._callback is None:
                break
            self._callback(sample)
            pushed += 1
        return pushed


class VideoFileSource:
    """
    Replay a recorded finger video as samples.

    Parameters
    ----------
    path:
        Video file readable by ``cv2.VideoCapture``.
    roi_fraction:
        Side of the centred square region of interest, as a fraction of the
        shorter frame dimension (default 0.25).
    fallback_fps:
        Frame rate assumed when the container does not report one.
    """

    def __init__(
        self,
        path: str | Path,
        roi_fraction: float = 0.25,
        fallback_fps: float = 30.0,
    ) -> None:
        self.path = Path(path)
        self.roi_fraction = roi_fraction
        self.fallback_fps = fallback_fps

        self._cap: "cv2.VideoCapture | None" = None
        self._callback: Optional[SampleCallback] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        cap = cv2.VideoCapture(str(self.path))
        if not cap.isOpened():
            raise RuntimeError(f"Cannot open video file {self.path}")
        self._cap = cap
        logger.info("Video opened – %s fps=%.1f", self.path, self.fps)

    def close(self) -> None:
        if self._cap is None:
            return
        self._cap.release()
        self._cap = None
        logger.info("Video closed.")

    def __enter__(self) -> "VideoFileSource":
        self.open()
        return self

    def __exit__(self, *_) -> None:
        self.close()

    # ------------------------------------------------------------------
    # SampleSource protocol
    # ------------------------------------------------------------------

    def subscribe(self, callback: SampleCallback) -> None:
        self._callback = callback

    def unsubscribe(self) -> None:
        self._callback = None

    def run(self) -> int:
        """Open the file, push one sample per frame, close; return frames pushed."""
        pushed = 0
        with self:
            for frame, timestamp_ms in self.frames():
                if self._callback is None:
                    break
                self._callback(sample_from_frame(self.roi(frame), timestamp_ms))
                pushed += 1
        return pushed

    # ------------------------------------------------------------------
    # Frame access
    # ------------------------------------------------------------------

    @property
    def fps(self) -> float:
        if self._cap is None:
            return self.fallback_fps
        fps = float(self._cap.get(cv2.CAP_PROP_FPS))
        return fps if fps > 0 else self.fallback_fps

    def frames(self) -> Generator[Tuple[np.ndarray, int], None, None]:
        """Yield ``(frame, timestamp_ms)`` until the file ends."""
        if self._cap is None:
            raise RuntimeError("Video is not open.  Call open() first.")
        fps = self.fps
        index = 0
        while self._cap is not None:
            ok, frame = self._cap.read()
            if not ok:
                break
            yield frame, int(round(index * 1000.0 / fps))
            index += 1
        logger.info("Read %d frames from %s", index, self.path)

    def roi(self, frame: np.ndarray) -> np.ndarray:
        """Centred square patch of *frame*."""
        h, w = frame.shape[:2]
        side = max(1, int(min(h, w) * self.roi_fraction))
        y0 = (h - side) // 2
        x0 = (w - side) // 2
        return frame[y0:y0 + side, x0:x0 + side]
