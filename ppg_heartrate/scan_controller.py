"""
Scan session orchestration.

A :class:`ScanController` owns one scan at a time::

    IDLE ──start()──▶ COLLECTING ──duration / saturated──▶ ANALYZING ──▶ COMPLETE
                          ▲                                    │
                          └──────── retry (below budget) ──────┤
                                                               └──▶ FAILED
    any state ──stop()──▶ ABORTED

Samples arrive through :meth:`ScanController.push_sample`, either directly
or from a subscribed :class:`~ppg_heartrate.sources.SampleSource`.  All
timing uses sample timestamps, so replaying the same recording always
produces the same outcome.

Usage::

    controller = ScanController(source, on_complete=show, on_failed=retry_prompt)
    controller.start(ScanConfig(scan_duration_s=30))
    source.run()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional

from .coverage import COVERAGE_THRESHOLD, PlacementStatus
from .results import AnalysisError, ErrorKind, HeartRateResult
from .samples import Sample, SignalBuffer
from .signal_processor import SignalProcessor
from .sources import SampleSource

logger = logging.getLogger(__name__)

RealtimeCallback = Callable[[int, float], None]
CompleteCallback = Callable[[HeartRateResult], None]
FailedCallback = Callable[[ErrorKind], None]
StateCallback = Callable[["ScanState"], None]


class ScanState(Enum):
    IDLE       = auto()
    COLLECTING = auto()
    ANALYZING  = auto()
    COMPLETE   = auto()
    FAILED     = auto()   # retry budget exhausted
    ABORTED    = auto()   # stop() called


@dataclass(frozen=True)
class ScanConfig:
    sample_rate:          float = 30.0    # Hz
    scan_duration_s:      float = 60.0
    buffer_capacity:      int   = 450     # ≈ 15 s at 30 Hz
    min_samples:          int   = 300     # floor for a final reading
    realtime_min_samples: int   = 90      # floor for live estimates
    coverage_threshold:   float = COVERAGE_THRESHOLD
    analysis_interval_ms: int   = 300     # pipeline cadence
    max_attempts:         int   = 5
    retry_interval_s:     float = 3.0     # extra data collected between attempts

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.scan_duration_ms <= 0:
            raise ValueError(
                f"scan_duration_s must be at least 1 ms, got {self.scan_duration_s}"
            )
        if self.buffer_capacity <= 0:
            raise ValueError(f"buffer_capacity must be positive, got {self.buffer_capacity}")
        if not 0 < self.min_samples <= self.buffer_capacity:
            raise ValueError(
                f"min_samples must be in 1..{self.buffer_capacity}, got {self.min_samples}"
            )
        if not 0 < self.realtime_min_samples <= self.buffer_capacity:
            raise ValueError(
                f"realtime_min_samples must be in 1..{self.buffer_capacity}, "
                f"got {self.realtime_min_samples}"
            )
        if not 0.0 < self.coverage_threshold <= 1.0:
            raise ValueError(
                f"coverage_threshold must be in (0, 1], got {self.coverage_threshold}"
            )
        if self.analysis_interval_ms < 0:
            raise ValueError("analysis_interval_ms must not be negative")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.retry_interval_s < 0:
            raise ValueError("retry_interval_s must not be negative")

    @property
    def scan_duration_ms(self) -> int:
        return int(self.scan_duration_s * 1000)

    @property
    def retry_interval_ms(self) -> int:
        return int(self.retry_interval_s * 1000)


class ScanController:
    """
    Drive one heart-rate scan from incoming samples to a single outcome.

    Parameters
    ----------
    source:
        Optional sample source; subscribed on :meth:`start`, released when
        the scan ends.
    on_realtime_estimate:
        ``(bpm, coverage)`` – provisional value for live display, fired at
        most once per analysis pass.
    on_complete:
        Fired exactly once with the final :class:`HeartRateResult`.
    on_failed:
        Fired with the last :class:`ErrorKind` when the retry budget is spent.
    on_state_change:
        Fired with the new :class:`ScanState` on every transition.
    config:
        Default :class:`ScanConfig` for :meth:`start`.
    """

    def __init__(
        self,
        source: Optional[SampleSource] = None,
        on_realtime_estimate: Optional[RealtimeCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
        on_failed: Optional[FailedCallback] = None,
        on_state_change: Optional[StateCallback] = None,
        config: Optional[ScanConfig] = None,
    ) -> None:
        self.source = source
        self.on_realtime_estimate = on_realtime_estimate
        self.on_complete = on_complete
        self.on_failed = on_failed
        self.on_state_change = on_state_change

        self._config = config or ScanConfig()
        self._state = ScanState.IDLE
        self._reset_session()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, config: Optional[ScanConfig] = None) -> None:
        """Begin a new scan, discarding any previous session."""
        if config is not None:
            self._config = config
        if self._state in (ScanState.COLLECTING, ScanState.ANALYZING):
            logger.info("Restarting scan in progress.")
            self._release_source()

        self._reset_session()
        self._set_state(ScanState.COLLECTING)
        if self.source is not None:
            self.source.subscribe(self.push_sample)
        logger.info(
            "Scan started – duration=%.0fs fs=%.1f Hz capacity=%d",
            self._config.scan_duration_s, self._config.sample_rate,
            self._config.buffer_capacity,
        )

    def stop(self) -> None:
        """Abort the scan.  Takes effect before the next analysis pass."""
        self._stop_requested = True
        self._release_source()
        self._buffer.clear()
        if self._state is not ScanState.ABORTED:
            self._set_state(ScanState.ABORTED)
            logger.info("Scan aborted.")

    # ------------------------------------------------------------------
    # Sample ingestion
    # ------------------------------------------------------------------

    def push_sample(self, sample: Sample) -> None:
        """Feed one sample.  Ignored unless the scan is collecting."""
        if self._state is not ScanState.COLLECTING:
            return
        if not self._buffer.add_sample(sample):
            return

        ts = sample.timestamp_ms
        if self._first_ts is None:
            self._first_ts = ts
        self._latest_ts = ts
        self._coverage = self._processor.coverage_estimator.coverage(
            self._buffer.recent(self._processor.coverage_estimator.window)
        )

        if (
            self._last_pass_ts is not None
            and ts - self._last_pass_ts < self._config.analysis_interval_ms
        ):
            return
        self._last_pass_ts = ts
        self._analysis_pass(ts)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def config(self) -> ScanConfig:
        return self._config

    @property
    def coverage(self) -> float:
        return self._coverage

    @property
    def placement(self) -> PlacementStatus:
        return self._processor.coverage_estimator.placement(self._coverage)

    @property
    def progress(self) -> float:
        """Elapsed share of the configured scan duration (0 – 1)."""
        if self._first_ts is None:
            return 0.0
        elapsed = self._latest_ts - self._first_ts
        return min(1.0, elapsed / self._config.scan_duration_ms)

    @property
    def sample_count(self) -> int:
        return len(self._buffer)

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def last_error(self) -> Optional[ErrorKind]:
        return self._last_error

    @property
    def realtime_bpm(self) -> Optional[int]:
        return self._realtime_bpm

    @property
    def result(self) -> Optional[HeartRateResult]:
        return self._result

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _reset_session(self) -> None:
        cfg = self._config
        self._buffer = SignalBuffer(cfg.buffer_capacity)
        self._processor = SignalProcessor(
            sample_rate=cfg.sample_rate,
            min_samples=cfg.min_samples,
            realtime_min_samples=cfg.realtime_min_samples,
            coverage_threshold=cfg.coverage_threshold,
        )
        self._first_ts: Optional[int] = None
        self._latest_ts: Optional[int] = None
        self._last_pass_ts: Optional[int] = None
        self._next_attempt_ts: Optional[int] = None
        self._coverage = 0.0
        self._attempts = 0
        self._last_error: Optional[ErrorKind] = None
        self._realtime_bpm: Optional[int] = None
        self._result: Optional[HeartRateResult] = None
        self._stop_requested = False

    def _analysis_pass(self, ts: int) -> None:
        snapshot = self._buffer.snapshot()

        bpm = self._processor.estimate_realtime(snapshot)
        if bpm is not None:
            self._realtime_bpm = bpm
            if self.on_realtime_estimate is not None:
                self.on_realtime_estimate(bpm, self._coverage)

        if self._stop_requested:
            return
        if self._attempt_due(ts):
            self._attempt(snapshot)

    def _attempt_due(self, ts: int) -> bool:
        if self._next_attempt_ts is not None:
            return ts >= self._next_attempt_ts
        if ts - self._first_ts >= self._config.scan_duration_ms:
            return True
        return (
            self._buffer.is_full
            and len(self._buffer) >= self._config.min_samples
            and self._coverage >= self._config.coverage_threshold
        )

    def _attempt(self, snapshot) -> None:
        self._set_state(ScanState.ANALYZING)
        try:
            result = self._processor.analyze(snapshot)
        except AnalysisError as exc:
            if self._stop_requested:
                return
            self._attempts += 1
            self._last_error = exc.kind
            logger.info(
                "Analysis attempt %d/%d failed: %s (%s)",
                self._attempts, self._config.max_attempts, exc.kind.name, exc,
            )
            if self._attempts >= self._config.max_attempts:
                self._finish(ScanState.FAILED)
                logger.warning("Scan failed: %s", exc.kind.name)
                if self.on_failed is not None:
                    self.on_failed(exc.kind)
            else:
                self._next_attempt_ts = snapshot[-1].timestamp_ms + self._config.retry_interval_ms
                self._set_state(ScanState.COLLECTING)
            return

        if self._stop_requested:
            return
        self._result = result
        self._finish(ScanState.COMPLETE)
        logger.info("Scan complete: %s", result)
        if self.on_complete is not None:
            self.on_complete(result)

    def _finish(self, state: ScanState) -> None:
        self._set_state(state)
        self._release_source()

    def _release_source(self) -> None:
        if self.source is not None:
            self.source.unsubscribe()

    def _set_state(self, state: ScanState) -> None:
        if state is self._state:
            return
        logger.debug("State %s → %s", self._state.name, state.name)
        self._state = state
        if self.on_state_change is not None:
            self.on_state_change(state)
