"""
PPG heart-rate pipeline.

Algorithm
---------
1. Check finger coverage over the most recent second of samples.
2. Take the green channel (most sensitive to haemoglobin absorption
   changes) and band-limit it to 0.7 – 4.0 Hz.
3. Find systolic peaks with a locally adaptive threshold.
4. Convert peaks to beat intervals and reject those more than 30 % away
   from the median interval.
5. BPM = 60 · fs / mean(clean interval).
6. Score confidence from spectral SNR, interval stability and coverage;
   only readings of at least Fair quality are reported.
7. Reject readings whose BPM is more than 15 % away from the dominant
   spectral frequency (e.g. every other beat missed above 120 BPM).

References
----------
- Allen J., "Photoplethysmography and its application in clinical
  physiological measurement." Physiol. Meas., 2007.
- Verkruysse W. et al., "Remote plethysmographic imaging using ambient light."
  Opt Express, 2008.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from .confidence import ConfidenceScorer
from .coverage import COVERAGE_THRESHOLD, CoverageEstimator
from .filters import BandpassFilter
from .intervals import IntervalSet, IntervalValidator
from .peaks import PeakDetector
from .results import AnalysisError, ErrorKind, HeartRateResult
from .samples import Sample, channel_array

logger = logging.getLogger(__name__)


class SignalProcessor:
    """
    Stateless PPG analyser over a window of samples.

    Parameters
    ----------
    sample_rate:
        Sampling frequency of the incoming samples in Hz.  Must match the
        camera's actual capture rate for accurate BPM computation.
    min_samples:
        Minimum window length for a final reading (default 300 ≈ 10 s).
    realtime_min_samples:
        Minimum window length for a provisional live estimate
        (default 90 ≈ 3 s).
    coverage_threshold:
        Minimum finger coverage for any estimate (default 0.7).
    bpm_min, bpm_max:
        Physiologically plausible range of reported heart rates.
    low_hz, high_hz:
        Pass band of the filter (default 0.7 – 4.0 Hz).
    min_clean_intervals:
        Clean beat intervals required for a final reading (default 3).
    rate_tolerance:
        Largest relative gap allowed between the beat-interval rate and the
        dominant spectral rate (default 0.15).
    """

    def __init__(
        self,
        sample_rate: float = 30.0,
        min_samples: int = 300,
        realtime_min_samples: int = 90,
        coverage_threshold: float = COVERAGE_THRESHOLD,
        bpm_min: int = 40,
        bpm_max: int = 200,
        low_hz: float = 0.7,
        high_hz: float = 4.0,
        min_clean_intervals: int = 3,
        rate_tolerance: float = 0.15,
    ) -> None:
        self.sample_rate = sample_rate
        self.min_samples = min_samples
        self.realtime_min_samples = realtime_min_samples
        self.coverage_threshold = coverage_threshold
        self.bpm_min = bpm_min
        self.bpm_max = bpm_max
        self.min_clean_intervals = min_clean_intervals
        self.rate_tolerance = rate_tolerance

        self.coverage_estimator = CoverageEstimator()
        self.bandpass = BandpassFilter(sample_rate, low_hz, high_hz)
        self.peak_detector = PeakDetector(sample_rate)
        self.interval_validator = IntervalValidator()
        self.scorer = ConfidenceScorer(sample_rate, low_hz, high_hz)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze(self, samples: Sequence[Sample]) -> HeartRateResult:
        """
        Run the full pipeline over *samples* (oldest first).

        Raises
        ------
        AnalysisError
            When no reportable reading can be produced; ``kind`` tells why.
        """
        samples = tuple(samples)
        n = len(samples)
        if n < self.min_samples:
            raise AnalysisError(
                ErrorKind.INSUFFICIENT_PEAKS,
                f"need {self.min_samples} samples, have {n}",
            )

        coverage = self.coverage_estimator.coverage(samples)
        if coverage < self.coverage_threshold:
            raise AnalysisError(
                ErrorKind.INSUFFICIENT_COVERAGE, f"coverage {coverage:.2f}"
            )

        filtered = self.filtered_signal(samples)
        peaks = self.peak_detector.detect(filtered)
        if peaks.size < self.interval_validator.min_peaks:
            raise AnalysisError(ErrorKind.INSUFFICIENT_PEAKS, f"{peaks.size} peaks")

        intervals = self.interval_validator.validate(peaks)
        if intervals.clean.size < self.min_clean_intervals:
            raise AnalysisError(
                ErrorKind.INSUFFICIENT_PEAKS,
                f"{intervals.clean.size} of {intervals.raw.size} intervals usable",
            )

        bpm = self._bpm(intervals)
        if not self.bpm_min <= bpm <= self.bpm_max:
            raise AnalysisError(
                ErrorKind.PHYSIOLOGICALLY_IMPLAUSIBLE, f"{bpm} BPM out of range"
            )

        score = self.scorer.score(filtered, intervals.clean, coverage)
        logger.debug(
            "Pipeline: bpm=%d conf=%.3f snr=%.2f stability=%.3f coverage=%.2f",
            bpm, score.confidence, score.snr, score.stability, coverage,
        )
        spectral_bpm = 60.0 * score.dominant_hz
        if spectral_bpm > 0.0 and abs(bpm - spectral_bpm) > self.rate_tolerance * spectral_bpm:
            raise AnalysisError(
                ErrorKind.LOW_CONFIDENCE,
                f"beat rate {bpm} BPM disagrees with spectral rate {spectral_bpm:.0f} BPM",
            )
        if not score.quality.acceptable:
            raise AnalysisError(
                ErrorKind.LOW_CONFIDENCE, f"confidence {score.confidence:.2f}"
            )

        return HeartRateResult(
            bpm=bpm,
            confidence_percent=score.percent,
            signal_to_noise_ratio=round(score.snr, 2),
            irregularity_percent=intervals.irregularity_percent,
            quality=score.quality,
            sample_count=n,
            timestamp_ms=samples[-1].timestamp_ms,
        )

    def estimate_realtime(self, samples: Sequence[Sample]) -> Optional[int]:
        """
        Provisional BPM for live display, or *None*.

        Needs only ``realtime_min_samples`` samples and does not score
        confidence; never use it as a final reading.
        """
        samples = tuple(samples)
        if len(samples) < self.realtime_min_samples:
            return None
        if self.coverage_estimator.coverage(samples) < self.coverage_threshold:
            return None

        intervals = self._beat_intervals(self.filtered_signal(samples))
        if intervals.clean.size == 0:
            return None
        bpm = self._bpm(intervals)
        return bpm if self.bpm_min <= bpm <= self.bpm_max else None

    def filtered_signal(self, samples: Sequence[Sample]) -> np.ndarray:
        """Band-limited green channel of *samples* (for analysis or plotting)."""
        return self.bandpass.filter(channel_array(samples, "green"))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _beat_intervals(self, filtered: np.ndarray) -> IntervalSet:
        peaks = self.peak_detector.detect(filtered)
        return self.interval_validator.validate(peaks)

    def _bpm(self, intervals: IntervalSet) -> int:
        return int(round(60.0 * self.sample_rate / intervals.mean_clean))
