"""
Confidence model for a heart-rate reading.

Three factors are blended::

    confidence = 0.4 * snr_term + 0.4 * stability + 0.2 * min(coverage, 1)

snr_term
    Spectral SNR in decibels, scaled linearly from 0 at ``snr_floor_db``
    (0 dB: the cardiac component holds no more power than the rest of the
    band) to 1 at ``snr_full_db``.  ``snr`` is the power ratio of the
    dominant cardiac component to the rest of the band.
stability
    ``max(0, 1 - CV)`` of the clean beat intervals.
coverage
    Finger coverage reported by :class:`~ppg_heartrate.coverage.CoverageEstimator`.

The blend is clamped to [0, 1] and mapped to a :class:`Quality` label.
A series without a pulse stays below 0 dB, so its confidence is capped at
0.6 and never reaches Fair.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .intervals import coefficient_of_variation
from .results import Quality

# Caps the ratio when the band holds almost no power outside the cardiac peak.
_NOISE_FLOOR = 1e-6


def spectral_peak(
    filtered: np.ndarray,
    sample_rate: float = 30.0,
    low_hz: float = 0.7,
    high_hz: float = 4.0,
    min_samples: int = 60,
    peak_bins: int = 2,
) -> tuple[float, float]:
    """
    Locate the dominant in-band component of *filtered*.

    The series is Hann-windowed before the FFT; the cardiac component is the
    strongest in-band bin plus ``peak_bins`` bins each side.

    Returns
    -------
    (frequency_hz, snr)
        Frequency of the strongest in-band bin and the power ratio of the
        cardiac component to the remaining band.  ``(0.0, 0.0)`` for fewer
        than ``min_samples`` samples or a band without power.
    """
    x = np.asarray(filtered, dtype=np.float64)
    n = x.size
    if n < min_samples:
        return 0.0, 0.0

    power = np.abs(np.fft.rfft(x * np.hanning(n))) ** 2
    freqs = np.fft.rfftfreq(n, d=1.0 / sample_rate)
    band_mask = (freqs >= low_hz) & (freqs <= high_hz)
    if not band_mask.any():
        return 0.0, 0.0

    band_power = power[band_mask]
    total = float(band_power.sum())
    if not np.isfinite(total) or total <= 0.0:
        return 0.0, 0.0

    peak_idx = int(np.argmax(band_power))
    lo = max(0, peak_idx - peak_bins)
    cardiac = float(band_power[lo:peak_idx + peak_bins + 1].sum())
    noise = max(total - cardiac, total * _NOISE_FLOOR)
    return float(freqs[band_mask][peak_idx]), cardiac / noise


def signal_to_noise_ratio(
    filtered: np.ndarray,
    sample_rate: float = 30.0,
    low_hz: float = 0.7,
    high_hz: float = 4.0,
    min_samples: int = 60,
    peak_bins: int = 2,
) -> float:
    """Power ratio of the dominant cardiac component to the remaining band."""
    return spectral_peak(filtered, sample_rate, low_hz, high_hz, min_samples, peak_bins)[1]


def snr_term(snr: float, floor_db: float = 0.0, full_db: float = 6.0) -> float:
    """Scale *snr* onto [0, 1], linear in decibels between *floor_db* and *full_db*."""
    if not np.isfinite(snr) or snr <= 0.0:
        return 0.0
    db = 10.0 * np.log10(snr)
    return float(min(1.0, max(0.0, (db - floor_db) / (full_db - floor_db))))


def interval_stability(intervals: np.ndarray) -> float:
    """``max(0, 1 - CV)``; 0 when the CV is undefined."""
    cv = coefficient_of_variation(intervals)
    if cv is None:
        return 0.0
    return max(0.0, 1.0 - cv)


def quality_for(confidence: float) -> Quality:
    if confidence >= 0.85:
        return Quality.EXCELLENT
    if confidence >= 0.75:
        return Quality.GOOD
    if confidence >= 0.65:
        return Quality.FAIR
    return Quality.POOR


@dataclass(frozen=True)
class ConfidenceScore:
    confidence:  float     # 0 – 1
    quality:     Quality
    snr:         float
    stability:   float
    dominant_hz: float = 0.0

    @property
    def percent(self) -> int:
        return int(round(self.confidence * 100))


class ConfidenceScorer:
    """
    Combine SNR, interval stability and coverage into one verdict.

    Parameters
    ----------
    sample_rate, low_hz, high_hz:
        Sampling rate and pass band of the filtered series.
    weights:
        ``(snr, stability, coverage)`` weights (default 0.4 / 0.4 / 0.2).
    min_samples:
        Minimum series length for a non-zero SNR (default 60).
    snr_floor_db, snr_full_db:
        SNR range over which the SNR term rises from 0 to 1.
    """

    def __init__(
        self,
        sample_rate: float = 30.0,
        low_hz: float = 0.7,
        high_hz: float = 4.0,
        weights: tuple[float, float, float] = (0.4, 0.4, 0.2),
        min_samples: int = 60,
        snr_floor_db: float = 0.0,
        snr_full_db: float = 6.0,
    ) -> None:
        if snr_full_db <= snr_floor_db:
            raise ValueError(f"snr_full_db must exceed snr_floor_db ({snr_floor_db} dB)")
        self.sample_rate = sample_rate
        self.low_hz = low_hz
        self.high_hz = high_hz
        self.weights = weights
        self.min_samples = min_samples
        self.snr_floor_db = snr_floor_db
        self.snr_full_db = snr_full_db

    def score(
        self, filtered: np.ndarray, clean_intervals: np.ndarray, coverage: float
    ) -> ConfidenceScore:
        dominant_hz, snr = spectral_peak(
            filtered, self.sample_rate, self.low_hz, self.high_hz, self.min_samples
        )
        stability = interval_stability(clean_intervals)
        coverage_term = min(max(coverage, 0.0), 1.0) if np.isfinite(coverage) else 0.0

        w_snr, w_stab, w_cov = self.weights
        confidence = (
            w_snr * snr_term(snr, self.snr_floor_db, self.snr_full_db)
            + w_stab * stability
            + w_cov * coverage_term
        )
        confidence = min(1.0, max(0.0, confidence))
        return ConfidenceScore(
            confidence=confidence,
            quality=quality_for(confidence),
            snr=snr,
            stability=stability,
            dominant_hz=dominant_hz,
        )
