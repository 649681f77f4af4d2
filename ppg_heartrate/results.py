"""
Result and error types shared by the pipeline and the scan controller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class Quality(Enum):
    EXCELLENT = auto()   # confidence >= 0.85
    GOOD      = auto()   # confidence >= 0.75
    FAIR      = auto()   # confidence >= 0.65
    POOR      = auto()

    @property
    def acceptable(self) -> bool:
        """Whether a reading of this quality may be reported."""
        return self is not Quality.POOR


class ErrorKind(Enum):
    INSUFFICIENT_COVERAGE      = auto()   # finger not covering the lens
    INSUFFICIENT_PEAKS         = auto()   # fewer than 3 usable beats
    LOW_CONFIDENCE             = auto()   # pipeline ran, confidence below Fair
    PHYSIOLOGICALLY_IMPLAUSIBLE = auto()  # BPM outside [40, 200]


class AnalysisError(Exception):
    """Raised by the pipeline when no reportable heart rate can be produced."""

    def __init__(self, kind: ErrorKind, message: str = "") -> None:
        self.kind = kind
        super().__init__(message or kind.name)


@dataclass(frozen=True)
class HeartRateResult:
    bpm:                   int
    confidence_percent:    int
    signal_to_noise_ratio: float
    irregularity_percent:  int
    quality:               Quality
    sample_count:          int
    timestamp_ms:          int      # time of the newest analysed sample

    def __str__(self) -> str:
        return (
            f"BPM={self.bpm}  conf={self.confidence_percent}%  "
            f"quality={self.quality.name.lower()}  SNR={self.signal_to_noise_ratio:.2f}  "
            f"irregularity={self.irregularity_percent}%  samples={self.sample_count}"
        )
