"""
PPG heart-rate engine — pulse estimation from a finger pressed on a camera lens.

Per-frame colour samples are buffered, the green channel is band-limited,
systolic peaks are found with an adaptive threshold, beat intervals are
cleaned of outliers and the result is scored for confidence before it is
reported.
"""

from .coverage import CoverageEstimator, PlacementStatus
from .results import AnalysisError, ErrorKind, HeartRateResult, Quality
from .samples import Sample, SignalBuffer
from .scan_controller import ScanConfig, ScanController, ScanState
from .signal_processor import SignalProcessor

__version__ = "0.1.0"
__author__ = "ppg_heartrate"

__all__ = [
    "AnalysisError",
    "CoverageEstimator",
    "ErrorKind",
    "HeartRateResult",
    "PlacementStatus",
    "Quality",
    "Sample",
    "ScanConfig",
    "ScanController",
    "ScanState",
    "SignalBuffer",
    "SignalProcessor",
]
