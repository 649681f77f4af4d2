"""
Clinical flags for a completed heart-rate reading.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import FrozenSet

from .results import HeartRateResult

BRADYCARDIA_BPM = 50
TACHYCARDIA_BPM = 120
IRREGULAR_PERCENT = 30


class RhythmAlert(Enum):
    BRADYCARDIA = auto()   # resting rate below 50 BPM
    TACHYCARDIA = auto()   # resting rate above 120 BPM
    IRREGULAR   = auto()   # beat-to-beat variation above 30 %


def assess_rhythm(result: HeartRateResult) -> FrozenSet[RhythmAlert]:
    """Return the alerts raised by *result* (empty for a normal reading)."""
    alerts = set()
    if result.bpm < BRADYCARDIA_BPM:
        alerts.add(RhythmAlert.BRADYCARDIA)
    elif result.bpm > TACHYCARDIA_BPM:
        alerts.add(RhythmAlert.TACHYCARDIA)
    if result.irregularity_percent > IRREGULAR_PERCENT:
        alerts.add(RhythmAlert.IRREGULAR)
    return frozenset(alerts)
