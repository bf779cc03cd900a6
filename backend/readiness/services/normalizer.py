"""Metric normalization and readiness derivation.

Turns raw ``DailyRecord`` input into ``DailyPoint`` values the rest of the
engine can trust: missing, non-finite and negative readings become ``None``,
and readiness is taken from the record or derived from sleep, HRV and
resting heart rate.
"""

import logging
import math
from typing import Optional, Sequence

from readiness.core.exceptions import RecordOrderError
from readiness.models.daily import DailyPoint, DailyRecord

logger = logging.getLogger(__name__)

BASE_READINESS = 60
DERIVED_MIN = 20
DERIVED_MAX = 95


def is_finite(value: Optional[float]) -> bool:
    """True for a real, finite number."""
    return value is not None and not isinstance(value, bool) and math.isfinite(value)


def clean_metric(value: Optional[float]) -> Optional[float]:
    """Return the value, or None if it is missing, non-finite or negative."""
    if not is_finite(value) or value < 0:
        return None
    return float(value)


def clean_feeling(value: Optional[float]) -> Optional[float]:
    """Feeling is a 1-5 ordinal; anything else is treated as missing."""
    value = clean_metric(value)
    if value is None or not 1 <= value <= 5:
        return None
    return value


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def round_half_up(value: float) -> int:
    """Round .5 upwards (72.5 -> 73) rather than to the even neighbour."""
    return math.floor(value + 0.5)


def readiness_formula(sleep: float, hrv: float, resting_hr: float) -> float:
    """Unclamped weighted readiness.

    HRV carries roughly 40% of the weight, sleep 35% and resting HR 25%.
    """
    return (
        BASE_READINESS
        + (hrv - 50) * 0.8
        + (8 - resting_hr / 10) * 2
        + (sleep - 7) * 8
    )


def derive_readiness(
    sleep: Optional[float],
    hrv: Optional[float],
    resting_hr: Optional[float],
) -> Optional[int]:
    """Bounded readiness estimate for a day without a recorded recovery.

    Returns None when any of the three inputs is missing or invalid.
    """
    sleep, hrv, resting_hr = clean_metric(sleep), clean_metric(hrv), clean_metric(resting_hr)
    if sleep is None or hrv is None or resting_hr is None:
        return None

    return round_half_up(clamp(readiness_formula(sleep, hrv, resting_hr), DERIVED_MIN, DERIVED_MAX))


def readiness_value(record: DailyRecord) -> Optional[float]:
    """Recorded recovery when valid, otherwise the derived estimate."""
    recovery = clean_metric(record.recovery)
    if recovery is not None and recovery <= 100:
        return recovery

    derived = derive_readiness(record.sleep_hours, record.hrv_ms, record.resting_hr_bpm)
    return float(derived) if derived is not None else None


def normalize_record(record: DailyRecord) -> DailyPoint:
    """Clean one record into a DailyPoint."""
    return DailyPoint(
        date=record.date,
        readiness=readiness_value(record),
        sleep=clean_metric(record.sleep_hours),
        hrv=clean_metric(record.hrv_ms),
        resting_hr=clean_metric(record.resting_hr_bpm),
        feeling=clean_feeling(record.feeling),
        steps=clean_metric(record.steps),
        weight=clean_metric(record.weight),
        active_minutes=clean_metric(record.active_minutes),
    )


def ensure_chronological(records: Sequence[DailyRecord]) -> None:
    """Check the input precondition: dates strictly ascending, one per day.

    Raises:
        RecordOrderError: If any record is not after its predecessor.
    """
    for index in range(1, len(records)):
        previous, current = records[index - 1].date, records[index].date
        if current <= previous:
            raise RecordOrderError(index, previous, current)


def normalize_series(records: Sequence[DailyRecord]) -> list[DailyPoint]:
    """Validate ordering and normalize every record.

    The input is never sorted here; out-of-order data is a caller bug.
    """
    ensure_chronological(records)
    points = [normalize_record(r) for r in records]

    missing = sum(1 for p in points if p.readiness is None)
    if missing:
        logger.debug(f"{missing} of {len(points)} days have no readiness value")

    return points
