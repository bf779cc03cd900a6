"""Data confidence: how much to trust today's numbers.

Scores completeness, recency and short-term consistency of the data and
maps the total onto a high/moderate/low label. Scoring is conservative:
only a complete, fresh and steady day reaches ``high``.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

from readiness.models.daily import DailyPoint, DailyRecord
from readiness.models.insight import ConfidenceLevel, ConfidenceResult
from readiness.services.aggregator import DEFAULT_WINDOW, mean_of_present, population_stdev, present_values
from readiness.services.normalizer import clean_metric
from readiness.services.takeaway import ViewMode

logger = logging.getLogger(__name__)

HIGH_SCORE = 5
MODERATE_SCORE = 3
CONSISTENCY_WINDOW = 3
MAX_SLEEP_STDEV = 2
MAX_HRV_CV = 0.25

NO_DATA = "No data available for today."


def _present(value: Optional[float]) -> bool:
    value = clean_metric(value)
    return value is not None and value > 0


def _level(score: int) -> ConfidenceLevel:
    if score >= HIGH_SCORE:
        return ConfidenceLevel.HIGH
    if score >= MODERATE_SCORE:
        return ConfidenceLevel.MODERATE
    return ConfidenceLevel.LOW


def _presence(record: DailyRecord, issues: list[str]) -> int:
    score = 0
    checks = (
        (record.sleep_hours, "Sleep data missing"),
        (record.hrv_ms, "HRV data missing"),
        (record.resting_hr_bpm, "Resting heart rate missing"),
    )
    for value, issue in checks:
        if _present(value):
            score += 1
        else:
            issues.append(issue)
    return score


def _recency(record: DailyRecord, current_moment: datetime, issues: list[str]) -> int:
    days_old = (current_moment.date() - record.date).days
    if days_old == 0:
        return 2
    if days_old == 1:
        issues.append("Data is from yesterday")
        return 1
    if days_old > 1:
        issues.append(f"Data is {days_old} days old")
    return 0


def _consistency(series: Sequence[DailyPoint], issues: list[str]) -> int:
    if len(series) < CONSISTENCY_WINDOW:
        return 0

    window = series[-CONSISTENCY_WINDOW:]
    score = 0

    # Fewer than two nights cannot be erratic.
    sleep_sd = population_stdev(p.sleep for p in window)
    if sleep_sd is not None and sleep_sd > MAX_SLEEP_STDEV:
        score -= 1
        issues.append("Sleep data is erratic")
    else:
        score += 1

    hrv = present_values(p.hrv for p in window)
    hrv_mean = mean_of_present(hrv)
    if len(hrv) >= 2 and hrv_mean:
        if population_stdev(hrv) / hrv_mean > MAX_HRV_CV:
            score -= 1
            issues.append("HRV data shows high variability")

    return score


def estimate_confidence(
    records: Sequence[DailyRecord],
    series: Sequence[DailyPoint],
    mode: ViewMode,
    current_moment: datetime,
    rolling_window: int = DEFAULT_WINDOW,
) -> ConfidenceResult:
    """Label the trustworthiness of the most recent record.

    Args:
        records: Raw input records; the last one is "today".
        series: Active processed series (after mode and slicing).
        mode: Current view mode.
        current_moment: Evaluation time used for the recency check.
        rolling_window: Points per rolling average; a shorter rolling
            series is penalized.

    Returns:
        A ConfidenceResult whose reason is the first issue found, or None
        when the level is high.
    """
    if not records:
        return ConfidenceResult(level=ConfidenceLevel.LOW, reason=NO_DATA, score=0)

    latest = records[-1]
    issues: list[str] = []

    score = _presence(latest, issues)
    score += _recency(latest, current_moment, issues)
    score += _consistency(series, issues)

    if mode == "rolling" and len(series) < rolling_window:
        score -= 1
        issues.append(f"Insufficient data for {rolling_window}-day average")

    level = _level(score)
    reason = issues[0] if level != ConfidenceLevel.HIGH and issues else None

    logger.debug(f"Confidence {level.value} (score={score}, issues={len(issues)})")
    return ConfidenceResult(level=level, reason=reason, score=score)
