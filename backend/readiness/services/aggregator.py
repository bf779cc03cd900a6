"""Sliding-window aggregation over normalized daily points.

All windows are positional: they slice the point sequence, not the
calendar. Every mean is taken over the values that are present, and a
window with no present values for a metric reports None for it.
"""

import logging
import math
import statistics
from typing import Iterable, Optional, Sequence

from readiness.models.aggregates import Baseline, WeekOverWeek, WeeklyBucket, WindowAverages
from readiness.models.daily import POINT_METRICS, DailyPoint

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 7


def present_values(values: Iterable[Optional[float]]) -> list[float]:
    """Drop missing and non-finite values."""
    return [v for v in values if v is not None and math.isfinite(v)]


def mean_of_present(values: Iterable[Optional[float]]) -> Optional[float]:
    """Arithmetic mean of the present values, or None if there are none."""
    nums = present_values(values)
    if not nums:
        return None
    return sum(nums) / len(nums)


def population_stdev(values: Iterable[Optional[float]]) -> Optional[float]:
    """Population standard deviation (divisor n) of the present values."""
    nums = present_values(values)
    if not nums:
        return None
    return statistics.pstdev(nums)


def _metric_means(window: Sequence[DailyPoint]) -> dict[str, Optional[float]]:
    return {
        metric: mean_of_present(getattr(p, metric) for p in window)
        for metric in POINT_METRICS
    }


def window_averages(window: Sequence[DailyPoint]) -> WindowAverages:
    """Average every metric over a non-empty window."""
    return WindowAverages(
        size=len(window),
        start_date=window[0].date,
        end_date=window[-1].date,
        **_metric_means(window),
    )


def rolling_average(
    points: Sequence[DailyPoint],
    window_size: int = DEFAULT_WINDOW,
) -> list[DailyPoint]:
    """Trailing N-point mean for every index with a full window.

    Args:
        points: Chronologically ascending normalized points.
        window_size: Number of points per window.

    Returns:
        One point per index ``i >= window_size - 1``, dated with
        ``points[i].date``. Empty if there are fewer points than the window.
    """
    if window_size < 1:
        raise ValueError(f"window_size must be positive, got {window_size}")
    if len(points) < window_size:
        return []

    result = []
    for i in range(window_size - 1, len(points)):
        window = points[i - window_size + 1 : i + 1]
        result.append(DailyPoint(date=points[i].date, **_metric_means(window)))

    return result


def week_over_week(points: Sequence[DailyPoint]) -> Optional[WeekOverWeek]:
    """Compare the last 7 points with the 7 before them.

    Returns:
        None when fewer than 14 points are available.
    """
    if len(points) < DEFAULT_WINDOW * 2:
        return None

    return WeekOverWeek(
        last=window_averages(points[-DEFAULT_WINDOW:]),
        prior=window_averages(points[-DEFAULT_WINDOW * 2 : -DEFAULT_WINDOW]),
    )


def baseline(
    points: Sequence[DailyPoint],
    exclude_recent: int = 7,
    window_size: int = 30,
    min_points: int = 7,
) -> Optional[Baseline]:
    """Reference means that leave out the most recent days.

    The window ends ``exclude_recent`` points before the end of the series
    and reaches back up to ``window_size`` points from there, so it answers
    "how does this week compare with my normal".

    Returns:
        None when the window holds fewer than ``min_points`` points.
    """
    end = len(points) - exclude_recent
    start = max(0, end - window_size)
    window = points[start:end] if end > 0 else []

    if len(window) < min_points:
        return None

    return Baseline(averages=window_averages(window), excluded_recent=exclude_recent)


def weekly_buckets(points: Sequence[DailyPoint]) -> list[WeeklyBucket]:
    """Consecutive 7-point chunks from the start of the series.

    A trailing partial chunk is kept as its own week.
    """
    buckets = []
    for i in range(0, len(points), DEFAULT_WINDOW):
        chunk = points[i : i + DEFAULT_WINDOW]
        buckets.append(
            WeeklyBucket(label=f"Week {len(buckets) + 1}", averages=window_averages(chunk))
        )
    return buckets
