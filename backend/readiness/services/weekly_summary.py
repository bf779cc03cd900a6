"""Weekly summary card: this week's averages, trends and a reliability signal."""

import logging
from dataclasses import dataclass, field
from typing import Literal, Optional, Sequence

from readiness.models.aggregates import WindowAverages
from readiness.models.daily import DailyPoint
from readiness.models.insight import Band
from readiness.services.aggregator import DEFAULT_WINDOW, window_averages
from readiness.services.normalizer import round_half_up
from readiness.services.scorer import STATUS_BANDS, TAKEAWAY_BANDS, BandSystem

logger = logging.getLogger(__name__)

TrendDirection = Literal["up", "down", "stable"]

SUMMARY_METRICS = ("readiness", "sleep", "steps", "weight", "hrv", "resting_hr", "feeling")

# Allowed next-day readiness change per prior-day recommendation band.
ALIGNMENT_TOLERANCE: dict[Band, int] = {
    "high": -5,
    "moderate": -8,
    "low": -3,
}
MOSTLY_ALIGNED_DAYS = 5


@dataclass(frozen=True)
class ReliabilitySignal:
    """How often yesterday's recommendation was borne out by today."""

    aligned_days: int
    days_checked: int

    @property
    def text(self) -> str:
        if self.aligned_days >= MOSTLY_ALIGNED_DAYS:
            return "System recommendations matched observed trends most days this week."
        return (
            f"Recommendations aligned with readiness trends on "
            f"{self.aligned_days} of {self.days_checked} days."
        )

    def to_dict(self) -> dict:
        return {
            "aligned_days": self.aligned_days,
            "days_checked": self.days_checked,
            "text": self.text,
        }


@dataclass(frozen=True)
class WeeklySummary:
    week_number: int
    averages: WindowAverages
    trends: dict[str, Optional[float]] = field(default_factory=dict)
    recovery_band: Optional[Band] = None
    reliability: Optional[ReliabilitySignal] = None

    @property
    def date_range(self) -> str:
        return f"{self.averages.start_date.isoformat()} - {self.averages.end_date.isoformat()}"

    def trend_direction(self, metric: str) -> Optional[TrendDirection]:
        value = self.trends.get(metric)
        if value is None:
            return None
        if abs(value) < 1:
            return "stable"
        return "up" if value > 0 else "down"

    def to_dict(self) -> dict:
        return {
            "week_number": self.week_number,
            "date_range": self.date_range,
            "averages": self.averages.to_dict(),
            "trends": dict(self.trends),
            "trend_directions": {m: self.trend_direction(m) for m in self.trends},
            "recovery_band": self.recovery_band,
            "reliability": self.reliability.to_dict() if self.reliability else None,
        }


def pct_change(curr: Optional[float], prev: Optional[float]) -> Optional[float]:
    """Percent change rounded to 0.1, or None without a usable prior value."""
    if curr is None or not prev:
        return None
    return round(((curr - prev) / prev) * 100, 1)


def reliability_signal(
    points: Sequence[DailyPoint],
    bands: BandSystem = TAKEAWAY_BANDS,
) -> Optional[ReliabilitySignal]:
    """Score each consecutive pair of the last 7 days.

    A pair is aligned when the day after a recommendation did not fall
    further than that recommendation tolerates. Pairs with a missing
    readiness value are not evaluated.
    """
    if len(points) < DEFAULT_WINDOW:
        return None

    last_week = points[-DEFAULT_WINDOW:]
    aligned = checked = 0

    for yesterday, today in zip(last_week, last_week[1:]):
        if yesterday.readiness is None or today.readiness is None:
            continue
        prev_readiness = round_half_up(yesterday.readiness)
        change = round_half_up(today.readiness) - prev_readiness

        checked += 1
        if change >= ALIGNMENT_TOLERANCE[bands.classify(prev_readiness)]:
            aligned += 1

    return ReliabilitySignal(aligned_days=aligned, days_checked=checked)


def weekly_summary(
    points: Sequence[DailyPoint],
    status: BandSystem = STATUS_BANDS,
    takeaway: BandSystem = TAKEAWAY_BANDS,
) -> Optional[WeeklySummary]:
    """Summarize the last 7 points against the 7 before them.

    Returns:
        None with fewer than 7 points. Trends are None when there is no
        complete prior week.
    """
    if len(points) < DEFAULT_WINDOW:
        return None

    last = window_averages(points[-DEFAULT_WINDOW:])
    prior = None
    if len(points) >= DEFAULT_WINDOW * 2:
        prior = window_averages(points[-DEFAULT_WINDOW * 2 : -DEFAULT_WINDOW])

    trends = {
        metric: pct_change(getattr(last, metric), getattr(prior, metric) if prior else None)
        for metric in SUMMARY_METRICS
    }

    return WeeklySummary(
        week_number=(len(points) - 1) // DEFAULT_WINDOW + 1,
        averages=last,
        trends=trends,
        recovery_band=status.classify(last.readiness) if last.readiness is not None else None,
        reliability=reliability_signal(points, takeaway),
    )
