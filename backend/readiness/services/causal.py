"""Causal reinforcement: behaviour change followed by a readiness response.

Compares the last seven points with the seven before them. Patterns are
checked in order, positive reinforcement first, and the first one that
holds is reported. Anything short of a clear pattern stays silent.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from readiness.models.daily import DailyPoint
from readiness.models.insight import Insight, InsightKind
from readiness.services.aggregator import (
    DEFAULT_WINDOW,
    mean_of_present,
    population_stdev,
    present_values,
)

logger = logging.getLogger(__name__)

CONSISTENCY_MARGIN = 0.3
LONG_SLEEP_HOURS = 7.5
LONG_SLEEP_NIGHTS = 3


@dataclass(frozen=True)
class WindowComparison:
    """Recent-minus-prior changes between two adjacent 7-point windows."""

    sleep_change: float
    hrv_change: float
    rhr_change: float
    readiness_change: float
    recent_sleep_sd: Optional[float]
    prior_sleep_sd: Optional[float]
    long_sleep_nights: int

    def _sleep_sds_defined(self) -> bool:
        return self.recent_sleep_sd is not None and self.prior_sleep_sd is not None

    @property
    def consistency_improved(self) -> bool:
        if not self._sleep_sds_defined():
            return False
        return self.recent_sleep_sd < self.prior_sleep_sd - CONSISTENCY_MARGIN

    @property
    def consistency_declined(self) -> bool:
        if not self._sleep_sds_defined():
            return False
        return self.recent_sleep_sd > self.prior_sleep_sd + CONSISTENCY_MARGIN


@dataclass(frozen=True)
class CausalPattern:
    name: str
    predicate: Callable[[WindowComparison], bool]
    message: str


CAUSAL_PATTERNS: tuple[CausalPattern, ...] = (
    CausalPattern(
        "sleep_consistency_gain",
        lambda c: c.consistency_improved and c.readiness_change >= 5,
        "Improved sleep consistency this week corresponded with higher readiness.",
    ),
    CausalPattern(
        "longer_sleep_recovery",
        lambda c: (
            c.sleep_change >= 0.5
            and c.readiness_change >= 5
            and c.long_sleep_nights >= LONG_SLEEP_NIGHTS
        ),
        "Readiness recovered after three nights of longer sleep.",
    ),
    CausalPattern(
        "hrv_stabilization",
        lambda c: c.hrv_change >= 5 and c.readiness_change >= 5 and c.rhr_change <= -2,
        "Reduced training load preceded HRV stabilization.",
    ),
    CausalPattern(
        "extended_sleep_gain",
        lambda c: c.sleep_change >= 0.7 and c.readiness_change >= 6,
        "Extended sleep duration this week corresponded with readiness gains.",
    ),
    CausalPattern(
        "short_sleep_decline",
        lambda c: c.sleep_change <= -0.5 and c.readiness_change <= -5,
        "Short sleep duration this week coincided with declining readiness.",
    ),
    CausalPattern(
        "inconsistent_sleep_decline",
        lambda c: c.consistency_declined and c.readiness_change <= -5,
        "Inconsistent sleep timing this week preceded readiness decline.",
    ),
    CausalPattern(
        "elevated_rhr_decline",
        lambda c: c.rhr_change >= 3 and c.readiness_change <= -5,
        "Increased load preceded elevated resting heart rate.",
    ),
    CausalPattern(
        "hrv_decline",
        lambda c: c.hrv_change <= -8 and c.readiness_change <= -5,
        "Declining HRV over the week preceded reduced readiness.",
    ),
)


def _full_window_stdev(values: Iterable[Optional[float]]) -> Optional[float]:
    """Population stdev over a full window; undefined if any night is missing."""
    values = list(values)
    if len(present_values(values)) < len(values):
        return None
    return population_stdev(values)


def compare_windows(series: Sequence[DailyPoint]) -> Optional[WindowComparison]:
    """Build the recent-vs-prior comparison for the trailing 14 points.

    Returns None with fewer than 14 points or when any window mean is
    undefined.
    """
    if len(series) < DEFAULT_WINDOW * 2:
        return None

    recent = series[-DEFAULT_WINDOW:]
    prior = series[-DEFAULT_WINDOW * 2 : -DEFAULT_WINDOW]

    means = {}
    for metric in ("sleep", "hrv", "resting_hr", "readiness"):
        for label, window in (("recent", recent), ("prior", prior)):
            value = mean_of_present(getattr(p, metric) for p in window)
            if value is None:
                return None
            means[label, metric] = value

    return WindowComparison(
        sleep_change=means["recent", "sleep"] - means["prior", "sleep"],
        hrv_change=means["recent", "hrv"] - means["prior", "hrv"],
        rhr_change=means["recent", "resting_hr"] - means["prior", "resting_hr"],
        readiness_change=means["recent", "readiness"] - means["prior", "readiness"],
        recent_sleep_sd=_full_window_stdev(p.sleep for p in recent),
        prior_sleep_sd=_full_window_stdev(p.sleep for p in prior),
        long_sleep_nights=sum(
            1 for p in recent if p.sleep is not None and p.sleep >= LONG_SLEEP_HOURS
        ),
    )


def evaluate_causal(series: Sequence[DailyPoint]) -> Optional[Insight]:
    """Return the first matching causal-reinforcement insight, or None."""
    comparison = compare_windows(series)
    if comparison is None:
        return None

    for pattern in CAUSAL_PATTERNS:
        if pattern.predicate(comparison):
            logger.debug(f"Causal pattern matched: {pattern.name}")
            return Insight(
                kind=InsightKind.CAUSAL,
                text=pattern.message,
                metric_ref="readiness",
                rule=pattern.name,
            )

    return None
