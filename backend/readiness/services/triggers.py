"""Event-driven trigger insight.

Compares the current point with a comparison point (a week earlier in
rolling mode, the day before in daily mode) and walks an ordered rule
table. The first rule whose predicate holds builds the message; when none
holds the trigger stays silent, which is the common case.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from readiness.models.daily import DailyPoint
from readiness.models.insight import Insight, InsightKind
from readiness.services.normalizer import round_half_up
from readiness.services.scorer import TAKEAWAY_BANDS, BandSystem, point_limiting_factor
from readiness.services.takeaway import ViewMode

logger = logging.getLogger(__name__)

SHIFT_THRESHOLD = 10
SLEEP_DELTA = 0.5
HRV_DELTA = 5


@dataclass(frozen=True)
class TriggerContext:
    """Everything a trigger rule may look at."""

    current: DailyPoint
    comparison: DailyPoint
    readiness: int
    comparison_readiness: int
    mode: ViewMode
    bands: BandSystem
    shift_threshold: int = SHIFT_THRESHOLD

    @property
    def signed_change(self) -> int:
        return self.readiness - self.comparison_readiness

    @property
    def sleep_change(self) -> Optional[float]:
        return _delta(self.current.sleep, self.comparison.sleep)

    @property
    def hrv_change(self) -> Optional[float]:
        return _delta(self.current.hrv, self.comparison.hrv)

    @property
    def period_label(self) -> str:
        return "last week" if self.mode == "rolling" else "yesterday"


@dataclass(frozen=True)
class TriggerRule:
    name: str
    predicate: Callable[[TriggerContext], bool]
    build: Callable[[TriggerContext], str]


def _delta(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    if current is None or previous is None:
        return None
    return current - previous


def _above(value: Optional[float], limit: float) -> bool:
    return value is not None and value > limit


def _below(value: Optional[float], limit: float) -> bool:
    return value is not None and value < limit


def comparison_point(series: Sequence[DailyPoint], mode: ViewMode) -> Optional[DailyPoint]:
    """The week-ago point in rolling mode, yesterday's point in daily mode."""
    if mode == "rolling":
        return series[-8] if len(series) > 7 else None
    return series[-2] if len(series) > 1 else None


# Readiness shift

def _is_shift(ctx: TriggerContext) -> bool:
    return abs(ctx.signed_change) >= ctx.shift_threshold


def _shift_cause(ctx: TriggerContext) -> str:
    sleep, hrv = ctx.sleep_change, ctx.hrv_change

    if ctx.signed_change < 0:
        if _below(sleep, -SLEEP_DELTA):
            return "Sleep consistency declined and recovery metrics softened."
        if _below(hrv, -HRV_DELTA):
            return f"HRV dropped {abs(hrv):.0f}ms, indicating accumulated fatigue."
        return "Mixed driver decline across sleep and recovery markers."

    if _above(sleep, SLEEP_DELTA):
        return "Sleep gains drove the recovery improvement."
    if _above(hrv, HRV_DELTA):
        return f"HRV increased {hrv:.0f}ms, showing strong adaptation."
    return "Broad improvement across recovery markers."


def _shift_message(ctx: TriggerContext) -> str:
    direction = "increased" if ctx.signed_change > 0 else "dropped"
    return (
        f"Readiness {direction} {abs(ctx.signed_change)}% vs {ctx.period_label}. "
        f"{_shift_cause(ctx)}"
    )


# Driver constraint change

def _limiter_changed(ctx: TriggerContext) -> bool:
    current = point_limiting_factor(ctx.current)
    previous = point_limiting_factor(ctx.comparison)
    if current is None or previous is None:
        return False
    return current != previous and ctx.readiness < ctx.bands.high


def _limiter_message(ctx: TriggerContext) -> str:
    current = point_limiting_factor(ctx.current)
    previous = point_limiting_factor(ctx.comparison)
    return f"{previous} improved, but {current} is now the limiting factor."


# Threshold crossing

def _band_crossed(ctx: TriggerContext) -> bool:
    return ctx.bands.classify(ctx.comparison_readiness) != ctx.bands.classify(ctx.readiness)


def _crossing_message(ctx: TriggerContext) -> str:
    previous = ctx.bands.classify(ctx.comparison_readiness)
    current = ctx.bands.classify(ctx.readiness)

    if current == "high":
        return f"You moved from {previous} to high readiness. Training intensity can increase."
    if current == "low":
        return "Readiness crossed into low territory. Prioritize recovery before resuming high loads."
    if previous == "high":
        return "Readiness dropped from high to moderate. Cap intensity but maintain training volume."
    return "Readiness recovered to moderate band. Light to moderate training is appropriate."


TRIGGER_RULES: tuple[TriggerRule, ...] = (
    TriggerRule("readiness_shift", _is_shift, _shift_message),
    TriggerRule("driver_constraint_change", _limiter_changed, _limiter_message),
    TriggerRule("threshold_crossing", _band_crossed, _crossing_message),
)


def evaluate_trigger(
    series: Sequence[DailyPoint],
    mode: ViewMode = "daily",
    bands: BandSystem = TAKEAWAY_BANDS,
    shift_threshold: int = SHIFT_THRESHOLD,
) -> Optional[Insight]:
    """Return the first matching trigger insight, or None for silence.

    Args:
        series: Processed points, current point last.
        mode: ``"daily"`` compares with yesterday, ``"rolling"`` with a week ago.
        bands: Band system used for the constraint and crossing rules.
        shift_threshold: Minimum absolute readiness change for a shift.
    """
    if not series:
        return None

    current = series[-1]
    comparison = comparison_point(series, mode)
    if comparison is None or current.readiness is None or comparison.readiness is None:
        return None

    ctx = TriggerContext(
        current=current,
        comparison=comparison,
        readiness=round_half_up(current.readiness),
        comparison_readiness=round_half_up(comparison.readiness),
        mode=mode,
        bands=bands,
        shift_threshold=shift_threshold,
    )

    for rule in TRIGGER_RULES:
        if rule.predicate(ctx):
            logger.debug(f"Trigger rule matched: {rule.name}")
            return Insight(
                kind=InsightKind.TRIGGER,
                text=rule.build(ctx),
                metric_ref="readiness",
                rule=rule.name,
            )

    return None
