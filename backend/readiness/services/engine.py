"""Readiness engine facade.

Wires normalization, aggregation, scoring, triggers and confidence for one
invocation and returns a ``ReadinessReport``. The engine holds no state
between calls: the same records and ``current_moment`` always produce the
same report.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from readiness.core.config import Settings, get_settings
from readiness.models.aggregates import Baseline, BaselineDeltas, WeekOverWeek
from readiness.models.daily import DailyPoint, DailyRecord
from readiness.models.insight import (
    ConfidenceResult,
    Insight,
    InsightKind,
    LimitingFactor,
    ReadinessScore,
)
from readiness.observability import (
    MetricsBackend,
    evaluation_id_ctx,
    get_metrics_backend,
    new_evaluation_id,
)
from readiness.services.aggregator import baseline, mean_of_present, rolling_average, week_over_week
from readiness.services.causal import evaluate_causal
from readiness.services.confidence import estimate_confidence
from readiness.services.normalizer import normalize_series, round_half_up
from readiness.services.scorer import (
    STATUS_UNAVAILABLE,
    limiting_factor,
    score_point,
    status_bands,
    status_text,
    takeaway_bands,
)
from readiness.services.takeaway import ViewMode, daily_takeaway, trend_caption
from readiness.services.triggers import evaluate_trigger
from readiness.services.weekly_summary import WeeklySummary, weekly_summary

logger = logging.getLogger(__name__)

SUNDAY = 6
SATURDAY = 5


@dataclass(frozen=True)
class ViewDefaults:
    """Initial view for a given moment."""

    mode: ViewMode
    days_to_show: int


def default_view(current_moment: datetime) -> ViewDefaults:
    """Sunday opens on the weekly trend, other days on yesterday's detail.

    Saturday shows two weeks for review; every other day shows one.
    """
    weekday = current_moment.weekday()
    mode: ViewMode = "rolling" if weekday == SUNDAY else "daily"
    days = 14 if weekday == SATURDAY else 7
    return ViewDefaults(mode=mode, days_to_show=days)


@dataclass(frozen=True)
class ReadinessReport:
    """Everything one evaluation produces."""

    mode: ViewMode
    series: list[DailyPoint]
    readiness: Optional[int]
    change: int
    status: str
    score: ReadinessScore
    limiting_factor: Optional[LimitingFactor]
    confidence: ConfidenceResult
    baselines: Optional[Baseline] = None
    baseline_deltas: BaselineDeltas = field(default_factory=BaselineDeltas)
    period_average: Optional[float] = None
    highest: Optional[DailyPoint] = None
    lowest: Optional[DailyPoint] = None
    trend_caption: Optional[str] = None
    insights: list[Insight] = field(default_factory=list)
    week_over_week: Optional[WeekOverWeek] = None
    weekly_summary: Optional[WeeklySummary] = None

    def insight(self, kind: InsightKind) -> Optional[Insight]:
        """The insight of the given kind, if one was emitted."""
        for item in self.insights:
            if item.kind == kind:
                return item
        return None

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "series": [p.to_dict() for p in self.series],
            "readiness": self.readiness,
            "change": self.change,
            "status": self.status,
            "score": self.score.to_dict(),
            "limiting_factor": self.limiting_factor,
            "confidence": self.confidence.to_dict(),
            "baselines": self.baselines.to_dict() if self.baselines else None,
            "baseline_deltas": self.baseline_deltas.to_dict(),
            "period_average": self.period_average,
            "highest": self.highest.to_dict() if self.highest else None,
            "lowest": self.lowest.to_dict() if self.lowest else None,
            "trend_caption": self.trend_caption,
            "insights": [i.to_dict() for i in self.insights],
            "week_over_week": self.week_over_week.to_dict() if self.week_over_week else None,
            "weekly_summary": self.weekly_summary.to_dict() if self.weekly_summary else None,
        }


def _delta(current: Optional[float], reference: Optional[float]) -> Optional[float]:
    if current is None or reference is None:
        return None
    return current - reference


def _extremes(series: Sequence[DailyPoint]) -> tuple[Optional[DailyPoint], Optional[DailyPoint]]:
    """Highest (latest on ties) and lowest (earliest on ties) readiness points."""
    scored = [p for p in series if p.readiness is not None]
    if not scored:
        return None, None
    highest = max(reversed(scored), key=lambda p: p.readiness)
    lowest = min(scored, key=lambda p: p.readiness)
    return highest, lowest


def _confidence_insight(confidence: ConfidenceResult) -> Insight:
    text = f"Confidence: {confidence.level.value}"
    if confidence.reason:
        text = f"{text}. {confidence.reason}"
    return Insight(kind=InsightKind.CONFIDENCE, text=text, rule=confidence.level.value)


class ReadinessEngine:
    """Stateless evaluator configured by ``Settings``."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        metrics: Optional[MetricsBackend] = None,
    ):
        self.settings = settings or get_settings()
        self.metrics = metrics or get_metrics_backend()
        self.takeaway_bands = takeaway_bands(self.settings)
        self.status_bands = status_bands(self.settings)

    def process(self, points: Sequence[DailyPoint], mode: ViewMode) -> list[DailyPoint]:
        """Daily points as-is, or their trailing rolling averages."""
        if mode == "rolling":
            return rolling_average(points, self.settings.rolling_window_days)
        return list(points)

    def evaluate(
        self,
        records: Sequence[DailyRecord],
        *,
        current_moment: datetime,
        mode: Optional[ViewMode] = None,
        days_to_show: Optional[int] = None,
    ) -> ReadinessReport:
        """Evaluate a chronologically ascending record sequence.

        Args:
            records: Daily records, strictly ascending by date.
            current_moment: The evaluation's "now".
            mode: ``"daily"`` or ``"rolling"``. Defaults to the view for
                ``current_moment``.
            days_to_show: Trailing number of processed points to analyse.
                Defaults to ``settings.default_days_to_show``.

        Raises:
            RecordOrderError: If the records are not strictly ascending.
            ValueError: If ``days_to_show`` is not positive.
        """
        mode = mode or default_view(current_moment).mode
        if days_to_show is None:
            days_to_show = self.settings.default_days_to_show
        if days_to_show < 1:
            raise ValueError(f"days_to_show must be positive, got {days_to_show}")

        token = evaluation_id_ctx.set(new_evaluation_id())
        start = time.perf_counter()
        try:
            report = self._evaluate(records, current_moment, mode, days_to_show)
        finally:
            evaluation_id_ctx.reset(token)

        duration_ms = (time.perf_counter() - start) * 1000
        self.metrics.observe_evaluation(mode, duration_ms, len(report.series))
        for insight in report.insights:
            self.metrics.observe_insight(insight.kind.value, insight.rule)

        logger.info(
            f"Evaluated {len(records)} records in {mode} mode: "
            f"readiness={report.readiness}, insights={len(report.insights)}, "
            f"confidence={report.confidence.level.value} ({duration_ms:.1f}ms)"
        )
        return report

    def _evaluate(
        self,
        records: Sequence[DailyRecord],
        current_moment: datetime,
        mode: ViewMode,
        days_to_show: int,
    ) -> ReadinessReport:
        points = normalize_series(records)
        processed = self.process(points, mode)
        series = processed[-days_to_show:]

        confidence = estimate_confidence(
            records, series, mode, current_moment, self.settings.rolling_window_days
        )

        if not series:
            return ReadinessReport(
                mode=mode,
                series=[],
                readiness=None,
                change=0,
                status=STATUS_UNAVAILABLE,
                score=ReadinessScore(value=None),
                limiting_factor=None,
                confidence=confidence,
                insights=[_confidence_insight(confidence)],
            )

        current = series[-1]
        previous = series[-2] if len(series) > 1 else None
        week_ago = series[-8] if len(series) > 7 else None

        readiness = round_half_up(current.readiness) if current.readiness is not None else None
        change = 0
        if readiness is not None and previous is not None and previous.readiness is not None:
            change = readiness - round_half_up(previous.readiness)

        score = score_point(current)
        baselines = baseline(
            processed,
            exclude_recent=self.settings.baseline_exclude_recent_days,
            window_size=self.settings.baseline_window_days,
            min_points=self.settings.baseline_min_points,
        )
        deltas = BaselineDeltas()
        if baselines is not None:
            deltas = BaselineDeltas(
                sleep=_delta(current.sleep, baselines.sleep),
                hrv=_delta(current.hrv, baselines.hrv),
                resting_hr=_delta(current.resting_hr, baselines.resting_hr),
            )

        period_average = mean_of_present(p.readiness for p in series)
        highest, lowest = _extremes(series)

        insights = [
            Insight(
                kind=InsightKind.TAKEAWAY,
                text=daily_takeaway(current, mode, self.takeaway_bands),
                metric_ref="readiness",
                rule=self.takeaway_bands.classify(readiness) if readiness is not None else None,
            )
        ]
        trigger = evaluate_trigger(
            series,
            mode,
            self.takeaway_bands,
            shift_threshold=self.settings.readiness_shift_threshold,
        )
        if trigger is not None:
            insights.append(trigger)
        causal = evaluate_causal(series)
        if causal is not None:
            insights.append(causal)
        insights.append(_confidence_insight(confidence))

        return ReadinessReport(
            mode=mode,
            series=list(series),
            readiness=readiness,
            change=change,
            status=status_text(readiness, self.status_bands),
            score=score,
            limiting_factor=limiting_factor(score.contributions),
            confidence=confidence,
            baselines=baselines,
            baseline_deltas=deltas,
            period_average=period_average,
            highest=highest,
            lowest=lowest,
            trend_caption=trend_caption(current, week_ago, period_average),
            insights=insights,
            week_over_week=week_over_week(points),
            weekly_summary=weekly_summary(points, self.status_bands, self.takeaway_bands),
        )
