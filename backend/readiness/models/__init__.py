"""Data models for the readiness engine."""

from readiness.models.daily import POINT_METRICS, DailyExport, DailyPoint, DailyRecord
from readiness.models.aggregates import (
    Baseline,
    BaselineDeltas,
    WeekOverWeek,
    WeeklyBucket,
    WindowAverages,
)
from readiness.models.insight import (
    Band,
    ConfidenceLevel,
    ConfidenceResult,
    Contributions,
    Insight,
    InsightKind,
    LimitingFactor,
    ReadinessScore,
)

__all__ = [
    # Daily
    "DailyRecord",
    "DailyExport",
    "DailyPoint",
    "POINT_METRICS",
    # Aggregates
    "WindowAverages",
    "WeekOverWeek",
    "Baseline",
    "BaselineDeltas",
    "WeeklyBucket",
    # Insights
    "Band",
    "LimitingFactor",
    "Contributions",
    "ReadinessScore",
    "Insight",
    "InsightKind",
    "ConfidenceLevel",
    "ConfidenceResult",
]
