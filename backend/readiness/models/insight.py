"""Score, insight and confidence result types."""

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional

LimitingFactor = Literal["Sleep", "HRV", "RHR"]
Band = Literal["high", "moderate", "low"]


class InsightKind(str, Enum):
    """Category of a generated insight. At most one is shown per kind."""

    TAKEAWAY = "takeaway"
    TRIGGER = "trigger"
    CAUSAL = "causal"
    CONFIDENCE = "confidence"


class ConfidenceLevel(str, Enum):
    """Trust label on the day's data quality."""

    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"


@dataclass(frozen=True)
class Contributions:
    """Per-factor readiness contributions.

    These are explanatory heuristics scaled independently of the readiness
    formula; they do not sum to ``readiness - base``.
    """

    sleep: float
    hrv: float
    rhr: float

    def as_pairs(self) -> list[tuple[LimitingFactor, float]]:
        """Factors in tie-break order."""
        return [("Sleep", self.sleep), ("HRV", self.hrv), ("RHR", self.rhr)]

    def to_dict(self) -> dict:
        return {
            "sleep": round(self.sleep, 1),
            "hrv": round(self.hrv, 1),
            "rhr": round(self.rhr, 1),
        }


@dataclass(frozen=True)
class ReadinessScore:
    """Canonical 0-100 readiness plus its contribution breakdown."""

    value: Optional[int]
    contributions: Optional[Contributions] = None

    @property
    def available(self) -> bool:
        return self.value is not None

    def to_dict(self) -> dict:
        return {
            "value": self.value,
            "contributions": self.contributions.to_dict() if self.contributions else None,
        }


@dataclass(frozen=True)
class Insight:
    """A single gated text insight."""

    kind: InsightKind
    text: str
    metric_ref: Optional[str] = None
    rule: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "text": self.text,
            "metric_ref": self.metric_ref,
            "rule": self.rule,
        }


@dataclass(frozen=True)
class ConfidenceResult:
    """Data-confidence label with at most one (primary) reason."""

    level: ConfidenceLevel
    reason: Optional[str] = None
    score: int = 0

    def to_dict(self) -> dict:
        return {
            "level": self.level.value,
            "reason": self.reason,
            "score": self.score,
        }
