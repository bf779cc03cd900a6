"""Readiness scoring, contribution breakdown and band classification.

Two band systems exist side by side and are configured independently:

* takeaway bands (75 / 55) drive the daily takeaway and the trigger engine,
* status bands (67 / 34) drive the coarse status banner and chart lines.
"""

from dataclasses import dataclass
from typing import Optional

from readiness.core.config import Settings
from readiness.models.daily import DailyPoint
from readiness.models.insight import Band, Contributions, LimitingFactor, ReadinessScore
from readiness.services.normalizer import clamp, clean_metric, readiness_formula, round_half_up

# Display weights of each factor in the readiness formula.
FACTOR_WEIGHTS = {
    "hrv": 0.40,
    "sleep": 0.35,
    "resting_hr": 0.25,
}


@dataclass(frozen=True)
class BandSystem:
    """Three-way classification by two inclusive lower bounds."""

    high: float
    moderate: float

    def classify(self, readiness: float) -> Band:
        if readiness >= self.high:
            return "high"
        if readiness >= self.moderate:
            return "moderate"
        return "low"


TAKEAWAY_BANDS = BandSystem(high=75, moderate=55)
STATUS_BANDS = BandSystem(high=67, moderate=34)

STATUS_TEXT: dict[Band, str] = {
    "high": "Ready for high-intensity training",
    "moderate": "Moderate training recommended",
    "low": "Focus on recovery",
}
STATUS_UNAVAILABLE = "Readiness unavailable"


def takeaway_bands(settings: Settings) -> BandSystem:
    return BandSystem(
        high=settings.takeaway_high_threshold,
        moderate=settings.takeaway_moderate_threshold,
    )


def status_bands(settings: Settings) -> BandSystem:
    return BandSystem(
        high=settings.status_high_threshold,
        moderate=settings.status_moderate_threshold,
    )


def compute_contributions(
    sleep: Optional[float],
    hrv: Optional[float],
    resting_hr: Optional[float],
) -> Optional[Contributions]:
    """Explanatory per-factor contributions, or None if any input is missing."""
    sleep, hrv, resting_hr = clean_metric(sleep), clean_metric(hrv), clean_metric(resting_hr)
    if sleep is None or hrv is None or resting_hr is None:
        return None

    return Contributions(
        sleep=(sleep - 7) * 8,
        hrv=(hrv - 50) * 0.8,
        rhr=(60 - resting_hr) * 0.5,
    )


def limiting_factor(contributions: Optional[Contributions]) -> Optional[LimitingFactor]:
    """The factor with the lowest contribution; ties go to Sleep, then HRV."""
    if contributions is None:
        return None
    name, _ = min(contributions.as_pairs(), key=lambda pair: pair[1])
    return name


def point_limiting_factor(point: DailyPoint) -> Optional[LimitingFactor]:
    return limiting_factor(compute_contributions(point.sleep, point.hrv, point.resting_hr))


def canonical_score(
    sleep: Optional[float],
    hrv: Optional[float],
    resting_hr: Optional[float],
) -> Optional[int]:
    """Readiness formula clamped to 0-100, or None if any input is missing."""
    sleep, hrv, resting_hr = clean_metric(sleep), clean_metric(hrv), clean_metric(resting_hr)
    if sleep is None or hrv is None or resting_hr is None:
        return None
    return round_half_up(clamp(readiness_formula(sleep, hrv, resting_hr), 0, 100))


def score_point(point: DailyPoint) -> ReadinessScore:
    """Score a day or rolling point.

    The point's own readiness (recorded or derived upstream) wins; the
    formula is used only when the point has none.
    """
    contributions = compute_contributions(point.sleep, point.hrv, point.resting_hr)

    if point.readiness is not None:
        value = round_half_up(clamp(point.readiness, 0, 100))
    else:
        value = canonical_score(point.sleep, point.hrv, point.resting_hr)

    return ReadinessScore(value=value, contributions=contributions)


def status_text(readiness: Optional[float], bands: BandSystem = STATUS_BANDS) -> str:
    """Status banner line for a readiness value."""
    if readiness is None:
        return STATUS_UNAVAILABLE
    return STATUS_TEXT[bands.classify(readiness)]
