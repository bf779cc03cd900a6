"""Daily takeaway and trend caption text.

The takeaway is always present: it states the recommended training action
for the current band and, below the top band, names the factor holding
readiness back. The trend caption compares the current point with the one
a week earlier.
"""

import logging
from typing import Literal, Optional

from readiness.models.daily import DailyPoint
from readiness.services.normalizer import round_half_up
from readiness.services.scorer import TAKEAWAY_BANDS, BandSystem, compute_contributions

logger = logging.getLogger(__name__)

ViewMode = Literal["daily", "rolling"]

UNAVAILABLE = "Readiness unavailable. Add sleep, HRV, and resting HR to generate recovery."

# Minimum gap between the lowest and second-lowest contribution before a
# single limiter is named.
LIMITER_MARGIN = 3

CAPTION_SHIFT = 8
CAPTION_SLEEP_SHIFT = 0.5

ACTIONS: dict[str, dict[ViewMode, str]] = {
    "high": {
        "daily": "High-intensity training is supported.",
        "rolling": "High-intensity training is supported by the trend.",
    },
    "moderate": {
        "daily": "Moderate training recommended. Cap peak intensity.",
        "rolling": "Moderate training recommended. Cap peak intensity for consistency.",
    },
    "low": {
        "daily": "Prioritize recovery or light movement.",
        "rolling": "Prioritize recovery or light movement until the trend improves.",
    },
}

LIMITER_SENTENCES: dict[str, dict[ViewMode, str]] = {
    "Sleep": {
        "daily": "Sleep duration was the constraint.",
        "rolling": "Sleep duration is the primary limiter.",
    },
    "HRV": {
        "daily": "HRV indicates incomplete recovery.",
        "rolling": "HRV indicates incomplete recovery.",
    },
    "RHR": {
        "daily": "Elevated resting HR suggests fatigue.",
        "rolling": "Elevated resting HR trend suggests accumulated fatigue.",
    },
}

MIXED_SIGNALS = "Mixed signals across metrics."

SUPPORTIVE: dict[ViewMode, str] = {
    "daily": "Sleep and HRV are supportive.",
    "rolling": "Sleep and HRV trends are supportive.",
}


def _rounded(value: Optional[float]) -> Optional[int]:
    return round_half_up(value) if value is not None else None


def limiter_sentence(current: DailyPoint, mode: ViewMode) -> Optional[str]:
    """Name the single limiting factor, or report mixed signals.

    HRV and resting HR are rounded before scoring, as they are displayed.
    Returns None when a contributing metric is missing.
    """
    contributions = compute_contributions(
        current.sleep, _rounded(current.hrv), _rounded(current.resting_hr)
    )
    if contributions is None:
        return None

    ranked = sorted(contributions.as_pairs(), key=lambda pair: pair[1])
    (limiter, lowest), (_, second) = ranked[0], ranked[1]

    if lowest < second - LIMITER_MARGIN:
        return LIMITER_SENTENCES[limiter][mode]
    return MIXED_SIGNALS


def daily_takeaway(
    current: DailyPoint,
    mode: ViewMode = "daily",
    bands: BandSystem = TAKEAWAY_BANDS,
) -> str:
    """Prescriptive one-line recommendation for the current point."""
    if current.readiness is None:
        return UNAVAILABLE

    readiness = round_half_up(current.readiness)
    band = bands.classify(readiness)
    text = ACTIONS[band][mode]

    if band == "high":
        return f"{text} {SUPPORTIVE[mode]}"

    sentence = limiter_sentence(current, mode)
    if sentence is None:
        return text
    return f"{text} {sentence}"


def trend_caption(
    current: DailyPoint,
    week_ago: Optional[DailyPoint],
    period_average: Optional[float],
) -> Optional[str]:
    """Week-over-week caption for the readiness chart.

    Returns None without a week-ago point or when either readiness is
    missing.
    """
    if week_ago is None or current.readiness is None or week_ago.readiness is None:
        return None

    week_change = round_half_up(current.readiness) - round_half_up(week_ago.readiness)
    sleep_change = None
    if current.sleep is not None and week_ago.sleep is not None:
        sleep_change = current.sleep - week_ago.sleep

    if week_change > CAPTION_SHIFT:
        if sleep_change is not None and sleep_change > CAPTION_SLEEP_SHIFT:
            return "Readiness improving. Sleep gains driving recovery."
        return "Readiness improving. HRV and RHR showing positive adaptation."

    if week_change < -CAPTION_SHIFT:
        if sleep_change is not None and sleep_change < -CAPTION_SLEEP_SHIFT:
            return "Sleep was the bottleneck this week. Keep training volume moderate."
        return "Readiness declining. Consider a recovery day or reduced intensity."

    if period_average is None:
        return "Readiness stable. Maintain current training load."
    return f"Readiness stable around {round_half_up(period_average)}%. Maintain current training load."
