"""Synthetic health data for demos and manual testing.

Generates a correlated daily series: weekday rhythms, gradual training
adaptation, occasional stress nights and a sick week. Output is
deterministic for a given seed and ``current_moment``.
"""

import logging
import math
import random
from datetime import datetime, timedelta
from typing import Optional, Sequence

from readiness.models.aggregates import WeeklyBucket
from readiness.models.daily import DailyRecord
from readiness.services.aggregator import weekly_buckets
from readiness.services.normalizer import clamp, normalize_series, readiness_formula, round_half_up

logger = logging.getLogger(__name__)

BASE_WEIGHT = 178.0
BASE_HRV = 48.0
BASE_RESTING_HR = 62.0
BASE_SLEEP = 7.0
BASE_FEELING = 3.0

STRESS_PROBABILITY = 0.12
SICK_DAYS = range(25, 31)
SICKNESS_EFFECT = -15


def _round1(value: float) -> float:
    return round_half_up(value * 10) / 10


def generate_demo_health_data(
    days: int = 90,
    *,
    current_moment: datetime,
    seed: Optional[int] = None,
) -> list[DailyRecord]:
    """Generate ``days`` records ending the day before ``current_moment``.

    Args:
        days: Number of days to generate.
        current_moment: Reference "now"; the series ends on the previous day.
        seed: Random seed. None draws a fresh series each call.

    Returns:
        Chronologically ascending daily records.
    """
    if days < 0:
        raise ValueError(f"days must not be negative, got {days}")

    rng = random.Random(seed)
    start = current_moment.date() - timedelta(days=days)
    records = []

    for i in range(days):
        day = start + timedelta(days=i)
        weekday = day.weekday()
        is_weekend = weekday >= 5
        is_monday = weekday == 0
        is_friday = weekday == 4

        progress = i / days
        week_cycle = math.sin((i % 7) * math.pi / 7)

        stress_effect = 0.0
        if rng.random() < STRESS_PROBABILITY:
            stress_effect = -1.5
        sickness = SICKNESS_EFFECT if i in SICK_DAYS else 0

        sleep = clamp(
            BASE_SLEEP
            + (0.5 if is_weekend else 0)
            + (-0.8 if is_monday else 0)
            + stress_effect
            + (rng.random() - 0.5) * 1.5
            + progress * 0.5,
            5.5,
            9.5,
        )

        hrv = clamp(
            BASE_HRV + 12 * progress + sickness + (sleep - 7) * 3 + (rng.random() - 0.5) * 8,
            30,
            75,
        )

        resting_hr = clamp(
            BASE_RESTING_HR
            - 5 * progress
            + (8 if sickness else 0)
            - (sleep - 7) * 1.5
            + (3 if is_monday else 0)
            + (rng.random() - 0.5) * 4,
            48,
            72,
        )

        recovery = clamp(
            readiness_formula(sleep, hrv, resting_hr)
            + sickness
            + (rng.random() - 0.5) * 10
            + progress * 15,
            20,
            95,
        )

        feeling = clamp(
            BASE_FEELING
            + (recovery - 65) / 20
            + (sleep - 7) * 0.3
            + (-1.5 if sickness else 0)
            + (0.3 if is_weekend else 0)
            + (0.5 if is_friday else 0)
            + (-0.4 if is_monday else 0)
            + (rng.random() - 0.5) * 0.8
            + progress * 0.8,
            1,
            5,
        )

        active_minutes = clamp(
            (25 if is_weekend else 45)
            + (20 if recovery > 70 else 0)
            + week_cycle * 20
            + (-30 if sickness else 0)
            + (rng.random() - 0.3) * 25,
            0,
            120,
        )

        strain = clamp(
            6 + active_minutes / 15 + (100 - recovery) / 15 + (rng.random() - 0.5) * 2,
            0,
            21,
        )

        steps = math.floor(
            clamp(
                (7500 if is_weekend else 9500)
                + active_minutes * 50
                + (rng.random() - 0.4) * 3000
                + progress * 2000,
                3000,
                18000,
            )
        )

        weight = _round1(
            BASE_WEIGHT
            - 3 * progress
            + (rng.random() - 0.5) * 1.5
            + (0.5 if sleep < 6.5 else 0)
        )

        active_energy = math.floor(active_minutes * 6 + steps * 0.03 + (rng.random() - 0.5) * 100)

        note = None
        if sickness:
            note = "Feeling under the weather"
        elif recovery > 85:
            note = "Feeling great!"
        elif recovery < 40:
            note = "Need more rest"

        records.append(
            DailyRecord(
                date=day,
                recovery=round_half_up(recovery),
                feeling=_round1(feeling),
                sleep_hours=_round1(sleep),
                hrv_ms=round_half_up(hrv),
                resting_hr_bpm=round_half_up(resting_hr),
                active_minutes=round_half_up(active_minutes),
                steps=steps,
                weight=weight,
                strain=_round1(strain),
                active_energy=active_energy,
                note=note,
            )
        )

    logger.info(f"Generated {len(records)} demo days (seed={seed})")
    return records


def generate_weekly_data(records: Sequence[DailyRecord]) -> list[WeeklyBucket]:
    """Bucket daily records into consecutive weeks from the first day."""
    return weekly_buckets(normalize_series(records))
