"""Pytest configuration and fixtures for readiness engine tests."""

from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional

import pytest

from readiness.core.config import Settings, get_settings
from readiness.models.daily import DailyPoint, DailyRecord
from readiness.observability import MetricsCollector
from readiness.services.engine import ReadinessEngine

# Monday
START = date(2024, 1, 1)


def _expand(value: Any, count: int) -> list:
    """Broadcast a scalar to ``count`` items; lists pass through."""
    if isinstance(value, (list, tuple)):
        assert len(value) == count, f"expected {count} values, got {len(value)}"
        return list(value)
    return [value] * count


# -------------------------------------------------------------------------
# Settings / Metrics Fixtures
# -------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    """Default settings, ignoring any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def metrics() -> MetricsCollector:
    """Fresh in-memory metrics collector."""
    return MetricsCollector()


@pytest.fixture
def engine(settings: Settings, metrics: MetricsCollector) -> ReadinessEngine:
    """Engine wired to default settings and a private collector."""
    return ReadinessEngine(settings=settings, metrics=metrics)


@pytest.fixture
def clear_settings_cache():
    """Reset the cached settings before and after a test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# -------------------------------------------------------------------------
# Time Fixtures
# -------------------------------------------------------------------------


@pytest.fixture
def now() -> Callable[[date], datetime]:
    """Build a morning ``current_moment`` on a given day."""

    def _now(day: date) -> datetime:
        return datetime(day.year, day.month, day.day, 8, 0)

    return _now


# -------------------------------------------------------------------------
# Apple Health Fixtures
# -------------------------------------------------------------------------

APPLE_EXPORT_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<HealthData locale="en_US">
 <ExportDate value="2024-01-18 09:00:00 +0000"/>
 <Record type="HKQuantityTypeIdentifierStepCount" value="1000"
   startDate="2024-01-15 08:00:00 +0000" endDate="2024-01-15 08:30:00 +0000"/>
 <Record type="HKQuantityTypeIdentifierStepCount" value="2500.4"
   startDate="2024-01-15 12:00:00 +0000" endDate="2024-01-15 13:00:00 +0000"/>
 <Record type="HKQuantityTypeIdentifierHeartRateVariabilitySDNN" value="50"
   startDate="2024-01-15 06:00:00 +0000" endDate="2024-01-15 06:01:00 +0000"/>
 <Record type="HKQuantityTypeIdentifierHeartRateVariabilitySDNN" value="61"
   startDate="2024-01-15 22:00:00 +0000" endDate="2024-01-15 22:01:00 +0000"/>
 <Record type="HKQuantityTypeIdentifierRestingHeartRate" value="58"
   startDate="2024-01-15 07:00:00 +0000" endDate="2024-01-15 07:00:00 +0000"/>
 <Record type="HKQuantityTypeIdentifierBodyMass" value="80.2"
   startDate="2024-01-15 07:05:00 +0000" endDate="2024-01-15 07:05:00 +0000"/>
 <Record type="HKQuantityTypeIdentifierBodyMass" value="80.4"
   startDate="2024-01-15 19:05:00 +0000" endDate="2024-01-15 19:05:00 +0000"/>
 <Record type="HKQuantityTypeIdentifierAppleExerciseTime" value="30"
   startDate="2024-01-15 17:00:00 +0000" endDate="2024-01-15 17:30:00 +0000"/>
 <Record type="HKCategoryTypeIdentifierSleepAnalysis" value="HKCategoryValueSleepAnalysisInBed"
   startDate="2024-01-15 00:00:00 +0000" endDate="2024-01-15 06:30:00 +0000"/>
 <Record type="HKCategoryTypeIdentifierSleepAnalysis" value="HKCategoryValueSleepAnalysisAsleepCore"
   startDate="2024-01-15 00:30:00 +0000" endDate="2024-01-15 04:30:00 +0000"/>
 <Record type="HKCategoryTypeIdentifierSleepAnalysis" value="HKCategoryValueSleepAnalysisAsleepREM"
   startDate="2024-01-15 04:30:00 +0000" endDate="2024-01-15 06:00:00 +0000"/>
 <Record type="HKQuantityTypeIdentifierHeight" value="1.8"
   startDate="2024-01-16 08:00:00 +0000" endDate="2024-01-16 08:00:00 +0000"/>
 <Record type="HKQuantityTypeIdentifierStepCount" value="200"
   startDate="2024-01-16 23:30:00 -0800" endDate="2024-01-16 23:45:00 -0800"/>
</HealthData>
"""


@pytest.fixture
def apple_export_bytes() -> bytes:
    """A small export.xml: one full day, one unknown-only day, one late sample."""
    return APPLE_EXPORT_XML


@pytest.fixture
def apple_export(tmp_path, apple_export_bytes):
    """The sample export written to disk."""
    path = tmp_path / "export.xml"
    path.write_bytes(apple_export_bytes)
    return path


# -------------------------------------------------------------------------
# Data Factories
# -------------------------------------------------------------------------


@pytest.fixture
def make_records() -> Callable[..., list[DailyRecord]]:
    """Build consecutive daily records.

    Each metric may be a scalar (repeated for every day) or a list with
    one value per day.
    """

    def _make(
        count: int,
        start: date = START,
        sleep: Any = 7.5,
        hrv: Any = 55,
        resting_hr: Any = 58,
        recovery: Any = None,
        **extra: Any,
    ) -> list[DailyRecord]:
        columns = {
            "sleep_hours": _expand(sleep, count),
            "hrv_ms": _expand(hrv, count),
            "resting_hr_bpm": _expand(resting_hr, count),
            "recovery": _expand(recovery, count),
        }
        for name, value in extra.items():
            columns[name] = _expand(value, count)

        return [
            DailyRecord(
                date=start + timedelta(days=i),
                **{name: values[i] for name, values in columns.items()},
            )
            for i in range(count)
        ]

    return _make


@pytest.fixture
def make_points() -> Callable[..., list[DailyPoint]]:
    """Build consecutive normalized points with the same broadcasting rules."""

    def _make(
        count: int,
        readiness: Any = 60,
        sleep: Any = 7.5,
        hrv: Any = 55,
        resting_hr: Any = 58,
        start: date = START,
    ) -> list[DailyPoint]:
        readiness = _expand(readiness, count)
        sleep = _expand(sleep, count)
        hrv = _expand(hrv, count)
        resting_hr = _expand(resting_hr, count)
        return [
            DailyPoint(
                date=start + timedelta(days=i),
                readiness=readiness[i],
                sleep=sleep[i],
                hrv=hrv[i],
                resting_hr=resting_hr[i],
            )
            for i in range(count)
        ]

    return _make


@pytest.fixture
def point() -> Callable[..., DailyPoint]:
    """Build a single point; defaults give a steady, RHR-limited day."""

    def _point(
        readiness: Optional[float] = 60,
        sleep: Optional[float] = 7.5,
        hrv: Optional[float] = 55,
        resting_hr: Optional[float] = 58,
        day: int = 0,
    ) -> DailyPoint:
        return DailyPoint(
            date=START + timedelta(days=day),
            readiness=readiness,
            sleep=sleep,
            hrv=hrv,
            resting_hr=resting_hr,
        )

    return _point
