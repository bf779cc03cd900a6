"""Apple Health export adapter.

Converts the ``export.xml`` produced by the iOS Health app (or the
``export.zip`` that wraps it) into one ``DailyRecord`` per calendar day.
Records are streamed with ``iterparse`` so multi-gigabyte exports never
sit in memory as a tree.
"""

import json
import logging
import time
import zipfile
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import IO, Iterable, Optional, Sequence, Union
from xml.etree import ElementTree as ET

from readiness.core.exceptions import ImportFormatError
from readiness.models.daily import DailyExport, DailyRecord
from readiness.observability import MetricsBackend, get_metrics_backend
from readiness.services.normalizer import round_half_up

logger = logging.getLogger(__name__)

ZIP_MEMBER = "apple_health_export/export.xml"
APPLE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"

STEPS = "HKQuantityTypeIdentifierStepCount"
HRV = "HKQuantityTypeIdentifierHeartRateVariabilitySDNN"
RESTING_HR = "HKQuantityTypeIdentifierRestingHeartRate"
EXERCISE_TIME = "HKQuantityTypeIdentifierAppleExerciseTime"
ACTIVE_ENERGY = "HKQuantityTypeIdentifierActiveEnergyBurned"
BODY_MASS = "HKQuantityTypeIdentifierBodyMass"
SLEEP = "HKCategoryTypeIdentifierSleepAnalysis"

# Covers the legacy "Asleep" value and the staged values added in iOS 16
# (AsleepCore, AsleepDeep, AsleepREM, AsleepUnspecified).
ASLEEP_PREFIX = "HKCategoryValueSleepAnalysisAsleep"

SUMMED = {STEPS: "steps", EXERCISE_TIME: "active_minutes", ACTIVE_ENERGY: "active_energy"}
AVERAGED = {HRV: "hrv", RESTING_HR: "resting_hr", BODY_MASS: "weight"}

Source = Union[str, Path, IO[bytes]]


def parse_apple_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an Apple Health timestamp (``2024-01-15 07:30:00 -0800``) to UTC."""
    if not value:
        return None
    try:
        parsed = datetime.strptime(value, APPLE_DATE_FORMAT)
    except ValueError:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _to_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


@dataclass
class DayAccumulator:
    """Raw samples collected for one UTC day."""

    day: date
    sums: dict[str, float] = field(default_factory=lambda: defaultdict(float))
    samples: dict[str, list[float]] = field(default_factory=lambda: defaultdict(list))
    sleep_hours: Optional[float] = None

    def add(self, record_type: str, attrs: dict[str, str]) -> bool:
        """Fold one ``Record`` element in. Returns False if it was ignored."""
        if record_type == SLEEP:
            return self._add_sleep(attrs)

        value = _to_float(attrs.get("value"))
        if value is None:
            return False
        if record_type in SUMMED:
            self.sums[SUMMED[record_type]] += value
            return True
        if record_type in AVERAGED:
            self.samples[AVERAGED[record_type]].append(value)
            return True
        return False

    def _add_sleep(self, attrs: dict[str, str]) -> bool:
        if not attrs.get("value", "").startswith(ASLEEP_PREFIX):
            return False
        start = parse_apple_date(attrs.get("startDate"))
        end = parse_apple_date(attrs.get("endDate"))
        if start is None or end is None:
            return False
        hours = (end - start).total_seconds() / 3600
        if hours <= 0:
            return False
        self.sleep_hours = (self.sleep_hours or 0.0) + hours
        return True

    def _mean(self, metric: str) -> Optional[float]:
        values = self.samples.get(metric)
        if not values:
            return None
        return sum(values) / len(values)

    def _sum(self, metric: str) -> Optional[int]:
        if metric not in self.sums:
            return None
        return round_half_up(self.sums[metric])

    def to_record(self) -> DailyRecord:
        hrv = self._mean("hrv")
        resting_hr = self._mean("resting_hr")
        weight = self._mean("weight")
        return DailyRecord(
            date=self.day,
            steps=self._sum("steps"),
            sleep_hours=(
                round_half_up(self.sleep_hours * 10) / 10 if self.sleep_hours is not None else None
            ),
            hrv_ms=round_half_up(hrv) if hrv is not None else None,
            resting_hr_bpm=round_half_up(resting_hr) if resting_hr is not None else None,
            active_minutes=self._sum("active_minutes"),
            active_energy=self._sum("active_energy"),
            weight=round_half_up(weight * 10) / 10 if weight is not None else None,
        )


def iter_record_attributes(stream: IO[bytes]) -> Iterable[dict[str, str]]:
    """Yield the attributes of every ``Record`` element, freeing each as it goes.

    Finished top-level children are also dropped from the root so the
    document never accumulates as a tree.
    """
    root = None
    depth = 0
    try:
        for event, elem in ET.iterparse(stream, events=("start", "end")):
            if event == "start":
                if root is None:
                    root = elem
                depth += 1
                continue

            depth -= 1
            if elem.tag == "Record":
                yield dict(elem.attrib)
            elem.clear()
            if depth == 1:
                root.clear()
    except ET.ParseError as e:
        raise ImportFormatError(f"Malformed Apple Health XML: {e}") from e



def aggregate_daily(attribute_stream: Iterable[dict[str, str]]) -> list[DailyRecord]:
    """Bucket ``Record`` attributes by UTC start day into sorted daily records."""
    days: dict[date, DayAccumulator] = {}

    for attrs in attribute_stream:
        record_type = attrs.get("type")
        start = parse_apple_date(attrs.get("startDate"))
        if not record_type or start is None:
            continue

        day = start.date()
        accumulator = days.get(day) or DayAccumulator(day=day)
        if accumulator.add(record_type, attrs):
            days[day] = accumulator

    return [days[d].to_record() for d in sorted(days)]


class AppleHealthImporter:
    """Reads Apple Health exports and reports import metrics."""

    source_name = "apple_health"

    def __init__(self, metrics: Optional[MetricsBackend] = None) -> None:
        self._metrics = metrics or get_metrics_backend()

    def parse(self, source: Source) -> list[DailyRecord]:
        """Parse an ``export.xml`` or export ``.zip`` into daily records.

        Args:
            source: Path to the file, or a binary file object with XML content.

        Raises:
            ImportFormatError: If the file is not a readable Apple Health export.
        """
        start_time = time.perf_counter()
        try:
            records = self._parse(source)
        except ImportFormatError:
            self._observe(False, 0, start_time)
            raise

        self._observe(True, len(records), start_time)
        logger.info(f"Imported {len(records)} days from Apple Health export")
        return records

    def _parse(self, source: Source) -> list[DailyRecord]:
        if not isinstance(source, (str, Path)):
            return aggregate_daily(iter_record_attributes(source))

        path = Path(source)
        if not path.exists():
            raise ImportFormatError(f"Export file not found: {path}")

        if zipfile.is_zipfile(path):
            try:
                with zipfile.ZipFile(path) as archive, archive.open(ZIP_MEMBER) as stream:
                    return aggregate_daily(iter_record_attributes(stream))
            except KeyError as e:
                raise ImportFormatError(f"{path} has no {ZIP_MEMBER}") from e

        with path.open("rb") as stream:
            return aggregate_daily(iter_record_attributes(stream))

    def _observe(self, success: bool, days: int, start_time: float) -> None:
        duration_ms = (time.perf_counter() - start_time) * 1000
        self._metrics.observe_import(self.source_name, success, days, duration_ms)


def parse_export(source: Source, metrics: Optional[MetricsBackend] = None) -> list[DailyRecord]:
    """Parse an Apple Health export into chronologically sorted daily records."""
    return AppleHealthImporter(metrics).parse(source)


def write_export(records: Sequence[DailyRecord], path: Union[str, Path]) -> Path:
    """Write records as ``{"daily": [...]}`` using the importer field names."""
    path = Path(path)
    payload = {"daily": [r.to_export_dict() for r in DailyExport(daily=list(records)).daily]}
    path.write_text(json.dumps(payload, indent=2))
    logger.info(f"Wrote {len(records)} days to {path}")
    return path
