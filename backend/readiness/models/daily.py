"""Daily metric records and normalized points.

``DailyRecord`` is the input contract: one calendar day of wearable and
check-in observations, validated with pydantic. It accepts the field names
used by the health-export importer (``sleep``, ``hrv``, ``restingHR``...)
as well as the long-form names (``sleepHours``, ``hrvMs``, ``restingHrBpm``)
and snake_case attribute names.

``DailyPoint`` is the engine's working shape: a normalized day, or a
rolling-window aggregate of several days.
"""

from dataclasses import asdict, dataclass
from datetime import date
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


def _metric(*aliases: str, serialize_as: str):
    return Field(
        default=None,
        validation_alias=AliasChoices(*aliases),
        serialization_alias=serialize_as,
    )


class DailyRecord(BaseModel):
    """One calendar day of observations for one user.

    Every metric is optional. ``None`` means "not measured" and is never
    treated as zero.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date: date
    sleep_hours: Optional[float] = _metric(
        "sleep_hours", "sleepHours", "sleep", serialize_as="sleep"
    )
    hrv_ms: Optional[float] = _metric("hrv_ms", "hrvMs", "hrv", serialize_as="hrv")
    resting_hr_bpm: Optional[float] = _metric(
        "resting_hr_bpm", "restingHrBpm", "restingHR", "resting_hr", serialize_as="restingHR"
    )
    feeling: Optional[float] = None
    steps: Optional[float] = None
    weight: Optional[float] = None
    active_minutes: Optional[float] = _metric(
        "active_minutes", "activeMinutes", serialize_as="activeMinutes"
    )
    active_energy: Optional[float] = _metric(
        "active_energy", "activeEnergy", serialize_as="activeEnergy"
    )
    strain: Optional[float] = None
    recovery: Optional[float] = None
    note: Optional[str] = None

    def to_export_dict(self) -> dict:
        """Serialize using the importer field names, omitting missing metrics."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class DailyExport(BaseModel):
    """File shape produced by the health-export converter: ``{"daily": [...]}``."""

    daily: list[DailyRecord] = []


@dataclass(frozen=True)
class DailyPoint:
    """A normalized day or a rolling-window aggregate.

    All metrics are ``None`` when absent or when no value in the window
    was present.
    """

    date: date
    readiness: Optional[float] = None
    sleep: Optional[float] = None
    hrv: Optional[float] = None
    resting_hr: Optional[float] = None
    feeling: Optional[float] = None
    steps: Optional[float] = None
    weight: Optional[float] = None
    active_minutes: Optional[float] = None

    def to_dict(self) -> dict:
        """Convert to dictionary with an ISO date."""
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data


# Metric attributes averaged by the aggregator, in output order.
POINT_METRICS = (
    "readiness",
    "sleep",
    "hrv",
    "resting_hr",
    "feeling",
    "steps",
    "weight",
    "active_minutes",
)
