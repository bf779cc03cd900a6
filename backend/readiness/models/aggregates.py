"""Window aggregate result types."""

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class WindowAverages:
    """Mean of each metric over the present values of one window."""

    size: int
    start_date: date
    end_date: date
    readiness: Optional[float] = None
    sleep: Optional[float] = None
    hrv: Optional[float] = None
    resting_hr: Optional[float] = None
    feeling: Optional[float] = None
    steps: Optional[float] = None
    weight: Optional[float] = None
    active_minutes: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "size": self.size,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "readiness": self.readiness,
            "sleep": self.sleep,
            "hrv": self.hrv,
            "resting_hr": self.resting_hr,
            "feeling": self.feeling,
            "steps": self.steps,
            "weight": self.weight,
            "active_minutes": self.active_minutes,
        }


@dataclass(frozen=True)
class WeekOverWeek:
    """The trailing 14 points split into the last 7 and the 7 before them."""

    last: WindowAverages
    prior: WindowAverages

    def to_dict(self) -> dict:
        return {"last": self.last.to_dict(), "prior": self.prior.to_dict()}


@dataclass(frozen=True)
class Baseline:
    """Longer-horizon reference means, excluding the most recent days."""

    averages: WindowAverages
    excluded_recent: int

    @property
    def sleep(self) -> Optional[float]:
        return self.averages.sleep

    @property
    def hrv(self) -> Optional[float]:
        return self.averages.hrv

    @property
    def resting_hr(self) -> Optional[float]:
        return self.averages.resting_hr

    def to_dict(self) -> dict:
        return {
            "excluded_recent": self.excluded_recent,
            **self.averages.to_dict(),
        }


@dataclass(frozen=True)
class WeeklyBucket:
    """Averages for one consecutive 7-point chunk of the series."""

    label: str
    averages: WindowAverages

    def to_dict(self) -> dict:
        return {"week": self.label, **self.averages.to_dict()}


@dataclass(frozen=True)
class BaselineDeltas:
    """Current value minus baseline, per recovery metric."""

    sleep: Optional[float] = None
    hrv: Optional[float] = None
    resting_hr: Optional[float] = None

    def to_dict(self) -> dict:
        return {"sleep": self.sleep, "hrv": self.hrv, "resting_hr": self.resting_hr}
