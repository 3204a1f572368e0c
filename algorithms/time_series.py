from __future__ import annotations
import datetime
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from .math_tools import MathTools


def as_utc(ts: datetime.datetime) -> datetime.datetime:
    """Return ``ts`` as timezone-aware datetime, treating naive values as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=datetime.timezone.utc)
    return ts


@dataclass
class TrainingTimeline:
    """Weekly volume and training-day counts for one snapshot."""

    weekly_volume: Dict[datetime.date, float] = field(default_factory=dict)
    day_train_counts: Dict[datetime.date, int] = field(default_factory=dict)

    def weeks_sorted(self) -> List[tuple[datetime.date, float]]:
        return sorted(self.weekly_volume.items())

    def latest_week(self) -> tuple[datetime.date, float] | None:
        weeks = self.weeks_sorted()
        return weeks[-1] if weeks else None

    def days_sorted(self) -> List[datetime.date]:
        return sorted(self.day_train_counts)


class TimeSeriesAggregator:
    """Bucket timestamps into calendar days and ISO weeks."""

    def __init__(
        self,
        now: datetime.datetime,
        tz: datetime.tzinfo = datetime.timezone.utc,
    ) -> None:
        self.now = as_utc(now)
        self.tz = tz

    def effective_time(self, ts: datetime.datetime | None) -> datetime.datetime:
        """Return ``ts`` or "now" when a set carries no completion time."""
        return self.now if ts is None else as_utc(ts)

    def day_of(self, ts: datetime.datetime | None) -> datetime.date:
        return self.effective_time(ts).astimezone(self.tz).date()

    def week_of(self, ts: datetime.datetime | None) -> datetime.date:
        return MathTools.week_start(self.day_of(ts))

    def timeline(self, sets: Iterable) -> TrainingTimeline:
        """Accumulate ``weight * reps`` per week and set counts per day."""
        result = TrainingTimeline()
        for s in sets:
            week = self.week_of(s.completed_at)
            volume = MathTools.volume([(s.reps, s.weight)])
            result.weekly_volume[week] = result.weekly_volume.get(week, 0.0) + volume
            day = self.day_of(s.completed_at)
            result.day_train_counts[day] = result.day_train_counts.get(day, 0) + 1
        return result

    def adherence_by_week(self, samples: Iterable) -> Dict[datetime.date, list[float]]:
        """Group adherence values by the Monday of their ISO week."""
        by_week: Dict[datetime.date, list[float]] = {}
        for sample in samples:
            by_week.setdefault(self.week_of(sample.created_at), []).append(
                float(sample.value)
            )
        return by_week
