from __future__ import annotations
import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


@dataclass(frozen=True)
class SetRecord:
    """A completed set joined with its exercise and parent workout."""

    weight: float
    reps: int
    exercise_id: int
    exercise_name: str
    workout_id: int
    rpe: Optional[float] = None
    rir: Optional[int] = None
    completed_at: Optional[datetime.datetime] = None


@dataclass(frozen=True)
class TargetRecord:
    """Planned target reps for one exercise inside one workout."""

    workout_id: int
    exercise_id: int
    target_reps: int = 0


@dataclass(frozen=True)
class AdherenceSample:
    value: float
    created_at: datetime.datetime


@dataclass(frozen=True)
class InsightSnapshot:
    """Read-only input for one engine invocation."""

    sets: tuple[SetRecord, ...] = field(default_factory=tuple)
    targets: tuple[TargetRecord, ...] = field(default_factory=tuple)
    adherence: tuple[AdherenceSample, ...] = field(default_factory=tuple)

    def is_empty(self) -> bool:
        return not (self.sets or self.targets or self.adherence)


class InsightType(str, Enum):
    PROGRESS = "progress"
    LOAD = "load"
    RECOVERY = "recovery"
    ADHERENCE = "adherence"
    VOLUME = "volume"


class InsightSeverity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    DANGER = "danger"


class _Meta(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class VolumeJumpMeta(_Meta):
    prev_volume: float
    last_volume: float


class StreakMeta(_Meta):
    max_streak: int


class AdherenceMeta(_Meta):
    adherence_avg: float


class PersonalRecordMeta(_Meta):
    one_rep_max: float


class VolumeSummaryMeta(_Meta):
    weekly_volume: int


InsightMeta = Union[
    VolumeJumpMeta,
    StreakMeta,
    AdherenceMeta,
    PersonalRecordMeta,
    VolumeSummaryMeta,
]


class Insight(BaseModel):
    """A single coaching message produced by the engine."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: InsightType
    title: str
    description: str
    date: datetime.datetime
    severity: InsightSeverity
    icon: str
    meta: Optional[InsightMeta] = None

    def to_dict(self) -> dict:
        """Return a JSON friendly dict with camelCase meta keys."""
        return self.model_dump(mode="json", by_alias=True)
