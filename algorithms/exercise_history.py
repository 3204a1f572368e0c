from __future__ import annotations
import datetime
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .math_tools import MathTools
from .time_series import TimeSeriesAggregator


@dataclass(frozen=True)
class HistoryEntry:
    date: datetime.datetime
    weight: float
    reps: int
    workout_id: int
    rpe: Optional[float] = None
    rir: Optional[int] = None
    target_reps: int = 0

    @property
    def est_1rm(self) -> float:
        return MathTools.epley_1rm(self.weight, self.reps)


@dataclass
class SessionSummary:
    """Blended reps/effort figures for one exercise within one workout.

    The first entry seeds every average; each further entry is blended
    50/50 with the value accumulated so far, so later sets weigh more
    than a true mean would give them.
    """

    workout_id: int
    reps_avg: float
    rpe_avg: float
    rir_avg: float
    target_reps: int = 0

    @classmethod
    def seed(cls, entry: HistoryEntry) -> "SessionSummary":
        return cls(
            workout_id=entry.workout_id,
            reps_avg=float(entry.reps),
            rpe_avg=float(entry.rpe or 0),
            rir_avg=float(entry.rir or 0),
            target_reps=entry.target_reps,
        )

    def add(self, entry: HistoryEntry) -> None:
        self.reps_avg = MathTools.blend(self.reps_avg, entry.reps)
        self.rpe_avg = MathTools.blend(self.rpe_avg, entry.rpe or 0)
        self.rir_avg = MathTools.blend(self.rir_avg, entry.rir or 0)
        if not self.target_reps:
            self.target_reps = entry.target_reps

    def beats_target(self, margin: int = 1) -> bool:
        return self.target_reps > 0 and self.reps_avg >= self.target_reps + margin

    def high_effort(self, min_rpe: float = 8, max_rir: float = 2) -> bool:
        return self.rpe_avg >= min_rpe or self.rir_avg <= max_rir


@dataclass
class ExerciseHistory:
    """Chronological entries of a single exercise inside the lookback window."""

    exercise_id: int
    name: str
    entries: List[HistoryEntry] = field(default_factory=list)

    def chronological(self) -> List[HistoryEntry]:
        return sorted(self.entries, key=lambda e: e.date)

    def historic_max_1rm(self) -> float:
        return max((e.est_1rm for e in self.entries), default=0.0)

    def recent_entries(
        self, now: datetime.datetime, days: int = 7
    ) -> List[HistoryEntry]:
        since = now - datetime.timedelta(days=days)
        return [e for e in self.entries if e.date >= since]

    def recent_max_1rm(self, now: datetime.datetime, days: int = 7) -> float:
        return max((e.est_1rm for e in self.recent_entries(now, days)), default=0.0)

    def sessions(self) -> List[SessionSummary]:
        """Return one summary per workout, ordered by first chronological entry."""
        by_workout: Dict[int, SessionSummary] = {}
        for entry in self.chronological():
            summary = by_workout.get(entry.workout_id)
            if summary is None:
                by_workout[entry.workout_id] = SessionSummary.seed(entry)
            else:
                summary.add(entry)
        return list(by_workout.values())


def build_histories(
    sets: Iterable,
    targets: Iterable,
    aggregator: TimeSeriesAggregator,
) -> Dict[int, ExerciseHistory]:
    """Join sets with their planned targets and group them per exercise."""
    target_map: Dict[tuple, int] = {}
    for t in targets:
        target_map[(t.workout_id, t.exercise_id)] = int(t.target_reps or 0)
    histories: Dict[int, ExerciseHistory] = {}
    for s in sets:
        history = histories.setdefault(
            s.exercise_id, ExerciseHistory(s.exercise_id, s.exercise_name)
        )
        history.entries.append(
            HistoryEntry(
                date=aggregator.effective_time(s.completed_at),
                weight=float(s.weight),
                reps=int(s.reps),
                workout_id=s.workout_id,
                rpe=s.rpe,
                rir=s.rir,
                target_reps=target_map.get((s.workout_id, s.exercise_id), 0),
            )
        )
    return histories
