from .math_tools import MathTools
from .time_series import TimeSeriesAggregator, TrainingTimeline
from .exercise_history import ExerciseHistory, HistoryEntry, SessionSummary, build_histories

__all__ = [
    "MathTools",
    "TimeSeriesAggregator",
    "TrainingTimeline",
    "ExerciseHistory",
    "HistoryEntry",
    "SessionSummary",
    "build_histories",
]
