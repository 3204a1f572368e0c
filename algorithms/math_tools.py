import math
import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable
import numpy as np


class MathTools:
    """Provides the fixed arithmetic used by the insight rules."""

    EPLEY_DIVISOR: int = 30
    ONE_RM_PRECISION: int = 1

    @classmethod
    def epley_1rm(cls, weight: float, reps: int) -> float:
        """Return the estimated one-rep max using the Epley formula.

        Single (or empty) rep sets return ``weight`` unchanged, every other
        set is rounded to one decimal.
        """
        if reps <= 1:
            return weight
        return cls.round_places(
            weight * (1 + reps / cls.EPLEY_DIVISOR), cls.ONE_RM_PRECISION
        )

    @staticmethod
    def volume(sets: list[tuple[int, float]]) -> float:
        """Compute training volume as the sum of reps times weight."""
        vol = 0.0
        for reps, weight in sets:
            vol += reps * weight
        return vol

    @staticmethod
    def mean(values: Iterable[float]) -> float:
        """Return the arithmetic mean of ``values`` or 0.0 when empty."""
        data = list(values)
        if not data:
            return 0.0
        return float(np.mean(np.array(data, dtype=float)))

    @staticmethod
    def blend(accumulated: float, value: float) -> float:
        """Return the fixed 50/50 blend of an accumulator and a new value."""
        return (accumulated + value) / 2

    @staticmethod
    def round_half_up(value: float) -> int:
        """Round to the nearest integer with halves going up."""
        return int(math.floor(value + 0.5))

    @staticmethod
    def round_places(value: float, places: int) -> float:
        """Round to ``places`` decimals with halves going away from zero.

        Works on the shortest decimal representation of ``value`` so that
        0.125 becomes 0.13 instead of the 0.12 produced by ``round``.
        """
        quantum = Decimal(1).scaleb(-places)
        return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))

    @staticmethod
    def week_start(day: datetime.date) -> datetime.date:
        """Return the Monday of the ISO week containing ``day``."""
        return day - datetime.timedelta(days=day.weekday())

    @staticmethod
    def longest_streak(days: Iterable[datetime.date]) -> int:
        """Return the longest run of calendar-consecutive days."""
        ordered = sorted(set(days))
        if not ordered:
            return 0
        record = 1
        current = 1
        for i in range(1, len(ordered)):
            gap = (ordered[i] - ordered[i - 1]).days
            if gap == 1:
                current += 1
            else:
                current = 1
            record = max(record, current)
        return record
