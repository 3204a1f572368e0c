"""Heuristics turning aggregated training history into insights.

Every rule is a pure function returning an :class:`Insight` or ``None``.
Rules never raise when their input is empty; they simply stay silent.
"""

from __future__ import annotations
import datetime
import logging
from typing import Dict, Optional

from algorithms import ExerciseHistory, MathTools, TrainingTimeline
from localization import Translator
from models import (
    AdherenceMeta,
    Insight,
    InsightSeverity,
    InsightType,
    PersonalRecordMeta,
    StreakMeta,
    VolumeJumpMeta,
    VolumeSummaryMeta,
)

logger = logging.getLogger(__name__)

VOLUME_JUMP_RATIO = 1.3
STREAK_THRESHOLD = 5
ADHERENCE_THRESHOLD = 0.6
LOAD_RPE_THRESHOLD = 8
LOAD_RIR_THRESHOLD = 2
LOAD_REP_MARGIN = 1
RECENT_DAYS = 7


def volume_jump(
    timeline: TrainingTimeline, now: datetime.datetime, tr: Translator
) -> Optional[Insight]:
    weeks = timeline.weeks_sorted()
    if len(weeks) < 2:
        return None
    prev = weeks[-2][1]
    last = weeks[-1][1]
    if not (prev > 0 and last > prev * VOLUME_JUMP_RATIO):
        return None
    logger.debug("volume jump %.1f -> %.1f", prev, last)
    return Insight(
        id="recovery-volume-jump",
        type=InsightType.RECOVERY,
        title=tr.gettext("Take more rest this week"),
        description=tr.gettext(
            "Weekly volume rose more than 30% over the previous week. Consider a deload or extra rest."
        ),
        date=now,
        severity=InsightSeverity.WARNING,
        icon="bed",
        meta=VolumeJumpMeta(prev_volume=prev, last_volume=last),
    )


def training_streak(
    timeline: TrainingTimeline, now: datetime.datetime, tr: Translator
) -> Optional[Insight]:
    max_streak = MathTools.longest_streak(timeline.days_sorted())
    if max_streak < STREAK_THRESHOLD:
        return None
    logger.debug("training streak of %d days", max_streak)
    return Insight(
        id="recovery-streak",
        type=InsightType.RECOVERY,
        title=tr.gettext("Take more rest this week"),
        description=tr.format(
            "You have trained {days} days in a row. Schedule a rest day or lower the intensity.",
            days=max_streak,
        ),
        date=now,
        severity=InsightSeverity.WARNING,
        icon="lotus",
        meta=StreakMeta(max_streak=max_streak),
    )


def low_adherence(
    adherence_by_week: Dict[datetime.date, list[float]],
    now: datetime.datetime,
    tr: Translator,
) -> Optional[Insight]:
    """Check the mean adherence of the most recent week holding samples."""
    if not adherence_by_week:
        return None
    latest = max(adherence_by_week)
    avg = MathTools.mean(adherence_by_week[latest])
    if avg >= ADHERENCE_THRESHOLD:
        return None
    logger.debug("adherence %.3f in week of %s", avg, latest.isoformat())
    return Insight(
        id="adherence-low",
        type=InsightType.ADHERENCE,
        title=tr.gettext("Improve your adherence"),
        description=tr.gettext(
            "Your average adherence this week is below 60%. Adjust your targets or simplify your sessions."
        ),
        date=now,
        severity=InsightSeverity.INFO,
        icon="calendar",
        meta=AdherenceMeta(adherence_avg=MathTools.round_places(avg, 2)),
    )


def personal_record(
    history: ExerciseHistory, now: datetime.datetime, tr: Translator
) -> Optional[Insight]:
    # ties with an older best also count as a record
    if not history.recent_entries(now, RECENT_DAYS):
        return None
    recent_max = history.recent_max_1rm(now, RECENT_DAYS)
    if not (recent_max > 0 and recent_max >= history.historic_max_1rm()):
        return None
    logger.debug("personal record %.1f for exercise %s", recent_max, history.exercise_id)
    return Insight(
        id=f"pr-{history.exercise_id}",
        type=InsightType.PROGRESS,
        title=tr.format("New PR on {exercise}!", exercise=history.name),
        description=tr.format(
            "Best recent estimated 1RM: {one_rep_max:.1f} kg.",
            one_rep_max=MathTools.round_places(recent_max, 1),
        ),
        date=now,
        severity=InsightSeverity.SUCCESS,
        icon="trophy",
        meta=PersonalRecordMeta(one_rep_max=recent_max),
    )


def load_increase(
    history: ExerciseHistory, now: datetime.datetime, tr: Translator
) -> Optional[Insight]:
    sessions = history.sessions()[-2:]
    if len(sessions) < 2:
        return None
    if not all(
        s.beats_target(LOAD_REP_MARGIN)
        and s.high_effort(LOAD_RPE_THRESHOLD, LOAD_RIR_THRESHOLD)
        for s in sessions
    ):
        return None
    logger.debug("load increase suggested for exercise %s", history.exercise_id)
    return Insight(
        id=f"load-up-{history.exercise_id}",
        type=InsightType.LOAD,
        title=tr.format("Increase the load on {exercise}", exercise=history.name),
        description=tr.gettext(
            "You met and beat your target reps with high effort in your last sessions. Raise the load by 2-5%."
        ),
        date=now,
        severity=InsightSeverity.INFO,
        icon="chart-up",
    )


def volume_summary(
    timeline: TrainingTimeline, now: datetime.datetime, tr: Translator
) -> Optional[Insight]:
    latest = timeline.latest_week()
    if latest is None:
        return None
    volume = MathTools.round_half_up(latest[1])
    return Insight(
        id="volume-summary",
        type=InsightType.VOLUME,
        title=tr.gettext("Weekly volume"),
        description=tr.format(
            "Your accumulated volume this week: {volume} kg·reps.", volume=volume
        ),
        date=now,
        severity=InsightSeverity.INFO,
        icon="abacus",
        meta=VolumeSummaryMeta(weekly_volume=volume),
    )
