from __future__ import annotations
import asyncio
import datetime
import logging
from typing import List, Optional

import insight_rules
from algorithms import TimeSeriesAggregator, build_histories
from algorithms.time_series import as_utc
from db import (
    UserRepository,
    SetRepository,
    TargetRepository,
    AdherenceRepository,
    AsyncSetRepository,
    AsyncTargetRepository,
    AsyncAdherenceRepository,
    AsyncUserRepository,
)
from localization import Translator
from models import Insight, InsightSnapshot

logger = logging.getLogger(__name__)

LOOKBACK_WEEKS = 12


def lookback_start(now: datetime.datetime) -> datetime.datetime:
    """Return the earliest instant considered for a computation at ``now``."""
    return as_utc(now) - datetime.timedelta(weeks=LOOKBACK_WEEKS)


class InsightsEngine:
    """Turn an immutable snapshot into an ordered list of insights.

    The engine keeps no state between calls; the translator and time zone
    only shape wording and calendar buckets.
    """

    def __init__(
        self,
        language: str = "en",
        tz: datetime.tzinfo = datetime.timezone.utc,
    ) -> None:
        self.translator = Translator(language)
        self.tz = tz

    def compute(
        self,
        snapshot: InsightSnapshot,
        now: Optional[datetime.datetime] = None,
    ) -> List[Insight]:
        now = as_utc(now) if now is not None else datetime.datetime.now(
            datetime.timezone.utc
        )
        if snapshot.is_empty():
            logger.debug("empty snapshot, no insights")
            return []
        aggregator = TimeSeriesAggregator(now, self.tz)
        since = lookback_start(now)
        sets = [s for s in snapshot.sets if aggregator.effective_time(s.completed_at) >= since]
        samples = [a for a in snapshot.adherence if as_utc(a.created_at) >= since]

        timeline = aggregator.timeline(sets)
        histories = build_histories(sets, snapshot.targets, aggregator)
        tr = self.translator

        candidates: list[Optional[Insight]] = [
            insight_rules.volume_jump(timeline, now, tr),
            insight_rules.training_streak(timeline, now, tr),
            insight_rules.low_adherence(aggregator.adherence_by_week(samples), now, tr),
        ]
        for history in histories.values():
            candidates.append(insight_rules.personal_record(history, now, tr))
            candidates.append(insight_rules.load_increase(history, now, tr))
        candidates.append(insight_rules.volume_summary(timeline, now, tr))

        insights = [i for i in candidates if i is not None]
        logger.info(
            "computed %d insights from %d sets and %d adherence samples",
            len(insights),
            len(sets),
            len(samples),
        )
        return insights


class InsightsService:
    """Fetch a user's training snapshot and run the insights engine."""

    def __init__(
        self,
        user_repo: UserRepository,
        set_repo: SetRepository,
        target_repo: TargetRepository,
        adherence_repo: AdherenceRepository,
        language: str = "en",
        tz: datetime.tzinfo = datetime.timezone.utc,
        async_set_repo: AsyncSetRepository | None = None,
        async_target_repo: AsyncTargetRepository | None = None,
        async_adherence_repo: AsyncAdherenceRepository | None = None,
        async_user_repo: AsyncUserRepository | None = None,
    ) -> None:
        self.users = user_repo
        self.sets = set_repo
        self.targets = target_repo
        self.adherence = adherence_repo
        self.language = language
        self.tz = tz
        self.async_sets = async_set_repo
        self.async_targets = async_target_repo
        self.async_adherence = async_adherence_repo
        self.async_users = async_user_repo

    def _engine(self, language: Optional[str]) -> InsightsEngine:
        return InsightsEngine(language or self.language, self.tz)

    def _resolved(self, user_id: Optional[int]) -> bool:
        if user_id is None or not self.users.exists(user_id):
            logger.debug("no acting user resolved for %r", user_id)
            return False
        return True

    async def _resolved_async(self, user_id: Optional[int]) -> bool:
        if self.async_users is None:
            raise RuntimeError("async user repository not configured")
        if user_id is None or not await self.async_users.exists(user_id):
            logger.debug("no acting user resolved for %r", user_id)
            return False
        return True

    def snapshot(
        self, user_id: int, now: Optional[datetime.datetime] = None
    ) -> InsightSnapshot:
        since = lookback_start(now or datetime.datetime.now(datetime.timezone.utc))
        return InsightSnapshot(
            sets=tuple(self.sets.fetch_window(user_id, since)),
            targets=tuple(self.targets.fetch_window(user_id, since)),
            adherence=tuple(self.adherence.fetch_window(user_id, since)),
        )

    async def snapshot_async(
        self, user_id: int, now: Optional[datetime.datetime] = None
    ) -> InsightSnapshot:
        if (
            self.async_sets is None
            or self.async_targets is None
            or self.async_adherence is None
        ):
            raise RuntimeError("async repositories not configured")
        since = lookback_start(now or datetime.datetime.now(datetime.timezone.utc))
        sets, targets, adherence = await asyncio.gather(
            self.async_sets.fetch_window(user_id, since),
            self.async_targets.fetch_window(user_id, since),
            self.async_adherence.fetch_window(user_id, since),
        )
        return InsightSnapshot(tuple(sets), tuple(targets), tuple(adherence))

    def compute_insights(
        self,
        user_id: Optional[int],
        now: Optional[datetime.datetime] = None,
        language: Optional[str] = None,
    ) -> List[Insight]:
        """Return the insights of ``user_id`` or an empty list when unknown."""
        if not self._resolved(user_id):
            return []
        now = now or datetime.datetime.now(datetime.timezone.utc)
        return self._engine(language).compute(self.snapshot(user_id, now), now)

    async def compute_insights_async(
        self,
        user_id: Optional[int],
        now: Optional[datetime.datetime] = None,
        language: Optional[str] = None,
    ) -> List[Insight]:
        if not await self._resolved_async(user_id):
            return []
        now = now or datetime.datetime.now(datetime.timezone.utc)
        snapshot = await self.snapshot_async(user_id, now)
        return self._engine(language).compute(snapshot, now)
