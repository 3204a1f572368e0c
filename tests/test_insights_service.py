import os
import sys
import datetime
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import (
    UserRepository,
    ExerciseRepository,
    WorkoutRepository,
    SetRepository,
    TargetRepository,
    PlanRepository,
    AdherenceRepository,
)
from insights_service import InsightsService

NOW = datetime.datetime(2024, 6, 14, 12, 0, tzinfo=datetime.timezone.utc)


class InsightsServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_insights_service.db"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        self.users = UserRepository(self.db_path)
        self.exercises = ExerciseRepository(self.db_path)
        self.workouts = WorkoutRepository(self.db_path)
        self.sets = SetRepository(self.db_path)
        self.targets = TargetRepository(self.db_path)
        self.plans = PlanRepository(self.db_path)
        self.adherence = AdherenceRepository(self.db_path)
        self.service = InsightsService(
            self.users, self.sets, self.targets, self.adherence
        )
        self.uid = self.users.create("Alex")
        self.bench = self.exercises.ensure("Bench Press")

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def _session(
        self,
        days_ago: int,
        sets: list,
        user_id: int | None = None,
        target: int | None = None,
        complete: bool = True,
    ) -> int:
        ts = NOW - datetime.timedelta(days=days_ago)
        wid = self.workouts.create(user_id or self.uid, ts.date().isoformat())
        if target is not None:
            self.targets.set_target(wid, self.bench, target)
        for reps, weight, rpe in sets:
            self.sets.add(wid, self.bench, reps, weight, rpe, None, ts)
        if complete:
            self.workouts.complete(wid, ts)
        return wid

    def ids(self, insights) -> list[str]:
        return [i.id for i in insights]

    def test_unknown_user_gets_empty_list(self) -> None:
        self._session(1, [(5, 100.0, 8)])
        self.assertEqual(self.service.compute_insights(None, NOW), [])
        self.assertEqual(self.service.compute_insights(9999, NOW), [])

    def test_user_without_data(self) -> None:
        self.assertEqual(self.service.compute_insights(self.uid, NOW), [])

    def test_incomplete_workouts_are_ignored(self) -> None:
        self._session(1, [(5, 100.0, 8)], complete=False)
        self.assertEqual(self.service.compute_insights(self.uid, NOW), [])

    def test_other_users_are_ignored(self) -> None:
        other = self.users.create("Sam")
        self._session(1, [(5, 100.0, 8)], user_id=other)
        self.assertEqual(self.service.compute_insights(self.uid, NOW), [])
        self.assertEqual(
            self.ids(self.service.compute_insights(other, NOW)),
            ["pr-1", "volume-summary"],
        )

    def test_window_excludes_old_workouts(self) -> None:
        self._session(7 * 13, [(5, 200.0, 8)])
        self._session(1, [(5, 100.0, 8)])
        snapshot = self.service.snapshot(self.uid, NOW)
        self.assertEqual(len(snapshot.sets), 1)
        result = self.service.compute_insights(self.uid, NOW)
        self.assertIn("pr-1", self.ids(result))

    def test_full_history(self) -> None:
        self._session(4, [(11, 100.0, 8), (12, 100.0, 8)], target=10)
        self._session(1, [(11, 100.0, 8), (11, 100.0, 9)], target=10)
        plan_id = self.plans.create(self.uid, "Hypertrophy")
        self.adherence.add(plan_id, 0.5, NOW - datetime.timedelta(days=1))
        result = self.service.compute_insights(self.uid, NOW)
        self.assertEqual(
            self.ids(result),
            ["adherence-low", "pr-1", "load-up-1", "volume-summary"],
        )
        volume = result[-1]
        self.assertEqual(volume.meta.weekly_volume, 100 * (11 + 12 + 11 + 11))

    def test_language_override(self) -> None:
        self._session(1, [(5, 100.0, 8)])
        result = self.service.compute_insights(self.uid, NOW, language="es")
        self.assertEqual(result[-1].title, "Volumen semanal")

    def test_repository_validation(self) -> None:
        wid = self._session(1, [])
        with self.assertRaises(ValueError):
            self.sets.add(wid, self.bench, 0, 100.0)
        with self.assertRaises(ValueError):
            self.sets.add(wid, self.bench, 5, -1.0)
        with self.assertRaises(ValueError):
            self.sets.add(wid, self.bench, 5, 100.0, rpe=11)
        with self.assertRaises(ValueError):
            self.sets.add(wid, self.bench, 5, 100.0, rir=-1)
        with self.assertRaises(ValueError):
            self.targets.set_target(wid, self.bench, -2)
        plan_id = self.plans.create(self.uid, "Plan")
        with self.assertRaises(ValueError):
            self.adherence.add(plan_id, 1.5)

    def test_target_upsert(self) -> None:
        wid = self._session(1, [(5, 100.0, 8)], target=8)
        self.targets.set_target(wid, self.bench, 12)
        since = NOW - datetime.timedelta(weeks=12)
        records = self.targets.fetch_window(self.uid, since)
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].target_reps, 12)

    def test_catalog_and_workout_reads(self) -> None:
        wid = self._session(3, [(5, 100.0, 8)])
        self.assertEqual(self.exercises.fetch_name(self.bench), "Bench Press")
        self.assertIsNone(self.exercises.fetch_name(999))
        self.assertEqual(self.exercises.ensure("Bench Press"), self.bench)
        workouts = self.workouts.fetch_for_user(self.uid)
        self.assertEqual(len(workouts), 1)
        self.assertEqual(workouts[0][0], wid)
        self.assertEqual(workouts[0][2], NOW - datetime.timedelta(days=3))

    def test_set_records_round_trip_fields(self) -> None:
        wid = self._session(2, [])
        self.sets.add(wid, self.bench, 6, 82.5, 7.5, 3, NOW)
        since = NOW - datetime.timedelta(weeks=12)
        record = self.sets.fetch_window(self.uid, since)[0]
        self.assertEqual(record.exercise_name, "Bench Press")
        self.assertEqual(record.rpe, 7.5)
        self.assertEqual(record.rir, 3)
        self.assertEqual(record.completed_at, NOW - datetime.timedelta(days=2))


if __name__ == "__main__":
    unittest.main()
