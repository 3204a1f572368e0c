import datetime
from typing import Optional

from db import (
    UserRepository,
    ExerciseRepository,
    WorkoutRepository,
    SetRepository,
    TargetRepository,
    PlanRepository,
    AdherenceRepository,
)


def seed(
    db_path: Optional[str] = None,
    now: Optional[datetime.datetime] = None,
    weeks: int = 12,
) -> int:
    """Insert a demo user training bench press twice a week and return its id."""
    now = now or datetime.datetime.now(datetime.timezone.utc)
    users = UserRepository(db_path)
    exercises = ExerciseRepository(db_path)
    workouts = WorkoutRepository(db_path)
    sets = SetRepository(db_path)
    targets = TargetRepository(db_path)
    plans = PlanRepository(db_path)
    adherence = AdherenceRepository(db_path)

    uid = users.create("Demo athlete")
    bench = exercises.ensure("Bench Press")
    squat = exercises.ensure("Back Squat")
    plan_id = plans.create(uid, "Demo plan")

    for week in range(weeks, 0, -1):
        for offset in (0, 3):
            ts = now - datetime.timedelta(weeks=week - 1, days=offset, hours=1)
            wid = workouts.create(uid, ts.date().isoformat())
            load = 80.0 + (weeks - week) * 2.5
            for ex_id, weight in ((bench, load), (squat, load * 1.3)):
                targets.set_target(wid, ex_id, 8)
                for _ in range(3):
                    sets.add(wid, ex_id, 9, weight, 8.5, 1, ts)
            workouts.complete(wid, ts)
        adherence.add(plan_id, 0.9 if week > 1 else 0.5, now - datetime.timedelta(weeks=week - 1))
    return uid


if __name__ == "__main__":
    print(f"Seeded demo user {seed()}")
