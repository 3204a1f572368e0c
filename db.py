import sqlite3
import aiosqlite
import os
import datetime
from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple, Optional

from models import SetRecord, TargetRecord, AdherenceSample

DB_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


def to_db_time(ts: datetime.datetime) -> str:
    """Return ``ts`` as naive UTC ISO text so stored values sort lexically."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(datetime.timezone.utc)
    return ts.strftime(DB_TIME_FORMAT)


def from_db_time(value: Optional[str]) -> Optional[datetime.datetime]:
    """Return stored text as timezone-aware datetime in UTC."""
    if value is None:
        return None
    dt = datetime.datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return dt


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "users": (
            """CREATE TABLE users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL
                );""",
            ["id", "name"],
        ),
        "api_keys": (
            """CREATE TABLE api_keys (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    api_key TEXT NOT NULL UNIQUE,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            ["id", "user_id", "name", "api_key"],
        ),
        "exercises": (
            """CREATE TABLE exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE
                );""",
            ["id", "name"],
        ),
        "workouts": (
            """CREATE TABLE workouts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    date TEXT NOT NULL,
                    completed_at TEXT,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            ["id", "user_id", "date", "completed_at"],
        ),
        "workout_exercises": (
            """CREATE TABLE workout_exercises (
                    workout_id INTEGER NOT NULL,
                    exercise_id INTEGER NOT NULL,
                    target_reps INTEGER NOT NULL DEFAULT 0,
                    PRIMARY KEY (workout_id, exercise_id),
                    FOREIGN KEY(workout_id) REFERENCES workouts(id) ON DELETE CASCADE,
                    FOREIGN KEY(exercise_id) REFERENCES exercises(id) ON DELETE CASCADE
                );""",
            ["workout_id", "exercise_id", "target_reps"],
        ),
        "sets": (
            """CREATE TABLE sets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    workout_id INTEGER NOT NULL,
                    exercise_id INTEGER NOT NULL,
                    reps INTEGER NOT NULL,
                    weight REAL NOT NULL,
                    rpe REAL,
                    rir INTEGER,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY(workout_id) REFERENCES workouts(id) ON DELETE CASCADE,
                    FOREIGN KEY(exercise_id) REFERENCES exercises(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "workout_id",
                "exercise_id",
                "reps",
                "weight",
                "rpe",
                "rir",
                "created_at",
            ],
        ),
        "plans": (
            """CREATE TABLE plans (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            ["id", "user_id", "name"],
        ),
        "adherence_metrics": (
            """CREATE TABLE adherence_metrics (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    plan_id INTEGER NOT NULL,
                    adherence REAL NOT NULL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY(plan_id) REFERENCES plans(id) ON DELETE CASCADE
                );""",
            ["id", "plan_id", "adherence", "created_at"],
        ),
    }

    def __init__(self, db_path: str | None = None) -> None:
        self._db_path = db_path or os.environ.get("INSIGHTS_DB_PATH", "workout.db")
        self._ensure_schema()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            connection.execute("PRAGMA foreign_keys=on;")
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            conn.execute("PRAGMA foreign_keys=off;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            conn.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)
        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            conn.execute(
                f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
            )
        conn.execute(f"DROP TABLE {table}_old;")


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path)
        try:
            yield conn
            await conn.commit()
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return rows


class UserRepository(BaseRepository):
    """Repository for users table operations."""

    def create(self, name: str) -> int:
        if not name:
            raise ValueError("name must not be empty")
        return self.execute("INSERT INTO users (name) VALUES (?);", (name,))

    def exists(self, user_id: int) -> bool:
        rows = self.fetch_all("SELECT 1 FROM users WHERE id = ?;", (user_id,))
        return bool(rows)

    def fetch_users(self) -> list[tuple[int, str]]:
        rows = self.fetch_all("SELECT id, name FROM users ORDER BY id;")
        return [(int(r[0]), r[1]) for r in rows]


class APIKeyRepository(BaseRepository):
    """Repository mapping API keys to the users they act for."""

    def add(self, user_id: int, name: str, key: str) -> int:
        return self.execute(
            "INSERT INTO api_keys (user_id, name, api_key) VALUES (?, ?, ?);",
            (user_id, name, key),
        )

    def fetch_keys(self) -> list[tuple[int, int, str, str]]:
        rows = self.fetch_all(
            "SELECT id, user_id, name, api_key FROM api_keys ORDER BY id;"
        )
        return [(int(r[0]), int(r[1]), r[2], r[3]) for r in rows]

    def resolve_user(self, key: Optional[str]) -> Optional[int]:
        """Return the user owning ``key`` or ``None``."""
        if not key:
            return None
        rows = self.fetch_all(
            "SELECT user_id FROM api_keys WHERE api_key = ?;", (key,)
        )
        return int(rows[0][0]) if rows else None

    def delete(self, key_id: int) -> None:
        self.execute("DELETE FROM api_keys WHERE id = ?;", (key_id,))


class ExerciseRepository(BaseRepository):
    """Repository for the exercise catalog."""

    def ensure(self, name: str) -> int:
        """Return the id of ``name``, inserting it when missing."""
        if not name:
            raise ValueError("name must not be empty")
        rows = self.fetch_all("SELECT id FROM exercises WHERE name = ?;", (name,))
        if rows:
            return int(rows[0][0])
        return self.execute("INSERT INTO exercises (name) VALUES (?);", (name,))

    def fetch_name(self, exercise_id: int) -> Optional[str]:
        rows = self.fetch_all(
            "SELECT name FROM exercises WHERE id = ?;", (exercise_id,)
        )
        return rows[0][0] if rows else None


class WorkoutRepository(BaseRepository):
    """Repository for workout sessions."""

    def create(self, user_id: int, date: str) -> int:
        datetime.date.fromisoformat(date)
        return self.execute(
            "INSERT INTO workouts (user_id, date) VALUES (?, ?);", (user_id, date)
        )

    def complete(
        self, workout_id: int, completed_at: Optional[datetime.datetime] = None
    ) -> None:
        ts = completed_at or datetime.datetime.now(datetime.timezone.utc)
        self.execute(
            "UPDATE workouts SET completed_at = ? WHERE id = ?;",
            (to_db_time(ts), workout_id),
        )

    def fetch_for_user(
        self, user_id: int
    ) -> list[tuple[int, str, Optional[datetime.datetime]]]:
        rows = self.fetch_all(
            "SELECT id, date, completed_at FROM workouts WHERE user_id = ? ORDER BY date, id;",
            (user_id,),
        )
        return [(int(r[0]), r[1], from_db_time(r[2])) for r in rows]


_SET_WINDOW_QUERY = (
    "SELECT s.weight, s.reps, s.rpe, s.rir, s.exercise_id, e.name, s.workout_id, w.completed_at "
    "FROM sets s "
    "JOIN exercises e ON s.exercise_id = e.id "
    "JOIN workouts w ON s.workout_id = w.id "
    "WHERE w.user_id = ? AND w.completed_at IS NOT NULL AND w.completed_at >= ? "
    "ORDER BY s.created_at, s.id;"
)

_TARGET_WINDOW_QUERY = (
    "SELECT we.workout_id, we.exercise_id, we.target_reps "
    "FROM workout_exercises we "
    "JOIN workouts w ON we.workout_id = w.id "
    "WHERE w.user_id = ? AND w.completed_at IS NOT NULL AND w.completed_at >= ? "
    "ORDER BY we.workout_id, we.exercise_id;"
)

_ADHERENCE_WINDOW_QUERY = (
    "SELECT a.adherence, a.created_at "
    "FROM adherence_metrics a "
    "JOIN plans p ON a.plan_id = p.id "
    "WHERE p.user_id = ? AND a.created_at >= ? "
    "ORDER BY a.created_at, a.id;"
)


def _set_record(row: Tuple) -> SetRecord:
    weight, reps, rpe, rir, exercise_id, name, workout_id, completed_at = row
    return SetRecord(
        weight=float(weight),
        reps=int(reps),
        rpe=float(rpe) if rpe is not None else None,
        rir=int(rir) if rir is not None else None,
        exercise_id=int(exercise_id),
        exercise_name=name,
        workout_id=int(workout_id),
        completed_at=from_db_time(completed_at),
    )


def _target_record(row: Tuple) -> TargetRecord:
    return TargetRecord(int(row[0]), int(row[1]), int(row[2] or 0))


def _adherence_sample(row: Tuple) -> AdherenceSample:
    return AdherenceSample(float(row[0]), from_db_time(row[1]))


class SetRepository(BaseRepository):
    """Repository for sets table operations."""

    def add(
        self,
        workout_id: int,
        exercise_id: int,
        reps: int,
        weight: float,
        rpe: Optional[float] = None,
        rir: Optional[int] = None,
        created_at: Optional[datetime.datetime] = None,
    ) -> int:
        if reps <= 0:
            raise ValueError("reps must be positive")
        if weight <= 0:
            raise ValueError("weight must be positive")
        if rpe is not None and (rpe < 0 or rpe > 10):
            raise ValueError("rpe must be between 0 and 10")
        if rir is not None and rir < 0:
            raise ValueError("rir must be non-negative")
        ts = created_at or datetime.datetime.now(datetime.timezone.utc)
        return self.execute(
            "INSERT INTO sets (workout_id, exercise_id, reps, weight, rpe, rir, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?);",
            (workout_id, exercise_id, reps, weight, rpe, rir, to_db_time(ts)),
        )

    def fetch_window(
        self, user_id: int, since: datetime.datetime
    ) -> list[SetRecord]:
        """Return completed sets of ``user_id`` whose workout ended after ``since``."""
        rows = self.fetch_all(_SET_WINDOW_QUERY, (user_id, to_db_time(since)))
        return [_set_record(r) for r in rows]


class TargetRepository(BaseRepository):
    """Repository for planned target reps per workout exercise."""

    def set_target(self, workout_id: int, exercise_id: int, target_reps: int) -> None:
        if target_reps < 0:
            raise ValueError("target_reps must be non-negative")
        self.execute(
            "INSERT INTO workout_exercises (workout_id, exercise_id, target_reps) VALUES (?, ?, ?) "
            "ON CONFLICT(workout_id, exercise_id) DO UPDATE SET target_reps=excluded.target_reps;",
            (workout_id, exercise_id, target_reps),
        )

    def fetch_window(
        self, user_id: int, since: datetime.datetime
    ) -> list[TargetRecord]:
        rows = self.fetch_all(_TARGET_WINDOW_QUERY, (user_id, to_db_time(since)))
        return [_target_record(r) for r in rows]


class PlanRepository(BaseRepository):
    """Repository for training plans."""

    def create(self, user_id: int, name: str) -> int:
        return self.execute(
            "INSERT INTO plans (user_id, name) VALUES (?, ?);", (user_id, name)
        )


class AdherenceRepository(BaseRepository):
    """Repository for adherence samples of a plan."""

    def add(
        self,
        plan_id: int,
        value: float,
        created_at: Optional[datetime.datetime] = None,
    ) -> int:
        if value < 0 or value > 1:
            raise ValueError("adherence must be between 0 and 1")
        ts = created_at or datetime.datetime.now(datetime.timezone.utc)
        return self.execute(
            "INSERT INTO adherence_metrics (plan_id, adherence, created_at) VALUES (?, ?, ?);",
            (plan_id, value, to_db_time(ts)),
        )

    def fetch_window(
        self, user_id: int, since: datetime.datetime
    ) -> list[AdherenceSample]:
        rows = self.fetch_all(_ADHERENCE_WINDOW_QUERY, (user_id, to_db_time(since)))
        return [_adherence_sample(r) for r in rows]


class AsyncSetRepository(AsyncBaseRepository):
    """Async repository reading the set window."""

    async def fetch_window(
        self, user_id: int, since: datetime.datetime
    ) -> list[SetRecord]:
        rows = await self.fetch_all(_SET_WINDOW_QUERY, (user_id, to_db_time(since)))
        return [_set_record(r) for r in rows]


class AsyncTargetRepository(AsyncBaseRepository):
    """Async repository reading planned targets."""

    async def fetch_window(
        self, user_id: int, since: datetime.datetime
    ) -> list[TargetRecord]:
        rows = await self.fetch_all(
            _TARGET_WINDOW_QUERY, (user_id, to_db_time(since))
        )
        return [_target_record(r) for r in rows]


class AsyncAdherenceRepository(AsyncBaseRepository):
    """Async repository reading adherence samples."""

    async def fetch_window(
        self, user_id: int, since: datetime.datetime
    ) -> list[AdherenceSample]:
        rows = await self.fetch_all(
            _ADHERENCE_WINDOW_QUERY, (user_id, to_db_time(since))
        )
        return [_adherence_sample(r) for r in rows]


class AsyncUserRepository(AsyncBaseRepository):
    """Async lookups on the users table."""

    async def exists(self, user_id: int) -> bool:
        rows = await self.fetch_all("SELECT 1 FROM users WHERE id = ?;", (user_id,))
        return bool(rows)


class AsyncAPIKeyRepository(AsyncBaseRepository):
    """Async resolution of API keys to users."""

    async def resolve_user(self, key: Optional[str]) -> Optional[int]:
        if not key:
            return None
        rows = await self.fetch_all(
            "SELECT user_id FROM api_keys WHERE api_key = ?;", (key,)
        )
        return int(rows[0][0]) if rows else None
