"""Repository classes for database operations.

``get`` methods raise ``NotFoundError`` for missing rows; ``find_*`` methods
return ``None``. All calls go through ``Database.connection()`` and so join
any transaction opened by the caller.
"""

import json
from datetime import date, datetime

import aiosqlite

from ..exceptions import NotFoundError
from ..models.analytics import OneRepMaxEstimate, OneRepMaxMethod
from ..models.coaching import CoachAssignment, CoachInvitation, InvitationStatus
from ..models.exercises import Exercise
from ..models.goals import GoalProgress, GoalTarget
from ..models.messaging import (
    AttachmentType,
    Conversation,
    Message,
    MessageAttachment,
    ReadStatus,
)
from ..models.plan import (
    GeneratedPlan,
    PerformanceSource,
    PlanAdaptation,
    PlanMetadata,
    PlanPerformance,
    WeeklySchema,
    Workout,
    WorkoutExercise,
)
from ..models.profile import FitnessGoal, RecoveryMetrics, WorkoutProfile
from ..models.session import (
    ExercisePerformance,
    ProgressLog,
    SessionStatus,
    SessionSummary,
    SetRecord,
    SkippedWorkout,
    WorkoutSession,
)
from ..utils.dates import parse_timestamp, utcnow
from .database import Database


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class ExerciseRepository:
    """Repository for the exercise library."""

    def __init__(self, database: Database):
        self.db = database

    async def create(self, exercise: Exercise) -> int:
        data = exercise.to_dict()
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT INTO exercises
                (id, name, muscle_groups, equipment, difficulty, exercise_type,
                 movement_pattern, tier, default_sets, default_reps, rest_seconds,
                 contraindications)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    exercise.id,
                    data["name"],
                    json.dumps(data["muscle_groups"]),
                    json.dumps(data["equipment"]),
                    data["difficulty"],
                    data["exercise_type"],
                    data["movement_pattern"],
                    data["tier"],
                    data["default_sets"],
                    data["default_reps"],
                    data["rest_seconds"],
                    json.dumps(data["contraindications"]),
                ),
            )
            return cursor.lastrowid

    async def get(self, exercise_id: int) -> Exercise:
        async with self.db.connection() as db:
            cursor = await db.execute("SELECT * FROM exercises WHERE id = ?", (exercise_id,))
            row = await cursor.fetchone()
        if row is None:
            raise NotFoundError("exercise", exercise_id)
        return self._row_to_exercise(row)

    async def list_all(self) -> list[Exercise]:
        """List all exercises in catalog order."""
        async with self.db.connection() as db:
            cursor = await db.execute("SELECT * FROM exercises ORDER BY id")
            rows = await cursor.fetchall()
        return [self._row_to_exercise(row) for row in rows]

    async def get_many(self, exercise_ids: list[int]) -> dict[int, Exercise]:
        if not exercise_ids:
            return {}
        placeholders = ",".join("?" for _ in exercise_ids)
        async with self.db.connection() as db:
            cursor = await db.execute(
                f"SELECT * FROM exercises WHERE id IN ({placeholders})",
                tuple(exercise_ids),
            )
            rows = await cursor.fetchall()
        return {row["id"]: self._row_to_exercise(row) for row in rows}

    def _row_to_exercise(self, row: aiosqlite.Row) -> Exercise:
        data = {
            "name": row["name"],
            "muscle_groups": json.loads(row["muscle_groups"]),
            "equipment": json.loads(row["equipment"]),
            "difficulty": row["difficulty"],
            "exercise_type": row["exercise_type"],
            "movement_pattern": row["movement_pattern"],
            "tier": row["tier"],
            "default_sets": row["default_sets"],
            "default_reps": row["default_reps"],
            "rest_seconds": row["rest_seconds"],
            "contraindications": json.loads(row["contraindications"] or "[]"),
        }
        return Exercise.from_dict(data, id=row["id"])


class WorkoutProfileRepository:
    """Repository for workout profiles (one per user)."""

    def __init__(self, database: Database):
        self.db = database

    async def upsert(self, profile: WorkoutProfile) -> int:
        """Create or replace the user's profile."""
        data = profile.to_dict()
        now = utcnow().isoformat()
        async with self.db.connection() as db:
            await db.execute(
                """
                INSERT INTO workout_profiles
                (user_id, level, primary_goal, frequency, equipment, time_per_workout,
                 limitations, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    level = excluded.level,
                    primary_goal = excluded.primary_goal,
                    frequency = excluded.frequency,
                    equipment = excluded.equipment,
                    time_per_workout = excluded.time_per_workout,
                    limitations = excluded.limitations,
                    updated_at = excluded.updated_at
                """,
                (
                    data["user_id"],
                    data["level"],
                    data["primary_goal"],
                    data["frequency"],
                    json.dumps(data["equipment"]),
                    data["time_per_workout"],
                    json.dumps(data["limitations"]),
                    now,
                    now,
                ),
            )
            cursor = await db.execute(
                "SELECT id FROM workout_profiles WHERE user_id = ?", (profile.user_id,)
            )
            row = await cursor.fetchone()
            return row["id"]

    async def find_by_user(self, user_id: str) -> WorkoutProfile | None:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "SELECT * FROM workout_profiles WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        data = {
            "user_id": row["user_id"],
            "level": row["level"],
            "primary_goal": row["primary_goal"],
            "frequency": row["frequency"],
            "equipment": json.loads(row["equipment"]),
            "time_per_workout": row["time_per_workout"],
            "limitations": json.loads(row["limitations"] or "[]"),
        }
        return WorkoutProfile.from_dict(
            data,
            id=row["id"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )

    async def get_by_user(self, user_id: str) -> WorkoutProfile:
        profile = await self.find_by_user(user_id)
        if profile is None:
            raise NotFoundError("workout profile", user_id)
        return profile


class WeeklySchemaRepository:
    """Repository for weekly schemas."""

    def __init__(self, database: Database):
        self.db = database

    async def create(self, schema: WeeklySchema) -> int:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT INTO weekly_schemas (user_id, week_start, active, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (
                    schema.user_id,
                    schema.week_start.isoformat(),
                    1 if schema.active else 0,
                    utcnow().isoformat(),
                ),
            )
            return cursor.lastrowid

    async def get(self, schema_id: int) -> WeeklySchema:
        async with self.db.connection() as db:
            cursor = await db.execute("SELECT * FROM weekly_schemas WHERE id = ?", (schema_id,))
            row = await cursor.fetchone()
        if row is None:
            raise NotFoundError("weekly schema", schema_id)
        return self._row_to_schema(row)

    async def find_active_for_user(self, user_id: str) -> WeeklySchema | None:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "SELECT * FROM weekly_schemas WHERE user_id = ? AND active = 1",
                (user_id,),
            )
            row = await cursor.fetchone()
        return self._row_to_schema(row) if row else None

    async def deactivate(self, schema_id: int) -> None:
        async with self.db.connection() as db:
            await db.execute("UPDATE weekly_schemas SET active = 0 WHERE id = ?", (schema_id,))

    async def delete(self, schema_id: int) -> None:
        """Delete a schema; its workouts and workout exercises cascade."""
        async with self.db.connection() as db:
            await db.execute("DELETE FROM weekly_schemas WHERE id = ?", (schema_id,))

    def _row_to_schema(self, row: aiosqlite.Row) -> WeeklySchema:
        return WeeklySchema(
            id=row["id"],
            user_id=row["user_id"],
            week_start=date.fromisoformat(row["week_start"]),
            active=bool(row["active"]),
        )


class WorkoutRepository:
    """Repository for workouts within a schema."""

    def __init__(self, database: Database):
        self.db = database

    async def create(self, workout: Workout) -> int:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "INSERT INTO workouts (schema_id, day_of_week, focus) VALUES (?, ?, ?)",
                (workout.schema_id, workout.day_of_week, workout.focus),
            )
            return cursor.lastrowid

    async def get(self, workout_id: int) -> Workout:
        async with self.db.connection() as db:
            cursor = await db.execute("SELECT * FROM workouts WHERE id = ?", (workout_id,))
            row = await cursor.fetchone()
        if row is None:
            raise NotFoundError("workout", workout_id)
        return self._row_to_workout(row)

    async def get_owner(self, workout_id: int) -> str:
        """User id of the schema the workout belongs to."""
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT s.user_id FROM workouts w
                JOIN weekly_schemas s ON s.id = w.schema_id
                WHERE w.id = ?
                """,
                (workout_id,),
            )
            row = await cursor.fetchone()
        if row is None:
            raise NotFoundError("workout", workout_id)
        return row["user_id"]

    async def list_for_schema(self, schema_id: int) -> list[Workout]:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "SELECT * FROM workouts WHERE schema_id = ? ORDER BY day_of_week",
                (schema_id,),
            )
            rows = await cursor.fetchall()
        return [self._row_to_workout(row) for row in rows]

    def _row_to_workout(self, row: aiosqlite.Row) -> Workout:
        return Workout(
            id=row["id"],
            schema_id=row["schema_id"],
            day_of_week=row["day_of_week"],
            focus=row["focus"],
        )


class WorkoutExerciseRepository:
    """Repository for exercise prescriptions inside a workout."""

    def __init__(self, database: Database):
        self.db = database

    async def create(self, item: WorkoutExercise) -> int:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT INTO workout_exercises
                (workout_id, exercise_id, sets, reps, rest_seconds, order_index)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    item.workout_id,
                    item.exercise_id,
                    item.sets,
                    item.reps,
                    item.rest_seconds,
                    item.order_index,
                ),
            )
            return cursor.lastrowid

    async def list_for_workout(self, workout_id: int) -> list[WorkoutExercise]:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "SELECT * FROM workout_exercises WHERE workout_id = ? ORDER BY order_index",
                (workout_id,),
            )
            rows = await cursor.fetchall()
        return [
            WorkoutExercise(
                id=row["id"],
                workout_id=row["workout_id"],
                exercise_id=row["exercise_id"],
                sets=row["sets"],
                reps=row["reps"],
                rest_seconds=row["rest_seconds"],
                order_index=row["order_index"],
            )
            for row in rows
        ]

    async def update_sets(self, workout_id: int, exercise_id: int, sets: int) -> None:
        async with self.db.connection() as db:
            await db.execute(
                "UPDATE workout_exercises SET sets = ? WHERE workout_id = ? AND exercise_id = ?",
                (sets, workout_id, exercise_id),
            )


class PlanRepository:
    """Repository for generated plans."""

    def __init__(self, database: Database):
        self.db = database

    async def create(self, plan: GeneratedPlan) -> int:
        generated_at = plan.generated_at or utcnow()
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT INTO generated_plans
                (user_id, week_start, generated_at, algorithm, active, metadata,
                 schema_id, needs_regeneration, regeneration_reason, effectiveness)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    plan.user_id,
                    plan.week_start.isoformat(),
                    generated_at.isoformat(),
                    plan.algorithm,
                    1 if plan.active else 0,
                    json.dumps(plan.metadata.to_dict()),
                    plan.schema_id,
                    1 if plan.needs_regeneration else 0,
                    plan.regeneration_reason,
                    plan.effectiveness,
                ),
            )
            return cursor.lastrowid

    async def get(self, plan_id: int) -> GeneratedPlan:
        async with self.db.connection() as db:
            cursor = await db.execute("SELECT * FROM generated_plans WHERE id = ?", (plan_id,))
            row = await cursor.fetchone()
        if row is None:
            raise NotFoundError("plan", plan_id)
        return self._row_to_plan(row)

    async def find_active_for_user(self, user_id: str) -> GeneratedPlan | None:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "SELECT * FROM generated_plans WHERE user_id = ? AND active = 1",
                (user_id,),
            )
            row = await cursor.fetchone()
        return self._row_to_plan(row) if row else None

    async def list_for_user(self, user_id: str, limit: int = 10) -> list[GeneratedPlan]:
        """List a user's plans, newest first."""
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT * FROM generated_plans WHERE user_id = ?
                ORDER BY generated_at DESC, id DESC LIMIT ?
                """,
                (user_id, limit),
            )
            rows = await cursor.fetchall()
        return [self._row_to_plan(row) for row in rows]

    async def update_metadata(self, plan_id: int, metadata: PlanMetadata) -> None:
        async with self.db.connection() as db:
            await db.execute(
                "UPDATE generated_plans SET metadata = ? WHERE id = ?",
                (json.dumps(metadata.to_dict()), plan_id),
            )

    async def deactivate(self, plan_id: int) -> None:
        async with self.db.connection() as db:
            await db.execute("UPDATE generated_plans SET active = 0 WHERE id = ?", (plan_id,))

    async def mark_for_regeneration(self, plan_id: int, reason: str) -> None:
        async with self.db.connection() as db:
            await db.execute(
                """
                UPDATE generated_plans
                SET needs_regeneration = 1, regeneration_reason = ?
                WHERE id = ?
                """,
                (reason, plan_id),
            )

    async def update_effectiveness(self, plan_id: int, score: float) -> None:
        async with self.db.connection() as db:
            await db.execute(
                "UPDATE generated_plans SET effectiveness = ? WHERE id = ?",
                (score, plan_id),
            )

    async def delete(self, plan_id: int) -> None:
        """Delete a plan; performance and adaptation records cascade."""
        async with self.db.connection() as db:
            await db.execute("DELETE FROM generated_plans WHERE id = ?", (plan_id,))

    def _row_to_plan(self, row: aiosqlite.Row) -> GeneratedPlan:
        algorithm = row["algorithm"]
        return GeneratedPlan(
            id=row["id"],
            user_id=row["user_id"],
            week_start=date.fromisoformat(row["week_start"]),
            generated_at=parse_timestamp(row["generated_at"]),
            algorithm=algorithm,
            active=bool(row["active"]),
            metadata=PlanMetadata.from_dict(json.loads(row["metadata"]), algorithm),
            schema_id=row["schema_id"],
            needs_regeneration=bool(row["needs_regeneration"]),
            regeneration_reason=row["regeneration_reason"],
            effectiveness=row["effectiveness"] or 0.0,
        )


class PlanPerformanceRepository:
    """Append-only performance records."""

    def __init__(self, database: Database):
        self.db = database

    async def create(self, record: PlanPerformance) -> int:
        recorded_at = record.recorded_at or utcnow()
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT INTO plan_performance
                (plan_id, completion_rate, average_rpe, skipped_count, source,
                 progress_rate, user_satisfaction, injury_rate, recorded_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.plan_id,
                    record.completion_rate,
                    record.average_rpe,
                    record.skipped_count,
                    record.source.value,
                    record.progress_rate,
                    record.user_satisfaction,
                    record.injury_rate,
                    recorded_at.isoformat(),
                ),
            )
            return cursor.lastrowid

    async def list_for_plan(
        self,
        plan_id: int,
        source: PerformanceSource | None = None,
        limit: int | None = None,
    ) -> list[PlanPerformance]:
        """List records newest first, optionally filtered by source."""
        query = "SELECT * FROM plan_performance WHERE plan_id = ?"
        params: list = [plan_id]
        if source is not None:
            query += " AND source = ?"
            params.append(source.value)
        query += " ORDER BY recorded_at DESC, id DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        async with self.db.connection() as db:
            cursor = await db.execute(query, tuple(params))
            rows = await cursor.fetchall()
        return [
            PlanPerformance(
                id=row["id"],
                plan_id=row["plan_id"],
                completion_rate=row["completion_rate"],
                average_rpe=row["average_rpe"],
                skipped_count=row["skipped_count"],
                source=PerformanceSource(row["source"]),
                progress_rate=row["progress_rate"],
                user_satisfaction=row["user_satisfaction"],
                injury_rate=row["injury_rate"],
                recorded_at=parse_timestamp(row["recorded_at"]),
            )
            for row in rows
        ]


class PlanAdaptationRepository:
    """Append-only audit of plan mutations."""

    def __init__(self, database: Database):
        self.db = database

    async def create(self, adaptation: PlanAdaptation) -> int:
        created_at = adaptation.created_at or utcnow()
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT INTO plan_adaptations (plan_id, reason, trigger, changes, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    adaptation.plan_id,
                    adaptation.reason,
                    adaptation.trigger,
                    json.dumps(adaptation.changes),
                    created_at.isoformat(),
                ),
            )
            return cursor.lastrowid

    async def list_for_user(self, user_id: str, limit: int = 50) -> list[PlanAdaptation]:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT pa.* FROM plan_adaptations pa
                JOIN generated_plans gp ON gp.id = pa.plan_id
                WHERE gp.user_id = ?
                ORDER BY pa.created_at DESC, pa.id DESC
                LIMIT ?
                """,
                (user_id, limit),
            )
            rows = await cursor.fetchall()
        return [self._row_to_adaptation(row) for row in rows]

    async def list_for_plan(self, plan_id: int) -> list[PlanAdaptation]:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "SELECT * FROM plan_adaptations WHERE plan_id = ? ORDER BY created_at DESC, id DESC",
                (plan_id,),
            )
            rows = await cursor.fetchall()
        return [self._row_to_adaptation(row) for row in rows]

    def _row_to_adaptation(self, row: aiosqlite.Row) -> PlanAdaptation:
        return PlanAdaptation(
            id=row["id"],
            plan_id=row["plan_id"],
            reason=row["reason"],
            trigger=row["trigger"],
            changes=json.loads(row["changes"] or "{}"),
            created_at=parse_timestamp(row["created_at"]),
        )


class WorkoutSessionRepository:
    """Repository for workout sessions."""

    def __init__(self, database: Database):
        self.db = database

    async def create(self, session: WorkoutSession) -> int:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT INTO workout_sessions (user_id, workout_id, status, start_time)
                VALUES (?, ?, ?, ?)
                """,
                (
                    session.user_id,
                    session.workout_id,
                    session.status.value,
                    session.start_time.isoformat(),
                ),
            )
            return cursor.lastrowid

    async def get(self, session_id: int) -> WorkoutSession:
        async with self.db.connection() as db:
            cursor = await db.execute("SELECT * FROM workout_sessions WHERE id = ?", (session_id,))
            row = await cursor.fetchone()
        if row is None:
            raise NotFoundError("workout session", session_id)
        return self._row_to_session(row)

    async def find_active_for_user(self, user_id: str) -> WorkoutSession | None:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "SELECT * FROM workout_sessions WHERE user_id = ? AND status = 'active'",
                (user_id,),
            )
            row = await cursor.fetchone()
        return self._row_to_session(row) if row else None

    async def update_status(
        self,
        session_id: int,
        status: SessionStatus,
        end_time: datetime | None = None,
        summary: SessionSummary | None = None,
    ) -> None:
        async with self.db.connection() as db:
            await db.execute(
                """
                UPDATE workout_sessions SET status = ?, end_time = ?, summary = ?
                WHERE id = ?
                """,
                (
                    status.value,
                    _ts(end_time),
                    json.dumps(summary.to_dict()) if summary else None,
                    session_id,
                ),
            )

    async def list_for_user(
        self, user_id: str, limit: int = 20, offset: int = 0
    ) -> list[WorkoutSession]:
        """List a user's sessions, newest first."""
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT * FROM workout_sessions WHERE user_id = ?
                ORDER BY start_time DESC, id DESC LIMIT ? OFFSET ?
                """,
                (user_id, limit, offset),
            )
            rows = await cursor.fetchall()
        return [self._row_to_session(row) for row in rows]

    async def list_in_range(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[WorkoutSession]:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT * FROM workout_sessions
                WHERE user_id = ? AND start_time >= ? AND start_time < ?
                ORDER BY start_time
                """,
                (user_id, start.isoformat(), end.isoformat()),
            )
            rows = await cursor.fetchall()
        return [self._row_to_session(row) for row in rows]

    async def count_completed(self, user_id: str, since: datetime | None = None) -> int:
        query = "SELECT COUNT(*) AS n FROM workout_sessions WHERE user_id = ? AND status = 'completed'"
        params: list = [user_id]
        if since is not None:
            query += " AND start_time >= ?"
            params.append(since.isoformat())
        async with self.db.connection() as db:
            cursor = await db.execute(query, tuple(params))
            row = await cursor.fetchone()
        return row["n"]

    def _row_to_session(self, row: aiosqlite.Row) -> WorkoutSession:
        summary = SessionSummary.from_dict(json.loads(row["summary"])) if row["summary"] else None
        return WorkoutSession(
            id=row["id"],
            user_id=row["user_id"],
            workout_id=row["workout_id"],
            status=SessionStatus(row["status"]),
            start_time=parse_timestamp(row["start_time"]),
            end_time=parse_timestamp(row["end_time"]),
            summary=summary,
        )


class ExercisePerformanceRepository:
    """Per-exercise set records inside a session."""

    def __init__(self, database: Database):
        self.db = database

    async def find(self, session_id: int, exercise_id: int) -> ExercisePerformance | None:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "SELECT * FROM exercise_performances WHERE session_id = ? AND exercise_id = ?",
                (session_id, exercise_id),
            )
            row = await cursor.fetchone()
        return self._row_to_performance(row) if row else None

    async def save_sets(self, session_id: int, exercise_id: int, sets: list[SetRecord]) -> None:
        """Replace the stored set list for one exercise in a session."""
        payload = json.dumps([s.to_dict() for s in sets])
        async with self.db.connection() as db:
            await db.execute(
                """
                INSERT INTO exercise_performances (session_id, exercise_id, sets)
                VALUES (?, ?, ?)
                ON CONFLICT(session_id, exercise_id) DO UPDATE SET sets = excluded.sets
                """,
                (session_id, exercise_id, payload),
            )

    async def list_for_session(self, session_id: int) -> list[ExercisePerformance]:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "SELECT * FROM exercise_performances WHERE session_id = ? ORDER BY id",
                (session_id,),
            )
            rows = await cursor.fetchall()
        return [self._row_to_performance(row) for row in rows]

    def _row_to_performance(self, row: aiosqlite.Row) -> ExercisePerformance:
        return ExercisePerformance(
            id=row["id"],
            session_id=row["session_id"],
            exercise_id=row["exercise_id"],
            sets=[SetRecord.from_dict(s) for s in json.loads(row["sets"])],
        )


class SkippedWorkoutRepository:
    def __init__(self, database: Database):
        self.db = database

    async def create(self, skip: SkippedWorkout) -> int:
        skipped_at = skip.skipped_at or utcnow()
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT INTO skipped_workouts (user_id, workout_id, reason, skipped_at)
                VALUES (?, ?, ?, ?)
                """,
                (skip.user_id, skip.workout_id, skip.reason, skipped_at.isoformat()),
            )
            return cursor.lastrowid

    async def count_since(self, user_id: str, since: datetime) -> int:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "SELECT COUNT(*) AS n FROM skipped_workouts WHERE user_id = ? AND skipped_at >= ?",
                (user_id, since.isoformat()),
            )
            row = await cursor.fetchone()
        return row["n"]

    async def list_in_range(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[SkippedWorkout]:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT * FROM skipped_workouts
                WHERE user_id = ? AND skipped_at >= ? AND skipped_at < ?
                ORDER BY skipped_at
                """,
                (user_id, start.isoformat(), end.isoformat()),
            )
            rows = await cursor.fetchall()
        return [
            SkippedWorkout(
                id=row["id"],
                user_id=row["user_id"],
                workout_id=row["workout_id"],
                reason=row["reason"],
                skipped_at=parse_timestamp(row["skipped_at"]),
            )
            for row in rows
        ]


class ProgressLogRepository:
    def __init__(self, database: Database):
        self.db = database

    async def create(self, log: ProgressLog) -> int:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT INTO progress_logs
                (user_id, exercise_id, session_id, date, sets_completed, reps_completed,
                 weight_used, duration_seconds)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    log.user_id,
                    log.exercise_id,
                    log.session_id,
                    log.date.isoformat(),
                    log.sets_completed,
                    log.reps_completed,
                    log.weight_used,
                    log.duration_seconds,
                ),
            )
            return cursor.lastrowid

    async def list_for_exercise(
        self, user_id: str, exercise_id: int, since: date | None = None
    ) -> list[ProgressLog]:
        query = "SELECT * FROM progress_logs WHERE user_id = ? AND exercise_id = ?"
        params: list = [user_id, exercise_id]
        if since is not None:
            query += " AND date >= ?"
            params.append(since.isoformat())
        query += " ORDER BY date, id"
        async with self.db.connection() as db:
            cursor = await db.execute(query, tuple(params))
            rows = await cursor.fetchall()
        return [self._row_to_log(row) for row in rows]

    async def list_in_range(self, user_id: str, start: date, end: date) -> list[ProgressLog]:
        """Logs with ``start <= date < end``."""
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT * FROM progress_logs
                WHERE user_id = ? AND date >= ? AND date < ?
                ORDER BY date, id
                """,
                (user_id, start.isoformat(), end.isoformat()),
            )
            rows = await cursor.fetchall()
        return [self._row_to_log(row) for row in rows]

    def _row_to_log(self, row: aiosqlite.Row) -> ProgressLog:
        return ProgressLog(
            id=row["id"],
            user_id=row["user_id"],
            exercise_id=row["exercise_id"],
            session_id=row["session_id"],
            date=date.fromisoformat(row["date"]),
            sets_completed=row["sets_completed"],
            reps_completed=row["reps_completed"],
            weight_used=row["weight_used"],
            duration_seconds=row["duration_seconds"] or 0,
        )


class OneRepMaxRepository:
    def __init__(self, database: Database):
        self.db = database

    async def create(self, estimate: OneRepMaxEstimate) -> int:
        created_at = estimate.created_at or utcnow()
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT INTO one_rep_max_estimates
                (user_id, exercise_id, estimated_max, method, confidence,
                 source_performance, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    estimate.user_id,
                    estimate.exercise_id,
                    estimate.estimated_max,
                    estimate.method.value,
                    estimate.confidence,
                    json.dumps(estimate.source_performance),
                    created_at.isoformat(),
                ),
            )
            return cursor.lastrowid

    async def find_latest(self, user_id: str, exercise_id: int) -> OneRepMaxEstimate | None:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT * FROM one_rep_max_estimates
                WHERE user_id = ? AND exercise_id = ?
                ORDER BY created_at DESC, id DESC LIMIT 1
                """,
                (user_id, exercise_id),
            )
            row = await cursor.fetchone()
        return self._row_to_estimate(row) if row else None

    async def list_history(
        self, user_id: str, exercise_id: int, since: datetime | None = None
    ) -> list[OneRepMaxEstimate]:
        """History oldest first."""
        query = "SELECT * FROM one_rep_max_estimates WHERE user_id = ? AND exercise_id = ?"
        params: list = [user_id, exercise_id]
        if since is not None:
            query += " AND created_at >= ?"
            params.append(since.isoformat())
        query += " ORDER BY created_at, id"
        async with self.db.connection() as db:
            cursor = await db.execute(query, tuple(params))
            rows = await cursor.fetchall()
        return [self._row_to_estimate(row) for row in rows]

    def _row_to_estimate(self, row: aiosqlite.Row) -> OneRepMaxEstimate:
        return OneRepMaxEstimate(
            id=row["id"],
            user_id=row["user_id"],
            exercise_id=row["exercise_id"],
            estimated_max=row["estimated_max"],
            method=OneRepMaxMethod(row["method"]),
            confidence=row["confidence"],
            source_performance=json.loads(row["source_performance"] or "{}"),
            created_at=parse_timestamp(row["created_at"]),
        )


class RecoveryMetricsRepository:
    def __init__(self, database: Database):
        self.db = database

    async def create(self, metrics: RecoveryMetrics) -> int:
        recorded_at = metrics.recorded_at or utcnow()
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT INTO recovery_metrics
                (user_id, sleep_hours, sleep_quality, stress_level, soreness_level,
                 energy_level, recorded_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    metrics.user_id,
                    metrics.sleep_hours,
                    metrics.sleep_quality,
                    metrics.stress_level,
                    metrics.soreness_level,
                    metrics.energy_level,
                    recorded_at.isoformat(),
                ),
            )
            return cursor.lastrowid

    async def find_latest(self, user_id: str) -> RecoveryMetrics | None:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT * FROM recovery_metrics WHERE user_id = ?
                ORDER BY recorded_at DESC, id DESC LIMIT 1
                """,
                (user_id,),
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return RecoveryMetrics(
            id=row["id"],
            user_id=row["user_id"],
            sleep_hours=row["sleep_hours"],
            sleep_quality=row["sleep_quality"],
            stress_level=row["stress_level"],
            soreness_level=row["soreness_level"],
            energy_level=row["energy_level"],
            recorded_at=parse_timestamp(row["recorded_at"]),
        )


class GoalRepository:
    """Repository for fitness goals and their progress history."""

    def __init__(self, database: Database):
        self.db = database

    async def create(self, goal: GoalTarget) -> int:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT INTO goals
                (user_id, goal_type, description, exercise_id, current_value, target_value,
                 target_date, active, completed, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    goal.user_id,
                    goal.goal_type.value,
                    goal.description,
                    goal.exercise_id,
                    goal.current_value,
                    goal.target_value,
                    goal.target_date.isoformat(),
                    1 if goal.active else 0,
                    1 if goal.completed else 0,
                    (goal.created_at or utcnow()).isoformat(),
                ),
            )
            return cursor.lastrowid

    async def get(self, goal_id: int) -> GoalTarget:
        async with self.db.connection() as db:
            cursor = await db.execute("SELECT * FROM goals WHERE id = ?", (goal_id,))
            row = await cursor.fetchone()
        if row is None:
            raise NotFoundError("goal", goal_id)
        return self._row_to_goal(row)

    async def list_for_user(self, user_id: str, active_only: bool = False) -> list[GoalTarget]:
        query = "SELECT * FROM goals WHERE user_id = ?"
        if active_only:
            query += " AND active = 1"
        query += " ORDER BY target_date, id"
        async with self.db.connection() as db:
            cursor = await db.execute(query, (user_id,))
            rows = await cursor.fetchall()
        return [self._row_to_goal(row) for row in rows]

    async def update_progress(self, goal_id: int, current_value: float, completed: bool) -> None:
        async with self.db.connection() as db:
            await db.execute(
                "UPDATE goals SET current_value = ?, completed = ? WHERE id = ?",
                (current_value, 1 if completed else 0, goal_id),
            )

    async def deactivate(self, goal_id: int) -> None:
        async with self.db.connection() as db:
            await db.execute("UPDATE goals SET active = 0 WHERE id = ?", (goal_id,))

    async def add_progress(self, entry: GoalProgress) -> int:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "INSERT INTO goal_progress (goal_id, value, recorded_at) VALUES (?, ?, ?)",
                (entry.goal_id, entry.value, (entry.recorded_at or utcnow()).isoformat()),
            )
            return cursor.lastrowid

    async def list_progress(self, goal_id: int) -> list[GoalProgress]:
        """Progress history oldest first."""
        async with self.db.connection() as db:
            cursor = await db.execute(
                "SELECT * FROM goal_progress WHERE goal_id = ? ORDER BY recorded_at, id",
                (goal_id,),
            )
            rows = await cursor.fetchall()
        return [
            GoalProgress(
                id=row["id"],
                goal_id=row["goal_id"],
                value=row["value"],
                recorded_at=parse_timestamp(row["recorded_at"]),
            )
            for row in rows
        ]

    def _row_to_goal(self, row: aiosqlite.Row) -> GoalTarget:
        return GoalTarget(
            id=row["id"],
            user_id=row["user_id"],
            goal_type=FitnessGoal(row["goal_type"]),
            description=row["description"] or "",
            exercise_id=row["exercise_id"],
            current_value=row["current_value"],
            target_value=row["target_value"],
            target_date=date.fromisoformat(row["target_date"]),
            active=bool(row["active"]),
            completed=bool(row["completed"]),
            created_at=parse_timestamp(row["created_at"]),
        )


class CoachAssignmentRepository:
    def __init__(self, database: Database):
        self.db = database

    async def create(self, assignment: CoachAssignment) -> int:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT INTO coach_assignments (coach_id, user_id, active, notes, assigned_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    assignment.coach_id,
                    assignment.user_id,
                    1 if assignment.active else 0,
                    assignment.notes,
                    (assignment.assigned_at or utcnow()).isoformat(),
                ),
            )
            return cursor.lastrowid

    async def find_active_for_user(self, user_id: str) -> CoachAssignment | None:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "SELECT * FROM coach_assignments WHERE user_id = ? AND active = 1",
                (user_id,),
            )
            row = await cursor.fetchone()
        return self._row_to_assignment(row) if row else None

    async def list_active_for_coach(self, coach_id: str) -> list[CoachAssignment]:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT * FROM coach_assignments WHERE coach_id = ? AND active = 1
                ORDER BY assigned_at
                """,
                (coach_id,),
            )
            rows = await cursor.fetchall()
        return [self._row_to_assignment(row) for row in rows]

    async def deactivate(self, assignment_id: int) -> None:
        async with self.db.connection() as db:
            await db.execute(
                """
                UPDATE coach_assignments SET active = 0, deactivated_at = ?
                WHERE id = ? AND active = 1
                """,
                (utcnow().isoformat(), assignment_id),
            )

    def _row_to_assignment(self, row: aiosqlite.Row) -> CoachAssignment:
        return CoachAssignment(
            id=row["id"],
            coach_id=row["coach_id"],
            user_id=row["user_id"],
            active=bool(row["active"]),
            notes=row["notes"],
            assigned_at=parse_timestamp(row["assigned_at"]),
            deactivated_at=parse_timestamp(row["deactivated_at"]),
        )


class InvitationRepository:
    def __init__(self, database: Database):
        self.db = database

    async def create(self, invitation: CoachInvitation) -> None:
        async with self.db.connection() as db:
            await db.execute(
                """
                INSERT INTO coach_invitations
                (id, coach_id, email, token, status, expires_at, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    invitation.id,
                    invitation.coach_id,
                    invitation.email,
                    invitation.token,
                    invitation.status.value,
                    invitation.expires_at.isoformat(),
                    (invitation.created_at or utcnow()).isoformat(),
                ),
            )

    async def get(self, invitation_id: str) -> CoachInvitation:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "SELECT * FROM coach_invitations WHERE id = ?", (invitation_id,)
            )
            row = await cursor.fetchone()
        if row is None:
            raise NotFoundError("invitation", invitation_id)
        return self._row_to_invitation(row)

    async def find_by_token(self, token: str) -> CoachInvitation | None:
        async with self.db.connection() as db:
            cursor = await db.execute("SELECT * FROM coach_invitations WHERE token = ?", (token,))
            row = await cursor.fetchone()
        return self._row_to_invitation(row) if row else None

    async def find_pending(self, coach_id: str, email: str) -> CoachInvitation | None:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT * FROM coach_invitations
                WHERE coach_id = ? AND email = ? AND status = 'pending'
                """,
                (coach_id, email),
            )
            row = await cursor.fetchone()
        return self._row_to_invitation(row) if row else None

    async def list_for_coach(self, coach_id: str) -> list[CoachInvitation]:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "SELECT * FROM coach_invitations WHERE coach_id = ? ORDER BY created_at DESC",
                (coach_id,),
            )
            rows = await cursor.fetchall()
        return [self._row_to_invitation(row) for row in rows]

    async def update_status(
        self,
        invitation_id: str,
        status: InvitationStatus,
        accepted_at: datetime | None = None,
        accepted_by_user_id: str | None = None,
        expected: InvitationStatus | None = None,
    ) -> bool:
        """Set the status. With ``expected``, only a row still in that status changes.

        Returns:
            True if a row was updated
        """
        query = """
            UPDATE coach_invitations
            SET status = ?, accepted_at = ?, accepted_by_user_id = ?
            WHERE id = ?
        """
        params: list = [status.value, _ts(accepted_at), accepted_by_user_id, invitation_id]
        if expected is not None:
            query += " AND status = ?"
            params.append(expected.value)
        async with self.db.connection() as db:
            cursor = await db.execute(query, tuple(params))
            return cursor.rowcount > 0

    def _row_to_invitation(self, row: aiosqlite.Row) -> CoachInvitation:
        return CoachInvitation(
            id=row["id"],
            coach_id=row["coach_id"],
            email=row["email"],
            token=row["token"],
            status=InvitationStatus(row["status"]),
            expires_at=parse_timestamp(row["expires_at"]),
            created_at=parse_timestamp(row["created_at"]),
            accepted_at=parse_timestamp(row["accepted_at"]),
            accepted_by_user_id=row["accepted_by_user_id"],
        )


class ConversationRepository:
    def __init__(self, database: Database):
        self.db = database

    async def create(self, conversation: Conversation) -> int:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT INTO conversations (coach_id, client_id, archived, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (
                    conversation.coach_id,
                    conversation.client_id,
                    1 if conversation.archived else 0,
                    (conversation.created_at or utcnow()).isoformat(),
                ),
            )
            return cursor.lastrowid

    async def get(self, conversation_id: int) -> Conversation:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "SELECT * FROM conversations WHERE id = ?", (conversation_id,)
            )
            row = await cursor.fetchone()
        if row is None:
            raise NotFoundError("conversation", conversation_id)
        return self._row_to_conversation(row)

    async def find_by_participants(self, user_a: str, user_b: str) -> Conversation | None:
        """Find the conversation between two users regardless of role order."""
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT * FROM conversations
                WHERE (coach_id = ? AND client_id = ?) OR (coach_id = ? AND client_id = ?)
                """,
                (user_a, user_b, user_b, user_a),
            )
            row = await cursor.fetchone()
        return self._row_to_conversation(row) if row else None

    async def list_for_user(self, user_id: str, include_archived: bool = False) -> list[Conversation]:
        query = "SELECT * FROM conversations WHERE (coach_id = ? OR client_id = ?)"
        if not include_archived:
            query += " AND archived = 0"
        query += " ORDER BY created_at DESC, id DESC"
        async with self.db.connection() as db:
            cursor = await db.execute(query, (user_id, user_id))
            rows = await cursor.fetchall()
        return [self._row_to_conversation(row) for row in rows]

    async def is_participant(self, conversation_id: int, user_id: str) -> bool:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT 1 FROM conversations
                WHERE id = ? AND (coach_id = ? OR client_id = ?)
                """,
                (conversation_id, user_id, user_id),
            )
            row = await cursor.fetchone()
        return row is not None

    async def set_archived(self, conversation_id: int, archived: bool) -> None:
        async with self.db.connection() as db:
            await db.execute(
                "UPDATE conversations SET archived = ? WHERE id = ?",
                (1 if archived else 0, conversation_id),
            )

    async def delete(self, conversation_id: int) -> None:
        """Delete a conversation; messages, attachments and read statuses cascade."""
        async with self.db.connection() as db:
            await db.execute("DELETE FROM conversations WHERE id = ?", (conversation_id,))

    def _row_to_conversation(self, row: aiosqlite.Row) -> Conversation:
        return Conversation(
            id=row["id"],
            coach_id=row["coach_id"],
            client_id=row["client_id"],
            archived=bool(row["archived"]),
            created_at=parse_timestamp(row["created_at"]),
        )


class MessageRepository:
    """Repository for messages and their attachments."""

    def __init__(self, database: Database):
        self.db = database

    async def create(self, message: Message) -> int:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT INTO messages
                (conversation_id, sender_id, text, reply_to_message_id, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    message.conversation_id,
                    message.sender_id,
                    message.text,
                    message.reply_to_message_id,
                    (message.created_at or utcnow()).isoformat(),
                ),
            )
            return cursor.lastrowid

    async def get(self, message_id: int) -> Message:
        async with self.db.connection() as db:
            cursor = await db.execute("SELECT * FROM messages WHERE id = ?", (message_id,))
            row = await cursor.fetchone()
        if row is None:
            raise NotFoundError("message", message_id)
        message = self._row_to_message(row)
        message.attachments = (await self.list_attachments([message_id])).get(message_id, [])
        return message

    async def list_for_conversation(
        self, conversation_id: int, limit: int = 20, offset: int = 0
    ) -> list[Message]:
        """List non-deleted messages, newest first."""
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT * FROM messages
                WHERE conversation_id = ? AND deleted_at IS NULL
                ORDER BY created_at DESC, id DESC
                LIMIT ? OFFSET ?
                """,
                (conversation_id, limit, offset),
            )
            rows = await cursor.fetchall()
        messages = [self._row_to_message(row) for row in rows]
        attachments = await self.list_attachments([m.id for m in messages])
        for message in messages:
            message.attachments = attachments.get(message.id, [])
        return messages

    async def find_latest(self, conversation_id: int) -> Message | None:
        messages = await self.list_for_conversation(conversation_id, limit=1)
        return messages[0] if messages else None

    async def update_text(self, message_id: int, text: str, edited_at: datetime) -> None:
        async with self.db.connection() as db:
            await db.execute(
                "UPDATE messages SET text = ?, edited_at = ? WHERE id = ?",
                (text, edited_at.isoformat(), message_id),
            )

    async def soft_delete(self, message_id: int, deleted_at: datetime) -> None:
        async with self.db.connection() as db:
            await db.execute(
                "UPDATE messages SET deleted_at = ? WHERE id = ? AND deleted_at IS NULL",
                (deleted_at.isoformat(), message_id),
            )

    async def add_attachment(self, attachment: MessageAttachment) -> int:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT INTO message_attachments
                (message_id, attachment_type, file_name, file_url, file_size, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    attachment.message_id,
                    attachment.attachment_type.value,
                    attachment.file_name,
                    attachment.file_url,
                    attachment.file_size,
                    (attachment.created_at or utcnow()).isoformat(),
                ),
            )
            return cursor.lastrowid

    async def list_attachments(self, message_ids: list[int]) -> dict[int, list[MessageAttachment]]:
        if not message_ids:
            return {}
        placeholders = ",".join("?" for _ in message_ids)
        async with self.db.connection() as db:
            cursor = await db.execute(
                f"SELECT * FROM message_attachments WHERE message_id IN ({placeholders}) ORDER BY id",
                tuple(message_ids),
            )
            rows = await cursor.fetchall()
        result: dict[int, list[MessageAttachment]] = {}
        for row in rows:
            result.setdefault(row["message_id"], []).append(
                MessageAttachment(
                    id=row["id"],
                    message_id=row["message_id"],
                    attachment_type=AttachmentType(row["attachment_type"]),
                    file_name=row["file_name"],
                    file_url=row["file_url"],
                    file_size=row["file_size"] or 0,
                    created_at=parse_timestamp(row["created_at"]),
                )
            )
        return result

    def _row_to_message(self, row: aiosqlite.Row) -> Message:
        return Message(
            id=row["id"],
            conversation_id=row["conversation_id"],
            sender_id=row["sender_id"],
            text=row["text"],
            reply_to_message_id=row["reply_to_message_id"],
            created_at=parse_timestamp(row["created_at"]),
            edited_at=parse_timestamp(row["edited_at"]),
            deleted_at=parse_timestamp(row["deleted_at"]),
        )


class ReadStatusRepository:
    def __init__(self, database: Database):
        self.db = database

    async def mark_read(self, message_id: int, user_id: str, read_at: datetime) -> bool:
        """Record a read. Returns False when it was already recorded."""
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                INSERT OR IGNORE INTO message_read_status (message_id, user_id, read_at)
                VALUES (?, ?, ?)
                """,
                (message_id, user_id, read_at.isoformat()),
            )
            return cursor.rowcount > 0

    async def mark_all_read(self, conversation_id: int, user_id: str, read_at: datetime) -> list[int]:
        """Mark every unread message from the other participant. Returns their ids."""
        unread = await self._unread_ids(conversation_id, user_id)
        if not unread:
            return []
        async with self.db.connection() as db:
            await db.executemany(
                """
                INSERT OR IGNORE INTO message_read_status (message_id, user_id, read_at)
                VALUES (?, ?, ?)
                """,
                [(message_id, user_id, read_at.isoformat()) for message_id in unread],
            )
        return unread

    async def find(self, message_id: int, user_id: str) -> ReadStatus | None:
        async with self.db.connection() as db:
            cursor = await db.execute(
                "SELECT * FROM message_read_status WHERE message_id = ? AND user_id = ?",
                (message_id, user_id),
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return ReadStatus(
            message_id=row["message_id"],
            user_id=row["user_id"],
            read_at=parse_timestamp(row["read_at"]),
        )

    async def count_unread(self, conversation_id: int, user_id: str) -> int:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT COUNT(*) AS n FROM messages m
                WHERE m.conversation_id = ? AND m.sender_id <> ? AND m.deleted_at IS NULL
                  AND NOT EXISTS (
                      SELECT 1 FROM message_read_status r
                      WHERE r.message_id = m.id AND r.user_id = ?
                  )
                """,
                (conversation_id, user_id, user_id),
            )
            row = await cursor.fetchone()
        return row["n"]

    async def count_unread_total(self, user_id: str) -> int:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT COUNT(*) AS n FROM messages m
                JOIN conversations c ON c.id = m.conversation_id
                WHERE (c.coach_id = ? OR c.client_id = ?)
                  AND m.sender_id <> ? AND m.deleted_at IS NULL
                  AND NOT EXISTS (
                      SELECT 1 FROM message_read_status r
                      WHERE r.message_id = m.id AND r.user_id = ?
                  )
                """,
                (user_id, user_id, user_id, user_id),
            )
            row = await cursor.fetchone()
        return row["n"]

    async def _unread_ids(self, conversation_id: int, user_id: str) -> list[int]:
        async with self.db.connection() as db:
            cursor = await db.execute(
                """
                SELECT m.id FROM messages m
                WHERE m.conversation_id = ? AND m.sender_id <> ? AND m.deleted_at IS NULL
                  AND NOT EXISTS (
                      SELECT 1 FROM message_read_status r
                      WHERE r.message_id = m.id AND r.user_id = ?
                  )
                ORDER BY m.id
                """,
                (conversation_id, user_id, user_id),
            )
            rows = await cursor.fetchall()
        return [row["id"] for row in rows]


class Repositories:
    """All repositories over one ``Database``, grouped by entity family."""

    def __init__(self, database: Database):
        self.database = database
        self.exercises = ExerciseRepository(database)
        self.profiles = WorkoutProfileRepository(database)
        self.schemas = WeeklySchemaRepository(database)
        self.workouts = WorkoutRepository(database)
        self.workout_exercises = WorkoutExerciseRepository(database)
        self.plans = PlanRepository(database)
        self.plan_performance = PlanPerformanceRepository(database)
        self.plan_adaptations = PlanAdaptationRepository(database)
        self.sessions = WorkoutSessionRepository(database)
        self.exercise_performances = ExercisePerformanceRepository(database)
        self.skips = SkippedWorkoutRepository(database)
        self.progress = ProgressLogRepository(database)
        self.one_rep_max = OneRepMaxRepository(database)
        self.recovery = RecoveryMetricsRepository(database)
        self.goals = GoalRepository(database)
        self.assignments = CoachAssignmentRepository(database)
        self.invitations = InvitationRepository(database)
        self.conversations = ConversationRepository(database)
        self.messages = MessageRepository(database)
        self.read_status = ReadStatusRepository(database)

    def transaction(self):
        """Shortcut for ``self.database.transaction()``."""
        return self.database.transaction()
