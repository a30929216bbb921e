"""Database engine setup and initialization."""

import json
from pathlib import Path

import aiosqlite

from ..config import DATA_DIR
from ..models.exercises import Exercise


def get_db_path(data_dir: Path | None = None) -> Path:
    """Get the database file path."""
    if data_dir is None:
        data_dir = DATA_DIR
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / "fitup.db"


async def _run_migrations(db: aiosqlite.Connection) -> None:
    """Run database migrations for schema updates."""
    # Profiles created before limitations/time budget were tracked
    cursor = await db.execute("PRAGMA table_info(workout_profiles)")
    columns = await cursor.fetchall()
    profile_columns = {col[1] for col in columns}

    if "limitations" not in profile_columns:
        await db.execute("ALTER TABLE workout_profiles ADD COLUMN limitations TEXT DEFAULT '[]'")
    if "time_per_workout" not in profile_columns:
        await db.execute("ALTER TABLE workout_profiles ADD COLUMN time_per_workout INTEGER DEFAULT 45")

    # Plans created before effectiveness was cached on the row
    cursor = await db.execute("PRAGMA table_info(generated_plans)")
    columns = await cursor.fetchall()
    plan_columns = {col[1] for col in columns}

    if "effectiveness" not in plan_columns:
        await db.execute("ALTER TABLE generated_plans ADD COLUMN effectiveness REAL DEFAULT 0")

    await db.commit()


async def init_db(db_path: Path | None = None) -> None:
    """Initialize the database schema."""
    if db_path is None:
        db_path = get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    async with aiosqlite.connect(db_path) as db:
        await db.execute("PRAGMA journal_mode = WAL")

        # Exercise library (admin-managed)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS exercises (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT UNIQUE NOT NULL,
                muscle_groups TEXT NOT NULL,
                equipment TEXT NOT NULL,
                difficulty TEXT NOT NULL,
                exercise_type TEXT NOT NULL,
                movement_pattern TEXT NOT NULL,
                tier TEXT NOT NULL,
                default_sets INTEGER NOT NULL DEFAULT 3,
                default_reps TEXT NOT NULL DEFAULT '10',
                rest_seconds INTEGER NOT NULL DEFAULT 60,
                contraindications TEXT DEFAULT '[]'
            )
        """)

        # Workout profiles, one per user
        await db.execute("""
            CREATE TABLE IF NOT EXISTS workout_profiles (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT UNIQUE NOT NULL,
                level TEXT NOT NULL,
                primary_goal TEXT NOT NULL,
                frequency INTEGER NOT NULL CHECK (frequency BETWEEN 1 AND 7),
                equipment TEXT NOT NULL,
                time_per_workout INTEGER DEFAULT 45,
                limitations TEXT DEFAULT '[]',
                created_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP NOT NULL
            )
        """)

        # Weekly schemas and their workouts
        await db.execute("""
            CREATE TABLE IF NOT EXISTS weekly_schemas (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                week_start DATE NOT NULL,
                active INTEGER NOT NULL DEFAULT 1,
                created_at TIMESTAMP NOT NULL
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS workouts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                schema_id INTEGER NOT NULL,
                day_of_week INTEGER NOT NULL CHECK (day_of_week BETWEEN 1 AND 7),
                focus TEXT NOT NULL,
                UNIQUE (schema_id, day_of_week),
                FOREIGN KEY (schema_id) REFERENCES weekly_schemas(id) ON DELETE CASCADE
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS workout_exercises (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                workout_id INTEGER NOT NULL,
                exercise_id INTEGER NOT NULL,
                sets INTEGER NOT NULL,
                reps TEXT NOT NULL,
                rest_seconds INTEGER NOT NULL,
                order_index INTEGER NOT NULL,
                FOREIGN KEY (workout_id) REFERENCES workouts(id) ON DELETE CASCADE,
                FOREIGN KEY (exercise_id) REFERENCES exercises(id)
            )
        """)

        # Generated plans and their audit trails
        await db.execute("""
            CREATE TABLE IF NOT EXISTS generated_plans (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                week_start DATE NOT NULL,
                generated_at TIMESTAMP NOT NULL,
                algorithm TEXT NOT NULL,
                active INTEGER NOT NULL DEFAULT 1,
                metadata TEXT NOT NULL,
                schema_id INTEGER,
                needs_regeneration INTEGER NOT NULL DEFAULT 0,
                regeneration_reason TEXT,
                effectiveness REAL DEFAULT 0,
                FOREIGN KEY (schema_id) REFERENCES weekly_schemas(id) ON DELETE SET NULL
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS plan_performance (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                plan_id INTEGER NOT NULL,
                completion_rate REAL NOT NULL,
                average_rpe REAL,
                skipped_count INTEGER NOT NULL DEFAULT 0,
                source TEXT NOT NULL DEFAULT 'manual',
                progress_rate REAL,
                user_satisfaction REAL,
                injury_rate REAL,
                recorded_at TIMESTAMP NOT NULL,
                FOREIGN KEY (plan_id) REFERENCES generated_plans(id) ON DELETE CASCADE
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS plan_adaptations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                plan_id INTEGER NOT NULL,
                reason TEXT NOT NULL,
                trigger TEXT NOT NULL DEFAULT 'manual',
                changes TEXT NOT NULL DEFAULT '{}',
                created_at TIMESTAMP NOT NULL,
                FOREIGN KEY (plan_id) REFERENCES generated_plans(id) ON DELETE CASCADE
            )
        """)

        # Sessions and progress
        await db.execute("""
            CREATE TABLE IF NOT EXISTS workout_sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                workout_id INTEGER NOT NULL,
                status TEXT NOT NULL,
                start_time TIMESTAMP NOT NULL,
                end_time TIMESTAMP,
                summary TEXT
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS exercise_performances (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id INTEGER NOT NULL,
                exercise_id INTEGER NOT NULL,
                sets TEXT NOT NULL DEFAULT '[]',
                UNIQUE (session_id, exercise_id),
                FOREIGN KEY (session_id) REFERENCES workout_sessions(id) ON DELETE CASCADE
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS skipped_workouts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                workout_id INTEGER NOT NULL,
                reason TEXT NOT NULL,
                skipped_at TIMESTAMP NOT NULL
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS progress_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                exercise_id INTEGER NOT NULL,
                session_id INTEGER,
                date DATE NOT NULL,
                sets_completed INTEGER NOT NULL,
                reps_completed INTEGER NOT NULL,
                weight_used REAL NOT NULL,
                duration_seconds INTEGER DEFAULT 0,
                UNIQUE (session_id, exercise_id)
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS one_rep_max_estimates (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                exercise_id INTEGER NOT NULL,
                estimated_max REAL NOT NULL,
                method TEXT NOT NULL,
                confidence REAL NOT NULL,
                source_performance TEXT DEFAULT '{}',
                created_at TIMESTAMP NOT NULL
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS recovery_metrics (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                sleep_hours REAL NOT NULL,
                sleep_quality INTEGER NOT NULL,
                stress_level INTEGER NOT NULL,
                soreness_level INTEGER NOT NULL,
                energy_level INTEGER NOT NULL,
                recorded_at TIMESTAMP NOT NULL
            )
        """)

        # Goals
        await db.execute("""
            CREATE TABLE IF NOT EXISTS goals (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                goal_type TEXT NOT NULL,
                description TEXT DEFAULT '',
                exercise_id INTEGER,
                current_value REAL NOT NULL,
                target_value REAL NOT NULL CHECK (target_value > 0),
                target_date DATE NOT NULL,
                active INTEGER NOT NULL DEFAULT 1,
                completed INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMP NOT NULL
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS goal_progress (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                goal_id INTEGER NOT NULL,
                value REAL NOT NULL,
                recorded_at TIMESTAMP NOT NULL,
                FOREIGN KEY (goal_id) REFERENCES goals(id) ON DELETE CASCADE
            )
        """)

        # Coaching
        await db.execute("""
            CREATE TABLE IF NOT EXISTS coach_assignments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                coach_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                active INTEGER NOT NULL DEFAULT 1,
                notes TEXT,
                assigned_at TIMESTAMP NOT NULL,
                deactivated_at TIMESTAMP
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS coach_invitations (
                id TEXT PRIMARY KEY,
                coach_id TEXT NOT NULL,
                email TEXT NOT NULL,
                token TEXT UNIQUE NOT NULL,
                status TEXT NOT NULL,
                expires_at TIMESTAMP NOT NULL,
                created_at TIMESTAMP NOT NULL,
                accepted_at TIMESTAMP,
                accepted_by_user_id TEXT
            )
        """)

        # Messaging
        await db.execute("""
            CREATE TABLE IF NOT EXISTS conversations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                coach_id TEXT NOT NULL,
                client_id TEXT NOT NULL,
                archived INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMP NOT NULL,
                CHECK (coach_id <> client_id)
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS messages (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                conversation_id INTEGER NOT NULL,
                sender_id TEXT NOT NULL,
                text TEXT NOT NULL CHECK (length(text) BETWEEN 1 AND 5000),
                reply_to_message_id INTEGER,
                created_at TIMESTAMP NOT NULL,
                edited_at TIMESTAMP,
                deleted_at TIMESTAMP,
                FOREIGN KEY (conversation_id) REFERENCES conversations(id) ON DELETE CASCADE,
                FOREIGN KEY (reply_to_message_id) REFERENCES messages(id) ON DELETE SET NULL
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS message_attachments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                message_id INTEGER NOT NULL,
                attachment_type TEXT NOT NULL CHECK (attachment_type IN ('image', 'document')),
                file_name TEXT NOT NULL,
                file_url TEXT NOT NULL,
                file_size INTEGER DEFAULT 0,
                created_at TIMESTAMP NOT NULL,
                FOREIGN KEY (message_id) REFERENCES messages(id) ON DELETE CASCADE
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS message_read_status (
                message_id INTEGER NOT NULL,
                user_id TEXT NOT NULL,
                read_at TIMESTAMP NOT NULL,
                PRIMARY KEY (message_id, user_id),
                FOREIGN KEY (message_id) REFERENCES messages(id) ON DELETE CASCADE
            )
        """)

        # Single-active invariants
        await db.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS uq_generated_plans_active
            ON generated_plans(user_id) WHERE active = 1
        """)
        await db.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS uq_weekly_schemas_active
            ON weekly_schemas(user_id) WHERE active = 1
        """)
        await db.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS uq_workout_sessions_active
            ON workout_sessions(user_id) WHERE status = 'active'
        """)
        await db.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS uq_coach_assignments_active
            ON coach_assignments(user_id) WHERE active = 1
        """)
        await db.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS uq_coach_invitations_pending
            ON coach_invitations(coach_id, email) WHERE status = 'pending'
        """)
        await db.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS uq_conversations_pair
            ON conversations(min(coach_id, client_id), max(coach_id, client_id))
        """)

        # Indexes for common queries
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_plans_user
            ON generated_plans(user_id, generated_at)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_sessions_user
            ON workout_sessions(user_id, start_time)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_progress_logs_user_exercise
            ON progress_logs(user_id, exercise_id, date)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_one_rep_max_user_exercise
            ON one_rep_max_estimates(user_id, exercise_id, created_at)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_skipped_workouts_user
            ON skipped_workouts(user_id, skipped_at)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_messages_conversation
            ON messages(conversation_id, created_at)
        """)

        await db.commit()

        # Run migrations for existing databases
        await _run_migrations(db)


async def seed_exercises(
    db_path: Path | None = None,
    exercises: list[Exercise] | None = None,
) -> int:
    """Seed the database with the exercise library.

    Returns:
        Number of exercises inserted (existing rows are left untouched)
    """
    if exercises is None:
        from ..models.exercises import COMMON_EXERCISES

        exercises = COMMON_EXERCISES

    if db_path is None:
        db_path = get_db_path()

    inserted = 0
    async with aiosqlite.connect(db_path) as db:
        for exercise in exercises:
            cursor = await db.execute(
                """
                INSERT OR IGNORE INTO exercises
                (id, name, muscle_groups, equipment, difficulty, exercise_type,
                 movement_pattern, tier, default_sets, default_reps, rest_seconds,
                 contraindications)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    exercise.id,
                    exercise.name,
                    json.dumps([mg.value for mg in exercise.muscle_groups]),
                    json.dumps([eq.value for eq in exercise.equipment]),
                    exercise.difficulty.value,
                    exercise.exercise_type.value,
                    exercise.movement_pattern.value,
                    exercise.tier.value,
                    exercise.default_sets,
                    exercise.default_reps,
                    exercise.rest_seconds,
                    json.dumps([c.value for c in exercise.contraindications]),
                ),
            )
            inserted += cursor.rowcount
        await db.commit()

    return inserted
