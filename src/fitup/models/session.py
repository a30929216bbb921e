"""Workout session and progress tracking models."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class SessionStatus(str, Enum):
    """Lifecycle of a workout session."""

    ACTIVE = "active"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    STALE = "stale"


@dataclass
class SetRecord:
    """A single performed set."""

    reps: int
    weight: float  # kg, 0 for bodyweight
    rpe: float | None = None
    rest_seconds: int | None = None

    @property
    def volume(self) -> float:
        return self.reps * self.weight

    def to_dict(self) -> dict:
        return {
            "reps": self.reps,
            "weight": self.weight,
            "rpe": self.rpe,
            "rest_seconds": self.rest_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SetRecord":
        return cls(
            reps=int(data["reps"]),
            weight=float(data["weight"]),
            rpe=data.get("rpe"),
            rest_seconds=data.get("rest_seconds"),
        )


def pick_best_set(sets: list[SetRecord]) -> SetRecord | None:
    """Heaviest set, ties broken by reps."""
    if not sets:
        return None
    return max(sets, key=lambda s: (s.weight, s.reps))


@dataclass
class ExercisePerformance:
    """All sets logged for one exercise within a session."""

    session_id: int
    exercise_id: int
    sets: list[SetRecord] = field(default_factory=list)
    id: int | None = None

    @property
    def sets_completed(self) -> int:
        return len(self.sets)

    @property
    def best_set(self) -> SetRecord | None:
        return pick_best_set(self.sets)

    @property
    def total_volume(self) -> float:
        return sum(s.volume for s in self.sets)

    @property
    def average_rpe(self) -> float | None:
        rpes = [s.rpe for s in self.sets if s.rpe is not None]
        if not rpes:
            return None
        return sum(rpes) / len(rpes)

    def to_dict(self) -> dict:
        best = self.best_set
        return {
            "session_id": self.session_id,
            "exercise_id": self.exercise_id,
            "sets_completed": self.sets_completed,
            "sets": [s.to_dict() for s in self.sets],
            "best_set": best.to_dict() if best else None,
            "total_volume": self.total_volume,
        }


@dataclass
class SessionSummary:
    """Summary written when a session completes."""

    total_duration_seconds: int = 0
    exercises_completed: int = 0
    exercises_planned: int = 0
    total_volume: float = 0.0
    average_rpe: float | None = None
    completion_rate: float = 0.0
    notes: str = ""
    exercises: list[ExercisePerformance] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_duration_seconds": self.total_duration_seconds,
            "exercises_completed": self.exercises_completed,
            "exercises_planned": self.exercises_planned,
            "total_volume": self.total_volume,
            "average_rpe": self.average_rpe,
            "completion_rate": self.completion_rate,
            "notes": self.notes,
            "exercises": [ex.to_dict() for ex in self.exercises],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionSummary":
        return cls(
            total_duration_seconds=data.get("total_duration_seconds", 0),
            exercises_completed=data.get("exercises_completed", 0),
            exercises_planned=data.get("exercises_planned", 0),
            total_volume=data.get("total_volume", 0.0),
            average_rpe=data.get("average_rpe"),
            completion_rate=data.get("completion_rate", 0.0),
            notes=data.get("notes", ""),
            exercises=[
                ExercisePerformance(
                    session_id=ex["session_id"],
                    exercise_id=ex["exercise_id"],
                    sets=[SetRecord.from_dict(s) for s in ex.get("sets", [])],
                )
                for ex in data.get("exercises", [])
            ],
        )


@dataclass
class WorkoutSession:
    """A single attempt at a planned workout."""

    user_id: str
    workout_id: int
    start_time: datetime
    status: SessionStatus = SessionStatus.ACTIVE
    end_time: datetime | None = None
    summary: SessionSummary | None = None
    id: int | None = None

    def is_stale(self, now: datetime, max_age_hours: int = 24) -> bool:
        return (
            self.status == SessionStatus.ACTIVE
            and (now - self.start_time).total_seconds() > max_age_hours * 3600
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "workout_id": self.workout_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "status": self.status.value,
            "summary": self.summary.to_dict() if self.summary else None,
        }


@dataclass
class SkippedWorkout:
    user_id: str
    workout_id: int
    reason: str
    id: int | None = None
    skipped_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "workout_id": self.workout_id,
            "reason": self.reason,
            "skipped_at": self.skipped_at.isoformat() if self.skipped_at else None,
        }


@dataclass
class ProgressLog:
    """Per-exercise result of a completed session (best set)."""

    user_id: str
    exercise_id: int
    date: date
    sets_completed: int
    reps_completed: int
    weight_used: float
    duration_seconds: int = 0
    session_id: int | None = None
    id: int | None = None

    @property
    def volume(self) -> float:
        return self.sets_completed * self.reps_completed * self.weight_used

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "exercise_id": self.exercise_id,
            "session_id": self.session_id,
            "date": self.date.isoformat(),
            "sets_completed": self.sets_completed,
            "reps_completed": self.reps_completed,
            "weight_used": self.weight_used,
            "duration_seconds": self.duration_seconds,
        }
