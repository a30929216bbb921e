"""Workout plan data models."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from .exercises import EquipmentType, FitnessLevel, MovementLimitation
from .profile import FitnessGoal, RecoveryStatus

ALGORITHM_ADAPTIVE_V1 = "fitup_adaptive_v1"


class ProgressionMethod(str, Enum):
    """Which lever the next progression step pulls."""

    SETS = "sets"
    LOAD = "load"


class PerformanceSource(str, Enum):
    """Where a plan performance record came from."""

    SESSION = "session"
    SKIP = "skip"
    MANUAL = "manual"


class AdaptationReason(str, Enum):
    LOW_COMPLETION_RATE = "low_completion_rate"
    POTENTIAL_OVERTRAINING = "potential_overtraining"
    READY_FOR_PROGRESSION = "ready_for_progression"
    SKIP_PATTERN = "skip_pattern"
    REGENERATION_REQUEST = "plan_regeneration_request"


@dataclass
class PlanRequest:
    """Input to plan generation."""

    goals: list[FitnessGoal]
    equipment: list[EquipmentType]
    level: FitnessLevel
    frequency: int
    time_per_workout: int
    limitations: list[MovementLimitation] = field(default_factory=list)
    one_rep_maxes: dict[int, float] = field(default_factory=dict)  # exercise_id -> kg
    recovery_status: RecoveryStatus | None = None
    week_start: date | None = None

    @property
    def primary_goal(self) -> FitnessGoal:
        return self.goals[0]


@dataclass
class AdaptiveParameters:
    """Parameters of the ``fitup_adaptive_v1`` algorithm."""

    level: FitnessLevel
    goals: list[FitnessGoal]
    frequency: int
    time_per_workout: int
    equipment: list[EquipmentType]
    limitations: list[MovementLimitation] = field(default_factory=list)
    recovery_status: RecoveryStatus = RecoveryStatus.NORMAL
    intensity_guidelines: str = ""
    level_volume_multiplier: float = 1.0
    volume_adjustment_pct: float = 0.0  # cumulative, floor -30
    set_bonus: int = 0  # cumulative, cap +2
    load_adjustment_pct: float = 0.0
    next_progression: ProgressionMethod = ProgressionMethod.SETS
    last_progression_week: str | None = None  # ISO "YYYY-Www"

    def to_dict(self) -> dict:
        return {
            "level": self.level.value,
            "goals": [g.value for g in self.goals],
            "frequency": self.frequency,
            "time_per_workout": self.time_per_workout,
            "equipment": [eq.value for eq in self.equipment],
            "limitations": [lim.value for lim in self.limitations],
            "recovery_status": self.recovery_status.value,
            "intensity_guidelines": self.intensity_guidelines,
            "level_volume_multiplier": self.level_volume_multiplier,
            "volume_adjustment_pct": self.volume_adjustment_pct,
            "set_bonus": self.set_bonus,
            "load_adjustment_pct": self.load_adjustment_pct,
            "next_progression": self.next_progression.value,
            "last_progression_week": self.last_progression_week,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AdaptiveParameters":
        return cls(
            level=FitnessLevel(data["level"]),
            goals=[FitnessGoal(g) for g in data["goals"]],
            frequency=data["frequency"],
            time_per_workout=data["time_per_workout"],
            equipment=[EquipmentType(eq) for eq in data["equipment"]],
            limitations=[MovementLimitation(lim) for lim in data.get("limitations", [])],
            recovery_status=RecoveryStatus(data.get("recovery_status", "normal")),
            intensity_guidelines=data.get("intensity_guidelines", ""),
            level_volume_multiplier=data.get("level_volume_multiplier", 1.0),
            volume_adjustment_pct=data.get("volume_adjustment_pct", 0.0),
            set_bonus=data.get("set_bonus", 0),
            load_adjustment_pct=data.get("load_adjustment_pct", 0.0),
            next_progression=ProgressionMethod(data.get("next_progression", "sets")),
            last_progression_week=data.get("last_progression_week"),
        )


# Parameter types by algorithm tag
PARAMETER_TYPES = {ALGORITHM_ADAPTIVE_V1: AdaptiveParameters}


@dataclass
class PlanExercise:
    """An exercise prescription inside a plan day."""

    exercise_id: int
    name: str
    sets: int
    reps: str  # "8-12", "30 sec"
    rest_seconds: int
    order_index: int
    baseline_sets: int = 0
    muscle_groups: list[str] = field(default_factory=list)
    equipment: list[str] = field(default_factory=list)
    tier: str = ""
    load_target: float | None = None  # kg
    baseline_load: float | None = None

    def to_dict(self) -> dict:
        return {
            "exercise_id": self.exercise_id,
            "name": self.name,
            "sets": self.sets,
            "reps": self.reps,
            "rest_seconds": self.rest_seconds,
            "order_index": self.order_index,
            "baseline_sets": self.baseline_sets,
            "muscle_groups": self.muscle_groups,
            "equipment": self.equipment,
            "tier": self.tier,
            "load_target": self.load_target,
            "baseline_load": self.baseline_load,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PlanExercise":
        return cls(
            exercise_id=data["exercise_id"],
            name=data["name"],
            sets=data["sets"],
            reps=data["reps"],
            rest_seconds=data["rest_seconds"],
            order_index=data["order_index"],
            baseline_sets=data.get("baseline_sets", data["sets"]),
            muscle_groups=data.get("muscle_groups", []),
            equipment=data.get("equipment", []),
            tier=data.get("tier", ""),
            load_target=data.get("load_target"),
            baseline_load=data.get("baseline_load"),
        )


@dataclass
class PlanDay:
    """One day of the weekly layout. Rest days have no exercises."""

    day_of_week: int  # 1 = Monday
    focus: str
    exercises: list[PlanExercise] = field(default_factory=list)
    workout_id: int | None = None

    @property
    def is_rest(self) -> bool:
        return not self.exercises

    def to_dict(self) -> dict:
        return {
            "day_of_week": self.day_of_week,
            "focus": self.focus,
            "is_rest": self.is_rest,
            "workout_id": self.workout_id,
            "exercises": [ex.to_dict() for ex in self.exercises],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PlanDay":
        return cls(
            day_of_week=data["day_of_week"],
            focus=data["focus"],
            exercises=[PlanExercise.from_dict(ex) for ex in data.get("exercises", [])],
            workout_id=data.get("workout_id"),
        )


@dataclass
class PlanMetadata:
    """Typed metadata blob stored with a generated plan."""

    template_used: str
    muscle_groups_targeted: list[str]
    equipment_utilized: list[str]
    estimated_volume: float
    progression_method: str
    structure: list[PlanDay]
    parameters: AdaptiveParameters
    extensions: dict = field(default_factory=dict)

    @property
    def total_exercises(self) -> int:
        return sum(len(day.exercises) for day in self.structure)

    @property
    def workout_days(self) -> list[PlanDay]:
        return [day for day in self.structure if not day.is_rest]

    def to_dict(self) -> dict:
        return {
            "template_used": self.template_used,
            "total_exercises": self.total_exercises,
            "muscle_groups_targeted": self.muscle_groups_targeted,
            "equipment_utilized": self.equipment_utilized,
            "estimated_volume": self.estimated_volume,
            "progression_method": self.progression_method,
            "structure": [day.to_dict() for day in self.structure],
            "parameters": self.parameters.to_dict(),
            "extensions": self.extensions,
        }

    @classmethod
    def from_dict(cls, data: dict, algorithm: str = ALGORITHM_ADAPTIVE_V1) -> "PlanMetadata":
        param_type = PARAMETER_TYPES.get(algorithm)
        if param_type is None:
            raise ValueError(f"Unknown plan algorithm: {algorithm}")
        return cls(
            template_used=data["template_used"],
            muscle_groups_targeted=data.get("muscle_groups_targeted", []),
            equipment_utilized=data.get("equipment_utilized", []),
            estimated_volume=data.get("estimated_volume", 0.0),
            progression_method=data.get("progression_method", ""),
            structure=[PlanDay.from_dict(d) for d in data.get("structure", [])],
            parameters=param_type.from_dict(data["parameters"]),
            extensions=data.get("extensions", {}),
        )


@dataclass
class GeneratedPlan:
    """A generated weekly plan. At most one active plan per user."""

    user_id: str
    week_start: date
    metadata: PlanMetadata
    algorithm: str = ALGORITHM_ADAPTIVE_V1
    active: bool = True
    schema_id: int | None = None
    needs_regeneration: bool = False
    regeneration_reason: str | None = None
    effectiveness: float = 0.0
    id: int | None = None
    generated_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "week_start": self.week_start.isoformat(),
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
            "algorithm": self.algorithm,
            "active": self.active,
            "schema_id": self.schema_id,
            "needs_regeneration": self.needs_regeneration,
            "regeneration_reason": self.regeneration_reason,
            "effectiveness": self.effectiveness,
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class PlanPerformance:
    """Append-only performance record for a plan."""

    plan_id: int
    completion_rate: float
    average_rpe: float | None = None
    skipped_count: int = 0
    source: PerformanceSource = PerformanceSource.MANUAL
    progress_rate: float | None = None
    user_satisfaction: float | None = None
    injury_rate: float | None = None
    id: int | None = None
    recorded_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "plan_id": self.plan_id,
            "completion_rate": self.completion_rate,
            "average_rpe": self.average_rpe,
            "skipped_count": self.skipped_count,
            "source": self.source.value,
            "progress_rate": self.progress_rate,
            "user_satisfaction": self.user_satisfaction,
            "injury_rate": self.injury_rate,
            "recorded_at": self.recorded_at.isoformat() if self.recorded_at else None,
        }


@dataclass
class PlanAdaptation:
    """Audit record of a change to an active plan."""

    plan_id: int
    reason: str
    trigger: str = "manual"
    changes: dict = field(default_factory=dict)
    id: int | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "plan_id": self.plan_id,
            "reason": self.reason,
            "trigger": self.trigger,
            "changes": self.changes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class WeeklySchema:
    """Concrete per-week plan: workouts keyed by day of week."""

    user_id: str
    week_start: date
    active: bool = True
    id: int | None = None
    workouts: list["Workout"] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "week_start": self.week_start.isoformat(),
            "active": self.active,
            "workouts": [w.to_dict() for w in self.workouts],
        }


@dataclass
class Workout:
    schema_id: int
    day_of_week: int
    focus: str
    id: int | None = None
    exercises: list["WorkoutExercise"] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "schema_id": self.schema_id,
            "day_of_week": self.day_of_week,
            "focus": self.focus,
            "exercises": [ex.to_dict() for ex in self.exercises],
        }


@dataclass
class WorkoutExercise:
    workout_id: int
    exercise_id: int
    sets: int
    reps: str
    rest_seconds: int
    order_index: int
    id: int | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "workout_id": self.workout_id,
            "exercise_id": self.exercise_id,
            "sets": self.sets,
            "reps": self.reps,
            "rest_seconds": self.rest_seconds,
            "order_index": self.order_index,
        }
