"""Workout profile data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .exercises import EquipmentType, FitnessLevel, MovementLimitation


class FitnessGoal(str, Enum):
    """Primary training goals."""

    MUSCLE_GAIN = "muscle_gain"
    FAT_LOSS = "fat_loss"
    STRENGTH = "strength"
    ENDURANCE = "endurance"
    GENERAL_FITNESS = "general_fitness"


class UserRole(str, Enum):
    """Role carried in the auth token."""

    USER = "user"
    COACH = "coach"
    ADMIN = "admin"


class RecoveryStatus(str, Enum):
    """Recovery state derived from recovery metrics."""

    UNDER_RECOVERED = "under_recovered"
    NORMAL = "normal"
    WELL_RECOVERED = "well_recovered"

    @property
    def volume_multiplier(self) -> float:
        return _RECOVERY_MULTIPLIER[self]


_RECOVERY_MULTIPLIER = {
    RecoveryStatus.UNDER_RECOVERED: 0.85,
    RecoveryStatus.NORMAL: 1.0,
    RecoveryStatus.WELL_RECOVERED: 1.05,
}


@dataclass
class WorkoutProfile:
    """A user's training profile. One per user."""

    user_id: str
    level: FitnessLevel
    primary_goal: FitnessGoal
    frequency: int  # workouts per week, 1-7
    equipment: list[EquipmentType]
    time_per_workout: int = 45  # minutes
    limitations: list[MovementLimitation] = field(default_factory=list)
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "user_id": self.user_id,
            "level": self.level.value,
            "primary_goal": self.primary_goal.value,
            "frequency": self.frequency,
            "equipment": [eq.value for eq in self.equipment],
            "time_per_workout": self.time_per_workout,
            "limitations": [lim.value for lim in self.limitations],
        }

    @classmethod
    def from_dict(
        cls,
        data: dict,
        id: int | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> "WorkoutProfile":
        """Create from dictionary."""
        return cls(
            id=id,
            user_id=data["user_id"],
            level=FitnessLevel(data["level"]),
            primary_goal=FitnessGoal(data["primary_goal"]),
            frequency=int(data["frequency"]),
            equipment=[EquipmentType(eq) for eq in data["equipment"]],
            time_per_workout=int(data.get("time_per_workout", 45)),
            limitations=[MovementLimitation(lim) for lim in data.get("limitations", [])],
            created_at=created_at,
            updated_at=updated_at,
        )


@dataclass
class RecoveryMetrics:
    """A self-reported recovery check-in. Scales are 1-10."""

    user_id: str
    sleep_hours: float
    sleep_quality: int
    stress_level: int
    soreness_level: int
    energy_level: int
    id: int | None = None
    recorded_at: datetime | None = None

    @property
    def recovery_score(self) -> float:
        """Score in [0, 1]; higher means better recovered."""
        sleep = min(self.sleep_hours / 8.0, 1.0)
        positives = (self.sleep_quality + self.energy_level) / 20.0
        negatives = (self.stress_level + self.soreness_level) / 20.0
        return max(0.0, min(1.0, 0.3 * sleep + 0.4 * positives + 0.3 * (1 - negatives)))

    @property
    def status(self) -> RecoveryStatus:
        score = self.recovery_score
        if score < 0.5:
            return RecoveryStatus.UNDER_RECOVERED
        if score >= 0.75:
            return RecoveryStatus.WELL_RECOVERED
        return RecoveryStatus.NORMAL

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "sleep_hours": self.sleep_hours,
            "sleep_quality": self.sleep_quality,
            "stress_level": self.stress_level,
            "soreness_level": self.soreness_level,
            "energy_level": self.energy_level,
            "recovery_score": round(self.recovery_score, 3),
            "status": self.status.value,
            "recorded_at": self.recorded_at.isoformat() if self.recorded_at else None,
        }
