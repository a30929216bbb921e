"""Fitness goal tracking models."""

from dataclasses import dataclass
from datetime import date, datetime

from .profile import FitnessGoal


@dataclass
class GoalTarget:
    """A measurable target such as a lift 1RM or body weight."""

    user_id: str
    goal_type: FitnessGoal
    current_value: float
    target_value: float
    target_date: date
    description: str = ""
    exercise_id: int | None = None
    active: bool = True
    completed: bool = False
    id: int | None = None
    created_at: datetime | None = None

    @property
    def is_decreasing(self) -> bool:
        """True when progress means moving the value down (e.g. body weight)."""
        return self.target_value < self.current_value

    def is_reached(self, value: float) -> bool:
        if self.is_decreasing:
            return value <= self.target_value
        return value >= self.target_value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "goal_type": self.goal_type.value,
            "description": self.description,
            "exercise_id": self.exercise_id,
            "current_value": self.current_value,
            "target_value": self.target_value,
            "target_date": self.target_date.isoformat(),
            "active": self.active,
            "completed": self.completed,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class GoalProgress:
    goal_id: int
    value: float
    id: int | None = None
    recorded_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "goal_id": self.goal_id,
            "value": self.value,
            "recorded_at": self.recorded_at.isoformat() if self.recorded_at else None,
        }
