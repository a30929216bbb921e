"""Database layer for FitUp."""

from .database import Database
from .engine import get_db_path, init_db, seed_exercises
from .repositories import (
    CoachAssignmentRepository,
    ConversationRepository,
    ExerciseRepository,
    GoalRepository,
    InvitationRepository,
    MessageRepository,
    PlanRepository,
    ReadStatusRepository,
    Repositories,
    WorkoutSessionRepository,
)

__all__ = [
    "CoachAssignmentRepository",
    "ConversationRepository",
    "Database",
    "ExerciseRepository",
    "get_db_path",
    "GoalRepository",
    "init_db",
    "InvitationRepository",
    "MessageRepository",
    "PlanRepository",
    "ReadStatusRepository",
    "Repositories",
    "seed_exercises",
    "WorkoutSessionRepository",
]
