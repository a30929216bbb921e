"""Data models for FitUp."""

from .coaching import CoachAssignment, CoachInvitation, InvitationStatus
from .exercises import (
    COMMON_EXERCISES,
    EquipmentType,
    Exercise,
    ExerciseTier,
    ExerciseType,
    FitnessLevel,
    MovementLimitation,
    MovementPattern,
    MuscleGroup,
)
from .goals import GoalProgress, GoalTarget
from .messaging import AttachmentType, Conversation, Message, MessageAttachment
from .plan import GeneratedPlan, PlanMetadata, PlanRequest
from .profile import FitnessGoal, RecoveryStatus, UserRole, WorkoutProfile
from .session import SessionStatus, SetRecord, WorkoutSession

__all__ = [
    "AttachmentType",
    "COMMON_EXERCISES",
    "CoachAssignment",
    "CoachInvitation",
    "Conversation",
    "EquipmentType",
    "Exercise",
    "ExerciseTier",
    "ExerciseType",
    "FitnessGoal",
    "FitnessLevel",
    "GeneratedPlan",
    "GoalProgress",
    "GoalTarget",
    "InvitationStatus",
    "Message",
    "MessageAttachment",
    "MovementLimitation",
    "MovementPattern",
    "MuscleGroup",
    "PlanMetadata",
    "PlanRequest",
    "RecoveryStatus",
    "SessionStatus",
    "SetRecord",
    "UserRole",
    "WorkoutProfile",
    "WorkoutSession",
]
