"""Workout profile and fitness goal routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ...models.exercises import EquipmentType, FitnessLevel, MovementLimitation
from ...models.goals import GoalTarget
from ...models.profile import FitnessGoal, WorkoutProfile
from ...services.container import Services
from ..auth import CurrentUser, get_current_user
from ..deps import get_services

router = APIRouter(tags=["profile"])


class ProfileBody(BaseModel):
    level: FitnessLevel
    primary_goal: FitnessGoal
    frequency: int
    equipment: list[EquipmentType]
    time_per_workout: int = 45
    limitations: list[MovementLimitation] = Field(default_factory=list)


class GoalBody(BaseModel):
    goal_type: FitnessGoal
    current_value: float
    target_value: float
    target_date: date
    description: str = ""
    exercise_id: int | None = None


class GoalProgressBody(BaseModel):
    value: float


@router.put("/profile")
async def upsert_profile(
    body: ProfileBody,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    profile = await services.profiles.upsert_profile(
        WorkoutProfile(user_id=user.user_id, **body.model_dump())
    )
    return profile.to_dict()


@router.get("/profile")
async def get_profile(
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    profile = await services.profiles.get_profile(user.user_id)
    return profile.to_dict()


@router.post("/goals", status_code=201)
async def create_goal(
    body: GoalBody,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    goal = await services.goals.create_goal(GoalTarget(user_id=user.user_id, **body.model_dump()))
    return goal.to_dict()


@router.get("/goals")
async def list_goals(
    active_only: bool = Query(False),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    goals = await services.goals.list_goals(user.user_id, active_only)
    return {"goals": [g.to_dict() for g in goals]}


@router.post("/goals/{goal_id}/progress")
async def update_goal_progress(
    goal_id: int,
    body: GoalProgressBody,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    goal = await services.goals.update_progress(goal_id, user.user_id, body.value)
    return goal.to_dict()
