"""Performance analytics routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ...services.container import Services
from ...utils.dates import utcnow
from ..auth import CurrentUser, get_current_user
from ..deps import ensure_can_view, get_services

router = APIRouter(prefix="/analytics", tags=["analytics"])


class OneRepMaxBody(BaseModel):
    exercise_id: int
    weight: float
    reps: int
    rpe: float | None = None
    record: bool = False


@router.post("/one-rep-max")
async def calculate_one_rep_max(
    body: OneRepMaxBody,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Estimate the caller's 1RM; ``record`` stores it after the sanity check."""
    estimate = await services.analytics.calculate_one_rep_max(
        user.user_id, body.exercise_id, body.weight, body.reps, body.rpe, record=body.record
    )
    return estimate.to_dict()


@router.get("/strength/{user_id}/exercise/{exercise_id}")
async def get_strength_progression(
    user_id: str,
    exercise_id: int,
    timeframe: int = Query(90),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await ensure_can_view(services, user, user_id)
    result = await services.analytics.get_strength_progression(user_id, exercise_id, timeframe)
    return result.to_dict()


@router.get("/plateau/{user_id}/exercise/{exercise_id}")
async def detect_plateau(
    user_id: str,
    exercise_id: int,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await ensure_can_view(services, user, user_id)
    result = await services.analytics.detect_plateau(user_id, exercise_id)
    return result.to_dict()


@router.get("/goals/{goal_id}/prediction")
async def predict_goal(
    goal_id: int,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    goal = await services.repos.goals.get(goal_id)
    await ensure_can_view(services, user, goal.user_id)
    result = await services.analytics.predict_goal_achievement(goal_id)
    return result.to_dict()


@router.get("/volume/{user_id}")
async def get_training_volume(
    user_id: str,
    week_start: date | None = Query(None),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await ensure_can_view(services, user, user_id)
    result = await services.analytics.get_training_volume(user_id, week_start or utcnow().date())
    return result.to_dict()


@router.get("/intensity/{user_id}/exercise/{exercise_id}")
async def get_intensity_progression(
    user_id: str,
    exercise_id: int,
    timeframe: int = Query(60),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await ensure_can_view(services, user, user_id)
    result = await services.analytics.get_intensity_progression(user_id, exercise_id, timeframe)
    return result.to_dict()


@router.get("/optimal-load/{user_id}")
async def get_optimal_load(
    user_id: str,
    exercise_id: int | None = Query(None),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await ensure_can_view(services, user, user_id)
    result = await services.analytics.get_optimal_load(user_id, exercise_id)
    return result.to_dict()
