"""Workout session routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ...models.profile import RecoveryMetrics
from ...models.session import SetRecord
from ...services.container import Services
from ...utils.dates import utcnow
from ..auth import CurrentUser, get_current_user
from ..deps import get_services

router = APIRouter(prefix="/workout-sessions", tags=["sessions"])


class StartSessionBody(BaseModel):
    workout_id: int


class SetBody(BaseModel):
    reps: int
    weight: float = 0.0
    rpe: float | None = None
    rest_seconds: int | None = None


class LogExerciseBody(BaseModel):
    exercise_id: int
    sets: list[SetBody] = Field(default_factory=list)


class CompleteSessionBody(BaseModel):
    notes: str = ""


class SkipBody(BaseModel):
    reason: str | None = None


class RecoveryBody(BaseModel):
    sleep_hours: float
    sleep_quality: int
    stress_level: int
    soreness_level: int
    energy_level: int


@router.post("/start", status_code=201)
async def start_session(
    body: StartSessionBody,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    session = await services.sessions.start_session(user.user_id, body.workout_id)
    return session.to_dict()


@router.post("/recovery", status_code=201)
async def record_recovery(
    body: RecoveryBody,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    metrics = await services.sessions.record_recovery_metrics(
        user.user_id, RecoveryMetrics(user_id=user.user_id, **body.model_dump())
    )
    return metrics.to_dict()


@router.get("/active")
async def get_active_session(
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    session = await services.sessions.get_active_session(user.user_id)
    return {"session": session.to_dict() if session else None}


@router.get("/history")
async def get_session_history(
    limit: int = Query(20),
    offset: int = Query(0),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    sessions = await services.sessions.get_session_history(user.user_id, limit, offset)
    return {"sessions": [s.to_dict() for s in sessions], "limit": limit, "offset": offset}


@router.get("/metrics")
async def get_session_metrics(
    days: int = Query(30),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    metrics = await services.sessions.get_session_metrics(user.user_id, days)
    return metrics.to_dict()


@router.get("/weekly-stats")
async def get_weekly_stats(
    week_start: date | None = Query(None),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    stats = await services.sessions.get_weekly_session_stats(
        user.user_id, week_start or utcnow().date()
    )
    return stats.to_dict()


@router.post("/{session_id}/log-exercise")
async def log_exercise(
    session_id: int,
    body: LogExerciseBody,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    result = await services.sessions.log_exercise_performance(
        session_id,
        body.exercise_id,
        [SetRecord(**s.model_dump()) for s in body.sets],
        user.user_id,
    )
    return result.to_dict()


@router.post("/{session_id}/complete")
async def complete_session(
    session_id: int,
    body: CompleteSessionBody | None = None,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    notes = body.notes if body else ""
    result = await services.sessions.complete_session(session_id, user.user_id, notes)
    return result.to_dict()


@router.post("/{session_id}/skip")
async def skip_session(
    session_id: int,
    body: SkipBody | None = None,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    result = await services.sessions.skip_session(
        session_id, user.user_id, body.reason if body else None
    )
    return result.to_dict()


@router.get("/{session_id}")
async def get_session(
    session_id: int,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    session = await services.sessions.get_session(session_id, user.user_id)
    return session.to_dict()
