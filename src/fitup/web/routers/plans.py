"""Plan generation, performance tracking and export routes."""

from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field

from ...models.plan import PerformanceSource, PlanAdaptation, PlanPerformance
from ...services.container import Services
from ..auth import CurrentUser, get_current_user
from ..deps import ensure_can_view, get_services

router = APIRouter(prefix="/plans", tags=["plans"])


class GeneratePlanBody(BaseModel):
    user_id: str | None = None
    metadata: dict[str, Any]


class PerformanceBody(BaseModel):
    completion_rate: float
    average_rpe: float | None = None
    skipped_count: int = 0
    progress_rate: float | None = None
    user_satisfaction: float | None = None
    injury_rate: float | None = None


class RegenerateBody(BaseModel):
    reason: str = Field(min_length=1)


class AdaptationBody(BaseModel):
    reason: str = Field(min_length=1)
    trigger: str = "manual"
    changes: dict[str, Any] = Field(default_factory=dict)


async def _owned_plan(services: Services, user: CurrentUser, plan_id: int):
    plan = await services.plans.get_plan(plan_id)
    await ensure_can_view(services, user, plan.user_id)
    return plan


@router.post("/generate", status_code=201)
async def generate_plan(
    body: GeneratePlanBody,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Generate a plan for the caller, or for a client when called by their coach."""
    user_id = body.user_id or user.user_id
    await ensure_can_view(services, user, user_id)
    plan = await services.plans.create_plan(user_id, body.metadata)
    return plan.to_dict()


@router.get("/active/{user_id}")
async def get_active_plan(
    user_id: str,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await ensure_can_view(services, user, user_id)
    plan = await services.plans.get_active_plan(user_id)
    return plan.to_dict()


@router.get("/history/{user_id}")
async def get_plan_history(
    user_id: str,
    limit: int = Query(10),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await ensure_can_view(services, user, user_id)
    plans = await services.plans.get_history(user_id, limit)
    return {"plans": [p.to_dict() for p in plans]}


@router.get("/adaptations/{user_id}")
async def get_adaptation_history(
    user_id: str,
    limit: int = Query(50),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await ensure_can_view(services, user, user_id)
    adaptations = await services.plans.get_adaptation_history(user_id, limit)
    return {"adaptations": [a.to_dict() for a in adaptations]}


@router.post("/{plan_id}/performance", status_code=201)
async def track_performance(
    plan_id: int,
    body: PerformanceBody,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await _owned_plan(services, user, plan_id)
    record = await services.plans.track_performance(
        plan_id,
        PlanPerformance(
            plan_id=plan_id,
            completion_rate=body.completion_rate,
            average_rpe=body.average_rpe,
            skipped_count=body.skipped_count,
            source=PerformanceSource.MANUAL,
            progress_rate=body.progress_rate,
            user_satisfaction=body.user_satisfaction,
            injury_rate=body.injury_rate,
        ),
    )
    return record.to_dict()


@router.get("/{plan_id}/effectiveness")
async def get_effectiveness(
    plan_id: int,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await _owned_plan(services, user, plan_id)
    score = await services.plans.get_effectiveness(plan_id)
    return {"plan_id": plan_id, "effectiveness": score}


@router.post("/{plan_id}/regenerate")
async def regenerate_plan(
    plan_id: int,
    body: RegenerateBody,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Flag a plan so the next generation request replaces it."""
    await _owned_plan(services, user, plan_id)
    plan = await services.plans.mark_for_regeneration(plan_id, body.reason)
    return plan.to_dict()


@router.post("/{plan_id}/adaptations", status_code=201)
async def log_adaptation(
    plan_id: int,
    body: AdaptationBody,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await _owned_plan(services, user, plan_id)
    adaptation = await services.plans.log_adaptation(
        plan_id,
        PlanAdaptation(plan_id=plan_id, reason=body.reason, trigger=body.trigger, changes=body.changes),
    )
    return adaptation.to_dict()


@router.get("/{plan_id}/download")
async def download_plan(
    plan_id: int,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await _owned_plan(services, user, plan_id)
    pdf = await services.plans.export_plan_pdf(plan_id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="fitup-plan-{plan_id}.pdf"'},
    )
