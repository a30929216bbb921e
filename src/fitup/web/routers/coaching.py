"""Coach invitation and client routes."""

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from ...services.container import Services
from ..auth import CurrentUser, get_current_user, require_coach
from ..deps import get_services

router = APIRouter(prefix="/coach", tags=["coaching"])
invitations_router = APIRouter(prefix="/invitations", tags=["coaching"])


class InvitationBody(BaseModel):
    email: str


class AcceptBody(BaseModel):
    token: str
    email: str | None = None


@router.post("/invitations", status_code=201)
async def create_invitation(
    body: InvitationBody,
    coach: CurrentUser = Depends(require_coach),
    services: Services = Depends(get_services),
):
    invitation = await services.coaching.create_invitation(coach.user_id, body.email)
    return invitation.to_dict()


@router.get("/invitations")
async def list_invitations(
    coach: CurrentUser = Depends(require_coach),
    services: Services = Depends(get_services),
):
    invitations = await services.coaching.list_invitations(coach.user_id)
    return {"invitations": [i.to_dict() for i in invitations]}


@router.post("/invitations/{invitation_id}/resend")
async def resend_invitation(
    invitation_id: str,
    coach: CurrentUser = Depends(require_coach),
    services: Services = Depends(get_services),
):
    invitation = await services.coaching.resend_invitation(invitation_id, coach.user_id)
    return invitation.to_dict()


@router.delete("/invitations/{invitation_id}", status_code=204)
async def cancel_invitation(
    invitation_id: str,
    coach: CurrentUser = Depends(require_coach),
    services: Services = Depends(get_services),
):
    await services.coaching.cancel_invitation(invitation_id, coach.user_id)
    return Response(status_code=204)


@router.get("/clients")
async def list_clients(
    coach: CurrentUser = Depends(require_coach),
    services: Services = Depends(get_services),
):
    clients = await services.coaching.list_clients(coach.user_id)
    return {"clients": [c.to_dict() for c in clients]}


@invitations_router.post("/accept")
async def accept_invitation(
    body: AcceptBody,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Accept an invitation with the token from the emailed link."""
    assignment = await services.coaching.accept_invitation(
        body.token, user.user_id, body.email or user.email or ""
    )
    return assignment.to_dict()
