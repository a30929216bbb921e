"""FastAPI dependencies shared by the routers."""

from fastapi import Request

from ..exceptions import UnauthorizedError
from ..services.container import Services
from .auth import CurrentUser


def get_services(request: Request) -> Services:
    return request.app.state.services


async def ensure_can_view(services: Services, user: CurrentUser, user_id: str) -> None:
    """Allow access to ``user_id``'s data for that user, their coach, or an admin."""
    if user.user_id == user_id or user.is_admin:
        return
    if user.is_coach:
        assignment = await services.repos.assignments.find_active_for_user(user_id)
        if assignment is not None and assignment.coach_id == user.user_id:
            return
    raise UnauthorizedError("cannot access another user's data")
