"""Coach invitations and coach/client assignments.

Invitations carry a single-use token valid for seven days. Accepting one
creates the client's active assignment, replacing any assignment to another
coach.
"""

import logging
import re
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Protocol

from ..db.repositories import Repositories
from ..exceptions import (
    ConflictError,
    ExpiredError,
    InvalidInputError,
    InvalidUserIDError,
    NotFoundError,
    UnauthorizedError,
)
from ..models.coaching import (
    INVITATION_TTL_DAYS,
    CoachAssignment,
    CoachInvitation,
    InvitationStatus,
)
from ..utils.dates import utcnow

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class InvitationNotifier(Protocol):
    async def send_invitation(self, invitation: CoachInvitation, link: str) -> None: ...


class LoggingNotifier:
    """Notifier that only logs. Used when no email provider is configured."""

    async def send_invitation(self, invitation: CoachInvitation, link: str) -> None:
        logger.info(
            "Invitation %s from coach %s to %s: %s",
            invitation.id, invitation.coach_id, invitation.email, link,
        )


def normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise InvalidInputError("invalid email address", field="email")
    return email


def _check_status(invitation: CoachInvitation) -> None:
    """Raise unless the invitation is still pending."""
    if invitation.status == InvitationStatus.ACCEPTED:
        raise ConflictError("invitation has already been used")
    if invitation.status == InvitationStatus.EXPIRED:
        raise ExpiredError("invitation has expired")
    if invitation.status == InvitationStatus.CANCELLED:
        raise ConflictError("invitation was cancelled")


class CoachingService:
    def __init__(
        self,
        repos: Repositories,
        notifier: InvitationNotifier | None = None,
        frontend_url: str = "http://localhost:3000",
    ):
        self.repos = repos
        self.notifier = notifier or LoggingNotifier()
        self.frontend_url = frontend_url.rstrip("/")

    def invitation_link(self, invitation: CoachInvitation) -> str:
        return f"{self.frontend_url}/invite?token={invitation.token}"

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    async def create_invitation(
        self, coach_id: str, email: str, now: datetime | None = None
    ) -> CoachInvitation:
        """Invite an email address. An open pending invite is returned as-is."""
        _check_user_id(coach_id)
        email = normalize_email(email)
        now = now or utcnow()

        async with self.repos.transaction():
            existing = await self.repos.invitations.find_pending(coach_id, email)
            if existing is not None:
                if not existing.is_expired(now):
                    return existing
                await self.repos.invitations.update_status(existing.id, InvitationStatus.EXPIRED)

            invitation = _new_invitation(coach_id, email, now)
            await self.repos.invitations.create(invitation)

        await self.notifier.send_invitation(invitation, self.invitation_link(invitation))
        return invitation

    async def list_invitations(self, coach_id: str) -> list[CoachInvitation]:
        _check_user_id(coach_id)
        return await self.repos.invitations.list_for_coach(coach_id)

    async def resend_invitation(
        self, invitation_id: str, coach_id: str, now: datetime | None = None
    ) -> CoachInvitation:
        """Cancel a pending invitation and issue a fresh token to the same address."""
        old = await self._get_owned(invitation_id, coach_id)
        if old.status != InvitationStatus.PENDING:
            raise ConflictError(f"invitation is {old.status.value}")
        now = now or utcnow()

        async with self.repos.transaction():
            if not await self.repos.invitations.update_status(
                old.id, InvitationStatus.CANCELLED, expected=InvitationStatus.PENDING
            ):
                raise ConflictError("invitation is no longer pending")
            invitation = _new_invitation(coach_id, old.email, now)
            await self.repos.invitations.create(invitation)

        await self.notifier.send_invitation(invitation, self.invitation_link(invitation))
        return invitation

    async def cancel_invitation(self, invitation_id: str, coach_id: str) -> None:
        invitation = await self._get_owned(invitation_id, coach_id)
        if invitation.status != InvitationStatus.PENDING:
            raise ConflictError(f"invitation is {invitation.status.value}")
        cancelled = await self.repos.invitations.update_status(
            invitation.id, InvitationStatus.CANCELLED, expected=InvitationStatus.PENDING
        )
        if not cancelled:
            raise ConflictError("invitation is no longer pending")

    async def accept_invitation(
        self, token: str, user_id: str, email: str, now: datetime | None = None
    ) -> CoachAssignment:
        _check_user_id(user_id)
        if not token:
            raise InvalidInputError("token is required", field="token")
        now = now or utcnow()

        invitation = await self.repos.invitations.find_by_token(token)
        if invitation is None:
            raise NotFoundError("invitation")
        _check_status(invitation)
        if invitation.is_expired(now):
            await self.repos.invitations.update_status(
                invitation.id, InvitationStatus.EXPIRED, expected=InvitationStatus.PENDING
            )
            raise ExpiredError("invitation has expired")
        if normalize_email(email) != invitation.email:
            raise UnauthorizedError("invitation was sent to a different email address")
        if user_id == invitation.coach_id:
            raise InvalidInputError("a coach cannot accept their own invitation", field="user_id")

        async with self.repos.transaction():
            # Another accept may have committed since the read above
            claimed = await self.repos.invitations.update_status(
                invitation.id,
                InvitationStatus.ACCEPTED,
                accepted_at=now,
                accepted_by_user_id=user_id,
                expected=InvitationStatus.PENDING,
            )
            if not claimed:
                _check_status(await self.repos.invitations.get(invitation.id))
                raise ConflictError("invitation is no longer pending")

            current = await self.repos.assignments.find_active_for_user(user_id)
            if current is not None:
                await self.repos.assignments.deactivate(current.id)
            assignment = CoachAssignment(
                coach_id=invitation.coach_id, user_id=user_id, assigned_at=now
            )
            assignment.id = await self.repos.assignments.create(assignment)

        logger.info("User %s accepted invitation from coach %s", user_id, invitation.coach_id)
        return assignment

    async def _get_owned(self, invitation_id: str, coach_id: str) -> CoachInvitation:
        _check_user_id(coach_id)
        invitation = await self.repos.invitations.get(invitation_id)
        if invitation.coach_id != coach_id:
            raise UnauthorizedError("invitation belongs to another coach")
        return invitation

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    async def assign_client(self, coach_id: str, user_id: str, notes: str | None = None) -> CoachAssignment:
        """Directly assign a client, replacing the client's current coach."""
        _check_user_id(coach_id)
        _check_user_id(user_id)
        if coach_id == user_id:
            raise InvalidInputError("a coach cannot be their own client", field="user_id")
        async with self.repos.transaction():
            current = await self.repos.assignments.find_active_for_user(user_id)
            if current is not None:
                if current.coach_id == coach_id:
                    return current
                await self.repos.assignments.deactivate(current.id)
            assignment = CoachAssignment(coach_id=coach_id, user_id=user_id, notes=notes, assigned_at=utcnow())
            assignment.id = await self.repos.assignments.create(assignment)
        return assignment

    async def get_active_assignment(self, user_id: str) -> CoachAssignment | None:
        _check_user_id(user_id)
        return await self.repos.assignments.find_active_for_user(user_id)

    async def list_clients(self, coach_id: str) -> list[CoachAssignment]:
        _check_user_id(coach_id)
        return await self.repos.assignments.list_active_for_coach(coach_id)

    async def deactivate_assignment(self, user_id: str) -> None:
        """End the client's active assignment. No-op when there is none."""
        assignment = await self.get_active_assignment(user_id)
        if assignment is not None:
            await self.repos.assignments.deactivate(assignment.id)


def _new_invitation(coach_id: str, email: str, now: datetime) -> CoachInvitation:
    return CoachInvitation(
        id=str(uuid.uuid4()),
        coach_id=coach_id,
        email=email,
        token=secrets.token_urlsafe(32),
        expires_at=now + timedelta(days=INVITATION_TTL_DAYS),
        created_at=now,
    )


def _check_user_id(user_id: str) -> None:
    if not user_id or not user_id.strip():
        raise InvalidUserIDError()
