"""Tests for coach invitations and assignments."""

import asyncio
from datetime import timedelta

import pytest

from fitup.exceptions import (
    ConflictError,
    ExpiredError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from fitup.models.coaching import CoachAssignment, InvitationStatus
from fitup.services.coaching import CoachingService, normalize_email
from fitup.utils.dates import utcnow


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    async def send_invitation(self, invitation, link):
        self.sent.append((invitation, link))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def coaching(repos, notifier):
    return CoachingService(repos, notifier=notifier, frontend_url="https://app.example.com/")


class TestNormalizeEmail:
    def test_lowercases_and_strips(self):
        assert normalize_email("  Client@Example.COM ") == "client@example.com"

    @pytest.mark.parametrize("email", ["", "no-at-sign", "a@b", "two words@example.com"])
    def test_invalid(self, email):
        with pytest.raises(InvalidInputError):
            normalize_email(email)


class TestInvitations:
    """Tests for the invitation lifecycle."""

    async def test_create_sends_link(self, coaching, notifier):
        invitation = await coaching.create_invitation("coach1", "Client@Example.com")

        assert invitation.status == InvitationStatus.PENDING
        assert invitation.email == "client@example.com"
        assert invitation.expires_at - invitation.created_at == timedelta(days=7)

        sent, link = notifier.sent[0]
        assert sent.id == invitation.id
        assert link == f"https://app.example.com/invite?token={invitation.token}"

    async def test_pending_invitation_is_reused(self, coaching, notifier):
        first = await coaching.create_invitation("coach1", "client@example.com")
        second = await coaching.create_invitation("coach1", "CLIENT@example.com")

        assert second.id == first.id
        assert len(notifier.sent) == 1

    async def test_accept_creates_assignment(self, coaching, repos):
        invitation = await coaching.create_invitation("coach1", "client@example.com")

        assignment = await coaching.accept_invitation(invitation.token, "client1", "client@example.com")

        assert assignment.coach_id == "coach1"
        assert assignment.active
        stored = await repos.invitations.get(invitation.id)
        assert stored.status == InvitationStatus.ACCEPTED
        assert stored.accepted_by_user_id == "client1"
        assert (await coaching.get_active_assignment("client1")).id == assignment.id

    async def test_accept_twice(self, coaching):
        invitation = await coaching.create_invitation("coach1", "client@example.com")
        await coaching.accept_invitation(invitation.token, "client1", "client@example.com")

        with pytest.raises((ConflictError, ExpiredError)):
            await coaching.accept_invitation(invitation.token, "client1", "client@example.com")

    async def test_concurrent_accepts_use_token_once(self, coaching, repos):
        invitation = await coaching.create_invitation("coach1", "client@example.com")

        results = await asyncio.gather(
            coaching.accept_invitation(invitation.token, "client1", "client@example.com"),
            coaching.accept_invitation(invitation.token, "client1", "client@example.com"),
            return_exceptions=True,
        )

        assignments = [r for r in results if isinstance(r, CoachAssignment)]
        assert len(assignments) == 1
        assert sum(isinstance(r, ConflictError) for r in results) == 1
        assert [a.id for a in await coaching.list_clients("coach1")] == [assignments[0].id]
        assert (await repos.invitations.get(invitation.id)).status == InvitationStatus.ACCEPTED

    async def test_cancelled_invitation_cannot_be_accepted(self, coaching):
        invitation = await coaching.create_invitation("coach1", "client@example.com")
        await coaching.cancel_invitation(invitation.id, "coach1")
        with pytest.raises(ConflictError):
            await coaching.accept_invitation(invitation.token, "client1", "client@example.com")

    async def test_accept_expired(self, coaching, repos):
        invitation = await coaching.create_invitation("coach1", "client@example.com")
        later = utcnow() + timedelta(days=8)

        with pytest.raises(ExpiredError):
            await coaching.accept_invitation(invitation.token, "client1", "client@example.com", now=later)
        assert (await repos.invitations.get(invitation.id)).status == InvitationStatus.EXPIRED

    async def test_accept_wrong_email(self, coaching):
        invitation = await coaching.create_invitation("coach1", "client@example.com")
        with pytest.raises(UnauthorizedError):
            await coaching.accept_invitation(invitation.token, "client1", "someone@example.com")

    async def test_coach_cannot_accept_own_invitation(self, coaching):
        invitation = await coaching.create_invitation("coach1", "coach@example.com")
        with pytest.raises(InvalidInputError):
            await coaching.accept_invitation(invitation.token, "coach1", "coach@example.com")

    async def test_unknown_token(self, coaching):
        with pytest.raises(NotFoundError):
            await coaching.accept_invitation("nope", "client1", "client@example.com")

    async def test_accept_replaces_previous_coach(self, coaching, repos):
        await coaching.assign_client("coach1", "client1")
        invitation = await coaching.create_invitation("coach2", "client@example.com")

        await coaching.accept_invitation(invitation.token, "client1", "client@example.com")

        assert (await coaching.get_active_assignment("client1")).coach_id == "coach2"
        assert await coaching.list_clients("coach1") == []

    async def test_resend_issues_new_token(self, coaching, repos, notifier):
        old = await coaching.create_invitation("coach1", "client@example.com")
        new = await coaching.resend_invitation(old.id, "coach1")

        assert new.id != old.id
        assert new.token != old.token
        assert new.email == old.email
        assert (await repos.invitations.get(old.id)).status == InvitationStatus.CANCELLED
        assert len(notifier.sent) == 2

        with pytest.raises(ConflictError):
            await coaching.accept_invitation(old.token, "client1", "client@example.com")

    async def test_cancel(self, coaching, repos):
        invitation = await coaching.create_invitation("coach1", "client@example.com")
        await coaching.cancel_invitation(invitation.id, "coach1")

        assert (await repos.invitations.get(invitation.id)).status == InvitationStatus.CANCELLED
        with pytest.raises(ConflictError):
            await coaching.cancel_invitation(invitation.id, "coach1")

    async def test_other_coach_cannot_manage(self, coaching):
        invitation = await coaching.create_invitation("coach1", "client@example.com")
        with pytest.raises(UnauthorizedError):
            await coaching.cancel_invitation(invitation.id, "coach2")
        with pytest.raises(UnauthorizedError):
            await coaching.resend_invitation(invitation.id, "coach2")

    async def test_list_invitations(self, coaching):
        await coaching.create_invitation("coach1", "a@example.com")
        await coaching.create_invitation("coach1", "b@example.com")
        await coaching.create_invitation("coach2", "c@example.com")

        emails = {inv.email for inv in await coaching.list_invitations("coach1")}
        assert emails == {"a@example.com", "b@example.com"}


class TestAssignments:
    """Tests for direct assignments."""

    async def test_assign_is_idempotent_for_same_coach(self, coaching):
        first = await coaching.assign_client("coach1", "client1")
        second = await coaching.assign_client("coach1", "client1")
        assert first.id == second.id

    async def test_one_active_coach_per_client(self, coaching):
        await coaching.assign_client("coach1", "client1")
        await coaching.assign_client("coach2", "client1")

        assert [a.user_id for a in await coaching.list_clients("coach2")] == ["client1"]
        assert await coaching.list_clients("coach1") == []

    async def test_self_assignment(self, coaching):
        with pytest.raises(InvalidInputError):
            await coaching.assign_client("coach1", "coach1")

    async def test_deactivate(self, coaching):
        await coaching.assign_client("coach1", "client1")
        await coaching.deactivate_assignment("client1")
        assert await coaching.get_active_assignment("client1") is None

        # No active assignment: no-op
        await coaching.deactivate_assignment("client1")
