"""Coach assignment and invitation models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

INVITATION_TTL_DAYS = 7


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


@dataclass
class CoachAssignment:
    """Links a coach to a client. At most one active assignment per client."""

    coach_id: str
    user_id: str
    active: bool = True
    notes: str | None = None
    id: int | None = None
    assigned_at: datetime | None = None
    deactivated_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "coach_id": self.coach_id,
            "user_id": self.user_id,
            "active": self.active,
            "notes": self.notes,
            "assigned_at": self.assigned_at.isoformat() if self.assigned_at else None,
            "deactivated_at": self.deactivated_at.isoformat() if self.deactivated_at else None,
        }


@dataclass
class CoachInvitation:
    """An emailed invitation carrying a single-use token."""

    id: str  # UUID
    coach_id: str
    email: str
    token: str
    expires_at: datetime
    status: InvitationStatus = InvitationStatus.PENDING
    created_at: datetime | None = None
    accepted_at: datetime | None = None
    accepted_by_user_id: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def to_dict(self, include_token: bool = False) -> dict:
        data = {
            "id": self.id,
            "coach_id": self.coach_id,
            "email": self.email,
            "status": self.status.value,
            "expires_at": self.expires_at.isoformat(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "accepted_at": self.accepted_at.isoformat() if self.accepted_at else None,
            "accepted_by_user_id": self.accepted_by_user_id,
        }
        if include_token:
            data["token"] = self.token
        return data
