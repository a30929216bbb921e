"""Conversation and message models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

MAX_MESSAGE_LENGTH = 5000


class AttachmentType(str, Enum):
    IMAGE = "image"
    DOCUMENT = "document"


@dataclass
class Conversation:
    """A coach/client conversation. The unordered pair is unique."""

    coach_id: str
    client_id: str
    archived: bool = False
    id: int | None = None
    created_at: datetime | None = None

    @property
    def participants(self) -> tuple[str, str]:
        return (self.coach_id, self.client_id)

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.participants

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "coach_id": self.coach_id,
            "client_id": self.client_id,
            "archived": self.archived,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class MessageAttachment:
    message_id: int
    attachment_type: AttachmentType
    file_name: str
    file_url: str
    file_size: int = 0
    id: int | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "message_id": self.message_id,
            "attachment_type": self.attachment_type.value,
            "file_name": self.file_name,
            "file_url": self.file_url,
            "file_size": self.file_size,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class Message:
    conversation_id: int
    sender_id: str
    text: str
    reply_to_message_id: int | None = None
    id: int | None = None
    created_at: datetime | None = None
    edited_at: datetime | None = None
    deleted_at: datetime | None = None
    attachments: list[MessageAttachment] = field(default_factory=list)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "conversation_id": self.conversation_id,
            "sender_id": self.sender_id,
            "text": self.text,
            "reply_to_message_id": self.reply_to_message_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "edited_at": self.edited_at.isoformat() if self.edited_at else None,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
            "attachments": [a.to_dict() for a in self.attachments],
        }


@dataclass
class ReadStatus:
    message_id: int
    user_id: str
    read_at: datetime

    def to_dict(self) -> dict:
        return {
            "message_id": self.message_id,
            "user_id": self.user_id,
            "read_at": self.read_at.isoformat(),
        }


@dataclass
class ConversationSummary:
    """A conversation as listed for one user."""

    conversation: Conversation
    unread_count: int
    last_message: Message | None = None

    def to_dict(self) -> dict:
        data = self.conversation.to_dict()
        data["unread_count"] = self.unread_count
        data["last_message"] = self.last_message.to_dict() if self.last_message else None
        return data
