"""Coach/client conversations, messages, read receipts and realtime fan-out."""

import logging
from dataclasses import dataclass
from datetime import datetime

from ..db.repositories import Repositories
from ..exceptions import (
    ConflictError,
    InvalidInputError,
    InvalidUserIDError,
    NotParticipantError,
    UnauthorizedError,
)
from ..models.messaging import (
    MAX_MESSAGE_LENGTH,
    AttachmentType,
    Conversation,
    ConversationSummary,
    Message,
    MessageAttachment,
)
from ..realtime.events import EventType, build_event, conversation_channel
from ..realtime.hub import Hub
from ..utils.dates import utcnow

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass
class MessagePage:
    messages: list[Message]
    limit: int
    offset: int
    has_more: bool

    def to_dict(self) -> dict:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "limit": self.limit,
            "offset": self.offset,
            "has_more": self.has_more,
        }


def _check_user_id(user_id: str) -> None:
    if not user_id or not user_id.strip():
        raise InvalidUserIDError()


def _check_conversation_id(conversation_id: int) -> None:
    if conversation_id <= 0:
        raise InvalidInputError("conversation_id must be positive", field="conversation_id")


def validate_text(text: str) -> str:
    text = (text or "").strip()
    if not text:
        raise InvalidInputError("message text must not be empty", field="text")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise InvalidInputError(
            f"message text must be at most {MAX_MESSAGE_LENGTH} characters", field="text"
        )
    return text


class RealtimeService:
    """Bridges messaging writes to the hub."""

    def __init__(self, hub: Hub, repos: Repositories):
        self.hub = hub
        self.repos = repos

    async def subscribe(self, user_id: str, conversation_id: int) -> None:
        _check_conversation_id(conversation_id)
        if not await self.repos.conversations.is_participant(conversation_id, user_id):
            raise NotParticipantError(conversation_id, user_id)
        await self.hub.subscribe(user_id, conversation_channel(conversation_id))

    async def unsubscribe(self, user_id: str, conversation_id: int) -> None:
        _check_conversation_id(conversation_id)
        await self.hub.unsubscribe(user_id, conversation_channel(conversation_id))

    async def publish(self, conversation: Conversation, event: dict) -> int:
        """Subscribe both participants if needed, then broadcast."""
        channel = conversation_channel(conversation.id)
        for user_id in conversation.participants:
            await self.hub.subscribe(user_id, channel)
        return await self.hub.broadcast_to_channel(channel, event)

    async def send_error(self, user_id: str, conversation_id: int | None, error: str) -> bool:
        return await self.hub.send_to_user(
            user_id, build_event(EventType.ERROR, conversation_id, error=error)
        )


class ConversationService:
    def __init__(self, repos: Repositories):
        self.repos = repos

    async def create_conversation(self, coach_id: str, client_id: str) -> Conversation:
        _check_user_id(coach_id)
        _check_user_id(client_id)
        if coach_id == client_id:
            raise InvalidInputError("cannot start a conversation with yourself", field="client_id")
        existing = await self.repos.conversations.find_by_participants(coach_id, client_id)
        if existing is not None:
            raise ConflictError(
                "conversation already exists", details={"conversation_id": existing.id}
            )
        conversation = Conversation(coach_id=coach_id, client_id=client_id, created_at=utcnow())
        conversation.id = await self.repos.conversations.create(conversation)
        logger.info("Conversation %s created between %s and %s", conversation.id, coach_id, client_id)
        return conversation

    async def get_or_create(self, coach_id: str, client_id: str) -> Conversation:
        _check_user_id(coach_id)
        _check_user_id(client_id)
        existing = await self.repos.conversations.find_by_participants(coach_id, client_id)
        if existing is not None:
            return existing
        try:
            return await self.create_conversation(coach_id, client_id)
        except ConflictError:
            # Lost a race with a concurrent create
            return await self.repos.conversations.find_by_participants(coach_id, client_id)

    async def get_conversation(self, conversation_id: int, user_id: str) -> Conversation:
        _check_conversation_id(conversation_id)
        conversation = await self.repos.conversations.get(conversation_id)
        if not conversation.has_participant(user_id):
            raise NotParticipantError(conversation_id, user_id)
        return conversation

    async def list_conversations(
        self, user_id: str, include_archived: bool = False
    ) -> list[ConversationSummary]:
        """Conversations with unread counts, most recent activity first."""
        _check_user_id(user_id)
        conversations = await self.repos.conversations.list_for_user(user_id, include_archived)
        summaries = []
        for conversation in conversations:
            summaries.append(
                ConversationSummary(
                    conversation=conversation,
                    unread_count=await self.repos.read_status.count_unread(conversation.id, user_id),
                    last_message=await self.repos.messages.find_latest(conversation.id),
                )
            )

        def activity(summary: ConversationSummary) -> datetime:
            if summary.last_message is not None:
                return summary.last_message.created_at
            return summary.conversation.created_at

        summaries.sort(key=activity, reverse=True)
        return summaries

    async def archive(self, conversation_id: int, user_id: str, archived: bool = True) -> Conversation:
        conversation = await self.get_conversation(conversation_id, user_id)
        await self.repos.conversations.set_archived(conversation_id, archived)
        conversation.archived = archived
        return conversation


class MessageService:
    def __init__(self, repos: Repositories, realtime: RealtimeService | None = None):
        self.repos = repos
        self.realtime = realtime

    async def _participant_conversation(self, conversation_id: int, user_id: str) -> Conversation:
        _check_user_id(user_id)
        _check_conversation_id(conversation_id)
        conversation = await self.repos.conversations.get(conversation_id)
        if not conversation.has_participant(user_id):
            raise NotParticipantError(conversation_id, user_id)
        return conversation

    async def _publish(self, conversation: Conversation, event: dict) -> None:
        if self.realtime is not None:
            await self.realtime.publish(conversation, event)

    async def send_message(
        self,
        conversation_id: int,
        sender_id: str,
        text: str,
        reply_to_message_id: int | None = None,
    ) -> Message:
        text = validate_text(text)
        conversation = await self._participant_conversation(conversation_id, sender_id)
        if reply_to_message_id is not None:
            parent = await self.repos.messages.get(reply_to_message_id)
            if parent.conversation_id != conversation_id:
                raise InvalidInputError(
                    "reply must reference a message in the same conversation",
                    field="reply_to_message_id",
                )

        message = Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            text=text,
            reply_to_message_id=reply_to_message_id,
            created_at=utcnow(),
        )
        message.id = await self.repos.messages.create(message)
        await self._publish(
            conversation,
            build_event(
                EventType.NEW_MESSAGE, conversation_id,
                message_id=message.id, message=message.to_dict(),
            ),
        )
        return message

    async def edit_message(self, message_id: int, user_id: str, text: str) -> Message:
        text = validate_text(text)
        message = await self._own_message(message_id, user_id)
        if message.is_deleted:
            raise ConflictError("message has been deleted")
        edited_at = utcnow()
        await self.repos.messages.update_text(message_id, text, edited_at)
        message.text = text
        message.edited_at = edited_at

        conversation = await self.repos.conversations.get(message.conversation_id)
        await self._publish(
            conversation,
            build_event(
                EventType.MESSAGE_EDITED, conversation.id,
                message_id=message_id, message=message.to_dict(),
            ),
        )
        return message

    async def delete_message(self, message_id: int, user_id: str) -> None:
        """Soft-delete a message. Deleting twice is a no-op."""
        message = await self._own_message(message_id, user_id)
        if message.is_deleted:
            return
        await self.repos.messages.soft_delete(message_id, utcnow())
        conversation = await self.repos.conversations.get(message.conversation_id)
        await self._publish(
            conversation,
            build_event(EventType.MESSAGE_DELETED, conversation.id, message_id=message_id),
        )

    async def list_messages(
        self, conversation_id: int, user_id: str, limit: int = 20, offset: int = 0
    ) -> MessagePage:
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise InvalidInputError(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")
        if offset < 0:
            raise InvalidInputError("offset must not be negative", field="offset")
        await self._participant_conversation(conversation_id, user_id)
        messages = await self.repos.messages.list_for_conversation(conversation_id, limit + 1, offset)
        return MessagePage(
            messages=messages[:limit],
            limit=limit,
            offset=offset,
            has_more=len(messages) > limit,
        )

    async def add_attachment(
        self,
        message_id: int,
        user_id: str,
        attachment_type: AttachmentType,
        file_name: str,
        file_url: str,
        file_size: int = 0,
    ) -> MessageAttachment:
        message = await self._own_message(message_id, user_id)
        if message.is_deleted:
            raise ConflictError("message has been deleted")
        if not file_name or not file_name.strip():
            raise InvalidInputError("file_name must not be empty", field="file_name")
        if not file_url or not file_url.strip():
            raise InvalidInputError("file_url must not be empty", field="file_url")
        if file_size < 0:
            raise InvalidInputError("file_size must not be negative", field="file_size")

        attachment = MessageAttachment(
            message_id=message_id,
            attachment_type=attachment_type,
            file_name=file_name.strip(),
            file_url=file_url.strip(),
            file_size=file_size,
            created_at=utcnow(),
        )
        attachment.id = await self.repos.messages.add_attachment(attachment)
        return attachment

    async def mark_as_read(self, message_id: int, user_id: str) -> bool:
        """Record that ``user_id`` read a message. Returns False if nothing changed."""
        message = await self.repos.messages.get(message_id)
        conversation = await self._participant_conversation(message.conversation_id, user_id)
        if message.sender_id == user_id or message.is_deleted:
            return False
        created = await self.repos.read_status.mark_read(message_id, user_id, utcnow())
        if created:
            await self._publish(
                conversation,
                build_event(
                    EventType.MESSAGE_READ, conversation.id,
                    message_id=message_id, read_by=user_id,
                ),
            )
        return created

    async def mark_all_as_read(self, conversation_id: int, user_id: str) -> list[int]:
        conversation = await self._participant_conversation(conversation_id, user_id)
        marked = await self.repos.read_status.mark_all_read(conversation_id, user_id, utcnow())
        for message_id in marked:
            await self._publish(
                conversation,
                build_event(
                    EventType.MESSAGE_READ, conversation_id,
                    message_id=message_id, read_by=user_id,
                ),
            )
        return marked

    async def count_unread(self, conversation_id: int, user_id: str) -> int:
        await self._participant_conversation(conversation_id, user_id)
        return await self.repos.read_status.count_unread(conversation_id, user_id)

    async def total_unread(self, user_id: str) -> int:
        _check_user_id(user_id)
        return await self.repos.read_status.count_unread_total(user_id)

    async def _own_message(self, message_id: int, user_id: str) -> Message:
        _check_user_id(user_id)
        message = await self.repos.messages.get(message_id)
        if message.sender_id != user_id:
            raise UnauthorizedError("only the sender may change a message")
        return message
