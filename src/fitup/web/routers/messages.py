"""Conversation and message routes."""

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field

from ...models.messaging import AttachmentType
from ...services.container import Services
from ..auth import CurrentUser, get_current_user
from ..deps import get_services

router = APIRouter(prefix="/messages", tags=["messages"])


class ConversationBody(BaseModel):
    participant_id: str


class SendMessageBody(BaseModel):
    conversation_id: int | None = None
    recipient_id: str | None = None
    text: str
    reply_to_message_id: int | None = None


class EditMessageBody(BaseModel):
    text: str


class AttachmentBody(BaseModel):
    attachment_type: AttachmentType
    file_name: str
    file_url: str
    file_size: int = Field(default=0)


@router.get("/conversations")
async def list_conversations(
    include_archived: bool = Query(False),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    summaries = await services.conversations.list_conversations(user.user_id, include_archived)
    return {
        "conversations": [s.to_dict() for s in summaries],
        "total_unread": await services.messages.total_unread(user.user_id),
    }


@router.post("/conversations", status_code=201)
async def create_conversation(
    body: ConversationBody,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    coach_id, client_id = _roles(user, body.participant_id)
    conversation = await services.conversations.create_conversation(coach_id, client_id)
    return conversation.to_dict()


@router.get("/conversations/{conversation_id}")
async def list_messages(
    conversation_id: int,
    limit: int = Query(20),
    offset: int = Query(0),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    page = await services.messages.list_messages(conversation_id, user.user_id, limit, offset)
    return page.to_dict()


@router.post("/conversations/{conversation_id}/read")
async def mark_conversation_read(
    conversation_id: int,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    marked = await services.messages.mark_all_as_read(conversation_id, user.user_id)
    return {"conversation_id": conversation_id, "marked": marked}


@router.post("", status_code=201)
async def send_message(
    body: SendMessageBody,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Send to an existing conversation, or to a recipient (creating the conversation)."""
    conversation_id = body.conversation_id
    if conversation_id is None:
        coach_id, client_id = _roles(user, body.recipient_id or "")
        conversation = await services.conversations.get_or_create(coach_id, client_id)
        conversation_id = conversation.id
    message = await services.messages.send_message(
        conversation_id, user.user_id, body.text, body.reply_to_message_id
    )
    return message.to_dict()


@router.patch("/{message_id}")
async def edit_message(
    message_id: int,
    body: EditMessageBody,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    message = await services.messages.edit_message(message_id, user.user_id, body.text)
    return message.to_dict()


@router.delete("/{message_id}", status_code=204)
async def delete_message(
    message_id: int,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    await services.messages.delete_message(message_id, user.user_id)
    return Response(status_code=204)


@router.post("/{message_id}/read")
async def mark_message_read(
    message_id: int,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    changed = await services.messages.mark_as_read(message_id, user.user_id)
    return {"message_id": message_id, "marked": changed}


@router.post("/{message_id}/attachments", status_code=201)
async def add_attachment(
    message_id: int,
    body: AttachmentBody,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    attachment = await services.messages.add_attachment(
        message_id, user.user_id, body.attachment_type, body.file_name, body.file_url, body.file_size
    )
    return attachment.to_dict()


def _roles(user: CurrentUser, other_id: str) -> tuple[str, str]:
    """(coach_id, client_id) for a conversation between the caller and ``other_id``."""
    if user.is_coach:
        return user.user_id, other_id
    return other_id, user.user_id
