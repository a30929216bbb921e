"""Realtime event payloads (version 1) and client frame parsing."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from ..utils.dates import utcnow

EVENT_VERSION = 1
PING = {"type": "ping"}
PONG = {"type": "pong"}


class EventType(str, Enum):
    NEW_MESSAGE = "new_message"
    MESSAGE_EDITED = "message_edited"
    MESSAGE_DELETED = "message_deleted"
    MESSAGE_READ = "message_read"
    ERROR = "error"


def conversation_channel(conversation_id: int) -> str:
    return f"conversation:{conversation_id}"


def build_event(
    event_type: EventType,
    conversation_id: int | None,
    message_id: int | None = None,
    message: dict | None = None,
    read_by: str | None = None,
    error: str | None = None,
    timestamp: datetime | None = None,
) -> dict:
    """Build an event payload. Optional fields are left out when unset."""
    event = {
        "version": EVENT_VERSION,
        "type": event_type.value,
        "conversation_id": conversation_id,
        "timestamp": (timestamp or utcnow()).isoformat(),
    }
    if message_id is not None:
        event["message_id"] = message_id
    if message is not None:
        event["message"] = message
    if read_by is not None:
        event["read_by"] = read_by
    if error is not None:
        event["error"] = error
    return event


@dataclass
class ClientFrame:
    """A decoded frame sent by a WebSocket client."""

    kind: str  # ping, subscribe, unsubscribe, unknown
    channel: str | None = None


def parse_client_frame(data) -> ClientFrame:
    if not isinstance(data, dict):
        return ClientFrame(kind="unknown")
    if data.get("type") == "ping":
        return ClientFrame(kind="ping")
    action = data.get("action")
    channel = data.get("channel")
    if action in ("subscribe", "unsubscribe") and isinstance(channel, str) and channel:
        return ClientFrame(kind=action, channel=channel)
    return ClientFrame(kind="unknown")


def conversation_id_from_channel(channel: str) -> int | None:
    prefix, _, raw = channel.partition(":")
    if prefix != "conversation" or not raw.isdigit():
        return None
    return int(raw)
