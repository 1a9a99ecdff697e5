"""
Protocol definitions for the NetQuiz LAN platform.

This module defines the event records exchanged between server components
and their encoding as server-to-client records on the chat connection.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Tuple

from netquiz.common.constants import (
    RecordTypes, HELP_LINES, NOTIFY_SYSTEM, NOTIFY_NEW_FILE, NOTIFY_NEW_QUIZ
)
from netquiz.common.framing import encode_utf, encode_int


class EventKind(Enum):
    """Kinds of chat events."""
    BROADCAST = 'broadcast'
    PRIVATE = 'private'
    SYSTEM_JOIN = 'system_join'
    SYSTEM_LEAVE = 'system_leave'
    USER_LIST_REFRESH = 'user_list_refresh'
    HELP = 'help'
    ERROR = 'error'
    NOTICE = 'notice'


@dataclass(frozen=True)
class ChatEvent:
    """Chat event structure."""
    kind: EventKind
    sender: str
    text: str = ''
    recipient: Optional[str] = None
    users: Tuple[str, ...] = ()
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())


@dataclass(frozen=True)
class NotificationEvent:
    """Presence notification line."""
    line: str
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())


SERVER_SENDER = 'Server'


def create_broadcast_event(sender: str, text: str) -> ChatEvent:
    """Create a public chat event."""
    return ChatEvent(EventKind.BROADCAST, sender, text)


def create_private_event(sender: str, recipient: str, text: str) -> ChatEvent:
    """Create a private message event."""
    return ChatEvent(EventKind.PRIVATE, sender, text, recipient=recipient)


def create_join_event(username: str) -> ChatEvent:
    """Create a user joined event."""
    return ChatEvent(EventKind.SYSTEM_JOIN, username, f"{username} has joined the chat")


def create_leave_event(username: str) -> ChatEvent:
    """Create a user left event."""
    return ChatEvent(EventKind.SYSTEM_LEAVE, username, f"{username} has left the chat")


def create_user_list_event(users: Iterable[str]) -> ChatEvent:
    """Create a user list refresh event."""
    return ChatEvent(EventKind.USER_LIST_REFRESH, SERVER_SENDER, users=tuple(users))


def create_help_event(recipient: str) -> ChatEvent:
    """Create a help reply."""
    return ChatEvent(EventKind.HELP, SERVER_SENDER, '\n'.join(HELP_LINES), recipient=recipient)


def create_error_event(recipient: str, message: str) -> ChatEvent:
    """Create an error reply."""
    return ChatEvent(EventKind.ERROR, SERVER_SENDER, message, recipient=recipient)


def create_notice_event(recipient: str, message: str) -> ChatEvent:
    """Create a system notice addressed to one user."""
    return ChatEvent(EventKind.NOTICE, SERVER_SENDER, message, recipient=recipient)


def create_delivery_notice(sender: str, recipient: str) -> ChatEvent:
    """Create a private message delivery confirmation."""
    return create_notice_event(sender, f"Private message delivered to {recipient}")


def encode_event(event: ChatEvent) -> bytes:
    """Encode an event as one server-to-client record."""
    kind = event.kind
    if kind == EventKind.BROADCAST:
        return encode_utf(RecordTypes.CHAT_MSG) + encode_utf(f"{event.sender}: {event.text}")
    if kind == EventKind.PRIVATE:
        return encode_utf(RecordTypes.PRIVATE_MSG) + encode_utf(f"[Private from {event.sender}]: {event.text}")
    if kind in (EventKind.SYSTEM_JOIN, EventKind.SYSTEM_LEAVE, EventKind.NOTICE):
        return encode_utf(RecordTypes.SYSTEM_MSG) + encode_utf(event.text)
    if kind == EventKind.ERROR:
        return encode_utf(RecordTypes.ERROR) + encode_utf(event.text)
    if kind == EventKind.USER_LIST_REFRESH:
        return encode_string_list(RecordTypes.USER_LIST, event.users)
    if kind == EventKind.HELP:
        return encode_string_list(RecordTypes.HELP, event.text.split('\n'))
    raise ValueError(f"Cannot encode event kind {kind}")


def encode_string_list(record_type: str, items: Iterable[str]) -> bytes:
    """Encode a record tag followed by a counted list of strings."""
    items = list(items)
    return encode_utf(record_type) + encode_int(len(items)) + b''.join(encode_utf(item) for item in items)


def create_system_notification(message: str) -> NotificationEvent:
    """Create a system notification."""
    return NotificationEvent(f"{NOTIFY_SYSTEM}{message}")


def create_new_file_notification(filename: str, uploader: str) -> NotificationEvent:
    """Create a new file notification."""
    return NotificationEvent(f"{NOTIFY_NEW_FILE}{filename} uploaded by {uploader}")


def create_new_quiz_notification(title: str) -> NotificationEvent:
    """Create a new quiz notification."""
    return NotificationEvent(f"{NOTIFY_NEW_QUIZ}{title}")
