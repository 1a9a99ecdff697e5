"""
Chat command interpreter.

Turns a raw chat line into an event and routes it: in-band commands are
answered on the sender's own connection, public chat goes through the hub.
"""

from typing import Optional

from netquiz.common.constants import ChatCommands
from netquiz.common.framing import FrameError
from netquiz.common.protocol_definitions import (
    ChatEvent, EventKind, create_broadcast_event, create_private_event,
    create_user_list_event, create_help_event, create_error_event, create_delivery_notice
)
from netquiz.server.chat.chat_hub import ChatHub
from netquiz.server.users.registry import Session, SessionRegistry
from netquiz.server.utils.logger import logger


PRIVATE_USAGE = f"Usage: {ChatCommands.PRIVATE} <username> <message>"
MESSAGE_TOO_LONG = "Message too long"


def parse_line(raw_line: str, sender: str) -> Optional[ChatEvent]:
    """
    Parse one chat line from `sender`.

    Returns None for blank lines. Users lists are returned without
    contents; the interpreter fills them from the registry.
    """
    line = raw_line.strip()
    if not line:
        return None

    command, _, rest = line.partition(' ')
    if command == ChatCommands.USERS and not rest.strip():
        return create_user_list_event(())
    if command == ChatCommands.HELP and not rest.strip():
        return create_help_event(sender)
    if command == ChatCommands.PRIVATE:
        parts = rest.strip().split(maxsplit=1)
        if len(parts) < 2:
            return create_error_event(sender, PRIVATE_USAGE)
        return create_private_event(sender, parts[0], parts[1])

    return create_broadcast_event(sender, line)


class CommandInterpreter:
    """Dispatches parsed chat lines to the hub or back to the sender."""

    def __init__(self, registry: SessionRegistry, hub: ChatHub):
        self.registry = registry
        self.hub = hub

    async def interpret(self, raw_line: str, session: Session) -> Optional[ChatEvent]:
        """Handle one line received from `session`; returns the parsed event."""
        event = parse_line(raw_line, session.username)
        if event is None:
            return None

        try:
            return await self._dispatch(event, session)
        except FrameError as e:
            # The prefixed record no longer fits in one frame
            logger.warning(f"[CHAT] Line from '{session.username}' not sent: {e}")
            error = create_error_event(session.username, MESSAGE_TOO_LONG)
            await self.hub.send(session, error)
            return error

    async def _dispatch(self, event: ChatEvent, session: Session) -> ChatEvent:
        if event.kind == EventKind.BROADCAST:
            delivered = await self.hub.broadcast(event, exclude={session.username})
            logger.log_chat(session.username, event.text, delivered)
        elif event.kind == EventKind.PRIVATE:
            await self._send_private(event, session)
        elif event.kind == EventKind.USER_LIST_REFRESH:
            event = create_user_list_event(await self.registry.get_users())
            await self.hub.send(session, event)
        else:
            # Help and usage errors go to the sender only
            await self.hub.send(session, event)

        return event

    async def _send_private(self, event: ChatEvent, session: Session):
        target = await self.registry.get(event.recipient)
        if target is None:
            logger.info(f"[CHAT] User {event.recipient} not found")
            await self.hub.send(session, create_error_event(
                session.username, f"User '{event.recipient}' not found or offline"))
            return

        if await self.hub.send(target, event):
            logger.log_private(event.sender, event.recipient, event.text)
            await self.hub.send(session, create_delivery_notice(session.username, event.recipient))
        else:
            await self.hub.send(session, create_error_event(
                session.username, f"User '{event.recipient}' not found or offline"))
