"""
User server module.

This module handles login, the lifetime of a chat session and its
departure, wiring the registry, the chat hub and presence notifications.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from netquiz.common.constants import (
    UserCommands, RecordTypes, REASON_USERNAME_TAKEN, REASON_INVALID_USERNAME
)
from netquiz.common.framing import FrameError, encode_bool, encode_utf, read_utf
from netquiz.common.protocol_definitions import (
    create_join_event, create_leave_event, create_user_list_event,
    create_system_notification, encode_event
)
from netquiz.server.chat.chat_hub import ChatHub
from netquiz.server.chat.commands import CommandInterpreter
from netquiz.server.notification.notification_server import NotificationServer
from netquiz.server.users.registry import Session, SessionRegistry, SessionState
from netquiz.server.utils.logger import logger


CONNECTION_ERRORS = (asyncio.IncompleteReadError, ConnectionError, OSError, TimeoutError, FrameError)


@dataclass
class LoginResult:
    accepted: bool
    reason: str
    session: Optional[Session] = None


def welcome_message(username: str) -> str:
    return f"Welcome to the chat, {username}!"


def validate_username(username: str) -> bool:
    """
    Usernames are non-empty, contain no whitespace and must fit in every
    frame that carries them (welcome, join and leave).
    """
    if not username or any(ch.isspace() for ch in username):
        return False
    try:
        encode_utf(welcome_message(username))
        encode_event(create_join_event(username))
        encode_event(create_leave_event(username))
    except FrameError:
        return False
    return True


class UserServer:
    """Server-side session and presence functionality."""

    def __init__(self, registry: SessionRegistry, notifier: NotificationServer,
                 idle_timeout: Optional[float] = None):
        self.registry = registry
        self.notifier = notifier
        self.idle_timeout = idle_timeout
        self.hub = ChatHub(registry, on_failure=self.disconnect)
        self.interpreter = CommandInterpreter(registry, self.hub)

    async def handle_session(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Serve a connection routed with a CHAT or USER tag until it closes."""
        try:
            command = await read_utf(reader)
        except CONNECTION_ERRORS as e:
            logger.warning(f"[USER] Connection lost before command: {e}")
            await self._close_writer(writer)
            return

        if command == UserCommands.GET_USERS:
            await self._reply_user_list(writer)
            return
        if command != UserCommands.LOGIN:
            logger.warning(f"[USER] Unknown command: {command}")
            await self._reply_and_close(writer, encode_utf(RecordTypes.ERROR) +
                                        encode_utf(f"Expected {UserCommands.LOGIN}"))
            return

        try:
            username = (await read_utf(reader)).strip()
            credential = await read_utf(reader)
        except CONNECTION_ERRORS as e:
            logger.warning(f"[USER] Connection lost during login: {e}")
            await self._close_writer(writer)
            return

        result = await self.login(username, credential, writer)
        if not result.accepted:
            await self._close_writer(writer)
            return

        await self.run_session(reader, result.session)

    async def login(self, username: str, credential: str, writer: asyncio.StreamWriter) -> LoginResult:
        """
        Register a new session for `username` and announce it.

        The reply is written before any broadcast can reach the new session.
        The credential is not checked.
        """
        if not validate_username(username):
            return await self._reject(username, REASON_INVALID_USERNAME, writer)

        session = Session(username, writer)
        welcome = welcome_message(username)
        reply = encode_bool(True) + encode_utf(welcome)
        async with session.write_lock:
            if not await self.registry.add(session):
                return await self._reject(username, REASON_USERNAME_TAKEN, writer)
            try:
                await session.send_locked(reply)
            except (ConnectionError, OSError) as e:
                logger.error(f"Failed to send login reply to '{username}': {e}")
                failed = True
            else:
                failed = False

        if failed:
            await self.disconnect(session)
            return LoginResult(False, "connection lost", session)

        logger.log_login(username, len(self.registry))

        # A concurrent failed write may already have disconnected the session
        if session.state == SessionState.AUTHENTICATED:
            await self.hub.broadcast(create_join_event(username), exclude={username})
        if session.state == SessionState.AUTHENTICATED:
            await self.hub.broadcast(create_user_list_event(await self.registry.get_users()))
        if session.state != SessionState.AUTHENTICATED:
            logger.info(f"[USER] '{username}' left before the join was announced")
            return LoginResult(False, "connection lost", session)

        self.notifier.announce(create_system_notification(f"{username} joined"))
        return LoginResult(True, welcome, session)

    async def run_session(self, reader: asyncio.StreamReader, session: Session):
        """Read chat lines until logout or a connection fault."""
        try:
            while session.alive:
                if self.idle_timeout:
                    line = await asyncio.wait_for(read_utf(reader), self.idle_timeout)
                else:
                    line = await read_utf(reader)

                if line == UserCommands.LOGOUT:
                    logger.info(f"[USER] Logout request: {session.username}")
                    break

                await self.interpreter.interpret(line, session)
        except CONNECTION_ERRORS as e:
            logger.info(f"[USER] Connection closed for '{session.username}': {e!r}")
        except asyncio.CancelledError:
            logger.info(f"[USER] Session cancelled for '{session.username}'")
            raise
        finally:
            await self.disconnect(session)

    async def disconnect(self, session: Session):
        """
        Remove a session and announce the departure.

        Only the call that actually removes the entry broadcasts, so a
        session leaves exactly once however many paths detect the fault.
        """
        removed = await self.registry.remove(session)
        session.state = SessionState.CLOSED

        if removed:
            logger.log_disconnect(session.username, len(self.registry))
            await self.hub.broadcast(create_leave_event(session.username))
            await self.hub.broadcast(create_user_list_event(await self.registry.get_users()))
            self.notifier.announce(create_system_notification(f"{session.username} left"))

        await session.close()

    async def close_all(self):
        """Force-close every registered connection."""
        for session in await self.registry.snapshot():
            await session.close()

    async def _reject(self, username: str, reason: str, writer: asyncio.StreamWriter) -> LoginResult:
        logger.log_login_rejected(username, reason)
        try:
            writer.write(encode_bool(False) + encode_utf(reason))
            await writer.drain()
        except (ConnectionError, OSError) as e:
            logger.error(f"Failed to send login rejection to '{username}': {e}")
        return LoginResult(False, reason)

    async def _reply_user_list(self, writer: asyncio.StreamWriter):
        users = await self.registry.get_users()
        await self._reply_and_close(writer, encode_event(create_user_list_event(users)))

    async def _reply_and_close(self, writer: asyncio.StreamWriter, data: bytes):
        try:
            writer.write(data)
            await writer.drain()
        except (ConnectionError, OSError) as e:
            logger.error(f"Failed to send reply: {e}")
        await self._close_writer(writer)

    async def _close_writer(self, writer: asyncio.StreamWriter):
        try:
            writer.close()
            await writer.wait_closed()
        except (ConnectionError, OSError):
            pass
