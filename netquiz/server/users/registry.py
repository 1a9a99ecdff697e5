"""
Session registry module.

This module keeps the directory of live chat sessions keyed by username.
"""

import asyncio
from enum import Enum
from typing import Dict, List, Optional

from netquiz.server.utils.logger import logger


class SessionState(Enum):
    UNAUTHENTICATED = 'unauthenticated'
    AUTHENTICATED = 'authenticated'
    CLOSED = 'closed'


class Session:
    """One logged-in chat connection and its exclusive outbound channel."""

    def __init__(self, username: str, writer: asyncio.StreamWriter):
        self.username = username
        self.writer = writer
        self.write_lock = asyncio.Lock()  # One writer at a time per session
        self.state = SessionState.UNAUTHENTICATED

    @property
    def alive(self) -> bool:
        return self.state != SessionState.CLOSED and not self.writer.is_closing()

    async def send(self, data: bytes):
        """
        Write one complete record to the client.

        Raises ConnectionError if the session is already closed.
        """
        async with self.write_lock:
            await self.send_locked(data)

    async def send_locked(self, data: bytes):
        """Write a record; the caller must hold write_lock."""
        if not self.alive:
            raise ConnectionError(f"Session '{self.username}' is closed")
        self.writer.write(data)
        await self.writer.drain()

    async def close(self):
        """Release the connection. Safe to call more than once."""
        self.state = SessionState.CLOSED
        if self.writer.is_closing():
            return
        try:
            self.writer.close()
            await self.writer.wait_closed()
        except (OSError, ConnectionError) as e:
            logger.debug(f"Error closing connection for '{self.username}': {e}")

    def __repr__(self):
        return f"Session({self.username!r}, {self.state.value})"


class SessionRegistry:
    """Concurrency-safe directory of active sessions."""

    def __init__(self):
        self.sessions: Dict[str, Session] = {}  # username -> session, in login order
        self.lock = asyncio.Lock()  # Protect shared state

    async def add(self, session: Session) -> bool:
        """
        Register a session unless its username is already taken.

        The uniqueness check and the insert happen in one critical section.
        """
        async with self.lock:
            if session.username in self.sessions:
                return False
            self.sessions[session.username] = session
            session.state = SessionState.AUTHENTICATED
            return True

    async def remove(self, session: Session) -> bool:
        """
        Remove a session if it is the one registered under its username.

        Returns False when it was already removed.
        """
        async with self.lock:
            if self.sessions.get(session.username) is not session:
                return False
            del self.sessions[session.username]
            return True

    async def get(self, username: str) -> Optional[Session]:
        """Look up a live session by username."""
        async with self.lock:
            return self.sessions.get(username)

    async def snapshot(self) -> List[Session]:
        """Point-in-time copy of registered sessions."""
        async with self.lock:
            return list(self.sessions.values())

    async def get_users(self) -> List[str]:
        """Point-in-time copy of registered usernames, in login order."""
        async with self.lock:
            return list(self.sessions.keys())

    def __len__(self):
        return len(self.sessions)

    def __contains__(self, username):
        return username in self.sessions
