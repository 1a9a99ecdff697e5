"""
Chat client module.

This module handles client-side chat session functionality.
"""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from netquiz.common.constants import (
    DEFAULT_HOST, DEFAULT_PORT, RequestTags, UserCommands, RecordTypes
)
from netquiz.common.framing import encode_utf, read_bool, read_int, read_utf


@dataclass
class ServerRecord:
    """One record received on the chat connection."""
    type: str
    text: str = ''
    items: List[str] = field(default_factory=list)


async def read_record(reader: asyncio.StreamReader) -> ServerRecord:
    """Read and decode one server-to-client record."""
    record_type = await read_utf(reader)
    if record_type in (RecordTypes.USER_LIST, RecordTypes.HELP):
        count = await read_int(reader)
        items = [await read_utf(reader) for _ in range(count)]
        return ServerRecord(record_type, '\n'.join(items), items)
    if record_type in RecordTypes.TEXT:
        return ServerRecord(record_type, await read_utf(reader))
    raise ValueError(f"Unknown record type: {record_type}")


class ChatClient:
    """Client-side chat session."""

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT):
        self.host = host
        self.port = port
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None
        self.username: Optional[str] = None

    async def connect(self, tag: str = RequestTags.USER):
        """Open the connection and send the request tag."""
        self.reader, self.writer = await asyncio.open_connection(self.host, self.port)
        await self._send(encode_utf(tag))

    async def login(self, username: str, password: str = 'password') -> Tuple[bool, str]:
        """Log in; returns (accepted, welcome text or rejection reason)."""
        if self.writer is None:
            await self.connect()
        await self._send(encode_utf(UserCommands.LOGIN) + encode_utf(username) + encode_utf(password))
        accepted = await read_bool(self.reader)
        message = await read_utf(self.reader)
        if accepted:
            self.username = username
        return accepted, message

    async def send_line(self, line: str):
        """Send a chat line or command (/msg, /users, /help)."""
        await self._send(encode_utf(line))

    async def receive(self, timeout: Optional[float] = None) -> ServerRecord:
        """Wait for the next record from the server."""
        return await asyncio.wait_for(read_record(self.reader), timeout)

    async def logout(self):
        """Leave the chat and close the connection."""
        try:
            await self._send(encode_utf(UserCommands.LOGOUT) + encode_utf(self.username or ''))
        except (ConnectionError, OSError):
            pass
        await self.close()

    async def close(self):
        if self.writer is None:
            return
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (ConnectionError, OSError):
            pass
        self.writer = None

    async def _send(self, data: bytes):
        self.writer.write(data)
        await self.writer.drain()


async def get_online_users(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> List[str]:
    """One-shot query of the connected users."""
    reader, writer = await asyncio.open_connection(host, port)
    try:
        writer.write(encode_utf(RequestTags.USER) + encode_utf(UserCommands.GET_USERS))
        await writer.drain()
        record = await read_record(reader)
        return record.items
    finally:
        writer.close()
        await writer.wait_closed()
