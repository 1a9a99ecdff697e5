"""
File client module.

This module handles client-side file transfer functionality.
"""

import asyncio
from typing import List, Optional, Tuple

from netquiz.common.constants import (
    DEFAULT_HOST, DEFAULT_PORT, RequestTags, FileCommands, SUCCESS
)
from netquiz.common.framing import encode_long, encode_utf, read_int, read_long, read_utf


class FileClient:
    """Client-side file transfer functionality."""

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT):
        self.host = host
        self.port = port

    async def _open(self, command: str):
        reader, writer = await asyncio.open_connection(self.host, self.port)
        writer.write(encode_utf(RequestTags.FILE) + encode_utf(command))
        return reader, writer

    async def upload(self, filename: str, uploader: str, data: bytes) -> bool:
        reader, writer = await self._open(FileCommands.UPLOAD)
        try:
            writer.write(encode_utf(filename) + encode_utf(uploader) + encode_long(len(data)))
            writer.write(data)
            await writer.drain()
            return await read_utf(reader) == SUCCESS
        finally:
            writer.close()

    async def download(self, filename: str) -> Optional[bytes]:
        """Returns the file contents, or None if the server does not have it."""
        reader, writer = await self._open(FileCommands.DOWNLOAD)
        try:
            writer.write(encode_utf(filename))
            await writer.drain()
            status = await read_utf(reader)
            size = await read_long(reader)
            if status != SUCCESS:
                return None
            return await reader.readexactly(size)
        finally:
            writer.close()

    async def list_files(self) -> List[Tuple[str, int]]:
        reader, writer = await self._open(FileCommands.LIST)
        try:
            await writer.drain()
            count = await read_int(reader)
            files = []
            for _ in range(count):
                name = await read_utf(reader)
                files.append((name, await read_long(reader)))
            return files
        finally:
            writer.close()
