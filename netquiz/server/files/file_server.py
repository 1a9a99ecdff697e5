"""
File server module.

This module handles server-side file transfer functionality over the FILE tag.
"""

import asyncio
from pathlib import Path
from typing import List, Optional, Tuple

from netquiz.common.constants import FileCommands, FILES_DIR, CHUNK_SIZE, SUCCESS, ERROR
from netquiz.common.framing import encode_int, encode_long, encode_utf, read_long, read_utf
from netquiz.common.protocol_definitions import create_new_file_notification
from netquiz.server.notification.notification_server import NotificationServer
from netquiz.server.utils.logger import logger


class FileServer:
    """Server-side file transfer functionality."""

    def __init__(self, files_dir: str = FILES_DIR, notifier: Optional[NotificationServer] = None,
                 chunk_size: int = CHUNK_SIZE):
        self.files_dir = Path(files_dir)
        self.files_dir.mkdir(parents=True, exist_ok=True)
        self.notifier = notifier
        self.chunk_size = chunk_size

    def resolve(self, filename: str) -> Optional[Path]:
        """Map a client-supplied name into the files directory."""
        name = Path(filename.replace('\\', '/')).name
        if not name or name in ('.', '..'):
            return None
        return self.files_dir / name

    def list_files(self) -> List[Tuple[str, int]]:
        return sorted((p.name, p.stat().st_size) for p in self.files_dir.iterdir() if p.is_file())

    async def handle_request(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Serve one file command; the connection is closed afterwards."""
        try:
            command = await read_utf(reader)
            logger.info(f"[FILE] Command: {command}")

            if command == FileCommands.UPLOAD:
                await self.handle_upload(reader, writer)
            elif command == FileCommands.DOWNLOAD:
                await self.handle_download(reader, writer)
            elif command == FileCommands.LIST:
                files = self.list_files()
                writer.write(encode_int(len(files)) +
                             b''.join(encode_utf(name) + encode_long(size) for name, size in files))
            else:
                logger.warning(f"[FILE] Unknown command: {command}")
            await writer.drain()
        except (asyncio.IncompleteReadError, ConnectionError, OSError, ValueError) as e:
            logger.error(f"[FILE] Handler error: {e}")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass

    async def handle_upload(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        filename = await read_utf(reader)
        uploader = await read_utf(reader)
        size = await read_long(reader)

        path = self.resolve(filename)
        if path is None or size < 0:
            logger.error(f"[FILE] Invalid upload: {filename!r} ({size} bytes)")
            writer.write(encode_utf(ERROR))
            return

        received = 0
        try:
            with open(path, 'wb') as f:
                while received < size:
                    chunk = await reader.read(min(self.chunk_size, size - received))
                    if not chunk:
                        raise asyncio.IncompleteReadError(b'', size - received)
                    f.write(chunk)
                    received += len(chunk)
        except asyncio.IncompleteReadError:
            logger.error(f"[FILE] Upload of {path.name} interrupted at {received}/{size} bytes")
            path.unlink(missing_ok=True)
            raise
        except OSError as e:
            logger.error(f"[FILE] Upload error: {e}")
            writer.write(encode_utf(ERROR))
            return

        logger.log_file_upload(path.name, size, uploader)
        writer.write(encode_utf(SUCCESS))
        if self.notifier:
            self.notifier.announce(create_new_file_notification(path.name, uploader))

    async def handle_download(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        filename = await read_utf(reader)
        path = self.resolve(filename)

        if path is None or not path.is_file():
            logger.warning(f"[FILE] Download of unknown file: {filename}")
            writer.write(encode_utf(ERROR) + encode_long(0))
            return

        size = path.stat().st_size
        writer.write(encode_utf(SUCCESS) + encode_long(size))
        with open(path, 'rb') as f:
            while True:
                chunk = f.read(self.chunk_size)
                if not chunk:
                    break
                writer.write(chunk)
                await writer.drain()
        logger.log_file_download(path.name, size)
