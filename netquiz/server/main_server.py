"""
NetQuiz Server

Accepts connections on the single TCP port, reads the leading request tag
and hands each connection to the quiz, file or chat/user handler.
"""

import asyncio
from typing import Dict, Optional

from netquiz.common.constants import RequestTags, ERROR
from netquiz.common.framing import FrameError, encode_utf, read_utf
from netquiz.server.files.file_server import FileServer
from netquiz.server.notification.notification_server import NotificationServer
from netquiz.server.quiz.quiz_server import QuizServer
from netquiz.server.users.registry import SessionRegistry
from netquiz.server.users.user_server import UserServer
from netquiz.server.utils.config import ServerConfig
from netquiz.server.utils.logger import logger


SHUTDOWN_TIMEOUT = 5  # seconds


class NetQuizServer:
    """Main server class that routes connections to the feature handlers."""

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        logger.set_logs_dir(self.config.logs_dir)
        self.server: Optional[asyncio.AbstractServer] = None
        self.connections: Dict[asyncio.Task, asyncio.StreamWriter] = {}  # handler task -> writer

        # One registry shared by every component that needs sessions
        self.registry = SessionRegistry()
        self.notifier = NotificationServer(**self.config.get_notification_settings())
        self.user_server = UserServer(self.registry, self.notifier, self.config.idle_timeout)
        self.quiz_server = QuizServer(self.config.quizzes_file, self.notifier)
        self.file_server = FileServer(self.config.files_dir, self.notifier, self.config.chunk_size)

    @property
    def port(self) -> int:
        """Bound TCP port (useful when configured with port 0)."""
        if self.server and self.server.sockets:
            return self.server.sockets[0].getsockname()[1]
        return self.config.port

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Read the request tag and route the connection."""
        addr = writer.get_extra_info('peername')
        task = asyncio.current_task()
        self.connections[task] = writer
        try:
            try:
                tag = await read_utf(reader)
            except (asyncio.IncompleteReadError, ConnectionError, OSError, FrameError) as e:
                logger.warning(f"[ERROR] Client router error for {addr}: {e}")
                await self._close(writer)
                return

            logger.log_connection(addr, tag)

            if tag == RequestTags.QUIZ:
                await self.quiz_server.handle_request(reader, writer)
            elif tag == RequestTags.FILE:
                await self.file_server.handle_request(reader, writer)
            elif tag in RequestTags.SESSION:
                # Session owns the connection from here on
                await self.user_server.handle_session(reader, writer)
            else:
                logger.error(f"[ERROR] Unknown request type: {tag}")
                try:
                    writer.write(encode_utf(ERROR))
                    await writer.drain()
                except (ConnectionError, OSError) as e:
                    logger.error(f"Failed to send error reply to {addr}: {e}")
                await self._close(writer)
        finally:
            self.connections.pop(task, None)

    async def start(self):
        """Bind the listener and start the notifier."""
        self.server = await asyncio.start_server(
            self.handle_client,
            self.config.host,
            self.config.port
        )
        await self.notifier.start(f"NetQuiz server online (TCP {self.port})")

        addr = ', '.join(str(sock.getsockname()) for sock in self.server.sockets)
        logger.info(f"Server listening on {addr}")
        logger.info(f"Notifications on UDP {self.config.broadcast_address}:{self.config.notification_port}")

    async def serve_forever(self):
        if self.server is None:
            await self.start()
        async with self.server:
            await self.server.serve_forever()

    async def stop(self):
        """Close the listener, force-close sessions and stop the notifier."""
        logger.info("[SHUTDOWN] Stopping NetQuiz Server...")
        if self.server:
            self.server.close()
        await self.user_server.close_all()

        # Connections still waiting for a tag or mid-transfer
        for writer in list(self.connections.values()):
            await self._close(writer)

        # Let handler tasks run their disconnect path
        if self.connections:
            await asyncio.wait(list(self.connections), timeout=SHUTDOWN_TIMEOUT)

        if self.server:
            try:
                await asyncio.wait_for(self.server.wait_closed(), SHUTDOWN_TIMEOUT)
            except TimeoutError:
                logger.warning("[SHUTDOWN] Listener did not close in time")
        await self.notifier.stop()
        logger.info("[SHUTDOWN] Server stopped successfully.")

    async def _close(self, writer: asyncio.StreamWriter):
        try:
            writer.close()
            await writer.wait_closed()
        except (ConnectionError, OSError):
            pass
