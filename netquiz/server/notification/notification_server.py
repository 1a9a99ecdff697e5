"""
Notification server module.

Relays presence announcements to the LAN as UDP broadcast packets.
Producers call announce() from any request handler; a single consumer
task sends queued lines in arrival order.
"""

import asyncio
import socket
from typing import Optional, Union

from netquiz.common.constants import BROADCAST_ADDRESS, DEFAULT_NOTIFICATION_PORT
from netquiz.common.protocol_definitions import NotificationEvent, create_system_notification
from netquiz.server.utils.logger import logger


class NotificationServer:
    """UDP broadcaster fed by an in-memory queue."""

    def __init__(self, broadcast_address: str = BROADCAST_ADDRESS,
                 port: int = DEFAULT_NOTIFICATION_PORT, max_queue: int = 0):
        self.broadcast_address = broadcast_address
        self.port = port
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)
        self.socket: Optional[socket.socket] = None
        self.consumer_task: Optional[asyncio.Task] = None
        self.running = False
        self.stopped = False
        self.sent_count = 0
        self.dropped_count = 0

    def announce(self, event: Union[NotificationEvent, str]) -> bool:
        """Queue a line for broadcast without blocking the caller."""
        line = event.line if isinstance(event, NotificationEvent) else event
        if self.stopped:
            self.dropped_count += 1
            logger.debug(f"[NOTIFY] Stopped, dropped notification: {line}")
            return False
        try:
            self.queue.put_nowait(line)
            return True
        except asyncio.QueueFull:
            self.dropped_count += 1
            logger.warning(f"[NOTIFY] Queue full, dropped notification: {line}")
            return False

    async def start(self, self_announcement: Optional[str] = None):
        """Open the broadcast socket and start the consumer task."""
        self.socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.socket.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        self.socket.setblocking(False)
        self.running = True
        self.stopped = False

        self.announce(create_system_notification(self_announcement or "NetQuiz server online"))
        self.consumer_task = asyncio.create_task(self._consume())
        logger.info(f"[NOTIFY] Notification server started (UDP {self.broadcast_address}:{self.port})")

    async def _consume(self):
        loop = asyncio.get_running_loop()
        while self.running:
            line = await self.queue.get()
            try:
                await loop.sock_sendto(self.socket, line.encode('utf-8'), (self.broadcast_address, self.port))
                self.sent_count += 1
                logger.log_notification(line)
            except OSError as e:
                logger.error(f"[NOTIFY] Error broadcasting '{line}': {e}")
            finally:
                self.queue.task_done()

    async def stop(self):
        """Stop the consumer without draining and close the socket."""
        self.running = False
        if self.consumer_task:
            self.stopped = True
            self.consumer_task.cancel()
            try:
                await self.consumer_task
            except asyncio.CancelledError:
                pass
            self.consumer_task = None
        if self.socket:
            self.socket.close()
            self.socket = None
        logger.info("[NOTIFY] Notification server stopped")
