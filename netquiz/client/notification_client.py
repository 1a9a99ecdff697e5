"""
Notification client module.

Listens for UDP presence broadcasts from the server.
"""

import asyncio
import socket
from typing import Optional

from netquiz.common.constants import DEFAULT_NOTIFICATION_PORT, NOTIFICATION_BUFFER_SIZE


class NotificationListener:
    """Receives notification lines on the broadcast port."""

    def __init__(self, host: str = '', port: int = DEFAULT_NOTIFICATION_PORT):
        self.socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.socket.bind((host, port))
        self.socket.setblocking(False)

    @property
    def port(self) -> int:
        return self.socket.getsockname()[1]

    async def receive(self, timeout: Optional[float] = None) -> str:
        """Wait for the next notification line."""
        loop = asyncio.get_running_loop()
        data, _ = await asyncio.wait_for(loop.sock_recvfrom(self.socket, NOTIFICATION_BUFFER_SIZE), timeout)
        return data.decode('utf-8')

    def close(self):
        self.socket.close()
