"""
Server configuration module.

This module handles server-side configuration settings.
"""

from typing import Optional

from netquiz.common.constants import (
    DEFAULT_SERVER_HOST, DEFAULT_PORT, DEFAULT_NOTIFICATION_PORT, BROADCAST_ADDRESS,
    FILES_DIR, QUIZZES_FILE, LOG_DIR, CHUNK_SIZE
)


class ServerConfig:
    """Server configuration class."""

    def __init__(self, host: str = DEFAULT_SERVER_HOST, port: int = DEFAULT_PORT,
                 notification_port: int = DEFAULT_NOTIFICATION_PORT,
                 broadcast_address: str = BROADCAST_ADDRESS,
                 files_dir: str = FILES_DIR, quizzes_file: str = QUIZZES_FILE,
                 logs_dir: str = LOG_DIR, idle_timeout: Optional[float] = None):
        self.host = host
        self.port = port

        # Presence notifications
        self.notification_port = notification_port
        self.broadcast_address = broadcast_address
        self.notification_queue_size = 0  # 0 = unbounded

        # Storage
        self.files_dir = files_dir
        self.quizzes_file = quizzes_file

        # Logging configuration
        self.logs_dir = logs_dir

        # File transfer settings
        self.chunk_size = CHUNK_SIZE

        # Session settings; None waits forever for the next line
        self.idle_timeout = idle_timeout

    def get_notification_settings(self):
        """Get presence notification settings."""
        return {
            'broadcast_address': self.broadcast_address,
            'port': self.notification_port,
            'max_queue': self.notification_queue_size
        }
