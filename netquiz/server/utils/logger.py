"""
Server logging module.

This module handles server-side logging functionality.
"""

import logging
from datetime import datetime
from pathlib import Path

from netquiz.common.constants import LOG_DIR, CHAT_LOG_FILE, TRANSFER_LOG_FILE


class ServerLogger:
    """Server logging class."""

    def __init__(self, logs_dir: str = LOG_DIR, log_level: int = logging.INFO):
        self.logs_dir = Path(logs_dir)

        # Set up main logger
        self.logger = logging.getLogger('netquiz_server')
        self.logger.setLevel(log_level)

        # Remove existing handlers
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        # Create console handler
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)

        # Create formatter
        formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        console_handler.setFormatter(formatter)

        # Add handler to logger
        self.logger.addHandler(console_handler)

        self._set_paths()

    def _set_paths(self):
        self.chat_log_path = self.logs_dir / CHAT_LOG_FILE
        self.transfer_log_path = self.logs_dir / TRANSFER_LOG_FILE

    def set_logs_dir(self, logs_dir: str):
        """Redirect the chat and transfer record files."""
        self.logs_dir = Path(logs_dir)
        self._set_paths()

    def info(self, message: str):
        """Log info message."""
        self.logger.info(message)

    def error(self, message: str):
        """Log error message."""
        self.logger.error(message)

    def warning(self, message: str):
        """Log warning message."""
        self.logger.warning(message)

    def debug(self, message: str):
        """Log debug message."""
        self.logger.debug(message)

    def log_connection(self, addr: tuple, tag: str):
        """Log a routed connection."""
        self.info(f"[REQUEST] {tag} from {addr}")

    def log_login(self, username: str, online: int):
        """Log user login."""
        self.info(f"[USER] '{username}' logged in ({online} online)")

    def log_login_rejected(self, username: str, reason: str):
        """Log a rejected login."""
        self.warning(f"[USER] Login rejected for '{username}': {reason}")

    def log_disconnect(self, username: str, online: int):
        """Log user disconnect."""
        self.info(f"[USER] '{username}' disconnected ({online} online)")

    def log_chat(self, username: str, message: str, recipients: int):
        """Log public chat message."""
        self.info(f"[CHAT] {username}: {message} (to {recipients} client(s))")
        self._write_to_file(self.chat_log_path, f"{datetime.now().isoformat()} | {username} | {message}")

    def log_private(self, from_username: str, to_username: str, message: str):
        """Log private message."""
        self.info(f"[CHAT] Private from {from_username} to {to_username}")
        self._write_to_file(self.chat_log_path, f"{datetime.now().isoformat()} | [PRIVATE {from_username}→{to_username}] | {message}")

    def log_notification(self, line: str):
        """Log a sent presence notification."""
        self.info(f"[NOTIFY] Broadcast notification: {line}")

    def log_file_upload(self, filename: str, size: int, uploader: str):
        """Log file upload."""
        self.info(f"[FILE] Uploaded: {filename} by {uploader} ({size} bytes)")
        self._write_to_file(self.transfer_log_path, f"{datetime.now().isoformat()} | UPLOAD | {filename} | USER: {uploader} | SIZE: {size} bytes")

    def log_file_download(self, filename: str, size: int):
        """Log file download."""
        self.info(f"[FILE] Downloaded: {filename} ({size} bytes)")
        self._write_to_file(self.transfer_log_path, f"{datetime.now().isoformat()} | DOWNLOAD | {filename} | SIZE: {size} bytes")

    def log_quiz_score(self, user_id: str, quiz_id: str, score: int):
        """Log quiz submission."""
        self.info(f"[QUIZ] User {user_id} scored {score} on {quiz_id}")

    def log_error(self, operation: str, error: Exception):
        """Log error with operation context."""
        self.error(f"Error in {operation}: {error}")

    def _write_to_file(self, file_path: Path, content: str):
        """Write content to log file."""
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, 'a', encoding='utf-8') as f:
                f.write(content + '\n')
        except OSError as e:
            self.error(f"Failed to write to log file {file_path}: {e}")


# Global logger instance
logger = ServerLogger()
