"""
Server logging module.

This module handles server-side logging functionality.
"""

import logging
from datetime import datetime
from pathlib import Path

from connectle.common.constants import LOG_DIR, CHAT_LOG_FILE


class ServerLogger:
    """Server logging class."""

    def __init__(self, logs_dir: str = LOG_DIR, log_level: int = logging.INFO):
        self.logs_dir = Path(logs_dir)

        # Set up main logger
        self.logger = logging.getLogger('connectle_server')
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

        self.chat_log_path = self.logs_dir / CHAT_LOG_FILE

    def set_logs_dir(self, logs_dir: str):
        """Redirect file logs, e.g. from command line options."""
        self.logs_dir = Path(logs_dir)
        self.chat_log_path = self.logs_dir / CHAT_LOG_FILE

    def set_level(self, log_level: int):
        self.logger.setLevel(log_level)
        for handler in self.logger.handlers:
            handler.setLevel(log_level)

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

    def log_connection(self, addr: tuple, connection_id: str):
        """Log client connection."""
        self.info(f"New connection from {addr}, assigned connection_id={connection_id}")

    def log_register(self, username: str, connection_id: str):
        """Log account registration."""
        self.info(f"User '{username}' registered from connection_id={connection_id}")

    def log_login(self, username: str, connection_id: str):
        """Log user login."""
        self.info(f"User '{username}' logged in on connection_id={connection_id}")

    def log_logout(self, username: str, connection_id: str):
        """Log user logout."""
        self.info(f"User '{username}' logged out from connection_id={connection_id}")

    def log_disconnect(self, connection_id: str, username: str = None):
        """Log client disconnect."""
        if username:
            self.info(f"User {username} (connection_id={connection_id}) disconnected")
        else:
            self.info(f"Connection {connection_id} closed")

    def log_chat(self, username: str, message: str):
        """Log broadcast chat message."""
        self.info(f"Chat from {username}: {message}")
        self._write_to_file(self.chat_log_path, f"{datetime.now().isoformat()} | {username} | {message}")

    def log_private(self, from_username: str, to_username: str, length: int):
        """Log private message metadata; the text itself stays out of the console."""
        self.info(f"📨 PRIVATE from {from_username} to {to_username} ({length} chars)")
        self._write_to_file(self.chat_log_path, f"{datetime.now().isoformat()} | [PRIVATE {from_username}→{to_username}] | {length} chars")

    def log_command(self, username: str, command: str):
        """Log command invocation."""
        self.info(f"Command {command} from {username}")

    def log_error(self, operation: str, error: Exception):
        """Log error with operation context."""
        self.error(f"Error in {operation}: {error}")

    def _write_to_file(self, file_path: Path, content: str):
        """Write content to log file."""
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, 'a', encoding='utf-8') as f:
                f.write(content + '\n')
        except Exception as e:
            self.error(f"Failed to write to log file {file_path}: {e}")


# Global logger instance
logger = ServerLogger()
