"""
Server configuration module.

This module handles server-side configuration settings.
"""

from connectle.common.constants import (
    DEFAULT_SERVER_HOST, DEFAULT_PORT, LOG_DIR, BCRYPT_ROUNDS, MAX_LINE_SIZE,
    MAX_CHAT_HISTORY, MAX_PRIVATE_HISTORY, WEATHER_TIMEOUT, RATES_TIMEOUT, RATES_CACHE_TTL
)


class ServerConfig:
    """Server configuration class."""

    def __init__(self, host: str = DEFAULT_SERVER_HOST, port: int = DEFAULT_PORT,
                 logs_dir: str = LOG_DIR, bcrypt_rounds: int = BCRYPT_ROUNDS):
        self.host = host
        self.port = port

        # Logging configuration
        self.logs_dir = logs_dir

        # Account settings
        self.bcrypt_rounds = bcrypt_rounds

        # Chat settings
        self.max_chat_history = MAX_CHAT_HISTORY
        self.max_private_history = MAX_PRIVATE_HISTORY
        self.max_line_size = MAX_LINE_SIZE

        # External services
        self.weather_timeout = WEATHER_TIMEOUT
        self.rates_timeout = RATES_TIMEOUT
        self.rates_cache_ttl = RATES_CACHE_TTL

    def get_connection_info(self):
        """Get connection information."""
        return {
            'host': self.host,
            'port': self.port
        }

    def get_store_settings(self):
        """Get entity store settings."""
        return {
            'bcrypt_rounds': self.bcrypt_rounds,
            'max_chat_history': self.max_chat_history,
            'max_private_history': self.max_private_history
        }

    def get_command_settings(self):
        """Get external service settings for the chat commands."""
        return {
            'weather_timeout': self.weather_timeout,
            'rates_timeout': self.rates_timeout,
            'rates_cache_ttl': self.rates_cache_ttl
        }

    def get_log_settings(self):
        """Get logging settings."""
        return {
            'logs_dir': self.logs_dir
        }
