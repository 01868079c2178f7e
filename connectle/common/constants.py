"""
Shared constants for the Connectle chat service.

This module contains all constants used across client and server components.
"""

# Network Configuration
DEFAULT_HOST = 'localhost'
DEFAULT_SERVER_HOST = '0.0.0.0'
DEFAULT_PORT = 5000
MAX_LINE_SIZE = 1024 * 1024  # 1MB per JSON line

# Timeouts
HEARTBEAT_INTERVAL = 10  # seconds
WEATHER_TIMEOUT = 5  # seconds
RATES_TIMEOUT = 10  # seconds
RATES_CACHE_TTL = 10 * 60  # 10 minutes in seconds

# Reconnection (client)
MAX_RETRY_ATTEMPTS = 3
RECONNECT_ATTEMPTS = 5
RECONNECT_DELAY_BASE = 1.0

# Account rules
MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6
BCRYPT_ROUNDS = 12

# Message limits
MAX_CHAT_HISTORY = 1000
MAX_PRIVATE_HISTORY = 100
MAX_MESSAGE_LENGTH = 1000

# Commands
COMMAND_PREFIX = '/'
SYSTEM_AUTHOR = 'System'

# Logging
LOG_DIR = 'logs'
CHAT_LOG_FILE = 'chat_history.log'

# Message Types
class MessageTypes:
    # Client to Server
    REGISTER = 'register'
    LOGIN = 'login'
    LOGOUT = 'logout'
    HEARTBEAT = 'heartbeat'
    CHAT = 'chat'
    PRIVATE_MESSAGE = 'private_message'
    GET_HISTORY = 'get_history'
    GET_PRIVATE_HISTORY = 'get_private_history'
    ADD_CONTACT = 'add_contact'
    GET_CONTACTS = 'get_contacts'

    # Server to Client
    REGISTER_SUCCESS = 'register_success'
    LOGIN_SUCCESS = 'login_success'
    LOGOUT_SUCCESS = 'logout_success'
    HISTORY = 'history'
    PRIVATE_HISTORY = 'private_history'
    SYSTEM = 'system'
    CONTACT_ADDED = 'contact_added'
    CONTACTS = 'contacts'
    ONLINE_USERS = 'online_users'
    HEARTBEAT_ACK = 'heartbeat_ack'
    ERROR = 'error'
