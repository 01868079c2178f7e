"""
Chat client module.

This module handles client-side chat messaging functionality.
"""

import asyncio
import json
import shlex
from typing import Optional

from connectle.common.constants import MessageTypes
from connectle.common.protocol_definitions import (
    create_register_message, create_login_message, create_logout_message,
    create_chat_message, create_private_message, create_get_history_message,
    create_get_private_history_message,
    create_add_contact_message, create_get_contacts_message
)


def parse_input(line: str) -> Optional[dict]:
    """
    Turn a line typed by the user into a request.

    Lines starting with ':' are client commands; anything else is sent as chat
    text, including server-side /commands. Returns None for blank lines and
    for client commands with missing arguments.
    """
    line = line.strip()
    if not line:
        return None
    if not line.startswith(':'):
        return create_chat_message(line)

    try:
        parts = shlex.split(line[1:])
    except ValueError:
        return None
    if not parts:
        return None

    command, args = parts[0].lower(), parts[1:]
    if command == 'register' and len(args) == 3:
        return create_register_message(*args)
    if command == 'login' and len(args) == 2:
        return create_login_message(*args)
    if command == 'logout':
        return create_logout_message()
    if command == 'pm' and len(args) >= 2:
        return create_private_message(args[0], ' '.join(args[1:]))
    if command == 'history' and not args:
        return create_get_history_message()
    if command == 'history' and len(args) == 1:
        return create_get_private_history_message(args[0])
    if command == 'add' and len(args) == 1:
        return create_add_contact_message(args[0])
    if command == 'contacts':
        return create_get_contacts_message()
    return None


class ChatClient:
    """Client-side chat functionality."""

    def __init__(self, writer: Optional[asyncio.StreamWriter] = None):
        self.writer = writer
        self.username: Optional[str] = None

    def set_writer(self, writer: asyncio.StreamWriter):
        """Set the writer for sending messages."""
        self.writer = writer

    async def send_message(self, message: dict) -> bool:
        """Send a JSON message to the server."""
        if not self.writer:
            print("[ERROR] Not connected to server")
            return False

        try:
            msg_data = json.dumps(message).encode('utf-8') + b'\n'
            self.writer.write(msg_data)
            await self.writer.drain()
            return True
        except Exception as e:
            print(f"[ERROR] Failed to send message: {e}")
            return False

    async def handle_message(self, message: dict):
        """Handle different types of chat messages from server."""
        msg_type = message.get('type', '')

        if msg_type == MessageTypes.CHAT:
            print(f"[{message.get('timestamp', '')[11:19]}] {message.get('username')}: {message.get('text')}")
        elif msg_type == MessageTypes.SYSTEM:
            print(f"🤖 {message.get('text')}")
        elif msg_type == MessageTypes.PRIVATE_MESSAGE:
            print(f"📨 [PRIVATE] {message.get('from')} → {message.get('to')}: {message.get('text')}")
        elif msg_type == MessageTypes.HISTORY:
            self._print_history(message.get('messages', []))
        elif msg_type == MessageTypes.PRIVATE_HISTORY:
            print(f"\n[PRIVATE HISTORY with {message.get('with')}] {message.get('count', 0)} message(s)")
            for msg in message.get('messages', []):
                print(f"[{msg.get('timestamp', '')[:19]}] {msg.get('from')}: {msg.get('text')}")
        elif msg_type == MessageTypes.CONTACTS:
            contacts = message.get('contacts', [])
            print(f"📇 Contacts ({len(contacts)}):")
            for contact in contacts:
                status = "online" if contact.get('is_online') else f"last seen {contact.get('last_seen', '')[:16]}"
                print(f"  - {contact.get('username')} ({status})")
        elif msg_type == MessageTypes.CONTACT_ADDED:
            print(f"✓ {message.get('username')} is in your contacts")
        elif msg_type == MessageTypes.REGISTER_SUCCESS:
            print(f"✓ Registered '{message.get('user', {}).get('username')}', now :login")
        elif msg_type == MessageTypes.LOGOUT_SUCCESS:
            self.username = None
            print("✓ Logged out")

    def _print_history(self, messages: list):
        if messages:
            print(f"\n[HISTORY] Loading {len(messages)} previous message(s):")
            print("-" * 50)
            for msg in messages:
                print(f"[{msg.get('timestamp', '')[:19]}] {msg.get('username', 'unknown')}: {msg.get('text', '')}")
            print("-" * 50)
        else:
            print("[HISTORY] No previous messages")
