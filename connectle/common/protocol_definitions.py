"""
Protocol definitions for the Connectle chat service.

This module defines the message structures exchanged between client and
server. Every message is one JSON object per line with a ``type`` field.
"""

from typing import Dict, Any, List
from datetime import datetime

from connectle.common.constants import MessageTypes, SYSTEM_AUTHOR


# Client to Server

def create_register_message(username: str, email: str, password: str) -> Dict[str, Any]:
    """Create a registration message."""
    return {
        "type": MessageTypes.REGISTER,
        "username": username,
        "email": email,
        "password": password
    }


def create_login_message(username: str, password: str) -> Dict[str, Any]:
    """Create a login message."""
    return {
        "type": MessageTypes.LOGIN,
        "username": username,
        "password": password
    }


def create_logout_message() -> Dict[str, Any]:
    """Create a logout message."""
    return {
        "type": MessageTypes.LOGOUT
    }


def create_heartbeat_message() -> Dict[str, Any]:
    """Create a heartbeat message."""
    return {
        "type": MessageTypes.HEARTBEAT,
        "timestamp": datetime.now().isoformat()
    }


def create_chat_message(text: str) -> Dict[str, Any]:
    """Create a chat message (broadcast text or a /command)."""
    return {
        "type": MessageTypes.CHAT,
        "text": text
    }


def create_private_message(to_username: str, text: str) -> Dict[str, Any]:
    """Create a private message request."""
    return {
        "type": MessageTypes.PRIVATE_MESSAGE,
        "to": to_username,
        "text": text
    }


def create_get_history_message() -> Dict[str, Any]:
    """Create a get history message."""
    return {
        "type": MessageTypes.GET_HISTORY
    }


def create_get_private_history_message(username: str) -> Dict[str, Any]:
    """Create a request for the private conversation with username."""
    return {
        "type": MessageTypes.GET_PRIVATE_HISTORY,
        "with": username
    }


def create_add_contact_message(username: str) -> Dict[str, Any]:
    """Create an add contact message."""
    return {
        "type": MessageTypes.ADD_CONTACT,
        "username": username
    }


def create_get_contacts_message() -> Dict[str, Any]:
    """Create a get contacts message."""
    return {
        "type": MessageTypes.GET_CONTACTS
    }


# Server to Client

def create_error_message(message: str, code: str = 'error') -> Dict[str, Any]:
    """Create an error message."""
    return {
        "type": MessageTypes.ERROR,
        "code": code,
        "message": message
    }


def create_register_success_message(user: Dict[str, Any]) -> Dict[str, Any]:
    """Create a registration success message."""
    return {
        "type": MessageTypes.REGISTER_SUCCESS,
        "user": user
    }


def create_login_success_message(user: Dict[str, Any]) -> Dict[str, Any]:
    """Create a login success message."""
    return {
        "type": MessageTypes.LOGIN_SUCCESS,
        "user": user
    }


def create_logout_success_message() -> Dict[str, Any]:
    """Create a logout success message."""
    return {
        "type": MessageTypes.LOGOUT_SUCCESS
    }


def create_broadcast_chat_message(message: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap a stored broadcast message for delivery to all clients."""
    return dict(message, type=MessageTypes.CHAT)


def create_system_message(text: str) -> Dict[str, Any]:
    """Create a command reply, delivered to the caller only."""
    return {
        "type": MessageTypes.SYSTEM,
        "username": SYSTEM_AUTHOR,
        "text": text,
        "timestamp": datetime.now().isoformat()
    }


def create_history_message(messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Create a history message."""
    return {
        "type": MessageTypes.HISTORY,
        "messages": messages,
        "count": len(messages)
    }


def create_private_delivery_message(message_id: str, from_username: str, to_username: str,
                                    text: str, timestamp: str, is_read: bool = False) -> Dict[str, Any]:
    """Create a private message delivery."""
    return {
        "type": MessageTypes.PRIVATE_MESSAGE,
        "id": message_id,
        "from": from_username,
        "to": to_username,
        "text": text,
        "timestamp": timestamp,
        "is_read": is_read
    }


def create_private_history_message(username: str, messages: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Create a private history message."""
    return {
        "type": MessageTypes.PRIVATE_HISTORY,
        "with": username,
        "messages": messages,
        "count": len(messages)
    }


def create_contact_added_message(username: str) -> Dict[str, Any]:
    """Create a contact added confirmation."""
    return {
        "type": MessageTypes.CONTACT_ADDED,
        "username": username
    }


def create_contacts_message(contacts: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Create a contacts listing message."""
    return {
        "type": MessageTypes.CONTACTS,
        "contacts": contacts
    }


def create_online_users_message(usernames: List[str]) -> Dict[str, Any]:
    """Create a presence message."""
    return {
        "type": MessageTypes.ONLINE_USERS,
        "users": usernames
    }


def create_heartbeat_ack_message() -> Dict[str, Any]:
    """Create a heartbeat acknowledgment message."""
    return {
        "type": MessageTypes.HEARTBEAT_ACK,
        "timestamp": datetime.now().isoformat()
    }
