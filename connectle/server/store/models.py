"""
Data model for the entity store.

Every record is a plain dataclass owned by EntityStore; callers only ever get
copies back.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class User:
    """Registered account. connection_id is set iff is_online."""
    username: str
    email: str
    password_hash: bytes
    id: str = field(default_factory=new_id)
    is_online: bool = False
    connection_id: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    last_seen: datetime = field(default_factory=utc_now)

    def to_public_dict(self) -> Dict[str, Any]:
        """Wire form of the user; never carries the password hash."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "is_online": self.is_online,
            "created_at": self.created_at.isoformat(),
            "last_seen": self.last_seen.isoformat()
        }


@dataclass
class Message:
    """Broadcast chat message. username is a snapshot taken at send time."""
    username: str
    text: str
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "text": self.text,
            "timestamp": self.timestamp.isoformat()
        }


@dataclass
class PrivateMessage:
    from_user_id: str
    to_user_id: str
    text: str
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=utc_now)
    is_read: bool = False


@dataclass
class Contact:
    """Directional contact row: owner_id added target_id."""
    owner_id: str
    target_id: str
    display_name: str
    id: str = field(default_factory=new_id)
    added_at: datetime = field(default_factory=utc_now)


@dataclass
class ContactStatus:
    """A contact joined against live user state."""
    username: str
    is_online: bool
    last_seen: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "is_online": self.is_online,
            "last_seen": self.last_seen.isoformat()
        }
