"""
In-memory entity store.

Holds the four shared collections of the chat service (users, broadcast
messages, private messages, contacts) together with the session directory
that maps a live connection id to the user logged in on it.

Locking:
    Each collection has its own threading.Lock so unrelated entity types never
    contend. Any code path that needs more than one lock must take them in this
    global order:

        contacts -> users -> private messages -> messages

    The session directory and the username/email indexes belong to the users
    collection and are only touched under the users lock. Locks are held for
    the in-memory access only; password hashing and verification happen
    outside of them.

All read operations hand out copies, so a caller never observes a mutation
that happens after the read returned.
"""

import threading
from collections import deque
from dataclasses import replace
from typing import Dict, List, Optional, Set

from connectle.common.constants import (
    MAX_CHAT_HISTORY, MAX_PRIVATE_HISTORY, MAX_MESSAGE_LENGTH,
    MIN_USERNAME_LENGTH, MIN_PASSWORD_LENGTH
)
from connectle.common.errors import (
    ValidationError, ConflictError, AuthError, NotFoundError,
    SelfMessageError, SelfContactError
)
from connectle.server.store.models import (
    User, Message, PrivateMessage, Contact, ContactStatus, utc_now
)
from connectle.server.store.passwords import PasswordHasher


class EntityStore:
    """Process-lifetime owner of all chat state."""

    def __init__(self, hasher: Optional[PasswordHasher] = None,
                 max_history: int = MAX_CHAT_HISTORY,
                 max_private_history: int = MAX_PRIVATE_HISTORY):
        self.hasher = hasher or PasswordHasher()
        self.max_private_history = max_private_history

        # Lock order: contacts -> users -> private messages -> messages
        self.contacts_lock = threading.Lock()
        self.users_lock = threading.Lock()
        self.private_messages_lock = threading.Lock()
        self.messages_lock = threading.Lock()

        # users collection
        self._users: Dict[str, User] = {}  # user id -> User
        self._ids_by_username: Dict[str, str] = {}
        self._ids_by_email: Dict[str, str] = {}  # lowercased email -> user id
        self._sessions: Dict[str, str] = {}  # connection id -> user id

        self._messages = deque(maxlen=max_history)
        self._private_messages: List[PrivateMessage] = []
        self._contacts: Dict[str, Dict[str, Contact]] = {}  # owner id -> target id -> Contact

    # ------------------------------------------------------------------
    # Accounts and sessions
    # ------------------------------------------------------------------

    def register(self, username: str, email: str, password: str) -> User:
        """
        Create a new offline user.

        Raises:
            ValidationError: username shorter than 3, password shorter than 6,
                or email without '@'
            ConflictError: username or email already registered
        """
        username = (username or '').strip()
        email = (email or '').strip()
        password = password or ''

        if len(username) < MIN_USERNAME_LENGTH:
            raise ValidationError(f"Username must be at least {MIN_USERNAME_LENGTH} characters")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if '@' not in email:
            raise ValidationError("Email must contain '@'")

        password_hash = self.hasher.hash(password)

        with self.users_lock:
            if username in self._ids_by_username:
                raise ConflictError(f"Username already taken: {username}")
            if email.lower() in self._ids_by_email:
                raise ConflictError(f"Email already registered: {email}")

            user = User(username=username, email=email, password_hash=password_hash)
            self._users[user.id] = user
            self._ids_by_username[username] = user.id
            self._ids_by_email[email.lower()] = user.id
            return replace(user)

    def login(self, username: str, password: str, connection_id: str) -> User:
        """
        Bind connection_id to the user and mark the user online.

        A connection that was bound to another user is unbound first. If the
        user is already online elsewhere, the newer connection wins.

        Raises:
            AuthError: unknown username or wrong password
        """
        with self.users_lock:
            user_id = self._ids_by_username.get(username)
            password_hash = self._users[user_id].password_hash if user_id else None

        # Verify outside the lock, bcrypt is slow on purpose
        if user_id is None or not self.hasher.verify(password or '', password_hash):
            raise AuthError("Invalid username or password")

        with self.users_lock:
            previous_id = self._sessions.get(connection_id)
            if previous_id is not None and previous_id != user_id:
                self._unbind(connection_id)

            user = self._users[user_id]
            if user.connection_id and user.connection_id != connection_id:
                self._sessions.pop(user.connection_id, None)

            user.is_online = True
            user.connection_id = connection_id
            user.last_seen = utc_now()
            self._sessions[connection_id] = user_id
            return replace(user)

    def logout(self, connection_id: str) -> Optional[User]:
        """Explicit logout; same semantics as disconnect."""
        return self.disconnect(connection_id)

    def disconnect(self, connection_id: str) -> Optional[User]:
        """
        Clear the session bound to connection_id.

        Returns the user that went offline, or None when nothing was bound
        (repeated disconnects are no-ops).
        """
        with self.users_lock:
            return self._unbind(connection_id)

    def _unbind(self, connection_id: str) -> Optional[User]:
        # Caller holds users_lock
        user_id = self._sessions.pop(connection_id, None)
        if user_id is None:
            return None
        user = self._users[user_id]
        user.is_online = False
        user.connection_id = None
        user.last_seen = utc_now()
        return replace(user)

    def resolve_session(self, connection_id: str) -> Optional[User]:
        """Return the user logged in on connection_id, if any."""
        with self.users_lock:
            user_id = self._sessions.get(connection_id)
            if user_id is None:
                return None
            return replace(self._users[user_id])

    def get_user(self, username: str) -> Optional[User]:
        with self.users_lock:
            user_id = self._ids_by_username.get(username)
            if user_id is None:
                return None
            return replace(self._users[user_id])

    def list_online_usernames(self) -> Set[str]:
        with self.users_lock:
            return {user.username for user in self._users.values() if user.is_online}

    # ------------------------------------------------------------------
    # Broadcast messages
    # ------------------------------------------------------------------

    def post_message(self, username: str, text: str) -> Message:
        """Append a broadcast message, evicting the oldest one past the cap."""
        message = Message(username=username, text=text)
        with self.messages_lock:
            self._messages.append(message)
        return replace(message)

    def get_message_history(self) -> List[Message]:
        with self.messages_lock:
            return [replace(message) for message in self._messages]

    # ------------------------------------------------------------------
    # Private messages
    # ------------------------------------------------------------------

    def send_private_message(self, from_user: User, to_username: str, text: str) -> PrivateMessage:
        """
        Store a private message from from_user to to_username.

        Raises:
            ValidationError: empty text or text over 1000 characters
            NotFoundError: recipient does not exist
            SelfMessageError: sender and recipient are the same user
        """
        if not text or not text.strip():
            raise ValidationError("Message text cannot be empty")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Message text cannot exceed {MAX_MESSAGE_LENGTH} characters")

        with self.users_lock:
            to_user_id = self._ids_by_username.get(to_username)
        if to_user_id is None:
            raise NotFoundError(f"User not found: {to_username}")
        if to_user_id == from_user.id:
            raise SelfMessageError("You cannot send a private message to yourself")

        message = PrivateMessage(from_user_id=from_user.id, to_user_id=to_user_id, text=text)
        with self.private_messages_lock:
            self._private_messages.append(message)
        return replace(message)

    def get_private_history(self, user_a_id: str, user_b_id: str) -> List[PrivateMessage]:
        """Up to the most recent max_private_history messages between the pair, oldest first."""
        pair = {user_a_id, user_b_id}
        with self.private_messages_lock:
            conversation = [
                message for message in self._private_messages
                if {message.from_user_id, message.to_user_id} == pair
                and message.from_user_id != message.to_user_id
            ]
        conversation.sort(key=lambda message: message.timestamp)
        return [replace(message) for message in conversation[-self.max_private_history:]]

    # ------------------------------------------------------------------
    # Contacts
    # ------------------------------------------------------------------

    def add_contact(self, owner: User, target_username: str) -> bool:
        """
        Add target_username to owner's contacts.

        Returns True when a row was created and False when the contact already
        existed.

        Raises:
            NotFoundError: target does not exist
            SelfContactError: owner tried to add themselves
        """
        with self.contacts_lock:
            with self.users_lock:
                target_id = self._ids_by_username.get(target_username)
            if target_id is None:
                raise NotFoundError(f"User not found: {target_username}")
            if target_id == owner.id:
                raise SelfContactError("You cannot add yourself as a contact")

            owned = self._contacts.setdefault(owner.id, {})
            if target_id in owned:
                return False
            owned[target_id] = Contact(owner_id=owner.id, target_id=target_id,
                                       display_name=target_username)
            return True

    def list_contacts(self, owner_id: str) -> List[ContactStatus]:
        """Owner's contacts with online status read at call time."""
        with self.contacts_lock:
            with self.users_lock:
                statuses = []
                for target_id in self._contacts.get(owner_id, {}):
                    target = self._users[target_id]
                    statuses.append(ContactStatus(
                        username=target.username,
                        is_online=target.is_online,
                        last_seen=target.last_seen
                    ))
                return statuses
