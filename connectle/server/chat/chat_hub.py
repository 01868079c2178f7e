"""
Chat hub module.

This module is the surface the transport calls into. Each method takes the id
of the connection the request arrived on, talks to the entity store and
answers through the transport. Store failures (ChatError) are turned into
``error`` replies for the caller and never raised back to the transport.

The transport must provide three coroutines:
    send_to(connection_id, payload)
    send_to_caller(connection_id, payload)
    broadcast_to_all(payload)
"""

import asyncio
from typing import List, Optional

from connectle.common.constants import MAX_MESSAGE_LENGTH
from connectle.common.errors import ChatError, AuthError, ValidationError, NotFoundError
from connectle.common.protocol_definitions import (
    create_history_message, create_broadcast_chat_message, create_system_message,
    create_register_success_message, create_login_success_message,
    create_logout_success_message, create_private_delivery_message,
    create_private_history_message, create_contact_added_message,
    create_contacts_message, create_heartbeat_ack_message, create_error_message
)
from connectle.server.chat.presence import PresenceBroadcaster
from connectle.server.commands.dispatcher import CommandContext, CommandDispatcher
from connectle.server.store.entity_store import EntityStore
from connectle.server.store.models import ContactStatus, Message, PrivateMessage, User
from connectle.server.utils.logger import logger


class ChatHub:
    """Entry points for connection events and client requests."""

    def __init__(self, store: EntityStore, dispatcher: CommandDispatcher, transport,
                 presence: Optional[PresenceBroadcaster] = None):
        self.store = store
        self.dispatcher = dispatcher
        self.transport = transport
        self.presence = presence or PresenceBroadcaster(store, transport)

    async def _send_error(self, connection_id: str, error: ChatError):
        logger.debug(f"{type(error).__name__} for connection_id={connection_id}: {error}")
        await self.transport.send_to_caller(connection_id, create_error_message(str(error), error.code))

    def _require_user(self, connection_id: str) -> User:
        user = self.store.resolve_session(connection_id)
        if user is None:
            raise AuthError("Not logged in")
        return user

    async def on_connect(self, connection_id: str):
        """New connection: send the full broadcast history."""
        await self.get_history(connection_id)

    async def on_disconnect(self, connection_id: str):
        """Connection closed: unbind its session, refreshing presence if one existed."""
        user = self.store.disconnect(connection_id)
        logger.log_disconnect(connection_id, user.username if user else None)
        if user is not None:
            await self.presence.refresh()

    async def on_message(self, connection_id: str, text: str) -> Optional[Message]:
        """Broadcast text, or run it as a command when it starts with the prefix."""
        text = text or ''
        user = self.store.resolve_session(connection_id)

        if self.dispatcher.is_command(text):
            reply = await self.dispatcher.dispatch(text, CommandContext(connection_id, user))
            await self.transport.send_to_caller(connection_id, create_system_message(reply))
            return None

        try:
            if user is None:
                raise AuthError("Log in to send messages")
            if not text.strip():
                raise ValidationError("Message text cannot be empty")
            if len(text) > MAX_MESSAGE_LENGTH:
                raise ValidationError(f"Message text cannot exceed {MAX_MESSAGE_LENGTH} characters")
        except ChatError as e:
            await self._send_error(connection_id, e)
            return None

        message = self.store.post_message(user.username, text)
        logger.log_chat(user.username, text)
        await self.transport.broadcast_to_all(create_broadcast_chat_message(message.to_dict()))
        return message

    async def register(self, connection_id: str, username: str, email: str, password: str) -> Optional[User]:
        try:
            user = await asyncio.to_thread(self.store.register, username, email, password)
        except ChatError as e:
            await self._send_error(connection_id, e)
            return None

        logger.log_register(user.username, connection_id)
        await self.transport.send_to_caller(connection_id, create_register_success_message(user.to_public_dict()))
        return user

    async def login(self, connection_id: str, username: str, password: str) -> Optional[User]:
        try:
            user = await asyncio.to_thread(self.store.login, username, password, connection_id)
        except ChatError as e:
            logger.warning(f"Failed login for '{username}' on connection_id={connection_id}")
            await self._send_error(connection_id, e)
            return None

        logger.log_login(user.username, connection_id)
        await self.transport.send_to_caller(connection_id, create_login_success_message(user.to_public_dict()))
        await self.presence.refresh()
        return user

    async def logout(self, connection_id: str) -> Optional[User]:
        """Idempotent: logging out an unbound connection only acknowledges."""
        user = self.store.logout(connection_id)
        if user is not None:
            logger.log_logout(user.username, connection_id)
        await self.transport.send_to_caller(connection_id, create_logout_success_message())
        if user is not None:
            await self.presence.refresh()
        return user

    async def send_private_message(self, connection_id: str, to_username: str, text: str) -> Optional[PrivateMessage]:
        """Store a private message, echo it to the sender and deliver it to an online recipient."""
        try:
            sender = self._require_user(connection_id)
            message = self.store.send_private_message(sender, to_username, text)
        except ChatError as e:
            await self._send_error(connection_id, e)
            return None

        logger.log_private(sender.username, to_username, len(text))
        payload = create_private_delivery_message(
            message.id, sender.username, to_username, message.text,
            message.timestamp.isoformat(), message.is_read
        )
        await self.transport.send_to_caller(connection_id, payload)

        recipient = self.store.get_user(to_username)
        if recipient is not None and recipient.is_online and recipient.connection_id != connection_id:
            await self.transport.send_to(recipient.connection_id, payload)
        return message

    async def get_private_history(self, connection_id: str, other_username: str) -> Optional[List[PrivateMessage]]:
        try:
            user = self._require_user(connection_id)
            other = self.store.get_user(other_username)
            if other is None:
                raise NotFoundError(f"User not found: {other_username}")
        except ChatError as e:
            await self._send_error(connection_id, e)
            return None

        messages = self.store.get_private_history(user.id, other.id)
        names = {user.id: user.username, other.id: other.username}
        payload = [
            create_private_delivery_message(
                message.id, names[message.from_user_id], names[message.to_user_id],
                message.text, message.timestamp.isoformat(), message.is_read
            )
            for message in messages
        ]
        await self.transport.send_to_caller(connection_id, create_private_history_message(other.username, payload))
        return messages

    async def add_contact(self, connection_id: str, username: str) -> bool:
        try:
            owner = self._require_user(connection_id)
            added = self.store.add_contact(owner, username)
        except ChatError as e:
            await self._send_error(connection_id, e)
            return False

        if added:
            logger.info(f"{owner.username} added {username} to contacts")
        await self.transport.send_to_caller(connection_id, create_contact_added_message(username))
        return True

    async def get_contacts(self, connection_id: str) -> Optional[List[ContactStatus]]:
        try:
            owner = self._require_user(connection_id)
        except ChatError as e:
            await self._send_error(connection_id, e)
            return None

        contacts = self.store.list_contacts(owner.id)
        await self.transport.send_to_caller(connection_id, create_contacts_message([c.to_dict() for c in contacts]))
        return contacts

    async def get_history(self, connection_id: str) -> List[Message]:
        messages = self.store.get_message_history()
        await self.transport.send_to_caller(connection_id, create_history_message([m.to_dict() for m in messages]))
        return messages

    async def heartbeat(self, connection_id: str):
        await self.transport.send_to_caller(connection_id, create_heartbeat_ack_message())
