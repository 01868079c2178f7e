#!/usr/bin/env python3
"""
Unit tests for the chat hub.

The transport is replaced by a recorder, so every test can inspect exactly
what was sent to which connection and what was broadcast.
"""

import sys
import tempfile
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from connectle.common.constants import MessageTypes
from connectle.server.chat.chat_hub import ChatHub
from connectle.server.commands.plugins import build_dispatcher
from connectle.server.store.entity_store import EntityStore
from connectle.server.store.passwords import PasswordHasher
from connectle.server.utils.logger import logger


class RecordingTransport:
    """Collects outgoing payloads instead of writing to sockets."""

    def __init__(self):
        self.sent = []  # (connection_id, payload)
        self.broadcasts = []

    async def send_to(self, connection_id, payload):
        self.sent.append((connection_id, payload))
        return True

    async def send_to_caller(self, connection_id, payload):
        return await self.send_to(connection_id, payload)

    async def broadcast_to_all(self, payload):
        self.broadcasts.append(payload)

    def sent_to(self, connection_id, msg_type=None):
        return [p for cid, p in self.sent
                if cid == connection_id and (msg_type is None or p['type'] == msg_type)]

    def presence_updates(self):
        return [p['users'] for p in self.broadcasts if p['type'] == MessageTypes.ONLINE_USERS]


class ChatHubTestCase(unittest.IsolatedAsyncioTestCase):
    """Shared fixtures: a fresh store, hub and recorder per test."""

    async def asyncSetUp(self):
        self.log_dir = tempfile.TemporaryDirectory()
        logger.set_logs_dir(self.log_dir.name)

        self.store = EntityStore(hasher=PasswordHasher(rounds=4))
        self.transport = RecordingTransport()
        self.hub = ChatHub(self.store, build_dispatcher(self.store), self.transport)

    async def asyncTearDown(self):
        self.log_dir.cleanup()

    async def sign_in(self, connection_id, username, password="secret1"):
        await self.hub.register(connection_id, username, f"{username}@example.com", password)
        return await self.hub.login(connection_id, username, password)


class TestAccounts(ChatHubTestCase):
    """Registration, login, logout and disconnect."""

    async def test_connect_sends_history(self):
        self.store.post_message("alice", "earlier")

        await self.hub.on_connect("conn-1")

        history = self.transport.sent_to("conn-1", MessageTypes.HISTORY)
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0]['count'], 1)
        self.assertEqual(history[0]['messages'][0]['text'], "earlier")

    async def test_register_and_login(self):
        user = await self.sign_in("conn-1", "alice")

        self.assertTrue(user.is_online)
        registered = self.transport.sent_to("conn-1", MessageTypes.REGISTER_SUCCESS)
        logged_in = self.transport.sent_to("conn-1", MessageTypes.LOGIN_SUCCESS)
        self.assertEqual(registered[0]['user']['username'], "alice")
        self.assertNotIn('password_hash', logged_in[0]['user'])
        self.assertEqual(self.transport.presence_updates(), [["alice"]])

    async def test_register_errors_are_replies(self):
        await self.hub.register("conn-1", "al", "al@example.com", "secret1")
        await self.hub.register("conn-1", "alice", "alice@example.com", "secret1")
        await self.hub.register("conn-1", "alice", "other@example.com", "secret1")

        errors = self.transport.sent_to("conn-1", MessageTypes.ERROR)
        self.assertEqual([e['code'] for e in errors], ['validation_error', 'conflict_error'])

    async def test_long_password_registers_and_logs_in(self):
        password = "p" * 80

        user = await self.sign_in("conn-1", "alice", password)

        self.assertIsNotNone(user)
        self.assertEqual(self.transport.sent_to("conn-1", MessageTypes.ERROR), [])
        self.assertEqual(len(self.transport.sent_to("conn-1", MessageTypes.REGISTER_SUCCESS)), 1)
        self.assertEqual(len(self.transport.sent_to("conn-1", MessageTypes.LOGIN_SUCCESS)), 1)

    async def test_long_password_prefix_does_not_log_in(self):
        await self.hub.register("conn-1", "alice", "alice@example.com", "p" * 72 + "tail")

        self.assertIsNone(await self.hub.login("conn-1", "alice", "p" * 72))
        self.assertEqual(self.transport.sent_to("conn-1", MessageTypes.ERROR)[0]['code'], 'auth_error')

    async def test_wrong_password(self):
        await self.hub.register("conn-1", "alice", "alice@example.com", "secret1")

        result = await self.hub.login("conn-1", "alice", "wrong-password")

        self.assertIsNone(result)
        errors = self.transport.sent_to("conn-1", MessageTypes.ERROR)
        self.assertEqual(errors[0]['code'], 'auth_error')
        self.assertEqual(self.transport.presence_updates(), [])

    async def test_logout(self):
        await self.sign_in("conn-1", "alice")

        await self.hub.logout("conn-1")

        self.assertEqual(len(self.transport.sent_to("conn-1", MessageTypes.LOGOUT_SUCCESS)), 1)
        self.assertEqual(self.transport.presence_updates(), [["alice"], []])
        self.assertIsNone(self.store.resolve_session("conn-1"))

    async def test_double_disconnect_refreshes_presence_once(self):
        await self.sign_in("conn-1", "alice")

        await self.hub.on_disconnect("conn-1")
        await self.hub.on_disconnect("conn-1")

        self.assertEqual(self.transport.presence_updates(), [["alice"], []])

    async def test_disconnect_of_anonymous_connection(self):
        await self.hub.on_disconnect("conn-1")
        self.assertEqual(self.transport.broadcasts, [])


class TestMessaging(ChatHubTestCase):
    """Broadcast text and commands."""

    async def test_broadcast_requires_login(self):
        result = await self.hub.on_message("conn-1", "hello")

        self.assertIsNone(result)
        self.assertEqual(self.transport.sent_to("conn-1", MessageTypes.ERROR)[0]['code'], 'auth_error')
        self.assertEqual(self.store.get_message_history(), [])

    async def test_broadcast(self):
        await self.sign_in("conn-1", "alice")

        message = await self.hub.on_message("conn-1", "hello everyone")

        self.assertEqual(message.username, "alice")
        chats = [p for p in self.transport.broadcasts if p['type'] == MessageTypes.CHAT]
        self.assertEqual(len(chats), 1)
        self.assertEqual(chats[0]['username'], "alice")
        self.assertEqual(chats[0]['text'], "hello everyone")
        self.assertEqual([m.text for m in self.store.get_message_history()], ["hello everyone"])

    async def test_blank_broadcast_rejected(self):
        await self.sign_in("conn-1", "alice")

        await self.hub.on_message("conn-1", "   ")

        self.assertEqual(self.transport.sent_to("conn-1", MessageTypes.ERROR)[0]['code'], 'validation_error')

    async def test_command_reply_goes_to_caller_only(self):
        broadcasts_before = len(self.transport.broadcasts)

        await self.hub.on_message("conn-1", "/calc 2^3^4")

        replies = self.transport.sent_to("conn-1", MessageTypes.SYSTEM)
        self.assertEqual(replies[0]['text'], "🧮 2^3^4 = 4096")
        self.assertEqual(replies[0]['username'], "System")
        self.assertEqual(len(self.transport.broadcasts), broadcasts_before)
        self.assertEqual(self.store.get_message_history(), [])

    async def test_contacts_command_uses_session(self):
        await self.sign_in("conn-1", "alice")
        await self.sign_in("conn-2", "bob")
        await self.hub.add_contact("conn-1", "bob")

        await self.hub.on_message("conn-1", "/contacts")

        reply = self.transport.sent_to("conn-1", MessageTypes.SYSTEM)[-1]
        self.assertIn("🟢 bob", reply['text'])


class TestPrivateMessaging(ChatHubTestCase):
    """Private messages and their history."""

    async def test_delivered_to_sender_and_online_recipient(self):
        await self.sign_in("conn-a", "alice")
        await self.sign_in("conn-b", "bob")

        await self.hub.send_private_message("conn-a", "bob", "hi bob")

        echo = self.transport.sent_to("conn-a", MessageTypes.PRIVATE_MESSAGE)
        delivery = self.transport.sent_to("conn-b", MessageTypes.PRIVATE_MESSAGE)
        self.assertEqual(len(echo), 1)
        self.assertEqual(echo, delivery)
        self.assertEqual(delivery[0]['from'], "alice")
        self.assertEqual(delivery[0]['to'], "bob")
        self.assertFalse(delivery[0]['is_read'])

    async def test_offline_recipient_gets_nothing_now(self):
        await self.sign_in("conn-a", "alice")
        await self.hub.register("conn-b", "bob", "bob@example.com", "secret1")

        await self.hub.send_private_message("conn-a", "bob", "are you there?")

        self.assertEqual(len(self.transport.sent_to("conn-a", MessageTypes.PRIVATE_MESSAGE)), 1)
        self.assertEqual(self.transport.sent_to("conn-b", MessageTypes.PRIVATE_MESSAGE), [])

    async def test_self_message_is_error_reply(self):
        await self.sign_in("conn-a", "alice")

        await self.hub.send_private_message("conn-a", "alice", "me")

        self.assertEqual(self.transport.sent_to("conn-a", MessageTypes.ERROR)[0]['code'], 'self_message_error')

    async def test_requires_login(self):
        await self.hub.send_private_message("conn-a", "bob", "hi")
        self.assertEqual(self.transport.sent_to("conn-a", MessageTypes.ERROR)[0]['code'], 'auth_error')

    async def test_history_is_symmetric(self):
        await self.sign_in("conn-a", "alice")
        await self.sign_in("conn-b", "bob")
        await self.hub.send_private_message("conn-a", "bob", "hi")

        await self.hub.get_private_history("conn-a", "bob")
        await self.hub.get_private_history("conn-b", "alice")

        from_alice = self.transport.sent_to("conn-a", MessageTypes.PRIVATE_HISTORY)[0]
        from_bob = self.transport.sent_to("conn-b", MessageTypes.PRIVATE_HISTORY)[0]
        self.assertEqual(from_alice['count'], 1)
        self.assertEqual(from_alice['messages'], from_bob['messages'])
        self.assertEqual(from_alice['with'], "bob")

    async def test_history_with_unknown_user(self):
        await self.sign_in("conn-a", "alice")

        await self.hub.get_private_history("conn-a", "nobody")

        self.assertEqual(self.transport.sent_to("conn-a", MessageTypes.ERROR)[0]['code'], 'not_found_error')


class TestContacts(ChatHubTestCase):
    """Contacts through the hub."""

    async def test_add_twice_and_list(self):
        await self.sign_in("conn-a", "alice")
        await self.hub.register("conn-b", "bob", "bob@example.com", "secret1")

        self.assertTrue(await self.hub.add_contact("conn-a", "bob"))
        self.assertTrue(await self.hub.add_contact("conn-a", "bob"))
        contacts = await self.hub.get_contacts("conn-a")

        self.assertEqual(len(contacts), 1)
        self.assertFalse(contacts[0].is_online)

        await self.hub.login("conn-b", "bob", "secret1")
        contacts = await self.hub.get_contacts("conn-a")
        self.assertTrue(contacts[0].is_online)

        listings = self.transport.sent_to("conn-a", MessageTypes.CONTACTS)
        self.assertEqual(listings[-1]['contacts'][0]['username'], "bob")
        self.assertTrue(listings[-1]['contacts'][0]['is_online'])

    async def test_self_contact_is_error_reply(self):
        await self.sign_in("conn-a", "alice")

        self.assertFalse(await self.hub.add_contact("conn-a", "alice"))
        self.assertEqual(self.transport.sent_to("conn-a", MessageTypes.ERROR)[0]['code'], 'self_contact_error')

    async def test_contacts_require_login(self):
        self.assertIsNone(await self.hub.get_contacts("conn-a"))
        self.assertEqual(self.transport.sent_to("conn-a", MessageTypes.ERROR)[0]['code'], 'auth_error')


if __name__ == '__main__':
    unittest.main()
