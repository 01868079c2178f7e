#!/usr/bin/env python3
"""
Unit tests for the in-memory entity store.

Tests the account, session, message and contact collections:
- Registration validation and uniqueness, also under concurrent registration
- Login, logout and idempotent disconnect
- Broadcast history cap and snapshot reads
- Private messages and their history window
- Directional, idempotent contacts with live online status
"""

import sys
import threading
import unittest
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from connectle.common.errors import (
    ValidationError, ConflictError, AuthError, NotFoundError,
    SelfMessageError, SelfContactError, SelfReferenceError
)
from connectle.server.store.entity_store import EntityStore
from connectle.server.store.passwords import PasswordHasher


def make_store(**kwargs) -> EntityStore:
    """Store with the cheapest bcrypt cost so tests stay fast."""
    return EntityStore(hasher=PasswordHasher(rounds=4), **kwargs)


class TestRegistration(unittest.TestCase):
    """Test cases for account registration."""

    def setUp(self):
        self.store = make_store()

    def test_register_creates_offline_user(self):
        user = self.store.register("alice", "alice@example.com", "secret1")

        self.assertEqual(user.username, "alice")
        self.assertEqual(user.email, "alice@example.com")
        self.assertFalse(user.is_online)
        self.assertIsNone(user.connection_id)
        self.assertNotEqual(user.password_hash, b"secret1")
        self.assertTrue(user.id)

    def test_short_username_rejected(self):
        with self.assertRaises(ValidationError):
            self.store.register("al", "al@example.com", "secret1")

    def test_short_password_rejected(self):
        with self.assertRaises(ValidationError):
            self.store.register("alice", "alice@example.com", "12345")

    def test_email_without_at_rejected(self):
        with self.assertRaises(ValidationError):
            self.store.register("alice", "alice.example.com", "secret1")

    def test_duplicate_username_conflicts(self):
        self.store.register("alice", "alice@example.com", "secret1")

        with self.assertRaises(ConflictError):
            self.store.register("alice", "other@example.com", "secret1")

    def test_duplicate_email_conflicts(self):
        self.store.register("alice", "alice@example.com", "secret1")

        with self.assertRaises(ConflictError):
            self.store.register("alice2", "ALICE@example.com", "secret1")

    def test_usernames_are_case_sensitive(self):
        self.store.register("alice", "alice@example.com", "secret1")
        user = self.store.register("Alice", "alice2@example.com", "secret1")

        self.assertEqual(user.username, "Alice")

    def test_concurrent_registration_has_single_winner(self):
        """Many threads registering the same username: exactly one succeeds."""
        attempts = 8
        barrier = threading.Barrier(attempts)

        def attempt(i):
            barrier.wait()
            try:
                self.store.register("racer", f"racer{i}@example.com", "secret1")
                return "ok"
            except ConflictError:
                return "conflict"

        with ThreadPoolExecutor(max_workers=attempts) as pool:
            results = list(pool.map(attempt, range(attempts)))

        self.assertEqual(results.count("ok"), 1)
        self.assertEqual(results.count("conflict"), attempts - 1)


class TestSessions(unittest.TestCase):
    """Test cases for login, logout and the session directory."""

    def setUp(self):
        self.store = make_store()
        self.store.register("alice", "alice@example.com", "secret1")
        self.store.register("bob", "bob@example.com", "secret2")

    def test_wrong_password_fails(self):
        with self.assertRaises(AuthError):
            self.store.login("alice", "wrong-password", "conn-1")
        self.assertIsNone(self.store.resolve_session("conn-1"))

    def test_unknown_user_fails(self):
        with self.assertRaises(AuthError):
            self.store.login("nobody", "secret1", "conn-1")

    def test_password_over_bcrypt_limit(self):
        password = "ü" * 50  # 100 bytes in UTF-8
        self.store.register("carol", "carol@example.com", password)

        self.assertEqual(self.store.login("carol", password, "conn-1").username, "carol")
        with self.assertRaises(AuthError):
            self.store.login("carol", password[:36], "conn-2")

    def test_login_binds_session(self):
        user = self.store.login("alice", "secret1", "conn-1")

        self.assertTrue(user.is_online)
        self.assertEqual(user.connection_id, "conn-1")
        self.assertEqual(self.store.resolve_session("conn-1").username, "alice")
        self.assertEqual(self.store.list_online_usernames(), {"alice"})

    def test_disconnect_clears_session(self):
        self.store.login("alice", "secret1", "conn-1")

        user = self.store.disconnect("conn-1")

        self.assertEqual(user.username, "alice")
        self.assertFalse(user.is_online)
        self.assertIsNone(user.connection_id)
        self.assertIsNone(self.store.resolve_session("conn-1"))
        self.assertEqual(self.store.list_online_usernames(), set())

    def test_disconnect_twice_is_noop(self):
        self.store.login("alice", "secret1", "conn-1")

        self.assertIsNotNone(self.store.disconnect("conn-1"))
        self.assertIsNone(self.store.disconnect("conn-1"))
        self.assertIsNone(self.store.disconnect("never-connected"))

    def test_logout_is_disconnect(self):
        self.store.login("alice", "secret1", "conn-1")

        self.assertEqual(self.store.logout("conn-1").username, "alice")
        self.assertIsNone(self.store.logout("conn-1"))

    def test_login_as_other_user_on_same_connection(self):
        self.store.login("alice", "secret1", "conn-1")
        self.store.login("bob", "secret2", "conn-1")

        self.assertEqual(self.store.resolve_session("conn-1").username, "bob")
        self.assertFalse(self.store.get_user("alice").is_online)

    def test_newest_connection_wins(self):
        self.store.login("alice", "secret1", "conn-1")
        self.store.login("alice", "secret1", "conn-2")

        self.assertIsNone(self.store.resolve_session("conn-1"))
        self.assertEqual(self.store.resolve_session("conn-2").username, "alice")
        # Closing the stale connection must not log alice out
        self.assertIsNone(self.store.disconnect("conn-1"))
        self.assertTrue(self.store.get_user("alice").is_online)

    def test_returned_user_is_a_copy(self):
        user = self.store.login("alice", "secret1", "conn-1")
        user.is_online = False

        self.assertTrue(self.store.get_user("alice").is_online)


class TestBroadcastMessages(unittest.TestCase):
    """Test cases for broadcast history."""

    def test_history_is_capped_fifo(self):
        store = make_store()
        for i in range(1001):
            store.post_message("alice", f"message {i}")

        history = store.get_message_history()

        self.assertEqual(len(history), 1000)
        self.assertEqual(history[0].text, "message 1")
        self.assertEqual(history[-1].text, "message 1000")
        self.assertEqual([m.text for m in history], [f"message {i}" for i in range(1, 1001)])

    def test_history_is_a_snapshot(self):
        store = make_store()
        store.post_message("alice", "first")

        history = store.get_message_history()
        store.post_message("bob", "second")
        history[0].text = "changed"

        self.assertEqual(len(history), 1)
        self.assertEqual([m.text for m in store.get_message_history()], ["first", "second"])

    def test_author_is_snapshot(self):
        store = make_store()
        message = store.post_message("alice", "hello")

        self.assertEqual(message.username, "alice")
        self.assertEqual(message.to_dict()["text"], "hello")


class TestPrivateMessages(unittest.TestCase):
    """Test cases for private messaging."""

    def setUp(self):
        self.store = make_store(max_private_history=100)
        self.alice = self.store.register("alice", "alice@example.com", "secret1")
        self.bob = self.store.register("bob", "bob@example.com", "secret2")
        self.carol = self.store.register("carol", "carol@example.com", "secret3")

    def test_both_sides_see_same_history(self):
        sent = self.store.send_private_message(self.alice, "bob", "hi")

        from_alice = self.store.get_private_history(self.alice.id, self.bob.id)
        from_bob = self.store.get_private_history(self.bob.id, self.alice.id)

        self.assertEqual(len(from_alice), 1)
        self.assertEqual(from_alice, from_bob)
        self.assertEqual(from_alice[0].id, sent.id)
        self.assertEqual(from_alice[0].text, "hi")
        self.assertFalse(from_alice[0].is_read)

    def test_self_message_fails(self):
        with self.assertRaises(SelfMessageError):
            self.store.send_private_message(self.alice, "alice", "hi me")
        with self.assertRaises(SelfReferenceError):
            self.store.send_private_message(self.alice, "alice", "hi me")

    def test_unknown_recipient(self):
        with self.assertRaises(NotFoundError):
            self.store.send_private_message(self.alice, "nobody", "hi")

    def test_text_length_limits(self):
        with self.assertRaises(ValidationError):
            self.store.send_private_message(self.alice, "bob", "")
        with self.assertRaises(ValidationError):
            self.store.send_private_message(self.alice, "bob", "x" * 1001)

        message = self.store.send_private_message(self.alice, "bob", "x" * 1000)
        self.assertEqual(len(message.text), 1000)

    def test_history_only_contains_the_pair(self):
        self.store.send_private_message(self.alice, "bob", "to bob")
        self.store.send_private_message(self.alice, "carol", "to carol")
        self.store.send_private_message(self.bob, "alice", "to alice")

        history = self.store.get_private_history(self.alice.id, self.bob.id)

        self.assertEqual([m.text for m in history], ["to bob", "to alice"])

    def test_history_window_keeps_most_recent_ascending(self):
        for i in range(105):
            sender = self.alice if i % 2 == 0 else self.bob
            recipient = "bob" if i % 2 == 0 else "alice"
            self.store.send_private_message(sender, recipient, f"pm {i}")

        history = self.store.get_private_history(self.alice.id, self.bob.id)

        self.assertEqual(len(history), 100)
        self.assertEqual(history[0].text, "pm 5")
        self.assertEqual(history[-1].text, "pm 104")
        timestamps = [m.timestamp for m in history]
        self.assertEqual(timestamps, sorted(timestamps))


class TestContacts(unittest.TestCase):
    """Test cases for contacts."""

    def setUp(self):
        self.store = make_store()
        self.alice = self.store.register("alice", "alice@example.com", "secret1")
        self.bob = self.store.register("bob", "bob@example.com", "secret2")

    def test_add_is_idempotent(self):
        self.assertTrue(self.store.add_contact(self.alice, "bob"))
        self.assertFalse(self.store.add_contact(self.alice, "bob"))

        contacts = self.store.list_contacts(self.alice.id)
        self.assertEqual([c.username for c in contacts], ["bob"])

    def test_contacts_are_directional(self):
        self.store.add_contact(self.alice, "bob")

        self.assertEqual(self.store.list_contacts(self.bob.id), [])

    def test_self_contact_fails(self):
        with self.assertRaises(SelfContactError):
            self.store.add_contact(self.alice, "alice")

    def test_unknown_contact_fails(self):
        with self.assertRaises(NotFoundError):
            self.store.add_contact(self.alice, "nobody")

    def test_listing_reflects_live_status(self):
        self.store.add_contact(self.alice, "bob")
        self.assertFalse(self.store.list_contacts(self.alice.id)[0].is_online)

        self.store.login("bob", "secret2", "conn-bob")
        self.assertTrue(self.store.list_contacts(self.alice.id)[0].is_online)

        self.store.disconnect("conn-bob")
        contact = self.store.list_contacts(self.alice.id)[0]
        self.assertFalse(contact.is_online)
        self.assertEqual(contact.to_dict()["username"], "bob")


if __name__ == '__main__':
    unittest.main()
