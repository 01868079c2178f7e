"""
Password hashing with bcrypt.

Hashes are salted per user and deliberately slow; callers on the event loop
should run hash/verify in a worker thread.

bcrypt only looks at the first 72 bytes of its input (newer releases refuse
longer input outright), so every password is first reduced to a fixed-length
base64 SHA-256 digest. Passwords of any length hash and verify the same way.
"""

import base64
import hashlib

import bcrypt

from connectle.common.constants import BCRYPT_ROUNDS


def _digest(password: str) -> bytes:
    # 44 bytes, always under the bcrypt input limit
    return base64.b64encode(hashlib.sha256(password.encode('utf-8')).digest())


class PasswordHasher:
    """One-way salted hash and verify."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        self.rounds = rounds

    def hash(self, password: str) -> bytes:
        if not isinstance(password, str):
            raise TypeError(f"password must be str, got {type(password)}")
        return bcrypt.hashpw(_digest(password), bcrypt.gensalt(rounds=self.rounds))

    def verify(self, password: str, password_hash: bytes) -> bool:
        if not password_hash:
            return False
        try:
            return bcrypt.checkpw(_digest(password), password_hash)
        except ValueError:
            # Malformed stored hash
            return False
