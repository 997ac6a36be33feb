"""
Password hashing primitive.

The data-access layer only needs ``hash(plain) -> digest`` and
``verify(plain, digest) -> bool``; any object with those two methods can be
injected. The default stores bcrypt digests (``$2b$<cost>$...``), the format
existing user items already carry.
"""

import bcrypt

DEFAULT_ROUNDS = 12


class PasswordHasher:
    """bcrypt hasher with a configurable cost factor."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS):
        if not 4 <= rounds <= 31:
            raise ValueError('rounds must be between 4 and 31')
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        return bcrypt.hashpw(plain.encode('utf-8'), bcrypt.gensalt(rounds=self.rounds)).decode('ascii')

    def verify(self, plain: str, digest: str) -> bool:
        try:
            return bcrypt.checkpw(plain.encode('utf-8'), digest.encode('ascii'))
        except ValueError:
            # Malformed digest (or over-long password) never matches
            return False
