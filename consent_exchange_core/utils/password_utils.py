"""Password hashing backed by bcrypt."""

from typing import Optional

import bcrypt

from ..config import get_config


class PasswordHasher:
    """Hash and verify passwords; the only place password material is handled."""

    def __init__(self, rounds: Optional[int] = None):
        self.rounds = rounds or get_config().security.bcrypt_rounds

    def hash(self, plain: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")

    def verify(self, plain: str, password_hash: str) -> bool:
        """Verify a password against its hash; malformed hashes never match."""
        if not plain or not password_hash:
            return False
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False
