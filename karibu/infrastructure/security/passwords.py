"""bcrypt password hashing used by the credential store."""

import bcrypt

# bcrypt only looks at the first 72 bytes of a secret.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted bcrypt hashing with a configurable work factor."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        return bcrypt.hashpw(
            password.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)
        ).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """
        Check a raw password against a stored hash.

        Args:
            password: Plain text password
            password_hash: bcrypt hash from storage

        Returns:
            True when the password matches, False otherwise (including malformed input)
        """
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False
