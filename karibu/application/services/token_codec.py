from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import timedelta
from typing import Dict, Optional

from ...domain.models import Account, IssuedToken, TokenPurpose
from ...domain.ports.clock import Clock, SystemClock

DEFAULT_TTLS: Dict[TokenPurpose, timedelta] = {
    TokenPurpose.EMAIL_VERIFICATION: timedelta(hours=24),
    TokenPurpose.PASSWORD_RESET: timedelta(minutes=10),
}


class TokenCodec:
    """Issues single-use URL-safe secrets and checks them against stored SHA-256 verifiers."""

    def __init__(
        self,
        clock: Optional[Clock] = None,
        ttls: Optional[Dict[TokenPurpose, timedelta]] = None,
        token_bytes: int = 32,
    ) -> None:
        if token_bytes < 20:
            raise ValueError("Tokens need at least 20 bytes of entropy.")
        self._clock = clock or SystemClock()
        self._ttls = {**DEFAULT_TTLS, **(ttls or {})}
        self._token_bytes = token_bytes

    def ttl_for(self, purpose: TokenPurpose) -> timedelta:
        return self._ttls[purpose]

    def issue(self, purpose: TokenPurpose, ttl: Optional[timedelta] = None) -> IssuedToken:
        plaintext = secrets.token_urlsafe(self._token_bytes)
        expires_at = self._clock.now() + (ttl if ttl is not None else self.ttl_for(purpose))
        return IssuedToken(
            purpose=purpose,
            plaintext=plaintext,
            token_hash=self.hash_token(plaintext),
            expires_at=expires_at,
        )

    def verify(self, purpose: TokenPurpose, account: Account, plaintext: str) -> bool:
        """True only when the plaintext hashes to the stored verifier and it has not expired."""
        stored_hash = getattr(account, purpose.hash_field)
        expires_at = getattr(account, purpose.expiry_field)
        if not plaintext or not stored_hash or expires_at is None:
            return False
        if not hmac.compare_digest(self.hash_token(plaintext), stored_hash):
            return False
        return expires_at > self._clock.now()

    @staticmethod
    def hash_token(plaintext: str) -> str:
        return hashlib.sha256(plaintext.encode("utf-8")).hexdigest()
