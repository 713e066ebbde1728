"""Single-use token types shared by the verification and reset flows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class TokenPurpose(str, Enum):
    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"

    @property
    def hash_field(self) -> str:
        if self is TokenPurpose.EMAIL_VERIFICATION:
            return "email_verification_token_hash"
        return "password_reset_token_hash"

    @property
    def expiry_field(self) -> str:
        if self is TokenPurpose.EMAIL_VERIFICATION:
            return "email_verification_expires_at"
        return "password_reset_expires_at"


@dataclass(frozen=True, slots=True)
class IssuedToken:
    """Result of issuing a token: the plaintext goes out by email, only the hash is stored."""

    purpose: TokenPurpose
    plaintext: str
    token_hash: str
    expires_at: datetime

    def __repr__(self) -> str:
        return f"<IssuedToken purpose={self.purpose.value} expires_at={self.expires_at.isoformat()}>"
