from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol

from ..models import Account, TokenPurpose


class AccountRepository(Protocol):
    """Credential store for traveller accounts.

    Implementations hash raw passwords themselves; callers never see or pass a hash.
    """

    def create_account(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
        nationality: Optional[str] = None,
        date_of_birth: Optional[Any] = None,
    ) -> Account:
        ...

    def get_account_by_email(self, email: str, include_secret: bool = False) -> Optional[Account]:
        ...

    def get_account_by_id(self, account_id: int, include_secret: bool = False) -> Optional[Account]:
        ...

    def update_account(self, account_id: int, **fields: Any) -> Account:
        ...

    def set_account_password(self, account_id: int, password: str) -> Account:
        ...

    def password_matches(self, account: Account, password: str) -> bool:
        ...


class TokenRepository(Protocol):
    """Storage of single-use token verifiers on the account record."""

    def get_account_by_token_hash(self, purpose: TokenPurpose, token_hash: str) -> Optional[Account]:
        ...

    def store_token(
        self,
        account_id: int,
        purpose: TokenPurpose,
        token_hash: str,
        expires_at: datetime,
    ) -> None:
        ...

    def clear_token(self, account_id: int, purpose: TokenPurpose) -> None:
        ...

    def consume_token(
        self,
        account_id: int,
        purpose: TokenPurpose,
        token_hash: str,
        *,
        password: Optional[str] = None,
        mark_email_verified: bool = False,
    ) -> Optional[Account]:
        """Clear the verifier only if it still matches; ``None`` means it was already used."""
        ...


class LoginAttemptRepository(Protocol):
    """Atomic counters backing the login guard."""

    def register_failed_login(
        self,
        account_id: int,
        now: datetime,
        max_attempts: int,
        lock_until: datetime,
    ) -> Account:
        ...

    def reset_login_attempts(self, account_id: int) -> None:
        ...


class PersistenceGateway(
    AccountRepository,
    TokenRepository,
    LoginAttemptRepository,
    Protocol,
):
    """Composite gateway combining every persistence concern used by the app."""

    def close(self) -> None:
        ...
