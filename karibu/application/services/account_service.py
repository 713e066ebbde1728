from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ...domain import validation
from ...domain.errors import (
    DeliveryError,
    DuplicateEmail,
    EmailDeliveryFailed,
    IncorrectPassword,
    InvalidCredentials,
    InvalidOrExpiredToken,
    InvalidToken,
    NotFound,
    ValidationError,
)
from ...domain.models import Account, EmergencyContact, IssuedToken, Role, TokenPair, TokenPurpose
from ...domain.ports.clock import Clock, SystemClock
from ...domain.ports.notifier import Notifier
from ...domain.ports.persistence import PersistenceGateway
from ...services.email_service import build_password_reset_email, build_verification_email
from .login_guard import LoginGuard
from .session_issuer import SessionIssuer
from .token_codec import TokenCodec

logger = logging.getLogger(__name__)

EmailBuilder = Callable[..., Tuple[str, str]]

PROFILE_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "nationality",
    "date_of_birth",
    "language",
    "currency",
    "interests",
    "budget",
    "emergency_contact",
)


@dataclass(frozen=True, slots=True)
class LoginResult:
    account: Account
    tokens: TokenPair


class AccountService:
    """Registration, login and account-recovery flows for travellers."""

    def __init__(
        self,
        persistence: PersistenceGateway,
        notifier: Notifier,
        token_codec: TokenCodec,
        login_guard: LoginGuard,
        session_issuer: SessionIssuer,
        frontend_url: str,
        clock: Optional[Clock] = None,
    ) -> None:
        self._persistence = persistence
        self._notifier = notifier
        self._codec = token_codec
        self._guard = login_guard
        self._sessions = session_issuer
        self._frontend_url = frontend_url
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    def register(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        phone: Optional[str] = None,
        nationality: Optional[str] = None,
        date_of_birth: Any = None,
    ) -> Tuple[Account, IssuedToken]:
        """
        Create an unverified account and email it a verification link.

        Returns:
            Tuple of (Account, verification token). The token plaintext is never stored.

        Raises:
            ValidationError: If a field is missing or malformed
            DuplicateEmail: If the email is already registered
            EmailDeliveryFailed: If the verification email could not be sent; the
                account stays created but the token is withdrawn
        """
        email_clean = validation.normalize_email(email)
        validation.validate_password(password)
        first = validation.validate_name(first_name, "first name")
        last = validation.validate_name(last_name, "last name")
        phone_clean = validation.validate_phone(phone)
        birth_date = validation.validate_date_of_birth(date_of_birth)

        if self._persistence.get_account_by_email(email_clean):
            raise DuplicateEmail()

        account = self._persistence.create_account(
            email=email_clean,
            password=password,
            first_name=first,
            last_name=last,
            phone=phone_clean,
            nationality=nationality.strip() if nationality else None,
            date_of_birth=birth_date,
        )
        logger.info("Registered account %s", account.id)

        token = self._issue_and_send(account, TokenPurpose.EMAIL_VERIFICATION, build_verification_email)
        return account, token

    def login(self, email: str, password: str) -> LoginResult:
        if not email or not password:
            raise ValidationError("Please provide an email and password")

        account = self._persistence.get_account_by_email(email.strip().lower(), include_secret=True)
        if not account:
            logger.info("Login failed: unknown email")
            raise InvalidCredentials()

        self._guard.ensure_unlocked(account)

        if not self._persistence.password_matches(account, password):
            self._guard.record_failure(account)
            logger.info("Login failed for account %s", account.id)
            raise InvalidCredentials()

        self._guard.record_success(account)
        account = self._persistence.update_account(account.id, last_login=self._clock.now())
        logger.info("Account %s logged in", account.id)
        return LoginResult(account=account, tokens=self._sessions.issue_pair(account.id))

    def logout(self, account_id: int) -> None:
        # Tokens are stateless; they stay valid until they expire.
        logger.info("Account %s logged out", account_id)

    def get_profile(self, account_id: int) -> Account:
        account = self._persistence.get_account_by_id(account_id)
        if not account:
            raise NotFound("User not found")
        return account

    def update_profile(self, account_id: int, changes: Mapping[str, Any]) -> Account:
        """Merge permitted profile fields. Unknown keys and ``None`` values are ignored."""
        account = self.get_profile(account_id)
        values = {key: changes[key] for key in PROFILE_FIELDS if changes.get(key) is not None}

        fields: Dict[str, Any] = {}
        if "first_name" in values:
            fields["first_name"] = validation.validate_name(values["first_name"], "first name")
        if "last_name" in values:
            fields["last_name"] = validation.validate_name(values["last_name"], "last name")
        if "email" in values:
            email_clean = validation.normalize_email(values["email"])
            if email_clean != account.email:
                existing = self._persistence.get_account_by_email(email_clean)
                if existing and existing.id != account.id:
                    raise DuplicateEmail()
                fields["email"] = email_clean
        if "phone" in values:
            fields["phone"] = validation.validate_phone(values["phone"])
        if "nationality" in values:
            fields["nationality"] = values["nationality"].strip() or None
        if "date_of_birth" in values:
            fields["date_of_birth"] = validation.validate_date_of_birth(values["date_of_birth"])
        if "emergency_contact" in values:
            contact = values["emergency_contact"]
            if not isinstance(contact, Mapping):
                raise ValidationError("Emergency contact must be an object")
            fields["emergency_contact"] = EmergencyContact(
                name=contact.get("name"),
                phone=validation.validate_phone(contact.get("phone")),
                relationship=contact.get("relationship"),
            )

        preference_keys = {"language", "currency", "interests", "budget"} & set(values)
        if preference_keys:
            preferences = account.preferences
            if "language" in values:
                preferences.language = validation.validate_language(values["language"])
            if "currency" in values:
                currency = str(values["currency"]).strip().upper()
                if not currency:
                    raise ValidationError("Currency cannot be empty")
                preferences.currency = currency
            if "interests" in values:
                preferences.interests = validation.validate_interests(values["interests"])
            if "budget" in values:
                budget = validation.validate_budget(values["budget"])
                preferences.budget.min = budget["min"]
                preferences.budget.max = budget["max"]
            fields["preferences"] = preferences

        if not fields:
            return account
        return self._persistence.update_account(account_id, **fields)

    def update_password(self, account_id: int, current_password: str, new_password: str) -> str:
        """Replace the password after re-checking the current one; returns a fresh access token."""
        if not current_password:
            raise ValidationError("Please provide your current password")
        validation.validate_password(new_password)

        account = self._persistence.get_account_by_id(account_id, include_secret=True)
        if not account:
            raise NotFound("User not found")
        if not self._persistence.password_matches(account, current_password):
            raise IncorrectPassword()

        self._persistence.set_account_password(account_id, new_password)
        logger.info("Password updated for account %s", account_id)
        return self._sessions.issue_access_token(account_id)

    def forgot_password(self, email: str) -> IssuedToken:
        """
        Email a password reset link.

        An unknown address is reported as ``NotFound``, so callers can tell whether
        an account exists for it.
        """
        if not email:
            raise ValidationError("Please provide an email")
        account = self._persistence.get_account_by_email(email.strip().lower())
        if not account:
            raise NotFound("There is no user with that email")
        return self._issue_and_send(account, TokenPurpose.PASSWORD_RESET, build_password_reset_email)

    def reset_password(self, token: str, new_password: str) -> str:
        validation.validate_password(new_password)
        account = self._consume(TokenPurpose.PASSWORD_RESET, token, password=new_password)
        logger.info("Password reset for account %s", account.id)
        return self._sessions.issue_access_token(account.id)

    def verify_email(self, token: str) -> Account:
        account = self._consume(TokenPurpose.EMAIL_VERIFICATION, token, mark_email_verified=True)
        logger.info("Email verified for account %s", account.id)
        return account

    def resend_verification(self, email: str) -> Optional[IssuedToken]:
        """Send a fresh verification link. Unknown addresses are ignored silently."""
        if not email:
            raise ValidationError("Please provide an email")
        account = self._persistence.get_account_by_email(email.strip().lower())
        if not account:
            return None
        if account.is_email_verified:
            raise ValidationError("Email already verified")
        return self._issue_and_send(account, TokenPurpose.EMAIL_VERIFICATION, build_verification_email)

    def refresh_token(self, refresh_token: Optional[str]) -> TokenPair:
        account_id = self._sessions.verify_refresh_token(refresh_token)
        if not self._persistence.get_account_by_id(account_id):
            raise InvalidToken("Invalid refresh token")
        return self._sessions.issue_pair(account_id)

    def ensure_admin(
        self,
        email: Optional[str],
        password: Optional[str],
        first_name: str = "Karibu",
        last_name: str = "Admin",
    ) -> Optional[Account]:
        """
        Create the administrator account if no account uses ``email`` yet.

        An existing non-admin account with that email is never promoted.

        Returns:
            The administrator account, or None when credentials are missing or the
            address belongs to a regular account.
        """
        if not email or not password:
            return None
        email_clean = validation.normalize_email(email)
        existing = self._persistence.get_account_by_email(email_clean)
        if existing:
            if existing.role is Role.ADMIN:
                return existing
            logger.warning(
                "Administrator email is already used by account %s; refusing to promote it",
                existing.id,
            )
            return None
        validation.validate_password(password)
        logger.info("Creating default administrator account for %s", email_clean)
        account = self._persistence.create_account(
            email=email_clean,
            password=password,
            first_name=first_name,
            last_name=last_name,
        )
        return self._persistence.update_account(account.id, role=Role.ADMIN)

    def authenticate(self, access_token: Optional[str]) -> Account:
        """Resolve the account behind a bearer access token."""
        account_id = self._sessions.verify_access_token(access_token)
        account = self._persistence.get_account_by_id(account_id)
        if not account:
            raise InvalidToken("User not found")
        return account

    # ------------------------------------------------------------------
    def _issue_and_send(
        self,
        account: Account,
        purpose: TokenPurpose,
        build_email: EmailBuilder,
    ) -> IssuedToken:
        token = self._codec.issue(purpose)
        self._persistence.store_token(account.id, purpose, token.token_hash, token.expires_at)

        subject, body = build_email(self._frontend_url, token.plaintext, self._codec.ttl_for(purpose))
        try:
            self._notifier.send(account.email, subject, body)
        except DeliveryError as exc:
            logger.warning("Could not deliver %s email for account %s: %s", purpose.value, account.id, exc)
            try:
                self._persistence.clear_token(account.id, purpose)
            except Exception:
                logger.exception("Failed to withdraw %s token for account %s", purpose.value, account.id)
            raise EmailDeliveryFailed() from exc
        return token

    def _consume(self, purpose: TokenPurpose, token: str, **changes: Any) -> Account:
        if not token:
            raise InvalidOrExpiredToken()
        token_hash = self._codec.hash_token(token)
        candidate = self._persistence.get_account_by_token_hash(purpose, token_hash)
        if not candidate or not self._codec.verify(purpose, candidate, token):
            raise InvalidOrExpiredToken()
        # Conditional clear: a concurrent request that consumed the token first wins.
        account = self._persistence.consume_token(candidate.id, purpose, token_hash, **changes)
        if not account:
            raise InvalidOrExpiredToken()
        return account
