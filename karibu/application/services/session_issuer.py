from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import Optional

import jwt

from ...domain.errors import InvalidToken, MissingToken
from ...domain.models import TokenPair
from ...domain.ports.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


class SessionIssuer:
    """Signs access and refresh JWTs bound to an account id.

    Each token type has its own secret, so a refresh token can never pass as an
    access token and vice versa. Expiry is checked against the injected clock.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        clock: Optional[Clock] = None,
        access_ttl: timedelta = timedelta(hours=1),
        refresh_ttl: timedelta = timedelta(days=30),
        algorithm: str = "HS256",
    ) -> None:
        if not access_secret or not refresh_secret:
            raise RuntimeError("JWT secrets are not configured.")
        if access_secret == refresh_secret:
            raise RuntimeError("Access and refresh tokens must use different secrets.")
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret}
        self._ttls = {ACCESS: access_ttl, REFRESH: refresh_ttl}
        self._clock = clock or SystemClock()
        self._algorithm = algorithm

    def issue_access_token(self, account_id: int) -> str:
        return self._encode(ACCESS, account_id)

    def issue_refresh_token(self, account_id: int) -> str:
        return self._encode(REFRESH, account_id)

    def issue_pair(self, account_id: int) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(account_id),
            refresh_token=self.issue_refresh_token(account_id),
        )

    def verify_access_token(self, token: Optional[str]) -> int:
        return self._decode(ACCESS, token)

    def verify_refresh_token(self, token: Optional[str]) -> int:
        return self._decode(REFRESH, token)

    def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        """Validate a refresh token and mint a brand-new pair. Old tokens stay valid until expiry."""
        account_id = self.verify_refresh_token(refresh_token)
        return self.issue_pair(account_id)

    def _encode(self, token_type: str, account_id: int) -> str:
        now = self._clock.now()
        payload = {
            "sub": str(account_id),
            "type": token_type,
            "iat": now,
            "exp": now + self._ttls[token_type],
            "jti": secrets.token_hex(8),
        }
        return jwt.encode(payload, self._secrets[token_type], algorithm=self._algorithm)

    def _decode(self, token_type: str, token: Optional[str]) -> int:
        if not token:
            raise MissingToken(f"{token_type.capitalize()} token is required")
        try:
            payload = jwt.decode(
                token,
                self._secrets[token_type],
                algorithms=[self._algorithm],
                options={
                    "require": ["sub", "exp", "type"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as exc:
            logger.debug("Rejected %s token: %s", token_type, exc)
            raise InvalidToken(f"Invalid {token_type} token") from exc

        if payload.get("type") != token_type:
            raise InvalidToken(f"Invalid {token_type} token")
        try:
            expires_at = int(payload["exp"])
            account_id = int(payload["sub"])
        except (TypeError, ValueError) as exc:
            raise InvalidToken(f"Invalid {token_type} token") from exc
        if expires_at <= int(self._clock.now().timestamp()):
            raise InvalidToken(f"{token_type.capitalize()} token has expired")
        return account_id
