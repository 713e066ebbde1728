import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_DEFAULT_ACCESS_SECRET = "change-me"
_DEFAULT_REFRESH_SECRET = "change-me-too"


class Settings:
    """Centralised application configuration sourced from environment variables.

    Keyword arguments override the environment, which keeps tests independent of
    whatever ``.env`` happens to be lying around.
    """

    def __init__(self, **overrides: Any) -> None:
        load_dotenv()
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/karibu.db")).resolve()
        self.jwt_secret = os.getenv("JWT_SECRET", _DEFAULT_ACCESS_SECRET)
        self.jwt_refresh_secret = os.getenv("JWT_REFRESH_SECRET", _DEFAULT_REFRESH_SECRET)
        self.jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.jwt_expire_minutes = self._get_int("JWT_EXPIRE_MINUTES", default=60)
        self.jwt_refresh_expire_days = self._get_int("JWT_REFRESH_EXPIRE_DAYS", default=30)
        self.bcrypt_rounds = self._get_int("BCRYPT_ROUNDS", default=12)
        self.login_max_attempts = self._get_int("LOGIN_MAX_ATTEMPTS", default=5)
        self.login_lock_minutes = self._get_int("LOGIN_LOCK_MINUTES", default=120)
        self.email_verification_ttl_hours = self._get_int("EMAIL_VERIFICATION_TTL_HOURS", default=24)
        self.password_reset_ttl_minutes = self._get_int("PASSWORD_RESET_TTL_MINUTES", default=10)
        self.frontend_url = os.getenv("FRONTEND_URL", "http://localhost:3000")
        self.email_host = os.getenv("EMAIL_HOST")
        self.email_port = self._get_int("EMAIL_PORT", default=587)
        self.email_user = os.getenv("EMAIL_USER")
        self.email_password = os.getenv("EMAIL_PASS")
        self.email_from = os.getenv("EMAIL_FROM", "Karibu Kenya")
        self.admin_email = os.getenv("ADMIN_EMAIL")
        self.admin_password = os.getenv("ADMIN_PASSWORD")
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = [self.frontend_url]

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise TypeError(f"Unknown setting: {key}")
            setattr(self, key, value)

        self._validate()

    def _validate(self) -> None:
        if self.jwt_secret == self.jwt_refresh_secret:
            raise RuntimeError("JWT_SECRET and JWT_REFRESH_SECRET must be different.")
        if self.jwt_secret == _DEFAULT_ACCESS_SECRET or self.jwt_refresh_secret == _DEFAULT_REFRESH_SECRET:
            logger.warning("JWT secrets are using default values. Configure secure secrets in production.")
        if self.bcrypt_rounds < 4 or self.bcrypt_rounds > 31:
            raise RuntimeError("BCRYPT_ROUNDS must be between 4 and 31")

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc
