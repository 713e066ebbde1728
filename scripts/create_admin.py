import getpass
import os

from karibu.core.app_factory import build_container
from karibu.core.config import Settings
from karibu.core.logging import configure_logging
from karibu.domain.errors import AuthError


def main() -> None:
    settings = Settings()
    configure_logging(settings.log_level)

    email = os.getenv("ADMIN_EMAIL") or input("Administrator email: ").strip()
    password = os.getenv("ADMIN_PASSWORD") or getpass.getpass("Administrator password: ").strip()

    if not email or not password:
        raise SystemExit("An email and a password are required.")

    container = build_container(settings)
    try:
        account = container.account_service.ensure_admin(email, password)
    except AuthError as exc:
        raise SystemExit(f"Could not create administrator: {exc.message}") from exc
    finally:
        container.persistence.close()

    if account is None:
        raise SystemExit(f"{email} is already registered to a regular account; choose another email.")
    print(f"Administrator {account.email} ready (id {account.id}).")


if __name__ == "__main__":
    main()
