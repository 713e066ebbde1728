import json
import sqlite3
import threading
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ...domain.errors import DuplicateEmail, NotFound, ValidationError
from ...domain.models import (
    Account,
    EmergencyContact,
    Preferences,
    Role,
    TokenPurpose,
    TravelRecord,
)
from ...domain.ports.persistence import PersistenceGateway
from ...domain.validation import validate_rating
from ..security.passwords import PasswordHasher

# Columns that ``update_account`` may write. Passwords and token verifiers have
# dedicated paths so a hash is never hashed again and plaintext never lands here.
_UPDATABLE_COLUMNS = {
    "email",
    "first_name",
    "last_name",
    "phone",
    "nationality",
    "date_of_birth",
    "profile_image",
    "role",
    "preferences",
    "travel_history",
    "emergency_contact",
    "is_active",
    "last_login",
}


class SQLitePersistence(PersistenceGateway):
    """SQLite-backed implementation of the persistence gateway."""

    def __init__(self, path: Union[Path, str], password_hasher: Optional[PasswordHasher] = None) -> None:
        if str(path) != ":memory:":
            path = Path(path)
            path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._hasher = password_hasher or PasswordHasher()
        self._initialize()

    def _initialize(self) -> None:
        with self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    first_name TEXT NOT NULL,
                    last_name TEXT NOT NULL,
                    phone TEXT,
                    nationality TEXT,
                    date_of_birth TEXT,
                    profile_image TEXT NOT NULL DEFAULT '',
                    role TEXT NOT NULL DEFAULT 'user',
                    is_email_verified INTEGER NOT NULL DEFAULT 0,
                    email_verification_token_hash TEXT,
                    email_verification_expires_at TEXT,
                    password_reset_token_hash TEXT,
                    password_reset_expires_at TEXT,
                    login_attempts INTEGER NOT NULL DEFAULT 0,
                    lock_until TEXT,
                    preferences TEXT NOT NULL,
                    travel_history TEXT NOT NULL DEFAULT '[]',
                    emergency_contact TEXT,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    last_login TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_accounts_created_at
                    ON accounts(created_at DESC);

                CREATE INDEX IF NOT EXISTS idx_accounts_email_verification
                    ON accounts(email_verification_token_hash);

                CREATE INDEX IF NOT EXISTS idx_accounts_password_reset
                    ON accounts(password_reset_token_hash);
                """
            )

    def close(self) -> None:
        self._conn.close()

    # AccountRepository API -------------------------------------------------
    def create_account(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
        nationality: Optional[str] = None,
        date_of_birth: Optional[date] = None,
    ) -> Account:
        normalized = email.strip().lower()
        password_hash = self._hasher.hash(password)
        now = self._now()
        preferences = json.dumps(Preferences().to_dict())
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(
                    """
                    INSERT INTO accounts (
                        email, password_hash, first_name, last_name, phone, nationality,
                        date_of_birth, preferences, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        normalized,
                        password_hash,
                        first_name,
                        last_name,
                        phone,
                        nationality,
                        date_of_birth.isoformat() if date_of_birth else None,
                        preferences,
                        now,
                        now,
                    ),
                )
                account_id = cur.lastrowid
                cur = self._conn.execute("SELECT * FROM accounts WHERE id = ?", (account_id,))
                row = cur.fetchone()
        except sqlite3.IntegrityError as exc:
            raise DuplicateEmail() from exc
        if not row:
            raise RuntimeError("Failed to persist account.")
        return self._row_to_account(row)

    def get_account_by_email(self, email: str, include_secret: bool = False) -> Optional[Account]:
        with self._lock:
            cur = self._conn.execute(
                "SELECT * FROM accounts WHERE email = ?", (email.strip().lower(),)
            )
            row = cur.fetchone()
        return self._row_to_account(row, include_secret) if row else None

    def get_account_by_id(self, account_id: int, include_secret: bool = False) -> Optional[Account]:
        with self._lock:
            cur = self._conn.execute("SELECT * FROM accounts WHERE id = ?", (account_id,))
            row = cur.fetchone()
        return self._row_to_account(row, include_secret) if row else None

    def update_account(self, account_id: int, **fields: Any) -> Account:
        unknown = set(fields) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        updates = []
        params: List[Any] = []
        for column, value in fields.items():
            updates.append(f"{column} = ?")
            params.append(self._encode_column(column, value))

        if updates:
            updates.append("updated_at = ?")
            params.append(self._now())
            params.append(account_id)
            statement = f"UPDATE accounts SET {', '.join(updates)} WHERE id = ?"
            try:
                with self._lock, self._conn:
                    self._conn.execute(statement, params)
            except sqlite3.IntegrityError as exc:
                raise DuplicateEmail() from exc
        return self._require_account(account_id)

    def set_account_password(self, account_id: int, password: str) -> Account:
        password_hash = self._hasher.hash(password)
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE accounts SET password_hash = ?, updated_at = ? WHERE id = ?",
                (password_hash, self._now(), account_id),
            )
        return self._require_account(account_id)

    def password_matches(self, account: Account, password: str) -> bool:
        password_hash = account.password_hash
        if password_hash is None:
            with self._lock:
                cur = self._conn.execute(
                    "SELECT password_hash FROM accounts WHERE id = ?", (account.id,)
                )
                row = cur.fetchone()
            if not row:
                return False
            password_hash = row["password_hash"]
        return self._hasher.verify(password, password_hash)

    # TokenRepository API ---------------------------------------------------
    def get_account_by_token_hash(self, purpose: TokenPurpose, token_hash: str) -> Optional[Account]:
        with self._lock:
            cur = self._conn.execute(
                f"SELECT * FROM accounts WHERE {purpose.hash_field} = ?", (token_hash,)
            )
            row = cur.fetchone()
        return self._row_to_account(row) if row else None

    def store_token(
        self,
        account_id: int,
        purpose: TokenPurpose,
        token_hash: str,
        expires_at: datetime,
    ) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                f"""
                UPDATE accounts
                SET {purpose.hash_field} = ?, {purpose.expiry_field} = ?, updated_at = ?
                WHERE id = ?
                """,
                (token_hash, self._format_datetime(expires_at), self._now(), account_id),
            )

    def clear_token(self, account_id: int, purpose: TokenPurpose) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                f"""
                UPDATE accounts
                SET {purpose.hash_field} = NULL, {purpose.expiry_field} = NULL, updated_at = ?
                WHERE id = ?
                """,
                (self._now(), account_id),
            )

    def consume_token(
        self,
        account_id: int,
        purpose: TokenPurpose,
        token_hash: str,
        *,
        password: Optional[str] = None,
        mark_email_verified: bool = False,
    ) -> Optional[Account]:
        updates = [f"{purpose.hash_field} = NULL", f"{purpose.expiry_field} = NULL", "updated_at = ?"]
        params: List[Any] = [self._now()]
        if password is not None:
            updates.append("password_hash = ?")
            params.append(self._hasher.hash(password))
        if mark_email_verified:
            updates.append("is_email_verified = 1")
        params.extend([account_id, token_hash])
        statement = (
            f"UPDATE accounts SET {', '.join(updates)} "
            f"WHERE id = ? AND {purpose.hash_field} = ?"
        )
        with self._lock, self._conn:
            cur = self._conn.execute(statement, params)
            consumed = cur.rowcount == 1
        if not consumed:
            return None
        return self._require_account(account_id)

    # LoginAttemptRepository API ----------------------------------------------
    def register_failed_login(
        self,
        account_id: int,
        now: datetime,
        max_attempts: int,
        lock_until: datetime,
    ) -> Account:
        now_value = self._format_datetime(now)
        # A single statement: every right-hand side sees the pre-update row, so a stale
        # lock restarts the counter at 1 and a fresh threshold crossing sets the lock.
        with self._lock, self._conn:
            self._conn.execute(
                """
                UPDATE accounts
                SET login_attempts = CASE
                        WHEN lock_until IS NOT NULL AND lock_until < :now THEN 1
                        ELSE login_attempts + 1
                    END,
                    lock_until = CASE
                        WHEN lock_until IS NOT NULL AND lock_until < :now THEN NULL
                        WHEN login_attempts + 1 >= :max_attempts
                             AND (lock_until IS NULL OR lock_until <= :now) THEN :lock_until
                        ELSE lock_until
                    END,
                    updated_at = :updated_at
                WHERE id = :account_id
                """,
                {
                    "now": now_value,
                    "max_attempts": max_attempts,
                    "lock_until": self._format_datetime(lock_until),
                    "updated_at": self._now(),
                    "account_id": account_id,
                },
            )
        return self._require_account(account_id)

    def reset_login_attempts(self, account_id: int) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE accounts SET login_attempts = 0, lock_until = NULL, updated_at = ? WHERE id = ?",
                (self._now(), account_id),
            )

    # Helpers ----------------------------------------------------------------
    def _require_account(self, account_id: int) -> Account:
        account = self.get_account_by_id(account_id)
        if not account:
            raise NotFound(f"Account {account_id} not found")
        return account

    @classmethod
    def _now(cls) -> str:
        return cls._format_datetime(datetime.now(timezone.utc))

    @staticmethod
    def _format_datetime(value: datetime) -> str:
        # Fixed width so that SQL string comparison matches chronological order.
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec="microseconds")

    @staticmethod
    def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        result = datetime.fromisoformat(value)
        if result.tzinfo is None:
            return result.replace(tzinfo=timezone.utc)
        return result.astimezone(timezone.utc)

    def _encode_column(self, column: str, value: Any) -> Any:
        if column == "email":
            return value.strip().lower()
        if column == "role":
            return Role(value).value
        if column == "is_active":
            return int(bool(value))
        if column == "last_login":
            return self._format_datetime(value) if value else None
        if column == "date_of_birth":
            return value.isoformat() if value else None
        if column == "preferences":
            data = value.to_dict() if isinstance(value, Preferences) else value
            return json.dumps(data)
        if column == "travel_history":
            records = [item.to_dict() if isinstance(item, TravelRecord) else item for item in value or []]
            for record in records:
                validate_rating(record.get("rating"))
            return json.dumps(records)
        if column == "emergency_contact":
            if value is None:
                return None
            data = value.to_dict() if isinstance(value, EmergencyContact) else value
            return json.dumps(data)
        return value

    def _row_to_account(self, row: sqlite3.Row, include_secret: bool = False) -> Account:
        emergency: Optional[Dict[str, Any]] = (
            json.loads(row["emergency_contact"]) if row["emergency_contact"] else None
        )
        return Account(
            id=row["id"],
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            password_hash=row["password_hash"] if include_secret else None,
            phone=row["phone"],
            nationality=row["nationality"],
            date_of_birth=date.fromisoformat(row["date_of_birth"]) if row["date_of_birth"] else None,
            profile_image=row["profile_image"],
            role=Role(row["role"]),
            is_email_verified=bool(row["is_email_verified"]),
            email_verification_token_hash=row["email_verification_token_hash"],
            email_verification_expires_at=self._parse_datetime(row["email_verification_expires_at"]),
            password_reset_token_hash=row["password_reset_token_hash"],
            password_reset_expires_at=self._parse_datetime(row["password_reset_expires_at"]),
            login_attempts=row["login_attempts"],
            lock_until=self._parse_datetime(row["lock_until"]),
            preferences=Preferences.from_dict(json.loads(row["preferences"])),
            travel_history=[TravelRecord.from_dict(item) for item in json.loads(row["travel_history"])],
            emergency_contact=EmergencyContact.from_dict(emergency),
            is_active=bool(row["is_active"]),
            last_login=self._parse_datetime(row["last_login"]),
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )
