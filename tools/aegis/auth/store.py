"""SQLite-backed account store.

Email and mobile uniqueness is enforced by UNIQUE constraints, so two
concurrent signups for the same identity cannot both succeed even if both
pass the service's existence pre-check.
"""

from __future__ import annotations

import enum
import sqlite3
import uuid
from threading import RLock
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .errors import DuplicateIdentity

DEFAULT_DB_PATH = ".aegis/aegis.db"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS accounts (
    id TEXT PRIMARY KEY,
    email TEXT UNIQUE NOT NULL,
    mobile TEXT UNIQUE,
    fullname TEXT,
    password_hash TEXT,
    role TEXT NOT NULL,
    is_verified INTEGER NOT NULL DEFAULT 0,
    is_federated_user INTEGER NOT NULL DEFAULT 0,
    federated_subject TEXT,
    reset_grant_expires_at TEXT,
    created_at TEXT NOT NULL
);
"""


class Role(str, enum.Enum):
    ADMIN = "admin"
    SELLER = "seller"
    BUYER = "buyer"

    @classmethod
    def parse(cls, value: Any) -> Optional["Role"]:
        """Return the Role for ``value`` (case-insensitive), or None."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass
class AccountDraft:
    """Fields supplied when creating an account."""

    email: str
    role: Role
    password_hash: Optional[str] = None
    mobile: Optional[str] = None
    fullname: Optional[str] = None
    is_federated_user: bool = False
    federated_subject: Optional[str] = None


@dataclass
class Account:
    """Stored account record."""

    id: str
    email: str
    role: Role
    created_at: datetime
    password_hash: Optional[str] = None
    mobile: Optional[str] = None
    fullname: Optional[str] = None
    is_verified: bool = False
    is_federated_user: bool = False
    federated_subject: Optional[str] = None
    reset_grant_expires_at: Optional[datetime] = field(default=None, repr=False)

    def public(self) -> dict[str, Any]:
        """Caller-facing projection. Never includes the password hash."""
        return {
            "user_id": self.id,
            "full_name": self.fullname,
            "email": self.email,
            "mobile": self.mobile,
            "role": self.role.value,
            "is_verified": self.is_verified,
            "is_federated_user": self.is_federated_user,
        }


def _dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class AccountStore:
    """SQLite account store.

    Args:
        db_path: Path to SQLite database file. Parent directories are created
                 automatically. ``":memory:"`` gives a private in-memory store.

    The connection is shared by the worker threads the HTTP API runs
    service calls on; every statement runs under the store lock.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        self._db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._lock = RLock()
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    def _next_id(self) -> str:
        return f"acct-{uuid.uuid4().hex[:12]}"

    def _row_to_account(self, row: sqlite3.Row) -> Account:
        return Account(
            id=row["id"],
            email=row["email"],
            role=Role(row["role"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            password_hash=row["password_hash"],
            mobile=row["mobile"],
            fullname=row["fullname"],
            is_verified=bool(row["is_verified"]),
            is_federated_user=bool(row["is_federated_user"]),
            federated_subject=row["federated_subject"],
            reset_grant_expires_at=_dt(row["reset_grant_expires_at"]),
        )

    def create(self, draft: AccountDraft) -> Account:
        """Insert a new, unverified account.

        Raises:
            DuplicateIdentity: the email or mobile is already registered.
            ValueError: a non-federated draft has no password hash.
        """
        if not draft.is_federated_user and not draft.password_hash:
            raise ValueError("password hash required for non-federated accounts")

        account_id = self._next_id()
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    "INSERT INTO accounts (id, email, mobile, fullname, password_hash, role, "
                    "is_verified, is_federated_user, federated_subject, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?, ?)",
                    (
                        account_id,
                        normalize_email(draft.email),
                        draft.mobile or None,
                        draft.fullname,
                        draft.password_hash,
                        draft.role.value,
                        int(draft.is_federated_user),
                        draft.federated_subject,
                        now,
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise DuplicateIdentity() from e

        account = self.get(account_id)
        assert account is not None
        return account

    def save(self, account: Account) -> None:
        """Persist the mutable fields of an existing account."""
        grant = account.reset_grant_expires_at
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE accounts SET password_hash = ?, is_verified = ?, "
                "reset_grant_expires_at = ? WHERE id = ?",
                (
                    account.password_hash,
                    int(account.is_verified),
                    grant.isoformat() if grant else None,
                    account.id,
                ),
            )

    def get(self, account_id: str) -> Optional[Account]:
        """Look up an account by ID."""
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM accounts WHERE id = ?", (account_id,)
            ).fetchone()
        return self._row_to_account(row) if row else None

    def find_by_email(self, email: str) -> Optional[Account]:
        """Look up an account by (normalized) email."""
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM accounts WHERE email = ?", (normalize_email(email),)
            ).fetchone()
        return self._row_to_account(row) if row else None

    def find_by_email_or_mobile(self, identifier: str) -> Optional[Account]:
        """Look up an account whose email or mobile matches ``identifier``."""
        identifier = identifier.strip()
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM accounts WHERE email = ? OR mobile = ? LIMIT 1",
                (identifier.lower(), identifier),
            ).fetchone()
        return self._row_to_account(row) if row else None

    def list_accounts(self) -> list[Account]:
        """Return all accounts ordered by creation time."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM accounts ORDER BY created_at, rowid"
            ).fetchall()
        return [self._row_to_account(r) for r in rows]

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()
