"""SQLite-backed store for one-time passcodes.

Only the most recently created code for an account is authoritative.
Issuing a new code goes through ``replace``, which deletes every earlier
code for the account and inserts the new one in a single transaction.
Stored codes are never updated in place.
"""

from __future__ import annotations

import enum
import secrets
import sqlite3
from dataclasses import dataclass
from threading import RLock
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from .store import DEFAULT_DB_PATH

CODE_MIN = 100000
CODE_MAX = 999999

_SCHEMA = """
CREATE TABLE IF NOT EXISTS otps (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    account_id TEXT NOT NULL,
    email TEXT NOT NULL,
    code TEXT NOT NULL,
    purpose TEXT NOT NULL,
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_otps_account ON otps (account_id);
"""

PURPOSE_ALIASES = {
    "verification": "verification",
    "password_reset": "password_reset",
    "password-reset": "password_reset",
    "forgot": "password_reset",
}


class OtpPurpose(str, enum.Enum):
    VERIFICATION = "verification"
    PASSWORD_RESET = "password_reset"

    @classmethod
    def parse(cls, value: Any) -> Optional["OtpPurpose"]:
        """Return the purpose for ``value``, accepting ``forgot`` as an alias."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        canonical = PURPOSE_ALIASES.get(value.strip().lower())
        return cls(canonical) if canonical else None


def generate_code() -> str:
    """Draw a 6-digit code uniformly from [100000, 999999]."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


@dataclass(frozen=True)
class OneTimePasscode:
    account_id: str
    email: str
    code: str
    purpose: OtpPurpose
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class OtpStore:
    """SQLite one-time passcode store.

    Args:
        db_path: Path to SQLite database file, usually shared with the
                 account store.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._lock = RLock()
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    def _row_to_passcode(self, row: sqlite3.Row) -> OneTimePasscode:
        return OneTimePasscode(
            account_id=row["account_id"],
            email=row["email"],
            code=row["code"],
            purpose=OtpPurpose(row["purpose"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            expires_at=datetime.fromisoformat(row["expires_at"]),
        )

    def _insert(self, passcode: OneTimePasscode) -> None:
        self._conn.execute(
            "INSERT INTO otps (account_id, email, code, purpose, created_at, expires_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                passcode.account_id,
                passcode.email,
                passcode.code,
                passcode.purpose.value,
                passcode.created_at.isoformat(),
                passcode.expires_at.isoformat(),
            ),
        )

    def latest_for(self, account_id: str) -> Optional[OneTimePasscode]:
        """Return the most recently created code for an account."""
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM otps WHERE account_id = ? "
                "ORDER BY created_at DESC, id DESC LIMIT 1",
                (account_id,),
            ).fetchone()
        return self._row_to_passcode(row) if row else None

    def delete_all_for(self, account_id: str) -> int:
        """Delete every code for an account. Returns the number removed."""
        with self._lock, self._conn:
            cur = self._conn.execute(
                "DELETE FROM otps WHERE account_id = ?", (account_id,)
            )
        return cur.rowcount

    def create(self, passcode: OneTimePasscode) -> None:
        """Insert a code without touching earlier ones."""
        with self._lock, self._conn:
            self._insert(passcode)

    def replace(self, passcode: OneTimePasscode) -> None:
        """Delete all earlier codes for the account, then insert ``passcode``."""
        with self._lock, self._conn:
            self._conn.execute(
                "DELETE FROM otps WHERE account_id = ?", (passcode.account_id,)
            )
            self._insert(passcode)

    def count_for(self, account_id: str) -> int:
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM otps WHERE account_id = ?", (account_id,)
            ).fetchone()
        return row[0]

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()
