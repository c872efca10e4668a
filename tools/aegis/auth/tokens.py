"""Access/refresh token issuance.

Access tokens are PyJWT HS256 tokens carrying the account id (``sub``) and
role; downstream services verify them offline with the shared secret.
Refresh tokens are opaque random strings persisted in SQLite so their
existence can be checked later. Issuing a new pair never invalidates older
refresh tokens.
"""

from __future__ import annotations

import secrets
import sqlite3
import warnings
from dataclasses import dataclass
from threading import RLock
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import jwt

from .store import DEFAULT_DB_PATH

if TYPE_CHECKING:
    from .store import Account

ALGORITHM = "HS256"
ACCESS_TOKEN_TYPE = "access"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS refresh_tokens (
    token TEXT PRIMARY KEY,
    account_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_refresh_tokens_account ON refresh_tokens (account_id);
"""


def create_access_token(
    account_id: str,
    role: str,
    secret: str,
    expiry_hours: int = 24,
    now: Optional[datetime] = None,
) -> str:
    """Create a signed access token.

    Args:
        account_id: Account identifier, stored as the ``sub`` claim.
        role: Account role label.
        secret: Secret key used for HS256 signing.
        expiry_hours: Token validity duration in hours (default 24).
        now: Issue time; defaults to the current UTC time.

    Returns:
        Encoded JWT string.
    """
    now = now or datetime.now(timezone.utc)
    payload = {
        "sub": account_id,
        "role": role,
        "type": ACCESS_TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(hours=expiry_hours),
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def verify_access_token(token: str, secret: str) -> dict | None:
    """Verify an access token without any store lookup.

    Returns:
        Dict with ``account_id`` and ``role`` on success, or ``None``
        if the token is expired, malformed, has an invalid signature or is
        not an access token.
    """
    try:
        payload = jwt.decode(
            token, secret, algorithms=[ALGORITHM], options={"require": ["exp", "sub"]}
        )
        if payload.get("type") != ACCESS_TOKEN_TYPE:
            return None
        return {
            "account_id": payload["sub"],
            "role": payload["role"],
        }
    except (jwt.InvalidTokenError, KeyError):
        return None


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime

    def to_dict(self) -> dict:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "access_expires_at": self.access_expires_at.isoformat(),
            "refresh_expires_at": self.refresh_expires_at.isoformat(),
        }


@dataclass(frozen=True)
class RefreshTokenRecord:
    token: str
    account_id: str
    created_at: datetime
    expires_at: datetime


class RefreshTokenStore:
    """SQLite store of issued refresh tokens."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._lock = RLock()
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    def _row_to_record(self, row: sqlite3.Row) -> RefreshTokenRecord:
        return RefreshTokenRecord(
            token=row["token"],
            account_id=row["account_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
            expires_at=datetime.fromisoformat(row["expires_at"]),
        )

    def create(self, record: RefreshTokenRecord) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT INTO refresh_tokens (token, account_id, created_at, expires_at) "
                "VALUES (?, ?, ?, ?)",
                (
                    record.token,
                    record.account_id,
                    record.created_at.isoformat(),
                    record.expires_at.isoformat(),
                ),
            )

    def get(self, token: str) -> Optional[RefreshTokenRecord]:
        with self._lock:
            row = self._conn.execute(
                "SELECT * FROM refresh_tokens WHERE token = ?", (token,)
            ).fetchone()
        return self._row_to_record(row) if row else None

    def list_for(self, account_id: str) -> list[RefreshTokenRecord]:
        """Return every refresh token issued to an account, oldest first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM refresh_tokens WHERE account_id = ? ORDER BY created_at, rowid",
                (account_id,),
            ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()


class TokenIssuer:
    """Creates token pairs and records each refresh token.

    Args:
        refresh_tokens: Store that receives one record per issued pair.
        secret: Secret key for access-token signing.
        access_token_hours: Access token validity in hours (default 24).
        refresh_token_days: Refresh token validity in days (default 7).
    """

    def __init__(
        self,
        refresh_tokens: RefreshTokenStore,
        secret: str,
        access_token_hours: int = 24,
        refresh_token_days: int = 7,
    ) -> None:
        if not secret:
            raise ValueError("TokenIssuer requires a signing secret")
        if "CHANGE-ME" in secret:
            warnings.warn("jwt_secret contains placeholder value, tokens will be insecure")

        self.refresh_tokens = refresh_tokens
        self._secret = secret
        self.access_token_hours = access_token_hours
        self.refresh_token_days = refresh_token_days

    @property
    def access_ttl(self) -> timedelta:
        return timedelta(hours=self.access_token_hours)

    @property
    def refresh_ttl(self) -> timedelta:
        return timedelta(days=self.refresh_token_days)

    def issue(self, account: "Account") -> TokenPair:
        """Sign a new access token and persist a new refresh token."""
        now = datetime.now(timezone.utc)
        access_token = create_access_token(
            account.id, account.role.value, self._secret, self.access_token_hours, now=now
        )
        record = RefreshTokenRecord(
            token=secrets.token_urlsafe(32),
            account_id=account.id,
            created_at=now,
            expires_at=now + self.refresh_ttl,
        )
        self.refresh_tokens.create(record)
        return TokenPair(
            access_token=access_token,
            refresh_token=record.token,
            access_expires_at=now + self.access_ttl,
            refresh_expires_at=record.expires_at,
        )

    def verify_access_token(self, token: str) -> dict | None:
        return verify_access_token(token, self._secret)

    def is_refresh_token_active(self, token: str) -> bool:
        """True if the refresh token was issued here and has not expired."""
        record = self.refresh_tokens.get(token)
        if record is None:
            return False
        return datetime.now(timezone.utc) < record.expires_at
