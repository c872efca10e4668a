"""bcrypt password hashing.

``hash_password`` is called explicitly by the auth service at account
creation and password reset; stores only ever see the resulting hash.

bcrypt only accepts up to 72 bytes of input. Longer passwords are rejected
at signup and reset, and never match at login.
"""

from __future__ import annotations

from typing import Optional

import bcrypt

MAX_PASSWORD_BYTES = 72

_DUMMY_HASH = bcrypt.hashpw(b"dummy", bcrypt.gensalt()).decode("utf-8")


def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(password: str) -> str:
    """Return a salted bcrypt hash of ``password``.

    Raises:
        ValueError: the password is longer than 72 bytes.
    """
    if password_too_long(password):
        raise ValueError(f"password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: Optional[str]) -> bool:
    """Check a plaintext password against a stored bcrypt hash.

    When there is no hash to compare against (unknown account, federation-only
    account) or the password is too long to hash, a comparison against a
    dummy hash still runs, so every outcome takes the same time.
    """
    encoded = password.encode("utf-8")
    if not password_hash or len(encoded) > MAX_PASSWORD_BYTES:
        bcrypt.checkpw(encoded[:MAX_PASSWORD_BYTES], _DUMMY_HASH.encode("utf-8"))
        return False

    try:
        return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False
