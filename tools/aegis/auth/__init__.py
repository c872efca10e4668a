"""
Aegis Auth: accounts, one-time passcodes and token issuance.

Provides SQLite-backed account, OTP and refresh-token stores with bcrypt
password hashing, plus the AuthService state machine that composes them.

Usage:
    from aegis.auth import AccountStore, OtpStore, RefreshTokenStore, TokenIssuer, AuthService
    from aegis.delivery import ConsoleMailer

    db = ".aegis/aegis.db"
    service = AuthService(
        accounts=AccountStore(db),
        otps=OtpStore(db),
        tokens=TokenIssuer(RefreshTokenStore(db), secret="..."),
        mailer=ConsoleMailer(),
    )
    service.signup("a@x.com", "Passw0rd!", "buyer", mobile="9876543210")
    service.generate_otp("a@x.com", "verification")
"""

from .errors import AuthError, InternalError
from .otp import OneTimePasscode, OtpPurpose, OtpStore
from .service import AuthService, LoginResult
from .store import Account, AccountDraft, AccountStore, Role
from .tokens import RefreshTokenStore, TokenIssuer, TokenPair, verify_access_token

__all__ = [
    "Account",
    "AccountDraft",
    "AccountStore",
    "AuthError",
    "AuthService",
    "InternalError",
    "LoginResult",
    "OneTimePasscode",
    "OtpPurpose",
    "OtpStore",
    "RefreshTokenStore",
    "Role",
    "TokenIssuer",
    "TokenPair",
    "verify_access_token",
]
