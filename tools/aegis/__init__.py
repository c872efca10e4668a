"""
Aegis: user identity service.

Account registration, credential verification, one-time passcodes, password
reset and Google login, issuing short-lived access tokens and longer-lived
refresh tokens.

Architecture:
    AuthApi (HTTP) → AuthService → AccountStore / OtpStore / TokenIssuer
                                 → Mailer (OTP delivery) / IdentityVerifier (Google)

Components:
    - AccountStore, OtpStore, RefreshTokenStore: SQLite persistence
    - TokenIssuer: PyJWT access tokens plus persisted opaque refresh tokens
    - AuthService: signup / OTP / login / reset / federated login decisions
    - Outcome: {status, message, data?, error?} envelope for every response
    - AuthApi: aiohttp JSON routes with HttpOnly cookie handling

Usage:
    python3 -m aegis.gateway --config .aegis/config.json
    python3 -m aegis.manage list-accounts
"""

__version__ = "0.1.0"

from .auth import AuthService
from .outcome import Outcome

__all__ = [
    "AuthService",
    "Outcome",
]
