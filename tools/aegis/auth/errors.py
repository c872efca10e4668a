"""Typed failures raised by the auth state machine and its stores.

Every domain error carries a stable ``code`` and a caller-facing ``message``.
Domain errors map to HTTP 400; ``InternalError`` and its subclasses map to
500 and are surfaced to callers without detail.
"""

from __future__ import annotations

from typing import Optional


class AuthError(Exception):
    """Base class for expected, caller-visible auth failures."""

    code = "auth_error"
    default_message = "Request failed"
    http_status = 400

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class DuplicateIdentity(AuthError):
    code = "duplicate_identity"
    default_message = "User already exists"


class AccountNotFound(AuthError):
    code = "account_not_found"
    default_message = "User not found"


class AlreadyVerified(AuthError):
    code = "already_verified"
    default_message = "User already verified"


class InvalidRequest(AuthError):
    code = "invalid_request"
    default_message = "Invalid request"


class OtpNotFound(AuthError):
    code = "otp_not_found"
    default_message = "OTP not found."


class OtpMismatch(AuthError):
    code = "otp_mismatch"
    default_message = "Invalid OTP."


class OtpExpired(AuthError):
    code = "otp_expired"
    default_message = "OTP has expired."


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    default_message = "Invalid credentials"


class NotVerified(AuthError):
    code = "not_verified"
    default_message = "OTP must be verified before resetting the password"


class RoleRequired(AuthError):
    code = "role_required"
    default_message = "New user detected. Please provide a role."


class InvalidProviderToken(AuthError):
    code = "invalid_provider_token"
    default_message = "Invalid identity provider token"


class InternalError(AuthError):
    """Unexpected store or I/O failure. Logged server-side, reported generically."""

    code = "internal"
    default_message = "Internal error"
    http_status = 500


class DeliveryFailed(InternalError):
    code = "delivery_failed"
    default_message = "OTP not sent due to technical error"


class ProviderUnavailable(InternalError):
    code = "provider_unavailable"
    default_message = "Identity provider unavailable"
