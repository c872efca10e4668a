"""Authentication and verification state machine.

``AuthService`` holds no per-user state between calls: verification and
OTP state live in the account and OTP records. Each public method is a
short decision procedure that either returns a result or raises an
``AuthError`` subclass.

Architecture:
    caller → AuthService.<operation>() → AccountStore / OtpStore / TokenIssuer
                                       → Mailer / IdentityVerifier
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from .. import events
from ..delivery.base import DeliveryError, Mailer
from ..providers.base import (
    IdentityVerifier,
    ProviderTokenError,
    ProviderUnavailableError,
)
from .errors import (
    AccountNotFound,
    AlreadyVerified,
    DeliveryFailed,
    DuplicateIdentity,
    InvalidCredentials,
    InvalidProviderToken,
    InvalidRequest,
    NotVerified,
    OtpExpired,
    OtpMismatch,
    OtpNotFound,
    ProviderUnavailable,
    RoleRequired,
)
from .otp import OneTimePasscode, OtpPurpose, OtpStore, generate_code
from .passwords import MAX_PASSWORD_BYTES, check_password, hash_password, password_too_long
from .store import Account, AccountDraft, AccountStore, Role
from .tokens import TokenIssuer, TokenPair

logger = logging.getLogger(__name__)

OTP_SUBJECTS = {
    OtpPurpose.VERIFICATION: "Your verification OTP",
    OtpPurpose.PASSWORD_RESET: "Your password reset OTP",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LoginResult:
    account: Account
    tokens: TokenPair
    is_signup: bool = False


class AuthService:
    """Signup, OTP, login, password reset and federated login.

    Args:
        accounts: Credential store.
        otps: One-time passcode store.
        tokens: Issuer for access/refresh token pairs.
        mailer: Delivery channel for OTP codes.
        verifier: Identity-provider verifier; federated login is disabled
                  when None.
        otp_ttl_minutes: OTP validity window (default 3).
        require_reset_otp: When True, reset_password additionally requires
                  a password-reset OTP verified within the OTP TTL.
        clock: Returns the current UTC time. Injected for tests.
    """

    def __init__(
        self,
        accounts: AccountStore,
        otps: OtpStore,
        tokens: TokenIssuer,
        mailer: Mailer,
        verifier: Optional[IdentityVerifier] = None,
        otp_ttl_minutes: int = 3,
        require_reset_otp: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.accounts = accounts
        self.otps = otps
        self.tokens = tokens
        self.mailer = mailer
        self.verifier = verifier
        self.otp_ttl = timedelta(minutes=otp_ttl_minutes)
        self.require_reset_otp = require_reset_otp
        self._clock = clock

    def _require_account(self, email: str) -> Account:
        account = self.accounts.find_by_email(email)
        if account is None:
            raise AccountNotFound()
        return account

    @staticmethod
    def _parse_purpose(purpose: Any) -> OtpPurpose:
        parsed = OtpPurpose.parse(purpose)
        if parsed is None:
            raise InvalidRequest("Invalid OTP type")
        return parsed

    @staticmethod
    def _parse_role(role: Any) -> Role:
        parsed = Role.parse(role)
        if parsed is None:
            raise InvalidRequest("Role must be one of (admin, buyer, seller)")
        return parsed

    def signup(
        self,
        email: str,
        password: str,
        role: Any,
        mobile: Optional[str] = None,
        fullname: Optional[str] = None,
    ) -> dict[str, Any]:
        """Register a new, unverified password account.

        Returns:
            The account's public projection.
        """
        parsed_role = self._parse_role(role)
        if not password:
            raise InvalidRequest("Password is required")
        if password_too_long(password):
            raise InvalidRequest(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")
        if self.accounts.find_by_email(email) is not None:
            raise DuplicateIdentity()

        account = self.accounts.create(
            AccountDraft(
                email=email,
                role=parsed_role,
                password_hash=hash_password(password),
                mobile=mobile,
                fullname=fullname,
            )
        )
        logger.info(f"Account registered: {account.id}")
        events.log_event("signup", account_id=account.id, role=account.role.value)
        return account.public()

    def generate_otp(self, email: str, purpose: Any) -> dict[str, Any]:
        """Issue a fresh code, invalidating every earlier code for the account.

        The code is persisted before it is sent; if delivery fails the code
        is removed again and ``DeliveryFailed`` is raised.
        """
        otp_purpose = self._parse_purpose(purpose)
        account = self._require_account(email)
        if otp_purpose is OtpPurpose.VERIFICATION and account.is_verified:
            raise AlreadyVerified()

        now = self._clock()
        passcode = OneTimePasscode(
            account_id=account.id,
            email=account.email,
            code=generate_code(),
            purpose=otp_purpose,
            created_at=now,
            expires_at=now + self.otp_ttl,
        )
        self.otps.replace(passcode)

        try:
            self.mailer.send(
                account.email,
                OTP_SUBJECTS[otp_purpose],
                f"Your OTP is: {passcode.code}",
            )
        except DeliveryError as e:
            self.otps.delete_all_for(account.id)
            logger.error(f"OTP delivery failed for {account.id}: {e}")
            events.log_event(
                "otp_delivery_failed", account_id=account.id, purpose=otp_purpose.value
            )
            raise DeliveryFailed() from e

        events.log_event("otp_issued", account_id=account.id, purpose=otp_purpose.value)
        return {"otp_send": True, "email": account.email, "purpose": otp_purpose.value}

    def verify_otp(self, email: str, code: str, purpose: Any) -> dict[str, Any]:
        """Check a submitted code against the latest code for the account.

        Checks run in a fixed order: account, verified state, presence,
        equality, expiry. Success consumes every code for the account.
        """
        otp_purpose = self._parse_purpose(purpose)
        account = self._require_account(email)
        if otp_purpose is OtpPurpose.VERIFICATION and account.is_verified:
            raise AlreadyVerified()

        latest = self.otps.latest_for(account.id)
        if latest is None:
            raise OtpNotFound()

        submitted = str(code).strip()
        if (
            not hmac.compare_digest(latest.code.encode(), submitted.encode())
            or latest.purpose is not otp_purpose
        ):
            events.log_event("otp_mismatch", account_id=account.id)
            raise OtpMismatch()

        now = self._clock()
        if latest.is_expired(now):
            raise OtpExpired()

        self.otps.delete_all_for(account.id)
        if otp_purpose is OtpPurpose.VERIFICATION:
            account.is_verified = True
            self.accounts.save(account)
        elif self.require_reset_otp:
            account.reset_grant_expires_at = now + self.otp_ttl
            self.accounts.save(account)

        events.log_event("otp_verified", account_id=account.id, purpose=otp_purpose.value)
        return {"otp_verified": True}

    def login(self, identifier: str, password: str) -> LoginResult:
        """Authenticate by email or mobile and issue a token pair.

        Unknown identity, federation-only account and wrong password are
        indistinguishable to the caller.
        """
        account = self.accounts.find_by_email_or_mobile(identifier or "")
        password_hash = account.password_hash if account else None
        if not check_password(password or "", password_hash) or account is None:
            events.log_event("login_failed")
            raise InvalidCredentials()

        pair = self.tokens.issue(account)
        logger.info(f"Login succeeded: {account.id}")
        events.log_event("login", account_id=account.id)
        return LoginResult(account=account, tokens=pair)

    def reset_password(self, email: str, new_password: str) -> dict[str, Any]:
        """Replace the password of a verified account."""
        account = self._require_account(email)
        if not account.is_verified:
            raise NotVerified()

        if self.require_reset_otp:
            grant = account.reset_grant_expires_at
            if grant is None or self._clock() >= grant:
                raise NotVerified("Password reset OTP must be verified first")
            account.reset_grant_expires_at = None

        if not new_password:
            raise InvalidRequest("New password is required")
        if password_too_long(new_password):
            raise InvalidRequest(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")

        account.password_hash = hash_password(new_password)
        self.accounts.save(account)
        logger.info(f"Password reset: {account.id}")
        events.log_event("password_reset", account_id=account.id)
        return {"password_reset": True}

    def federated_login(self, provider_token: str, role: Any = None) -> LoginResult:
        """Log in (or sign up) with an identity-provider token.

        A verified email with no matching account creates a federated,
        unverified account and requires a role. An existing account with the
        same email is used as-is.
        """
        if self.verifier is None:
            raise InvalidRequest("Federated login is not configured")

        try:
            identity = self.verifier.verify(provider_token)
        except ProviderTokenError as e:
            logger.info(f"Provider token rejected: {e}")
            raise InvalidProviderToken() from e
        except ProviderUnavailableError as e:
            raise ProviderUnavailable() from e

        is_signup = False
        account = self.accounts.find_by_email(identity.email)
        if account is None:
            if role is None or role == "":
                raise RoleRequired()
            draft = AccountDraft(
                email=identity.email,
                role=self._parse_role(role),
                fullname=identity.display_name,
                is_federated_user=True,
                federated_subject=identity.subject_id,
            )
            try:
                account = self.accounts.create(draft)
            except DuplicateIdentity:
                # A concurrent login for the same email created it first.
                account = self.accounts.find_by_email(identity.email)
                if account is None:
                    raise
            else:
                is_signup = True
                events.log_event(
                    "federated_signup", account_id=account.id, role=account.role.value
                )

        pair = self.tokens.issue(account)
        events.log_event("federated_login", account_id=account.id, is_signup=is_signup)
        return LoginResult(account=account, tokens=pair, is_signup=is_signup)
