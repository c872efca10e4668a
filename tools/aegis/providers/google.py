"""Google ID-token verification.

Certificates are fetched through a requests session wrapped in CacheControl
so Google's signing keys are reused between calls, and every fetch is
bounded by ``timeout`` seconds. One verifier is constructed per configured
client id and injected into the auth service.
"""

from __future__ import annotations

import functools
import logging
from threading import RLock
from typing import Any, Optional

import cachecontrol
import google.auth.exceptions
import google.auth.transport.requests
import google.oauth2.id_token
import requests

from .base import (
    FederatedIdentity,
    IdentityVerifier,
    ProviderTokenError,
    ProviderUnavailableError,
)

logger = logging.getLogger(__name__)


class GoogleVerifier(IdentityVerifier):
    """Verify Google Sign-In ID tokens for one OAuth client id."""

    def __init__(
        self,
        client_id: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not client_id:
            raise ValueError("GoogleVerifier requires a client_id")
        self.client_id = client_id
        self.timeout = timeout
        self._session = session or cachecontrol.CacheControl(requests.session())
        self._lock = RLock()

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "GoogleVerifier":
        return cls(
            client_id=config.get("client_id", ""),
            timeout=float(config.get("timeout", 10.0)),
        )

    def _fetch_claims(self, token: str) -> dict:
        # The cached session is not thread safe.
        with self._lock:
            request = google.auth.transport.requests.Request(session=self._session)
            bounded = functools.partial(request, timeout=self.timeout)
            return google.oauth2.id_token.verify_oauth2_token(
                token, bounded, self.client_id
            )

    def verify(self, token: str) -> FederatedIdentity:
        if not token:
            raise ProviderTokenError("empty token")

        try:
            claims = self._fetch_claims(token)
        except google.auth.exceptions.TransportError as e:
            logger.error(f"Google certificate fetch failed: {e}")
            raise ProviderUnavailableError(str(e)) from e
        except (ValueError, google.auth.exceptions.GoogleAuthError) as e:
            logger.info(f"Google token rejected: {e}")
            raise ProviderTokenError(str(e)) from e

        return identity_from_claims(claims)


def identity_from_claims(claims: dict) -> FederatedIdentity:
    """Build a FederatedIdentity from verified ID-token claims."""
    subject = claims.get("sub")
    email = claims.get("email")
    if not subject or not email:
        raise ProviderTokenError("token is missing sub or email claim")
    if claims.get("email_verified") is False:
        raise ProviderTokenError("provider has not verified this email")
    return FederatedIdentity(
        subject_id=str(subject),
        email=email,
        display_name=claims.get("name"),
    )
