"""Base interface for third-party identity-provider token verification."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


class ProviderTokenError(Exception):
    """The provider rejected the token (bad signature, audience, expiry, claims)."""


class ProviderUnavailableError(Exception):
    """The provider could not be reached to verify the token."""


@dataclass(frozen=True)
class FederatedIdentity:
    """Identity asserted by a verified provider token.

    Attributes:
        subject_id: Provider's stable subject identifier (``sub``).
        email: Verified email address.
        display_name: Human-readable name, if the provider sent one.
    """

    subject_id: str
    email: str
    display_name: Optional[str] = None


class IdentityVerifier(ABC):
    """Verifies provider tokens. Treated as a trusted black box by the service."""

    @abstractmethod
    def verify(self, token: str) -> FederatedIdentity:
        """Verify ``token`` and return the identity it asserts.

        Raises:
            ProviderTokenError: the token is not valid.
            ProviderUnavailableError: verification could not be performed.
        """
        pass
