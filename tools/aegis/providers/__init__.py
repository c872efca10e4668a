"""Third-party identity providers used by federated login."""

from .base import (
    FederatedIdentity,
    IdentityVerifier,
    ProviderTokenError,
    ProviderUnavailableError,
)

__all__ = [
    "FederatedIdentity",
    "IdentityVerifier",
    "ProviderTokenError",
    "ProviderUnavailableError",
]
