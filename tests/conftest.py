"""Shared fixtures: temp SQLite stores, a recording mailer, a fake provider and a settable clock."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from aegis.auth import AccountStore, AuthService, OtpStore, RefreshTokenStore, TokenIssuer
from aegis.delivery import DeliveryError, Mailer
from aegis.providers import FederatedIdentity, IdentityVerifier, ProviderTokenError

TEST_SECRET = "test-secret-0123456789abcdef0123456789abcdef"


class RecordingMailer(Mailer):
    """Keeps sent messages in memory; can be told to fail."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to_address, subject, body):
        if self.fail:
            raise DeliveryError("relay unavailable")
        self.sent.append((to_address, subject, body))

    @property
    def last_code(self):
        return self.sent[-1][2].rsplit(" ", 1)[-1]


class StaticVerifier(IdentityVerifier):
    """Accepts only the tokens it was built with."""

    def __init__(self, identities):
        self.identities = identities

    def verify(self, token):
        if token not in self.identities:
            raise ProviderTokenError("unknown token")
        return self.identities[token]


class Clock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def event_log(tmp_path, monkeypatch):
    path = tmp_path / "auth-events.jsonl"
    monkeypatch.setenv("AEGIS_EVENT_LOG", str(path))
    return path


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "aegis.db")


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def verifier():
    return StaticVerifier(
        {
            "google-new": FederatedIdentity("g-100", "new@x.com", "New User"),
            "google-existing": FederatedIdentity("g-200", "a@x.com", "Existing User"),
        }
    )


@pytest.fixture
def make_service(db_path, mailer, verifier, clock):
    created = []

    def factory(**overrides):
        options = {
            "accounts": AccountStore(db_path),
            "otps": OtpStore(db_path),
            "tokens": TokenIssuer(RefreshTokenStore(db_path), secret=TEST_SECRET),
            "mailer": mailer,
            "verifier": verifier,
            "clock": clock,
        }
        options.update(overrides)
        service = AuthService(**options)
        created.append(service)
        return service

    yield factory

    for service in created:
        service.accounts.close()
        service.otps.close()
        service.tokens.refresh_tokens.close()


@pytest.fixture
def service(make_service):
    return make_service()
