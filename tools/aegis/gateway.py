#!/usr/bin/env python3
"""Aegis gateway: serves the auth HTTP API.

Usage:
    python3 -m aegis.gateway --config .aegis/config.json
    python3 -m aegis.gateway --config .aegis/config.json --log-level DEBUG
    python3 -m aegis.gateway --test-mode --config tools/config.json.example

Architecture:
    HTTP request → AuthApi → AuthService → stores / Mailer / IdentityVerifier
"""

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any, Optional

from . import events
from .auth.otp import OtpStore
from .auth.service import AuthService
from .auth.store import DEFAULT_DB_PATH, AccountStore
from .auth.tokens import RefreshTokenStore, TokenIssuer
from .delivery import ConsoleMailer, Mailer, SmtpMailer
from .providers import IdentityVerifier
from .web import AuthApi

logger = logging.getLogger("aegis.gateway")

SECRET_ENV = "AEGIS_JWT_SECRET"


class ConfigError(Exception):
    """Configuration is missing or inconsistent."""


def load_config(config_path: str) -> dict[str, Any]:
    """Load configuration from JSON file."""
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(
            f"Config not found at {path}. "
            "Copy tools/config.json.example to .aegis/config.json"
        )

    with open(path) as f:
        return json.load(f)


def build_mailer(config: dict[str, Any]) -> Mailer:
    mail_config = config.get("mail", {})
    backend = mail_config.get("backend", "console")
    if backend == "smtp":
        return SmtpMailer.from_config(mail_config)
    if backend == "console":
        logger.warning("mail.backend is 'console': OTP codes are logged, not sent")
        return ConsoleMailer()
    raise ConfigError(f"Unknown mail backend: {backend}")


def build_verifier(config: dict[str, Any]) -> Optional[IdentityVerifier]:
    google_config = config.get("google", {})
    if not google_config.get("client_id"):
        logger.info("google.client_id not configured; federated login disabled")
        return None

    from .providers.google import GoogleVerifier

    return GoogleVerifier.from_config(google_config)


def build_service(config: dict[str, Any]) -> AuthService:
    """Instantiate stores, issuer and collaborators from configuration."""
    auth_config = config.get("auth", {})
    jwt_secret = os.environ.get(SECRET_ENV) or auth_config.get("jwt_secret", "")
    if not jwt_secret:
        raise ConfigError(f"auth.jwt_secret (or {SECRET_ENV}) must be set")

    db_path = auth_config.get("db_path", DEFAULT_DB_PATH)
    issuer = TokenIssuer(
        RefreshTokenStore(db_path),
        secret=jwt_secret,
        access_token_hours=auth_config.get("access_token_hours", 24),
        refresh_token_days=auth_config.get("refresh_token_days", 7),
    )
    service = AuthService(
        accounts=AccountStore(db_path),
        otps=OtpStore(db_path),
        tokens=issuer,
        mailer=build_mailer(config),
        verifier=build_verifier(config),
        otp_ttl_minutes=auth_config.get("otp_ttl_minutes", 3),
        require_reset_otp=auth_config.get("require_reset_otp", False),
    )
    logger.info(f"Stores initialized: {db_path}")
    return service


async def run_gateway(config: dict[str, Any], test_mode: bool = False) -> None:
    """Main gateway coroutine.

    Args:
        config: Configuration dictionary
        test_mode: If True, validate config and exit without starting
    """
    service = build_service(config)
    api = AuthApi(config.get("web", {}), service)

    if test_mode:
        print("Aegis gateway (test mode)")
        print(f"  Listen: {api.host}:{api.port}")
        print(f"  Mailer: {type(service.mailer).__name__}")
        print(f"  Federated login: {'enabled' if service.verifier else 'disabled'}")
        print("Config valid. Exiting test mode.")
        return

    shutdown_event = asyncio.Event()

    def signal_handler():
        logger.info("Shutdown signal received")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await api.start()
        events.log_event("daemon_started", component="aegis-gateway", port=api.port)
        logger.info("Aegis gateway online")
        await shutdown_event.wait()
    finally:
        logger.info("Shutting down...")
        events.log_event("daemon_stopped", component="aegis-gateway")
        await api.stop()
        logger.info("Aegis gateway offline")


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="aegis-gateway",
        description="Aegis user identity service",
        usage="%(prog)s [options]",
    )
    parser.add_argument(
        "--config",
        "-c",
        default=".aegis/config.json",
        help="Path to config.json (default: .aegis/config.json)",
    )
    parser.add_argument(
        "--test-mode",
        "-t",
        action="store_true",
        help="Validate config and exit without starting",
    )
    parser.add_argument(
        "--log-level",
        "-l",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        config = load_config(args.config)
        asyncio.run(run_gateway(config, test_mode=args.test_mode))
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
