"""SMTP delivery channel."""

from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Any, Optional

from .base import DeliveryError, Mailer

logger = logging.getLogger(__name__)


class SmtpMailer(Mailer):
    """Send mail through an SMTP relay.

    Each ``send`` opens a fresh connection bounded by ``timeout`` seconds,
    upgrades it with STARTTLS when configured and logs in when credentials
    are present.
    """

    def __init__(
        self,
        host: str,
        from_address: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        starttls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        if not host:
            raise ValueError("SmtpMailer requires a host")
        if not from_address:
            raise ValueError("SmtpMailer requires a from_address")
        self.host = host
        self.port = port
        self.from_address = from_address
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "SmtpMailer":
        return cls(
            host=config.get("host", ""),
            from_address=config.get("from_address", ""),
            port=int(config.get("port", 587)),
            username=config.get("username") or None,
            password=config.get("password") or None,
            starttls=config.get("starttls", True),
            timeout=float(config.get("timeout", 10.0)),
        )

    def _build_message(self, to_address: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.from_address
        msg["To"] = to_address
        msg["Subject"] = subject
        msg.set_content(body)
        return msg

    def send(self, to_address: str, subject: str, body: str) -> None:
        msg = self._build_message(to_address, subject, body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.starttls:
                    server.starttls(context=ssl.create_default_context())
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP delivery to {to_address} failed: {e}")
            raise DeliveryError(str(e)) from e

        logger.info(f"Mail sent to {to_address}: {subject}")
