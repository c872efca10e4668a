"""Development mailer that writes messages to the log instead of sending them."""

import logging

from .base import Mailer

logger = logging.getLogger(__name__)


class ConsoleMailer(Mailer):
    """Log outgoing mail. Never use outside local development."""

    def __init__(self) -> None:
        self.outbox: list[tuple[str, str, str]] = []

    def send(self, to_address: str, subject: str, body: str) -> None:
        self.outbox.append((to_address, subject, body))
        logger.warning(f"Mail not sent (console backend) to {to_address}: {subject}\n{body}")
