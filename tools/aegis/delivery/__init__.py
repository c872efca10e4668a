"""Outbound delivery channels for one-time passcodes."""

from .base import DeliveryError, Mailer
from .console import ConsoleMailer
from .smtp import SmtpMailer

__all__ = ["DeliveryError", "Mailer", "ConsoleMailer", "SmtpMailer"]
