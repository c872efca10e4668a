"""Base interface for outbound message delivery.

The auth service only needs ``send``; concrete mailers decide how the
message leaves the process.
"""

from abc import ABC, abstractmethod


class DeliveryError(Exception):
    """Raised when a message could not be handed to the delivery channel."""


class Mailer(ABC):
    """Abstract delivery channel for one-time passcodes.

    Architecture:
        AuthService.generate_otp() → Mailer.send() → user inbox
    """

    @abstractmethod
    def send(self, to_address: str, subject: str, body: str) -> None:
        """Deliver a plain-text message.

        Args:
            to_address: Recipient email address.
            subject: Message subject.
            body: Plain-text body.

        Raises:
            DeliveryError: the message could not be delivered.
        """
        pass
