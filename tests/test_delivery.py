#!/usr/bin/env python3
"""Unit tests for OTP delivery channels."""

import smtplib
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from aegis.delivery import ConsoleMailer, DeliveryError, Mailer, SmtpMailer


class TestMailer:
    def test_cannot_instantiate(self):
        with pytest.raises(TypeError, match="abstract"):
            Mailer()


class TestSmtpMailer:
    def test_requires_host_and_sender(self):
        with pytest.raises(ValueError):
            SmtpMailer(host="", from_address="no-reply@x.com")
        with pytest.raises(ValueError):
            SmtpMailer(host="smtp.x.com", from_address="")

    def test_from_config(self):
        mailer = SmtpMailer.from_config(
            {
                "host": "smtp.x.com",
                "port": "2525",
                "username": "",
                "from_address": "no-reply@x.com",
                "starttls": False,
                "timeout": 3,
            }
        )
        assert mailer.port == 2525
        assert mailer.username is None
        assert mailer.starttls is False
        assert mailer.timeout == 3.0

    @patch("aegis.delivery.smtp.smtplib.SMTP")
    def test_send(self, mock_smtp):
        server = mock_smtp.return_value.__enter__.return_value
        mailer = SmtpMailer(
            host="smtp.x.com",
            from_address="no-reply@x.com",
            username="relay",
            password="relay-pass",
            timeout=5.0,
        )

        mailer.send("a@x.com", "Your verification OTP", "Your OTP is: 123456")

        mock_smtp.assert_called_once_with("smtp.x.com", 587, timeout=5.0)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("relay", "relay-pass")
        msg = server.send_message.call_args[0][0]
        assert msg["To"] == "a@x.com"
        assert msg["From"] == "no-reply@x.com"
        assert msg["Subject"] == "Your verification OTP"
        assert "123456" in msg.get_content()

    @patch("aegis.delivery.smtp.smtplib.SMTP")
    def test_send_without_tls_or_login(self, mock_smtp):
        server = mock_smtp.return_value.__enter__.return_value
        mailer = SmtpMailer(host="localhost", from_address="no-reply@x.com", port=25, starttls=False)

        mailer.send("a@x.com", "s", "b")

        server.starttls.assert_not_called()
        server.login.assert_not_called()
        server.send_message.assert_called_once()

    @patch("aegis.delivery.smtp.smtplib.SMTP")
    def test_smtp_error_becomes_delivery_error(self, mock_smtp):
        server = mock_smtp.return_value.__enter__.return_value
        server.send_message.side_effect = smtplib.SMTPRecipientsRefused({})
        mailer = SmtpMailer(host="smtp.x.com", from_address="no-reply@x.com")

        with pytest.raises(DeliveryError):
            mailer.send("a@x.com", "s", "b")

    @patch("aegis.delivery.smtp.smtplib.SMTP")
    def test_connection_error_becomes_delivery_error(self, mock_smtp):
        mock_smtp.side_effect = TimeoutError("timed out")
        mailer = SmtpMailer(host="smtp.x.com", from_address="no-reply@x.com")

        with pytest.raises(DeliveryError, match="timed out"):
            mailer.send("a@x.com", "s", "b")


class TestConsoleMailer:
    def test_records_and_logs(self, caplog):
        mailer = ConsoleMailer()
        with caplog.at_level("WARNING"):
            mailer.send("a@x.com", "Your verification OTP", "Your OTP is: 123456")

        assert mailer.outbox == [("a@x.com", "Your verification OTP", "Your OTP is: 123456")]
        assert "a@x.com" in caplog.text
