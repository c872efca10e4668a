#!/usr/bin/env python3
"""Unit tests for request-body validation."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from aegis import validation


def signup_body(**overrides):
    body = {
        "fullname": "Ann Buyer",
        "email": "a@x.com",
        "password": "Passw0rd!",
        "mobile": "9876543210",
        "role": "buyer",
    }
    body.update(overrides)
    return body


class TestSignup:
    def test_valid(self):
        assert validation.validate_signup(signup_body()) == []

    def test_optional_fields(self):
        body = signup_body()
        del body["fullname"]
        del body["mobile"]
        assert validation.validate_signup(body) == []

    def test_missing_fields(self):
        problems = validation.validate_signup({"email": "a@x.com"})
        assert "password is required" in problems
        assert "role is required" in problems

    def test_bad_email(self):
        assert validation.validate_signup(signup_body(email="not-an-email")) == [
            "Must be a valid email format"
        ]

    def test_bad_mobile(self):
        assert validation.validate_signup(signup_body(mobile="1234567890")) == [
            "Must be a valid mobile format"
        ]

    def test_bad_fullname(self):
        problems = validation.validate_signup(signup_body(fullname="A1"))
        assert problems == [
            "Name must be at least 3 characters long and contain only alphabets and spaces"
        ]

    def test_unknown_role(self):
        assert validation.validate_signup(signup_body(role="wizard")) == [
            "Role must be one of (admin, buyer, seller)"
        ]

    def test_weak_password_lists_every_rule(self):
        problems = validation.validate_signup(signup_body(password="abc"))
        assert "Password must be at least 8 characters long" in problems
        assert "Password must contain at least one uppercase letter (A-Z)" in problems
        assert "Password must contain at least one number (0-9)" in problems
        assert any("special character" in p for p in problems)
        assert not any("lowercase" in p for p in problems)

    def test_not_an_object(self):
        assert validation.validate_signup(["a@x.com"]) == ["Request body must be a JSON object"]
        assert validation.validate_signup(None) == ["Request body must be a JSON object"]


class TestPasswordRules:
    def test_strong(self):
        assert validation.password_problems("Passw0rd!") == []

    def test_special_character_set(self):
        assert validation.password_problems("Passw0rd#") == [
            "Password must contain at least one special character (@$!%*?&)"
        ]

    def test_too_long(self):
        problems = validation.password_problems("Aa1!" * 20)
        assert problems == [
            "Password must be at most 64 characters long",
            "Password must be at most 72 bytes long",
        ]

    def test_byte_limit_counts_multibyte_characters(self):
        password = "Aa1!" + "\u00e9" * 40
        assert len(password) <= validation.PASSWORD_MAX_LENGTH
        assert validation.password_problems(password) == ["Password must be at most 72 bytes long"]


class TestLogin:
    def test_email_or_mobile(self):
        assert validation.validate_login({"email": "a@x.com", "password": "x"}) == []
        assert validation.validate_login({"mobile": "9876543210", "password": "x"}) == []

    def test_identifier_required(self):
        assert validation.validate_login({"password": "x"}) == [
            "Either email or mobile is required"
        ]

    def test_password_required(self):
        assert validation.validate_login({"email": "a@x.com"}) == ["password is required"]

    def test_no_complexity_check(self):
        assert validation.validate_login({"email": "a@x.com", "password": "weak"}) == []


class TestOtpRequests:
    def test_generate(self):
        assert validation.validate_generate_otp({"email": "a@x.com", "otp_type": "forgot"}) == []

    def test_generate_accepts_every_purpose_alias(self):
        for otp_type in ("verification", "password_reset", "password-reset", "forgot"):
            body = {"email": "a@x.com", "otp_type": otp_type}
            assert validation.validate_generate_otp(body) == []

    def test_generate_unknown_type(self):
        assert validation.validate_generate_otp({"email": "a@x.com", "otp_type": "login"}) == [
            "Invalid OTP type"
        ]

    def test_verify(self):
        body = {"email": "a@x.com", "otp_number": "123456", "otp_type": "verification"}
        assert validation.validate_verify_otp(body) == []

    def test_verify_code_shape(self):
        for code in ("12345", "1234567", "12a456"):
            body = {"email": "a@x.com", "otp_number": code, "otp_type": "verification"}
            assert validation.validate_verify_otp(body) == ["OTP must be exactly 6 digits"]

    def test_verify_missing(self):
        problems = validation.validate_verify_otp({"email": "a@x.com"})
        assert problems == ["otp_number is required", "otp_type is required"]


class TestResetPassword:
    def test_valid(self):
        body = {"email": "a@x.com", "newPassword": "N3wPass!word", "confirmPassword": "N3wPass!word"}
        assert validation.validate_reset_password(body) == []

    def test_mismatch(self):
        body = {"email": "a@x.com", "newPassword": "N3wPass!word", "confirmPassword": "other"}
        assert validation.validate_reset_password(body) == [
            "confirmPassword and newPassword do not match"
        ]

    def test_weak_new_password(self):
        body = {"email": "a@x.com", "newPassword": "weakpass!", "confirmPassword": "weakpass!"}
        problems = validation.validate_reset_password(body)
        assert "Password must contain at least one uppercase letter (A-Z)" in problems


class TestFederatedLogin:
    def test_token_only(self):
        assert validation.validate_federated_login({"tokenId": "abc"}) == []

    def test_null_role(self):
        assert validation.validate_federated_login({"tokenId": "abc", "role": None}) == []

    def test_bad_role(self):
        assert validation.validate_federated_login({"tokenId": "abc", "role": "wizard"}) == [
            "Role must be one of (admin, buyer, seller)"
        ]

    def test_missing_token(self):
        assert validation.validate_federated_login({}) == ["tokenId is required"]
