"""Request-body validation for the HTTP API.

Each ``validate_*`` function returns a list of human-readable problems; an
empty list means the body may be handed to the auth service. Shapes are
checked with jsonschema, password complexity with the rules below.
"""

from __future__ import annotations

import re
from typing import Any

import jsonschema

from .auth.otp import PURPOSE_ALIASES
from .auth.passwords import MAX_PASSWORD_BYTES

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
MOBILE_PATTERN = r"^[6-9]\d{9}$"
OTP_PATTERN = r"^\d{6}$"
SPECIAL_CHARACTERS = "@$!%*?&"
ROLES = ("admin", "seller", "buyer")
PURPOSES = tuple(PURPOSE_ALIASES)

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 64

_EMAIL = {"type": "string", "pattern": EMAIL_PATTERN}
_MOBILE = {"type": "string", "pattern": MOBILE_PATTERN}
_PASSWORD = {"type": "string", "minLength": 1}

SIGNUP_SCHEMA = {
    "type": "object",
    "required": ["email", "password", "role"],
    "properties": {
        "fullname": {"type": "string", "minLength": 3, "pattern": r"^[a-zA-Z\s]+$"},
        "email": _EMAIL,
        "password": _PASSWORD,
        "mobile": _MOBILE,
        "role": {"type": "string"},
    },
}

LOGIN_SCHEMA = {
    "type": "object",
    "required": ["password"],
    "properties": {
        "email": _EMAIL,
        "mobile": _MOBILE,
        "password": _PASSWORD,
    },
    "anyOf": [{"required": ["email"]}, {"required": ["mobile"]}],
}

GENERATE_OTP_SCHEMA = {
    "type": "object",
    "required": ["email", "otp_type"],
    "properties": {
        "email": _EMAIL,
        "otp_type": {"type": "string"},
    },
}

VERIFY_OTP_SCHEMA = {
    "type": "object",
    "required": ["email", "otp_number", "otp_type"],
    "properties": {
        "email": _EMAIL,
        "otp_number": {"type": "string", "pattern": OTP_PATTERN},
        "otp_type": {"type": "string"},
    },
}

RESET_PASSWORD_SCHEMA = {
    "type": "object",
    "required": ["email", "newPassword", "confirmPassword"],
    "properties": {
        "email": _EMAIL,
        "newPassword": _PASSWORD,
        "confirmPassword": {"type": "string"},
    },
}

FEDERATED_LOGIN_SCHEMA = {
    "type": "object",
    "required": ["tokenId"],
    "properties": {
        "tokenId": {"type": "string", "minLength": 1},
        "role": {"type": ["string", "null"]},
    },
}

_FIELD_MESSAGES = {
    "fullname": "Name must be at least 3 characters long and contain only alphabets and spaces",
    "email": "Must be a valid email format",
    "mobile": "Must be a valid mobile format",
    "password": "Password is required",
    "newPassword": "New password is required",
    "confirmPassword": "confirmPassword is required",
    "otp_number": "OTP must be exactly 6 digits",
    "otp_type": "otp_type is required",
    "role": "Role must be one of (admin, buyer, seller)",
    "tokenId": "tokenId is required",
}

_REQUIRED_RE = re.compile(r"'([^']+)' is a required property")


def _field_of(error: jsonschema.ValidationError) -> str:
    if error.path:
        return str(error.path[0])
    if error.validator == "required":
        match = _REQUIRED_RE.search(error.message)
        if match:
            return match.group(1)
    return ""


def _schema_problems(data: Any, schema: dict) -> list[str]:
    if not isinstance(data, dict):
        return ["Request body must be a JSON object"]

    validator = jsonschema.Draft7Validator(schema)
    problems: list[str] = []
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.path)):
        field = _field_of(error)
        if error.validator == "anyOf" and not field:
            message = "Either email or mobile is required"
        elif error.validator == "required":
            message = f"{field} is required" if field else error.message
        else:
            message = _FIELD_MESSAGES.get(field, error.message)
        if message not in problems:
            problems.append(message)
    return problems


def password_problems(password: str) -> list[str]:
    """Complexity rules shared by signup and password reset."""
    problems = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
        )
    if len(password) > PASSWORD_MAX_LENGTH:
        problems.append(
            f"Password must be at most {PASSWORD_MAX_LENGTH} characters long"
        )
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        problems.append(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain at least one uppercase letter (A-Z)")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain at least one lowercase letter (a-z)")
    if not re.search(r"[0-9]", password):
        problems.append("Password must contain at least one number (0-9)")
    if not any(c in SPECIAL_CHARACTERS for c in password):
        problems.append(
            f"Password must contain at least one special character ({SPECIAL_CHARACTERS})"
        )
    return problems


def validate_signup(data: Any) -> list[str]:
    problems = _schema_problems(data, SIGNUP_SCHEMA)
    if problems:
        return problems
    if data["role"].strip().lower() not in ROLES:
        problems.append(_FIELD_MESSAGES["role"])
    problems.extend(password_problems(data["password"]))
    return problems


def validate_login(data: Any) -> list[str]:
    # Complexity rules are not applied here, so a malformed password fails
    # exactly like a wrong one.
    return _schema_problems(data, LOGIN_SCHEMA)


def validate_generate_otp(data: Any) -> list[str]:
    problems = _schema_problems(data, GENERATE_OTP_SCHEMA)
    if not problems and data["otp_type"].strip().lower() not in PURPOSES:
        problems.append("Invalid OTP type")
    return problems


def validate_verify_otp(data: Any) -> list[str]:
    problems = _schema_problems(data, VERIFY_OTP_SCHEMA)
    if not problems and data["otp_type"].strip().lower() not in PURPOSES:
        problems.append("Invalid OTP type")
    return problems


def validate_reset_password(data: Any) -> list[str]:
    problems = _schema_problems(data, RESET_PASSWORD_SCHEMA)
    if problems:
        return problems
    problems.extend(password_problems(data["newPassword"]))
    if data["confirmPassword"] != data["newPassword"]:
        problems.append("confirmPassword and newPassword do not match")
    return problems


def validate_federated_login(data: Any) -> list[str]:
    problems = _schema_problems(data, FEDERATED_LOGIN_SCHEMA)
    role = data.get("role") if isinstance(data, dict) else None
    if not problems and role and role.strip().lower() not in ROLES:
        problems.append(_FIELD_MESSAGES["role"])
    return problems
