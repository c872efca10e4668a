#!/usr/bin/env python3
"""Tests for the account management CLI."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from aegis import manage
from aegis.auth.otp import OtpStore
from aegis.auth.store import AccountStore
from aegis.auth.tokens import create_access_token
from conftest import TEST_SECRET


def add(db_path, email="a@x.com", role="seller", *extra):
    return manage.main(
        ["--db-path", db_path, "add-account", "--email", email, "--role", role,
         "--password", "Passw0rd!", *extra]
    )


def test_add_and_list_accounts(db_path, capsys):
    assert add(db_path, "a@x.com", "seller", "--mobile", "9876543210") == 0
    assert "Account created" in capsys.readouterr().out

    assert manage.main(["--db-path", db_path, "list-accounts"]) == 0
    output = capsys.readouterr().out
    assert "a@x.com" in output
    assert "seller" in output


def test_list_empty(db_path, capsys):
    assert manage.main(["--db-path", db_path, "list-accounts"]) == 0
    assert "No accounts found" in capsys.readouterr().out


def test_add_duplicate(db_path, capsys):
    add(db_path)
    assert add(db_path) == 1
    assert "already registered" in capsys.readouterr().err


def test_add_invalid_role(db_path, capsys):
    assert add(db_path, "a@x.com", "wizard") == 1
    assert "Role must be one of" in capsys.readouterr().err


def test_add_prompts_for_password(db_path, monkeypatch):
    monkeypatch.setattr(manage.getpass, "getpass", lambda prompt: "")
    code = manage.main(["--db-path", db_path, "add-account", "--email", "a@x.com", "--role", "buyer"])
    assert code == 1


def test_check_token(db_path, capsys):
    add(db_path)
    store = AccountStore(db_path)
    account = store.find_by_email("a@x.com")
    store.close()
    token = create_access_token(account.id, "seller", TEST_SECRET)

    assert manage.main(["--db-path", db_path, "check-token", token, "--secret", TEST_SECRET]) == 0
    assert "a@x.com" in capsys.readouterr().out

    assert manage.main(["--db-path", db_path, "check-token", "garbage", "--secret", TEST_SECRET]) == 1


def test_check_token_requires_secret(db_path, monkeypatch, capsys):
    monkeypatch.delenv("AEGIS_JWT_SECRET", raising=False)
    assert manage.main(["--db-path", db_path, "check-token", "x"]) == 1
    assert "AEGIS_JWT_SECRET" in capsys.readouterr().err


def test_purge_otps(service, db_path, capsys):
    service.signup("a@x.com", "Passw0rd!", "buyer")
    service.generate_otp("a@x.com", "verification")

    assert manage.main(["--db-path", db_path, "purge-otps", "--email", "a@x.com"]) == 0
    assert "Removed 1 code(s)" in capsys.readouterr().out

    otps = OtpStore(db_path)
    account_id = service.accounts.find_by_email("a@x.com").id
    assert otps.latest_for(account_id) is None
    otps.close()


def test_purge_unknown_account(db_path):
    assert manage.main(["--db-path", db_path, "purge-otps", "--email", "ghost@x.com"]) == 1


def test_no_command(db_path):
    assert manage.main(["--db-path", db_path]) == 1
