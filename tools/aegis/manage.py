#!/usr/bin/env python3
"""CLI management tool for Aegis accounts.

Provides commands to:
- Add accounts with bcrypt-hashed passwords
- List all accounts with their verification status
- Check an access token offline
- Purge outstanding one-time passcodes for an account
"""

import argparse
import getpass
import os
import sys

from .auth.errors import DuplicateIdentity
from .auth.otp import OtpStore
from .auth.passwords import hash_password
from .auth.store import DEFAULT_DB_PATH, AccountDraft, AccountStore, Role
from .auth.tokens import verify_access_token


def add_account(args, store: AccountStore) -> int:
    """Add a new account with optional password prompt."""
    role = Role.parse(args.role)
    if role is None:
        print("Error: Role must be one of admin, seller, buyer", file=sys.stderr)
        return 1

    if args.password:
        password = args.password
    else:
        password = getpass.getpass(f"Password for {args.email}: ")
        if not password:
            print("Error: Password cannot be empty", file=sys.stderr)
            return 1

    try:
        account = store.create(
            AccountDraft(
                email=args.email,
                role=role,
                password_hash=hash_password(password),
                mobile=args.mobile,
                fullname=args.fullname,
            )
        )
    except DuplicateIdentity:
        print(f"Error: '{args.email}' or its mobile is already registered", file=sys.stderr)
        return 1

    print(f"✓ Account created: {account.id} ({account.email})")
    return 0


def list_accounts(args, store: AccountStore) -> int:
    """List all accounts with their verification status."""
    accounts = store.list_accounts()

    if not accounts:
        print("No accounts found")
        return 0

    print(f"{'ID':<18} {'Email':<32} {'Role':<8} {'Verified':<9} {'Federated':<9}")
    print("-" * 80)

    for account in accounts:
        print(
            f"{account.id:<18} {account.email:<32} {account.role.value:<8} "
            f"{'yes' if account.is_verified else 'no':<9} "
            f"{'yes' if account.is_federated_user else 'no':<9}"
        )

    return 0


def check_token(args, store: AccountStore) -> int:
    """Verify an access token with the configured secret."""
    secret = args.secret or os.environ.get("AEGIS_JWT_SECRET", "")
    if not secret:
        print("Error: --secret or AEGIS_JWT_SECRET required", file=sys.stderr)
        return 1

    claims = verify_access_token(args.token, secret)
    if claims is None:
        print("Error: Token is invalid or expired", file=sys.stderr)
        return 1

    account = store.get(claims["account_id"])
    owner = account.email if account else "unknown account"
    print(f"✓ Valid token for {claims['account_id']} ({owner}), role {claims['role']}")
    return 0


def purge_otps(args, store: AccountStore) -> int:
    """Delete outstanding one-time passcodes for an account."""
    account = store.find_by_email(args.email)
    if account is None:
        print(f"Error: Account '{args.email}' not found", file=sys.stderr)
        return 1

    otps = OtpStore(args.db_path)
    try:
        removed = otps.delete_all_for(account.id)
    finally:
        otps.close()

    print(f"✓ Removed {removed} code(s) for {account.email}")
    return 0


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Manage Aegis accounts")
    parser.add_argument(
        "--db-path",
        default=DEFAULT_DB_PATH,
        help=f"Path to SQLite database (default: {DEFAULT_DB_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    add_parser = subparsers.add_parser("add-account", help="Add a new account")
    add_parser.add_argument("--email", required=True, help="Email address")
    add_parser.add_argument("--role", required=True, help="admin, seller or buyer")
    add_parser.add_argument("--mobile", help="Mobile number")
    add_parser.add_argument("--fullname", help="Display name")
    add_parser.add_argument("--password", help="Password (prompted if omitted)")

    subparsers.add_parser("list-accounts", help="List all accounts")

    token_parser = subparsers.add_parser("check-token", help="Verify an access token")
    token_parser.add_argument("token", help="Encoded access token")
    token_parser.add_argument("--secret", help="Signing secret (default: $AEGIS_JWT_SECRET)")

    purge_parser = subparsers.add_parser("purge-otps", help="Delete pending OTP codes")
    purge_parser.add_argument("--email", required=True, help="Email address")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    store = AccountStore(db_path=args.db_path)

    try:
        if args.command == "add-account":
            return add_account(args, store)
        elif args.command == "list-accounts":
            return list_accounts(args, store)
        elif args.command == "check-token":
            return check_token(args, store)
        elif args.command == "purge-otps":
            return purge_otps(args, store)
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
