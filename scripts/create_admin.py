#!/usr/bin/env python3
"""Create or promote an ADMIN user.

Force logout and permission administration require an ADMIN, and
registration only creates DEVELOPER accounts, so a fresh database needs one
admin created from the command line.

Usage:
    python scripts/create_admin.py --email admin@example.com
    python scripts/create_admin.py --email dev@example.com --promote

The password is read interactively unless ADMIN_PASSWORD is set.
Requires DATABASE_URL, ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET.
"""

import argparse
import asyncio
import getpass
import os
import sys

MIN_PASSWORD_LENGTH = 8


async def create_admin(email: str, password: str | None, promote: bool) -> str:
    """Create a new admin, or promote an existing user when promote is set."""
    # Import here so --help works without configured secrets
    from taskboard.core import session_scope
    from taskboard.models import User, UserRole
    from taskboard.services.auth import hash_password
    from taskboard.services.users import UserRepository

    email = email.strip().lower()
    async with session_scope() as db:
        users = UserRepository(db)
        existing = await users.find_by_email(email)

        if existing is not None:
            if existing.role == UserRole.ADMIN.value:
                return f"User {email} is already an admin (id: {existing.id})"
            if not promote:
                raise SystemExit(
                    f"ERROR: user {email} exists with role {existing.role}; pass --promote"
                )
            await users.update_role(existing.id, UserRole.ADMIN)
            return f"Promoted {email} to admin (id: {existing.id})"

        if promote:
            raise SystemExit(f"ERROR: user {email} not found; run without --promote to create it")

        if password is None or len(password) < MIN_PASSWORD_LENGTH:
            raise SystemExit(f"ERROR: password must be at least {MIN_PASSWORD_LENGTH} characters")

        user = User(
            email=email,
            password_hash=hash_password(password),
            role=UserRole.ADMIN.value,
            is_active=True,
        )
        db.add(user)
        await db.flush()
        return f"Created admin {email} (id: {user.id})"


def main() -> int:
    parser = argparse.ArgumentParser(description="Create or promote a taskboard admin user")
    parser.add_argument("--email", required=True, help="Email of the admin account")
    parser.add_argument(
        "--promote",
        action="store_true",
        help="Promote the user to ADMIN if the account already exists",
    )
    args = parser.parse_args()

    password = os.environ.get("ADMIN_PASSWORD")
    if password is None and not args.promote:
        password = getpass.getpass("Password: ")
        if password != getpass.getpass("Repeat password: "):
            print("ERROR: passwords do not match")
            return 1

    print(asyncio.run(create_admin(args.email, password, args.promote)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
