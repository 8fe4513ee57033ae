#!/usr/bin/env python3
"""
Create a portal admin, or reset an existing admin's password.

Passwords are stored as PBKDF2-HMAC-SHA256 hashes ("salthex$hashhex");
existing passwords are never read or revealed.  Resetting a password
also revokes the admin's open sessions.

The database is the one named by ``DATABASE_URL`` (see
``metrologi_portal.app.core.config``); migrations are applied first.

Usage:
    python create_admin.py --email admin@example.com --name "Admin Metrologi"
    python create_admin.py --email admin@example.com --reset

If --password is omitted, you will be prompted to enter it securely.
"""

import argparse
import getpass
import sys

from metrologi_portal.app.core.db import get_database_path, init_db
from metrologi_portal.app.services.identity import create_admin, set_admin_password


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Create or reset a Metrologi portal admin (SQLite).")
    ap.add_argument("--email", required=True, help="Admin email")
    ap.add_argument("--name", help="Full name shown in the portal")
    ap.add_argument("--password", help="Password. If omitted, you'll be prompted securely.")
    ap.add_argument("--reset", action="store_true", help="Reset the password of an existing admin")
    args = ap.parse_args(argv)

    init_db()
    password = args.password or getpass.getpass("Enter password: ")

    try:
        if args.reset:
            set_admin_password(args.email, password)
            print(f"[+] Password updated for admin: {args.email}")
        else:
            admin_id = create_admin(args.email, password, args.name)
            print(f"[+] Admin {args.email} created with id {admin_id} in {get_database_path()}")
    except ValueError as e:
        print(f"[!] {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
