"""
Create a storefront account (e.g. the first Super Admin) or reset its password. Run from project root:
  python -m app.scripts.create_user USERNAME EMAIL PASSWORD [role]
  python -m app.scripts.create_user USERNAME EMAIL PASSWORD --update-password
Example:
  python -m app.scripts.create_user admin admin@example.com your-secure-password "Super Admin"
"""
import argparse
import sys

from app.core.database import SessionLocal
from app.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    hash_password,
)
from app.services.credential_store import CredentialStore, CredentialStoreError
from app.services.roles import Role, resolve_role, role_to_string


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a storefront account (no dashboard UI needed).")
    parser.add_argument("username", help=f"Username (1-{USERNAME_MAX_LEN} chars, case-sensitive)")
    parser.add_argument("email", help="Email address (stored lower-cased)")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument(
        "role",
        nargs="?",
        default=role_to_string(Role.CUSTOMER),
        help="Super Admin, Admin, Manager or Customer (unknown values become Customer)",
    )
    parser.add_argument(
        "--update-password",
        action="store_true",
        help="Set a new password on an existing account instead of creating one",
    )
    args = parser.parse_args()

    username = args.username.strip()
    if not username or len(username) > USERNAME_MAX_LEN:
        print("Invalid username length.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1
    role = role_to_string(resolve_role(args.role))

    db = SessionLocal()
    try:
        store = CredentialStore(db)
        existing = store.find_user_by_username(username)
        if args.update_password:
            if existing is None:
                print(f"User '{username}' does not exist.", file=sys.stderr)
                return 1
            store.update_password(existing.id, hash_password(args.password))
            print(f"Password updated for '{username}'.")
            return 0
        if existing or store.find_user_by_email(args.email):
            print(f"User '{username}' or email '{args.email}' already exists.", file=sys.stderr)
            return 1
        store.add_user(
            username=username,
            email=args.email,
            password_hash=hash_password(args.password),
            role=role,
        )
        print(f"Created user '{username}' with role '{role}'.")
        return 0
    except CredentialStoreError as e:
        print(f"Failed: {e.message}", file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
