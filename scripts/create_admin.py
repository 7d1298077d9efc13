"""
Create an API user with ROLE_ADMIN.

Usage:
    python scripts/create_admin.py +351912345678
    (the password is prompted for)
"""

import getpass
import sys
from pathlib import Path

# Add app directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import ValidationError

from app.constants.reasons import describe
from app.db.session import SessionLocal
from app.schemas.users import UserCredentials
from app.services.users import register_api_user


def main():
    """CLI entrypoint."""
    import argparse

    parser = argparse.ArgumentParser(description="Create an admin API user")
    parser.add_argument("phone_number", type=str, help="Phone number in international format, e.g. +351912345678")
    args = parser.parse_args()

    password = getpass.getpass("Password: ")
    try:
        credentials = UserCredentials(phone_number=args.phone_number, password=password)
    except ValidationError as e:
        print(f"Invalid credentials: {e}")
        sys.exit(1)

    db = SessionLocal()
    try:
        user, error = register_api_user(db, credentials.phone_number, credentials.password, is_admin=True)
    finally:
        db.close()
    if error:
        print(f"Admin not created: {describe(error)}")
        sys.exit(1)
    print(f"Admin user {user.id} created")


if __name__ == "__main__":
    main()
