"""
Create a library staff account.

Usage:
    python -m occ_library.create_admin --firstname Ana --lastname Cruz --email ana@occ.edu.ph
"""
import argparse
import asyncio
import getpass
import logging
import sys

from .database import AsyncSessionLocal, init_db, close_db
from .services.auth_service import auth_service
from .services.errors import ConflictError


async def create_admin(firstname: str, lastname: str, email: str, password: str) -> int:
    """Create the account and return its id."""
    await init_db()
    try:
        async with AsyncSessionLocal() as db:
            user = await auth_service.create_user(db, firstname, lastname, email, password)
            return user.id
    finally:
        await close_db()


def main():
    parser = argparse.ArgumentParser(description="Create a library staff account")
    parser.add_argument("--firstname", required=True)
    parser.add_argument("--lastname", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", help="Prompted for when omitted")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(levelname)s - %(message)s')

    password = args.password or getpass.getpass("Password: ")
    if len(password) < 6:
        print("Password must be at least 6 characters", file=sys.stderr)
        sys.exit(1)

    try:
        user_id = asyncio.run(create_admin(args.firstname, args.lastname, args.email, password))
    except ConflictError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)

    print(f"User created successfully (id={user_id}, email={args.email})")


if __name__ == "__main__":
    main()
