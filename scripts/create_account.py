#!/usr/bin/env python3
"""
Create an INSTRUCTOR or ADMIN account.

Public registration only ever yields STUDENT accounts, so staff accounts are
created from the command line:

    python scripts/create_account.py admin@example.com "Site Admin" --role ADMIN
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.auth import Role
from src.core.logging import setup_logging
from src.domain.services.auth_service import AuthService, UserExistsError
from src.infrastructure.db.session import dispose_engine, get_session_factory


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("email")
    parser.add_argument("name")
    parser.add_argument("--role", type=Role.parse, default=Role.ADMIN)
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    setup_logging()
    args = parse_args(argv)
    password = getpass.getpass("Password: ")
    if len(password) < 8:
        print("Password must be at least 8 characters", file=sys.stderr)
        return 1

    session_factory = get_session_factory()
    try:
        async with session_factory() as session:
            user = await AuthService(session).create_account(
                email=args.email, name=args.name, password=password, role=args.role
            )
    except UserExistsError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    finally:
        await dispose_engine()

    print(f"Created {user.role.value} account {user.email} ({user.user_id})")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
