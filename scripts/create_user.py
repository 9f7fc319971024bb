"""
Peroxide - Account Bootstrap Script

Creates an account of any rank directly in the credential store.
Used to create the first Admin, who can then create others over HTTP.

Usage:
    python -m scripts.create_user --username admin --name "Site Admin" \
        --email admin@example.com --rank Admin
"""

import argparse
import getpass
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlmodel import Session

from peroxide.config import settings
from peroxide.auth.database import get_engine, init_db
from peroxide.auth.errors import ProvisionError
from peroxide.auth.models import Rank
from peroxide.auth.provisioning import create_credential


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a Peroxide account")
    parser.add_argument("--username", required=True)
    parser.add_argument("--name", required=True, help="Display name")
    parser.add_argument("--email", required=True)
    parser.add_argument(
        "--rank",
        choices=[r.value for r in Rank],
        default=Rank.ADMIN.value,
    )
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    password = getpass.getpass("Password: ")
    if not password or password != getpass.getpass("Repeat password: "):
        print("Passwords are empty or do not match.", file=sys.stderr)
        return 1

    engine = get_engine(settings, database_url=args.database_url)
    init_db(engine)

    with Session(engine) as session:
        try:
            user = create_credential(
                session,
                name=args.name,
                username=args.username,
                password=password,
                email=args.email.lower(),
                rank=Rank(args.rank),
            )
        except ProvisionError as e:
            print(f"Could not create account: {e.reason.value}", file=sys.stderr)
            return 1

    print(f"Created {user.rank} account {user.username!r}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
