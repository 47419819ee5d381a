import argparse
import sys
from dataclasses import replace
from pathlib import Path

import anyio

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from users_api.config import load_settings, resolve_database_path
from users_api.errors import APIError
from users_api.handlers import create_user
from users_api.repository import UserRepository
from users_api.store import build_record_store


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a user in the configured record store")
    parser.add_argument("name", help="Display name for the user")
    parser.add_argument("email", help="Unique email address")
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Use the local SQLite database at this path instead of the configured store",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    settings = load_settings()
    if args.db_path:
        settings = replace(
            settings,
            store_backend="sqlite",
            database_path=resolve_database_path(args.db_path),
        )

    try:
        repository = UserRepository(build_record_store(settings))
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        user = anyio.run(create_user, repository, {"name": args.name, "email": args.email})
    except APIError as exc:  # validation failures, duplicates, store errors
        details = exc.details if isinstance(exc.details, list) else [exc.details] if exc.details else []
        print(f"Error: {exc.message}", file=sys.stderr)
        for detail in details:
            print(f"  - {detail}", file=sys.stderr)
        return 1

    print(f"Created user #{user.id}: {user.name} <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
