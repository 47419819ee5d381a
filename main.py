"""Command-line interface for the users API service."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

import anyio
from dotenv import load_dotenv

from users_api.config import Settings, load_settings
from users_api.database import SQLiteRecordStore
from users_api.repository import UserRepository
from users_api.store import build_record_store

logger = logging.getLogger("users_api.main")

KNOWN_COMMANDS = {"serve", "init-db", "list-users"}


def _project_interpreter() -> Path | None:
    """Return the ``.venv`` interpreter next to this script unless a venv is already active."""

    if sys.prefix != getattr(sys, "base_prefix", sys.prefix):
        return None
    venv = Path(__file__).resolve().parent / ".venv"
    for relative in ("bin/python3", "bin/python", "Scripts/python.exe"):
        interpreter = venv / relative
        if interpreter.is_file():
            return interpreter
    return None


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Users API utilities")
    parser.add_argument(
        "--config",
        default=None,
        help="Optional YAML settings file (defaults to USERS_API_CONFIG)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(
        command="serve",
        host=None,
        port=None,
        reload=False,
        ssl_certfile=None,
        ssl_keyfile=None,
    )

    init_parser = subparsers.add_parser("init-db", help="Create the local SQLite users table")
    init_parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to USERS_DB_PATH or data/users.sqlite3)",
    )

    subparsers.add_parser("list-users", help="Print every user in the configured store")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: HOST or 0.0.0.0)")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the HTTP API (default: PORT or 3001)",
    )
    serve_parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server when source files change (development only)",
    )
    serve_parser.add_argument(
        "--ssl-certfile",
        default=None,
        help="Path to the TLS certificate chain in PEM format",
    )
    serve_parser.add_argument(
        "--ssl-keyfile",
        default=None,
        help="Path to the TLS private key in PEM format",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help") or first == "--config":
            return parser.parse_args(args_list)
        if first not in KNOWN_COMMANDS:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _initialise_database(settings: Settings, db_path: str | None) -> SQLiteRecordStore:
    path = Path(db_path).expanduser().resolve(strict=False) if db_path else settings.database_path
    store = SQLiteRecordStore(path)
    store.initialize()
    logger.info("Database initialised at %s", path)
    return store


def _list_users(settings: Settings) -> None:
    repository = UserRepository(build_record_store(settings))
    users = anyio.run(repository.find_all)
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':>4}  {'Name':<24}  {'Email':<32}  Created")
    print("-" * 80)
    for user in users:
        created = user.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")
        print(f"{user.id:>4}  {user.name:<24}  {user.email:<32}  {created}")


def _serve(
    settings: Settings,
    *,
    host: str | None,
    port: int | None,
    reload: bool = False,
    config_path: Path | None = None,
    ssl_certfile: str | None = None,
    ssl_keyfile: str | None = None,
) -> None:
    from users_api.service import create_app
    import uvicorn

    if bool(ssl_certfile) ^ bool(ssl_keyfile):
        raise SystemExit("Both --ssl-certfile and --ssl-keyfile must be provided together.")

    bind_host = host or settings.host
    bind_port = port or settings.port
    protocol = "https" if ssl_certfile and ssl_keyfile else "http"
    logger.info("Starting users API on %s://%s:%s", protocol, bind_host, bind_port)
    logger.info("Health check: %s://%s:%s/health", protocol, bind_host, bind_port)
    logger.info("Environment: %s", settings.environment)

    options = {
        "host": bind_host,
        "port": bind_port,
        "log_level": "info",
        "proxy_headers": settings.trust_proxy,
        "ssl_certfile": ssl_certfile,
        "ssl_keyfile": ssl_keyfile,
    }
    if reload:
        # The reloader imports the app in a fresh process that rebuilds
        # settings from the environment.
        if config_path is not None:
            os.environ["USERS_API_CONFIG"] = str(config_path.expanduser().resolve())
        uvicorn.run("users_api:create_app", factory=True, reload=True, **options)
        return

    uvicorn.run(create_app(settings), **options)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv()

    try:
        settings = load_settings(config_path=Path(args.config) if args.config else None)
    except ValueError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc

    if args.command == "init-db":
        _initialise_database(settings, args.db_path)
        return 0

    try:
        settings.validate_store()
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    if args.command == "list-users":
        _list_users(settings)
        return 0

    _serve(
        settings,
        host=args.host,
        port=args.port,
        reload=args.reload,
        config_path=Path(args.config) if args.config else None,
        ssl_certfile=args.ssl_certfile,
        ssl_keyfile=args.ssl_keyfile,
    )
    return 0


if __name__ == "__main__":
    interpreter = _project_interpreter()
    if interpreter is not None:
        os.execv(interpreter, [str(interpreter), str(Path(__file__).resolve()), *sys.argv[1:]])
    raise SystemExit(main())
