"""Command-line interface for the PeerLedger service."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from getpass import getpass
from pathlib import Path
from typing import Sequence


def _running_in_virtualenv() -> bool:
    """Return ``True`` when the current interpreter is executing inside a venv."""

    base_prefix = getattr(sys, "base_prefix", sys.prefix)
    return sys.prefix != base_prefix


def _bootstrap_virtualenv() -> None:
    """Re-exec the script using the project virtualenv interpreter when available."""

    if _running_in_virtualenv():
        return

    root = Path(__file__).resolve().parent
    venv_dir = root / ".venv"
    if not venv_dir.is_dir():
        return

    candidates = (
        venv_dir / "bin" / "python",
        venv_dir / "bin" / "python3",
        venv_dir / "Scripts" / "python.exe",
        venv_dir / "Scripts" / "python",
    )

    script = str(Path(__file__).resolve())
    for candidate in candidates:
        if candidate.exists():
            os.execv(str(candidate), [str(candidate), script, *sys.argv[1:]])


if __name__ == "__main__":
    _bootstrap_virtualenv()

try:
    import httpx
except ImportError as exc:  # pragma: no cover - exercised in environments missing deps
    raise SystemExit(
        "The 'httpx' package is required. Run `pip install -e .` from the project root "
        "to install dependencies."
    ) from exc

from peerledger.config import apply_seed_data, env_flag, load_seed_data, resolve_seed_path
from peerledger.database import Database, open_database

logger = logging.getLogger("peerledger.main")

_DEFAULT_SERVICE_URL = "http://127.0.0.1:8000"


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="PeerLedger service utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the application database")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API service")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the HTTP API (default: 8000)",
    )

    seed_parser = subparsers.add_parser("seed", help="Load sample users, teams and skills")
    seed_parser.add_argument(
        "--file",
        dest="seed_file",
        default=None,
        help="YAML seed file (default: PEERLEDGER_SEED_PATH or config/seed.yaml)",
    )

    admin_parser = subparsers.add_parser(
        "admin", help="Launch the interactive administration console"
    )
    admin_parser.add_argument(
        "--service-url",
        default=None,
        help="Base URL of a running service (default: PEERLEDGER_SERVICE_URL or http://127.0.0.1:8000)",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "admin", "init-db", "seed"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _initialise_database() -> Database:
    try:
        database = open_database()
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    database.initialize()
    if database.path is None:
        logger.info("Using in-memory storage; data is lost when the process exits")
    else:
        logger.info("Database initialised at %s", database.path)
    return database


def _seed(database: Database, seed_file: str | None) -> None:
    path = resolve_seed_path(seed_file or os.getenv("PEERLEDGER_SEED_PATH"))
    try:
        seed = load_seed_data(path)
    except FileNotFoundError as exc:
        raise SystemExit(f"Seed file not found: {path}") from exc
    except ValueError as exc:
        raise SystemExit(f"Invalid seed file {path}: {exc}") from exc

    result = apply_seed_data(database, seed)
    print(
        f"Seed complete: {result.users_created} user(s), {result.teams_created} team(s), "
        f"{result.members_added} membership(s), {result.skills_created} skill(s) created."
    )


def _serve(*, database: Database, host: str, port: int) -> None:
    from peerledger.service import create_app
    import uvicorn

    if env_flag(os.getenv("PEERLEDGER_SEED")):
        _seed(database, None)

    logger.info("Starting PeerLedger API on http://%s:%s", host, port)

    app = create_app(database=database)
    uvicorn.run(app, host=host, port=port, log_level="info")


def _run_admin_cli(database: Database, *, default_service_url: str | None = None) -> None:
    """Provide an interactive console for administrators."""

    service_url = default_service_url or os.getenv("PEERLEDGER_SERVICE_URL") or _DEFAULT_SERVICE_URL

    print("PeerLedger Administration Console")
    print("Press Ctrl+C at any time to exit.\n")

    try:
        while True:
            print("Select an option:")
            print("  1) List all users")
            print("  2) Add a new user")
            print("  3) Show teacher suggestions for a user")
            print("  4) Exit")

            choice = input("Enter choice [1-4]: ").strip()

            if choice == "1":
                _list_users(database)
            elif choice == "2":
                _add_user(database)
            elif choice == "3":
                _show_suggestions(service_url)
            elif choice == "4":
                print("Goodbye!")
                return
            else:
                print("Invalid selection. Please choose a number from the menu.\n")

            print()
    except KeyboardInterrupt:
        print("\nExiting administration console.")


def _list_users(database: Database) -> None:
    users = database.list_users()
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':>4}  {'Username':<16}  {'Name':<24}  {'Email':<32}  Created")
    print("-" * 96)
    for user in users:
        created = user.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")
        print(f"{user.id:>4}  {user.username:<16}  {user.display_name:<24}  {user.email:<32}  {created}")


def _add_user(database: Database) -> None:
    print("\nCreate a new user (leave the username blank to cancel).")
    username = input("Username: ").strip()
    if not username:
        print("User creation cancelled.")
        return

    email = input("Email address: ").strip()
    first_name = input("First name: ").strip()
    last_name = input("Last name: ").strip()
    role = input("Role (optional): ").strip() or None

    password = _prompt_for_password()
    if password is None:
        print("Aborted creating user.")
        return

    try:
        user = database.create_user(
            {
                "username": username,
                "email": email,
                "password": password,
                "first_name": first_name,
                "last_name": last_name,
                "role": role,
            }
        )
    except ValueError as exc:  # duplicates, validation
        print(f"Failed to create user: {exc}")
        return

    print(f"Created user #{user.id}: {user.display_name} <{user.email}>")


def _prompt_for_password() -> str | None:
    for _ in range(3):
        password = getpass("Password: ")
        if not password:
            print("Password must not be empty. Please try again.")
            continue
        confirmation = getpass("Confirm password: ")
        if password != confirmation:
            print("Passwords do not match. Please try again.")
            continue
        return password
    return None


def _show_suggestions(base_url: str) -> None:
    raw_id = input("User id: ").strip()
    try:
        user_id = int(raw_id)
    except ValueError:
        print("User id must be a number.")
        return

    endpoint = base_url.rstrip("/") + f"/api/matches/suggestions/{user_id}"

    try:
        response = httpx.get(endpoint, timeout=10.0)
    except httpx.HTTPError as exc:
        print(f"Failed to contact PeerLedger service: {exc}")
        return

    if response.status_code == 404:
        print(f"User #{user_id} does not exist.")
        return
    if response.status_code != 200:
        print(f"Service responded with {response.status_code}: {response.text.strip()}")
        return

    try:
        suggestions = response.json()
    except ValueError:
        print("Service returned an unexpected response format.")
        return

    if not suggestions:
        print(f"No teachers are currently suggested for user #{user_id}.")
        return

    print(f"Found {len(suggestions)} suggestion(s) for user #{user_id}:")
    for suggestion in suggestions:
        teacher = suggestion.get("teacher", {})
        skill = suggestion.get("skill", {})
        learning = suggestion.get("learningSkill", {})
        name = " ".join(part for part in (teacher.get("firstName"), teacher.get("lastName")) if part)
        print(
            f"- {learning.get('name', '?')}: {name or teacher.get('username', 'unknown')} "
            f"teaches {skill.get('name', '?')} ({skill.get('level', '?')})"
        )


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    database = _initialise_database()

    if args.command == "serve":
        _serve(database=database, host=args.host, port=args.port)
    elif args.command == "seed":
        _seed(database, args.seed_file)
    elif args.command == "admin":
        _run_admin_cli(database, default_service_url=args.service_url)
    elif args.command == "init-db":
        print("Database initialisation complete.")


if __name__ == "__main__":
    main()
