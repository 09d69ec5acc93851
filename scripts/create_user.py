import argparse
import getpass
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from peerledger.database import Database, resolve_database_path


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a PeerLedger user")
    parser.add_argument("name", help="Full name; the first word becomes the first name")
    parser.add_argument("email", help="Unique email address")
    parser.add_argument(
        "--username",
        default=None,
        help="Login name (defaults to the part of the email before '@')",
    )
    parser.add_argument("--role", default=None, help="Optional role such as agent or manager")
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to PEERLEDGER_DB_PATH or data/peerledger.sqlite3)",
    )
    return parser.parse_args()


def prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if not password:
            print("Password must not be empty.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def main() -> int:
    args = parse_args()
    password = prompt_for_password()

    db_env = args.db_path or os.getenv("PEERLEDGER_DB_PATH")
    db_path = resolve_database_path(db_env)

    database = Database(db_path)
    database.initialize()

    first_name, _, last_name = args.name.strip().partition(" ")
    email = args.email.strip().lower()
    username = args.username or email.split("@", 1)[0]

    try:
        user = database.create_user(
            {
                "username": username,
                "email": email,
                "password": password,
                "first_name": first_name,
                "last_name": last_name.strip(),
                "role": args.role,
            }
        )
    except ValueError as exc:  # duplicates, etc.
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Created user #{user.id}: {user.username} ({user.display_name}) <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
