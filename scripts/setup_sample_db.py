"""Launch a sample PostgreSQL Docker container and seed it through DBHandle."""

from __future__ import annotations

import argparse
import subprocess
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pghandle import DBHandle, DatabaseConnectionError, HandleConfig
from pghandle.config import CONFIG_FILE, ConnectionProfileConfig, load_config, save_config

PROFILE_NAME = "Docker Sample"
PASSWORD_ENV = "PGHANDLE_SAMPLE_PASSWORD"
DOCKER_IMAGE = "postgres:16-alpine"

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS accounts (
        id SERIAL PRIMARY KEY,
        email TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        id SERIAL PRIMARY KEY,
        account_id INTEGER REFERENCES accounts(id),
        total NUMERIC(10,2) NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending'
    )
    """,
)

SAMPLE_ACCOUNTS = ("anna@example.com", "ben@example.com", "cara@example.com")


def start_container(args: argparse.Namespace) -> None:
    """Start the named container, creating it on first use."""

    if subprocess.run(["docker", "start", args.container], capture_output=True).returncode == 0:
        print(f"Reusing container '{args.container}'.")
        return
    subprocess.run(
        [
            "docker", "run", "-d", "--name", args.container,
            "-e", f"POSTGRES_PASSWORD={args.password}",
            "-e", f"POSTGRES_DB={args.database}",
            "-e", f"POSTGRES_USER={args.user}",
            "-p", f"{args.port}:5432",
            DOCKER_IMAGE,
        ],
        check=True,
    )


def open_when_ready(config: HandleConfig, retries: int = 20, delay: float = 1.0) -> DBHandle:
    """Connect, retrying while the server inside the container boots."""

    for _attempt in range(retries - 1):
        try:
            return DBHandle.open(config)
        except DatabaseConnectionError:
            time.sleep(delay)
    return DBHandle.open(config)


def seed_data(dbh: DBHandle) -> None:
    """Create the sample tables and insert a few rows through the helpers."""

    for statement in SCHEMA:
        if not dbh.execute(statement):
            raise SystemExit("Failed to create sample schema.")
    for email in SAMPLE_ACCOUNTS:
        if dbh.count_rows("accounts", {"email": email}):
            continue
        account_id = dbh.insert_row("accounts", {"email": email})
        dbh.insert_row("orders", {"account_id": account_id, "total": 42.5, "status": "complete"})
    print(f"Seeded tables: {', '.join(dbh.list_tables())}")


def register_profile(args: argparse.Namespace) -> None:
    config = load_config()
    if any(profile.name == PROFILE_NAME for profile in config.profiles):
        print(f"Profile '{PROFILE_NAME}' already present in config; leaving as-is.")
        return
    profile = ConnectionProfileConfig(
        name=PROFILE_NAME,
        port=args.port,
        database=args.database,
        user=args.user,
        password_env=PASSWORD_ENV,
    )
    save_config(config.model_copy(update={"profiles": [*config.profiles, profile]}))
    print(f"Added '{PROFILE_NAME}' profile to {CONFIG_FILE}.")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--container", default="pghandle-sample-db", help="Docker container name")
    parser.add_argument("--port", type=int, default=5543, help="Host port to expose Postgres on")
    parser.add_argument("--password", default="pghandle", help="Postgres password")
    parser.add_argument("--database", default="pghandle_demo", help="Database name to create")
    parser.add_argument("--user", default="pghandle", help="Database user")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    try:
        start_container(args)
    except FileNotFoundError:
        print("Docker is not installed or not on PATH.")
        return 1
    config = HandleConfig(
        port=args.port,
        user=args.user,
        password=args.password,
        database=args.database,
    )
    try:
        with open_when_ready(config) as dbh:
            seed_data(dbh)
    except DatabaseConnectionError as exc:
        print(f"Could not connect to the sample database: {exc}")
        return 1
    register_profile(args)
    print(
        f"Sample database is ready. Export {PASSWORD_ENV}={args.password} and run "
        f"`pghandle --profile '{PROFILE_NAME}'`."
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
