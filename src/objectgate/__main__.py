"""Command line entry point: ``python -m objectgate serve`` or ``python -m objectgate migrate``."""

import argparse
from pathlib import Path

import uvicorn
from alembic import command
from alembic.config import Config

from objectgate.config import ServerSettings
from objectgate.db import get_database_url
from objectgate.logging_config import configure_logging

ALEMBIC_DIR = Path(__file__).resolve().parent / "alembic"


def make_alembic_config(database_url: str) -> Config:
    config = Config()
    config.set_main_option("script_location", str(ALEMBIC_DIR))
    config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return config


def serve(settings: ServerSettings) -> None:
    uvicorn.run("objectgate.main:app", host=settings.host, port=settings.port, log_config=None)


def migrate(revision: str) -> None:
    command.upgrade(make_alembic_config(get_database_url()), revision)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="objectgate")
    subcommands = parser.add_subparsers(dest="command", required=True)
    subcommands.add_parser("serve", help="run the HTTP gateway")
    migrate_parser = subcommands.add_parser("migrate", help="apply database migrations")
    migrate_parser.add_argument("revision", nargs="?", default="head")
    args = parser.parse_args(argv)

    settings = ServerSettings()
    configure_logging(level=settings.log_level)
    if args.command == "serve":
        serve(settings)
    else:
        migrate(args.revision)


if __name__ == "__main__":
    main()
