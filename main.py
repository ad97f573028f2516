"""
Family Budget Command-Line Entry Point.

Bootstraps the dependency graph via constructor injection for the
configured storage backend and runs one maintenance command.  Every
subsystem is wired here; no module-level globals.

Usage::

    python main.py init-db
    python main.py sweep-invites
    python main.py stats --family-id <uuid>
"""

from __future__ import annotations

import argparse
import atexit
import json
import sys
from typing import Optional, Sequence

from family_budget.config import get_config
from family_budget.database import DatabaseManager
from family_budget.logger import StructuredLogger, get_logger
from family_budget.schema import ensure_mongo_indexes, initialize_schema
from family_budget.services import ServiceContainer, create_services


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="family-budget",
        description="Maintenance commands for the family budget data layer.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser(
        "init-db",
        help="Create (or migrate) the schema for the configured backend.",
    )
    commands.add_parser(
        "sweep-invites",
        help="Mark every pending invite past its expiry as expired.",
    )
    stats = commands.add_parser(
        "stats",
        help="Print counts and totals for one family as JSON.",
    )
    stats.add_argument("--family-id", required=True, help="UUID of the family.")
    return parser


def _init_db(db: DatabaseManager, logger: StructuredLogger) -> int:
    schema_logger = StructuredLogger(name="schema")
    if db.backend == "sqlite":
        initialize_schema(db.sqlite, schema_logger)
    elif db.backend == "mongodb":
        ensure_mongo_indexes(db.mongo, schema_logger)
    else:
        # PostgreSQL DDL is applied with the database's own tooling.
        logger.info(
            "PostgreSQL schema is managed by migrations/postgresql/*.sql; "
            "nothing to do."
        )
    return 0


def _sweep_invites(services: ServiceContainer, logger: StructuredLogger) -> int:
    result = services["invite_service"].sweep_expired()
    if not result.success:
        logger.error("Invite sweep failed: %s", result.error)
        return 1
    logger.info("Invite sweep finished: %d expired.", result.data)
    return 0


def _stats(services: ServiceContainer, family_id: str, logger: StructuredLogger) -> int:
    result = services["family_service"].get_statistics(family_id)
    if not result.success or result.data is None:
        logger.error("Could not load statistics: %s", result.error)
        return 1
    payload = result.data.model_dump(mode="json")
    payload["balance"] = result.data.balance
    sys.stdout.write(json.dumps(payload, indent=2) + "\n")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Wire dependencies, run the selected command, return an exit code."""
    args = _build_parser().parse_args(argv)

    logger: StructuredLogger = get_logger("main")

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()
    logger.info("Starting family-budget %s on %s", args.command, config.DB_BACKEND)

    # ------------------------------------------------------------------
    # 2. Database Manager (exactly one backend)
    # ------------------------------------------------------------------
    db = DatabaseManager.from_config(config, StructuredLogger(name="database"))

    # DatabaseManager.close() is idempotent, so the finally block below
    # and this handler may both run.
    atexit.register(db.close)

    try:
        if args.command == "init-db":
            return _init_db(db, logger)

        # --------------------------------------------------------------
        # 3. Embedded schema (idempotent) before any service touches it
        # --------------------------------------------------------------
        if db.backend == "sqlite":
            initialize_schema(db.sqlite, StructuredLogger(name="schema"))

        # --------------------------------------------------------------
        # 4. Service Container (repositories + services)
        # --------------------------------------------------------------
        services = create_services(db=db, config=config)

        if args.command == "sweep-invites":
            return _sweep_invites(services, logger)
        return _stats(services, args.family_id, logger)
    finally:
        db.close()
        logger.info("family-budget shut down.")


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)
