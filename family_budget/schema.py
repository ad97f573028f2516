"""
Schema Initialization.

Defines the canonical SQLite schema and provides a single entry-point,
:func:`initialize_schema`, that creates all required tables idempotently.
A lightweight ``schema_version`` table tracks applied migrations so that
later schema changes can be rolled forward without data loss.

:func:`ensure_mongo_indexes` plays the same role for the document store:
MongoDB has no DDL, so uniqueness rules live in indexes.  The PostgreSQL
DDL ships as plain SQL under ``migrations/postgresql/`` and is applied
with the database's own tooling.

Migration Strategy
~~~~~~~~~~~~~~~~~~
- **Fresh databases** (version 0): all tables are created in one shot from
  :data:`_TABLE_DEFINITIONS`.
- **Existing databases** (version N > 0): only incremental migrations
  registered in :data:`_MIGRATIONS` are executed.  ``CREATE TABLE IF NOT
  EXISTS`` is *not* re-run; it cannot add columns to existing tables.
- The entire upgrade (migrations + version bump) is wrapped in a single
  SQLite transaction.  On failure the database rolls back to version N
  and the next startup retries.

Adding a New Migration
~~~~~~~~~~~~~~~~~~~~~~
1. Bump :data:`CURRENT_SCHEMA_VERSION`.
2. Update the relevant DDL in :data:`_TABLE_DEFINITIONS` (for fresh installs).
3. Write a ``_migrate_vN_to_vN+1()`` function (use ``ALTER TABLE`` with a
   :func:`_column_exists` guard for idempotency).
4. Register the function in :data:`_MIGRATIONS`.

Usage::

    from family_budget.database import DatabaseManager
    from family_budget.logger import StructuredLogger
    from family_budget.schema import initialize_schema

    logger = StructuredLogger(name="schema")
    initialize_schema(db.sqlite, logger)
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable

from pymongo import ASCENDING, DESCENDING, IndexModel
from pymongo.database import Database as MongoDatabase

from family_budget.logger import StructuredLogger

__all__ = ["CURRENT_SCHEMA_VERSION", "ensure_mongo_indexes", "initialize_schema"]

# ---------------------------------------------------------------------------
# Schema version -- bump this whenever a migration is added.
# ---------------------------------------------------------------------------
CURRENT_SCHEMA_VERSION: int = 2

# ---------------------------------------------------------------------------
# DDL statements for every table in the embedded database.
#
# Timestamps are TEXT in the fixed-width form produced by
# ``to_db_timestamp`` so that string comparison orders chronologically.
# ---------------------------------------------------------------------------
_TABLE_DEFINITIONS: list[str] = [
    # -- single-row version tracker -------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        version INTEGER NOT NULL,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    # -- persistent structured audit trail ------------------------------------
    """
    CREATE TABLE IF NOT EXISTS audit_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        action TEXT NOT NULL,
        entity_type TEXT NOT NULL,
        entity_id TEXT NOT NULL,
        family_id TEXT NOT NULL DEFAULT '',
        user_id TEXT NOT NULL DEFAULT '',
        details TEXT DEFAULT '{}',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    # -- families --------------------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS families (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL CHECK (LENGTH(TRIM(name)) > 0),
        currency TEXT NOT NULL DEFAULT 'USD'
                 CHECK (LENGTH(currency) = 3 AND currency = UPPER(currency)),
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    # -- users (email unique among active rows, see index below) ---------------
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL,
        password_hash TEXT NOT NULL CHECK (LENGTH(TRIM(password_hash)) > 0),
        first_name TEXT NOT NULL CHECK (LENGTH(TRIM(first_name)) > 0),
        last_name TEXT NOT NULL CHECK (LENGTH(TRIM(last_name)) > 0),
        role TEXT NOT NULL DEFAULT 'member'
             CHECK (role IN ('admin', 'member', 'child')),
        family_id TEXT NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        is_active INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0, 1)),
        last_login TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    # -- invites ---------------------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS invites (
        id TEXT PRIMARY KEY,
        family_id TEXT NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        created_by TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        email TEXT NOT NULL,
        role TEXT NOT NULL CHECK (role IN ('admin', 'member', 'child')),
        token TEXT NOT NULL UNIQUE,
        status TEXT NOT NULL DEFAULT 'pending'
               CHECK (status IN ('pending', 'accepted', 'expired', 'revoked')),
        expires_at TEXT NOT NULL,
        accepted_at TEXT,
        accepted_by TEXT REFERENCES users(id) ON DELETE SET NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    # -- categories ------------------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS categories (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL CHECK (LENGTH(TRIM(name)) > 0),
        type TEXT NOT NULL CHECK (type IN ('income', 'expense')),
        description TEXT NOT NULL DEFAULT '',
        color TEXT NOT NULL DEFAULT '#007BFF',
        icon TEXT NOT NULL DEFAULT 'default',
        parent_id TEXT REFERENCES categories(id) ON DELETE SET NULL,
        family_id TEXT NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        is_active INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0, 1)),
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        CHECK (id != parent_id),
        UNIQUE (family_id, name, type, parent_id)
    )
    """,
    # -- transactions ----------------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS transactions (
        id TEXT PRIMARY KEY,
        amount REAL NOT NULL CHECK (amount > 0),
        type TEXT NOT NULL CHECK (type IN ('income', 'expense')),
        description TEXT NOT NULL CHECK (LENGTH(TRIM(description)) > 0),
        category_id TEXT NOT NULL REFERENCES categories(id),
        user_id TEXT NOT NULL REFERENCES users(id),
        family_id TEXT NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        date TEXT NOT NULL,
        tags TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    # -- budgets ---------------------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS budgets (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL CHECK (LENGTH(TRIM(name)) > 0),
        amount REAL NOT NULL CHECK (amount > 0),
        spent REAL NOT NULL DEFAULT 0 CHECK (spent >= 0),
        period TEXT NOT NULL
               CHECK (period IN ('weekly', 'monthly', 'yearly', 'custom')),
        category_id TEXT REFERENCES categories(id) ON DELETE SET NULL,
        start_date TEXT NOT NULL,
        end_date TEXT NOT NULL,
        family_id TEXT NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        is_active INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0, 1)),
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        CHECK (end_date > start_date),
        UNIQUE (family_id, name, start_date, end_date)
    )
    """,
    # -- reports ---------------------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS reports (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL CHECK (LENGTH(TRIM(name)) > 0),
        type TEXT NOT NULL
             CHECK (type IN ('expenses', 'income', 'budget', 'cash_flow',
                             'category_breakdown')),
        period TEXT NOT NULL
               CHECK (period IN ('daily', 'weekly', 'monthly', 'yearly', 'custom')),
        family_id TEXT NOT NULL REFERENCES families(id) ON DELETE CASCADE,
        user_id TEXT NOT NULL REFERENCES users(id),
        start_date TEXT NOT NULL,
        end_date TEXT NOT NULL,
        data TEXT NOT NULL DEFAULT '{}',
        generated_at TEXT NOT NULL,
        CHECK (end_date >= start_date)
    )
    """,
]

# NULL parent_ids never collide under the table-level UNIQUE, so top-level
# names need their own partial index.
_ROOT_CATEGORY_UNIQUE_INDEX: str = (
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_categories_unique_root "
    "ON categories(family_id, name, type) WHERE parent_id IS NULL"
)

_INDEX_DEFINITIONS: list[str] = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email_active ON users(email) WHERE is_active = 1",
    "CREATE INDEX IF NOT EXISTS idx_users_family_id ON users(family_id)",
    "CREATE INDEX IF NOT EXISTS idx_users_role_family ON users(role, family_id)",
    "CREATE INDEX IF NOT EXISTS idx_invites_family_id ON invites(family_id)",
    "CREATE INDEX IF NOT EXISTS idx_invites_email ON invites(email)",
    "CREATE INDEX IF NOT EXISTS idx_invites_status_expires ON invites(status, expires_at)",
    "CREATE INDEX IF NOT EXISTS idx_categories_family_type ON categories(family_id, type)",
    _ROOT_CATEGORY_UNIQUE_INDEX,
    "CREATE INDEX IF NOT EXISTS idx_categories_parent_id ON categories(parent_id)",
    "CREATE INDEX IF NOT EXISTS idx_transactions_family_date ON transactions(family_id, date DESC)",
    "CREATE INDEX IF NOT EXISTS idx_transactions_category_id ON transactions(category_id)",
    "CREATE INDEX IF NOT EXISTS idx_transactions_user_id ON transactions(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_budgets_family_active ON budgets(family_id, is_active)",
    "CREATE INDEX IF NOT EXISTS idx_budgets_date_range ON budgets(start_date, end_date)",
    "CREATE INDEX IF NOT EXISTS idx_reports_family_id ON reports(family_id)",
    "CREATE INDEX IF NOT EXISTS idx_reports_user_id ON reports(user_id)",
]


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    """Create the ``schema_version`` table if it does not yet exist.

    This is executed *before* any version check so that a brand-new
    database can be bootstrapped cleanly.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_version (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            version INTEGER NOT NULL,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    conn.commit()


def _get_schema_version(conn: sqlite3.Connection) -> int:
    """Return the current schema version, or ``0`` if unset."""
    cursor: sqlite3.Cursor = conn.execute(
        "SELECT version FROM schema_version WHERE id = 1"
    )
    row = cursor.fetchone()
    return row[0] if row is not None else 0


def _set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    """Upsert the single-row version tracker to *version*.

    Does **not** commit -- the caller is responsible for transaction
    management so that version updates are atomic with schema changes.
    """
    conn.execute(
        """
        INSERT INTO schema_version (id, version) VALUES (1, ?)
        ON CONFLICT(id) DO UPDATE SET version = excluded.version,
                                      applied_at = CURRENT_TIMESTAMP
        """,
        (version,),
    )


def _create_all_tables(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Execute every DDL statement in :data:`_TABLE_DEFINITIONS` plus indexes.

    Only used for **fresh** databases (version 0).

    Does **not** commit -- the caller is responsible for transaction
    management.
    """
    for ddl in _TABLE_DEFINITIONS:
        conn.execute(ddl)
    for stmt in _INDEX_DEFINITIONS:
        conn.execute(stmt)
    logger.info(
        f"All {len(_TABLE_DEFINITIONS)} tables and "
        f"{len(_INDEX_DEFINITIONS)} indexes created or verified successfully."
    )


_ALLOWED_TABLES: frozenset[str] = frozenset({
    "families",
    "users",
    "invites",
    "categories",
    "transactions",
    "budgets",
    "reports",
    "audit_log",
})


def _column_exists(
    conn: sqlite3.Connection, table: str, column: str,
) -> bool:
    """Check whether *column* already exists in *table*.

    Raises:
        ValueError: If *table* is not in :data:`_ALLOWED_TABLES`.
    """
    if table not in _ALLOWED_TABLES:
        raise ValueError(
            f"Invalid table name: {table!r}. "
            f"Allowed tables: {sorted(_ALLOWED_TABLES)}"
        )
    cursor = conn.execute(f"PRAGMA table_info({table})")
    return any(row[1] == column for row in cursor.fetchall())


def _migrate_v1_to_v2(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Add ``color`` and ``icon`` to ``categories`` and index root names.

    Version 1 databases predate category styling.  Existing rows pick up
    the defaults.
    """
    if not _column_exists(conn, "categories", "color"):
        conn.execute(
            "ALTER TABLE categories ADD COLUMN color TEXT NOT NULL DEFAULT '#007BFF'"
        )
    if not _column_exists(conn, "categories", "icon"):
        conn.execute(
            "ALTER TABLE categories ADD COLUMN icon TEXT NOT NULL DEFAULT 'default'"
        )
    conn.execute(_ROOT_CATEGORY_UNIQUE_INDEX)
    logger.info(
        "Migration v1→v2: added categories.color, categories.icon and the "
        "unique index on top-level category names."
    )


# ---------------------------------------------------------------------------
# Migration registry -- maps *target* version to its migration function.
# ---------------------------------------------------------------------------

MigrationFunc = Callable[[sqlite3.Connection, StructuredLogger], None]

_MIGRATIONS: dict[int, MigrationFunc] = {
    2: _migrate_v1_to_v2,
}


def _run_incremental_migrations(
    conn: sqlite3.Connection,
    logger: StructuredLogger,
    from_version: int,
    to_version: int,
) -> None:
    """Run all registered migrations between *from_version* and *to_version*.

    Only versions in the half-open range ``(from_version, to_version]``
    are applied, in ascending order.  Each migration must be idempotent.

    Does **not** commit.
    """
    versions_to_apply: list[int] = sorted(
        v for v in _MIGRATIONS if from_version < v <= to_version
    )

    if not versions_to_apply:
        logger.info("No incremental migrations to apply.")
        return

    logger.info(
        f"Applying {len(versions_to_apply)} migration(s): "
        f"{' → '.join(str(v) for v in versions_to_apply)}"
    )
    for version in versions_to_apply:
        logger.info(f"Running migration to version {version} …")
        _MIGRATIONS[version](conn, logger)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def initialize_schema(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Ensure the SQLite database matches the current schema version.

    Workflow:
        1. Guarantee the ``schema_version`` table exists (separate commit).
        2. Read the stored version number (``0`` for a fresh database).
        3. If the stored version equals or exceeds
           :data:`CURRENT_SCHEMA_VERSION`, return immediately.
        4. Otherwise, upgrade within a **single atomic transaction**:
           create everything for a fresh database, or run the registered
           incremental migrations; then bump the version and commit.  On
           failure the upgrade is rolled back and the next startup retries.

    Safe to call on every startup.

    Args:
        conn: An open SQLite connection.
        logger: A :class:`~family_budget.logger.StructuredLogger` instance.
    """
    _ensure_version_table(conn)
    current: int = _get_schema_version(conn)

    if current >= CURRENT_SCHEMA_VERSION:
        logger.info(f"Schema is up to date (version {current}).")
        return

    logger.info(
        f"Upgrading schema from version {current} "
        f"to {CURRENT_SCHEMA_VERSION} …"
    )

    try:
        if current == 0:
            _create_all_tables(conn, logger)
        else:
            _run_incremental_migrations(
                conn, logger, current, CURRENT_SCHEMA_VERSION,
            )

        _set_schema_version(conn, CURRENT_SCHEMA_VERSION)
        conn.commit()
    except Exception:
        conn.rollback()
        logger.error(
            f"Schema migration failed; rolled back to version {current}."
        )
        raise

    logger.info(f"Schema initialised at version {CURRENT_SCHEMA_VERSION}.")


# ---------------------------------------------------------------------------
# Document store
# ---------------------------------------------------------------------------

_MONGO_INDEXES: dict[str, list[IndexModel]] = {
    "families": [
        IndexModel([("created_at", ASCENDING)], name="idx_families_created_at"),
    ],
    "users": [
        IndexModel(
            [("email", ASCENDING)],
            name="idx_users_email_active",
            unique=True,
            partialFilterExpression={"is_active": True},
        ),
        IndexModel([("family_id", ASCENDING), ("role", ASCENDING)], name="idx_users_family_role"),
    ],
    "invites": [
        IndexModel([("token", ASCENDING)], name="idx_invites_token", unique=True),
        IndexModel([("family_id", ASCENDING)], name="idx_invites_family_id"),
        IndexModel([("email", ASCENDING), ("status", ASCENDING)], name="idx_invites_email_status"),
        IndexModel([("status", ASCENDING), ("expires_at", ASCENDING)], name="idx_invites_status_expires"),
    ],
    "categories": [
        IndexModel(
            [("family_id", ASCENDING), ("name", ASCENDING), ("type", ASCENDING), ("parent_id", ASCENDING)],
            name="idx_categories_unique_name",
            unique=True,
        ),
        IndexModel([("parent_id", ASCENDING)], name="idx_categories_parent_id"),
    ],
    "transactions": [
        IndexModel([("family_id", ASCENDING), ("date", DESCENDING)], name="idx_transactions_family_date"),
        IndexModel([("category_id", ASCENDING)], name="idx_transactions_category_id"),
    ],
    "budgets": [
        IndexModel(
            [("family_id", ASCENDING), ("name", ASCENDING), ("start_date", ASCENDING), ("end_date", ASCENDING)],
            name="idx_budgets_unique_period",
            unique=True,
        ),
        IndexModel([("family_id", ASCENDING), ("is_active", ASCENDING)], name="idx_budgets_family_active"),
    ],
    "reports": [
        IndexModel([("family_id", ASCENDING)], name="idx_reports_family_id"),
        IndexModel([("user_id", ASCENDING)], name="idx_reports_user_id"),
    ],
}


def ensure_mongo_indexes(database: MongoDatabase, logger: StructuredLogger) -> None:
    """Create the unique and lookup indexes for every collection.

    ``create_indexes`` is a no-op for indexes that already exist with the
    same definition, so this is safe to call on every startup.
    """
    for collection_name, indexes in _MONGO_INDEXES.items():
        database[collection_name].create_indexes(indexes)
    logger.info(
        f"MongoDB indexes verified on {len(_MONGO_INDEXES)} collections."
    )
