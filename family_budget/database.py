"""
Database Connection Layer.

Opens and owns the long-lived handle for the configured storage backend:

- **sqlite**: one ``sqlite3`` connection shared across threads
  (``check_same_thread=False``) with writes serialized through
  :pyattr:`DatabaseManager.write_lock`.
- **postgresql**: a Supabase client.  PostgREST sits in front of the
  PostgreSQL pool, so the client itself is a thin HTTP session.
- **mongodb**: a ``pymongo.MongoClient`` (which pools connections
  internally) and the selected database.

Data access is performed through the repository layer.  This module only
manages the raw *connections*; it contains no query logic.

Usage (dependency injection at startup)::

    from family_budget.config import get_config
    from family_budget.database import DatabaseManager
    from family_budget.logger import StructuredLogger

    db = DatabaseManager.from_config(get_config(), StructuredLogger(name="database"))
    # Inject `db` into repositories via create_repositories(db, logger).
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional, Union

from pymongo import MongoClient
from pymongo.database import Database as MongoDatabase
from supabase import Client as SupabaseClient
from supabase import ClientOptions, create_client

from family_budget.config import AppConfig
from family_budget.logger import StructuredLogger

SUPPORTED_BACKENDS: frozenset[str] = frozenset({"sqlite", "postgresql", "mongodb"})


class DatabaseManager:
    """Owns the connection to exactly one storage backend.

    Fully configured at construction time via dependency injection.  Only
    the selected backend is opened; the accessors for the other two raise
    ``RuntimeError``.

    Parameters
    ----------
    backend:
        ``"sqlite"``, ``"postgresql"`` or ``"mongodb"``.
    logger:
        A ``StructuredLogger`` instance for structured JSON log output.
    sqlite_path:
        File path (or ``":memory:"``) for the embedded database.
    supabase_url, supabase_key:
        Supabase project URL and service key for the PostgreSQL backend.
    mongo_uri, mongo_database:
        Connection string and database name for the document store.
    timeout_s:
        Per-operation deadline applied to every driver.
    supabase_client, mongo_client:
        Pre-built clients.  When given, no new client is created; tests
        use this to inject fakes.
    """

    def __init__(
        self,
        backend: str,
        logger: StructuredLogger,
        sqlite_path: Union[str, Path, None] = None,
        supabase_url: str = "",
        supabase_key: str = "",
        mongo_uri: str = "",
        mongo_database: str = "family_budget",
        timeout_s: float = 5.0,
        supabase_client: Optional[SupabaseClient] = None,
        mongo_client: Optional[MongoClient] = None,
    ) -> None:
        if backend not in SUPPORTED_BACKENDS:
            raise ValueError(
                f"Unsupported backend {backend!r}. "
                f"Expected one of: {sorted(SUPPORTED_BACKENDS)}"
            )

        self._backend: str = backend
        self._logger: StructuredLogger = logger
        self._timeout_s: float = timeout_s
        self._write_lock: threading.RLock = threading.RLock()
        self._in_batch: bool = False

        self._sqlite_conn: Optional[sqlite3.Connection] = None
        self._supabase: Optional[SupabaseClient] = None
        self._mongo_client: Optional[MongoClient] = None
        self._mongo_db: Optional[MongoDatabase] = None

        if backend == "sqlite":
            self._sqlite_conn = self._connect_sqlite(sqlite_path or ":memory:")
        elif backend == "postgresql":
            self._supabase = supabase_client or self._connect_supabase(
                supabase_url, supabase_key
            )
        else:
            self._mongo_client = mongo_client or self._connect_mongo(mongo_uri)
            self._mongo_db = self._mongo_client[mongo_database]
            self._logger.info("MongoDB database selected: %s", mongo_database)

    @classmethod
    def from_config(cls, config: AppConfig, logger: StructuredLogger) -> "DatabaseManager":
        """Build a manager for the backend named by ``config.DB_BACKEND``."""
        return cls(
            backend=config.DB_BACKEND,
            logger=logger,
            sqlite_path=config.SQLITE_PATH,
            supabase_url=config.SUPABASE_URL,
            supabase_key=config.SUPABASE_KEY.get_secret_value(),
            mongo_uri=config.MONGODB_URI,
            mongo_database=config.MONGODB_DATABASE,
            timeout_s=config.DB_TIMEOUT_S,
        )

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def backend(self) -> str:
        return self._backend

    @property
    def sqlite(self) -> sqlite3.Connection:
        """Return the SQLite connection.

        Raises
        ------
        RuntimeError
            If the manager was opened for another backend.
        """
        if self._sqlite_conn is None:
            raise RuntimeError(
                f"SQLite is not available; the active backend is {self._backend!r}."
            )
        return self._sqlite_conn

    @property
    def supabase(self) -> SupabaseClient:
        """Return the Supabase client.

        Raises
        ------
        RuntimeError
            If the manager was opened for another backend.
        """
        if self._supabase is None:
            raise RuntimeError(
                f"Supabase is not available; the active backend is {self._backend!r}."
            )
        return self._supabase

    @property
    def mongo(self) -> MongoDatabase:
        """Return the selected MongoDB database.

        Raises
        ------
        RuntimeError
            If the manager was opened for another backend.
        """
        if self._mongo_db is None:
            raise RuntimeError(
                f"MongoDB is not available; the active backend is {self._backend!r}."
            )
        return self._mongo_db

    @property
    def write_lock(self) -> threading.RLock:
        """Return the write lock for thread-safe SQLite operations.

        All code that performs SQLite writes (INSERT, UPDATE, DELETE,
        or any operation followed by ``commit()``) should acquire this
        lock first::

            with db.write_lock:
                db.sqlite.execute("INSERT ...")
                db.sqlite.commit()
        """
        return self._write_lock

    @property
    def in_batch(self) -> bool:
        """``True`` when a :meth:`batch_write` context is active.

        Repository code checks this flag before issuing ``commit()``
        so that bulk operations can defer the commit to a single call
        at the end of the batch.
        """
        return self._in_batch

    @contextmanager
    def batch_write(self) -> Generator[None, None, None]:
        """Context manager that defers SQLite commits for bulk operations.

        While the context is active, :pyattr:`in_batch` is ``True`` and
        repository ``_commit()`` calls become no-ops.  On normal exit
        a single ``commit()`` is issued.  On exception the transaction
        is rolled back and the error re-raised.

        On the remote backends every write is already its own atomic
        request, so the context only marks the batch.

        Example::

            with db.batch_write():
                for category in defaults:
                    repo.create(category)  # no commit per item
            # single commit happens here
        """
        if self._in_batch:
            # Re-entrant: already in a batch.
            yield
            return

        with self._write_lock:
            self._in_batch = True
            try:
                yield
                if self._sqlite_conn is not None:
                    self._sqlite_conn.commit()
                self._logger.debug("Batch write committed.")
            except Exception:
                if self._sqlite_conn is not None:
                    self._sqlite_conn.rollback()
                self._logger.error(
                    "Batch write rolled back due to exception.", exc_info=True,
                )
                raise
            finally:
                self._in_batch = False

    # ------------------------------------------------------------------
    # Lifecycle helpers
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the backend connection.

        Safe to call multiple times; subsequent calls are no-ops.
        """
        with self._write_lock:
            if self._sqlite_conn is not None:
                try:
                    self._sqlite_conn.close()
                    self._logger.info("SQLite connection closed.")
                except sqlite3.ProgrammingError:
                    # Connection was already closed.
                    pass
            if self._mongo_client is not None:
                self._mongo_client.close()
                self._logger.info("MongoDB client closed.")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _connect_sqlite(self, path: Union[str, Path]) -> sqlite3.Connection:
        """Open (or create) a SQLite database.

        Parameters
        ----------
        path:
            Filesystem path for the SQLite database file, or ``":memory:"``.

        Returns
        -------
        sqlite3.Connection
            A configured connection with ``row_factory`` set to
            ``sqlite3.Row`` for dict-like row access.

        Raises
        ------
        PermissionError
            If the OS denies access to the database file or its directory.
        """
        try:
            conn = sqlite3.connect(
                str(path), timeout=self._timeout_s, check_same_thread=False
            )
            conn.row_factory = sqlite3.Row
            # WAL for better concurrent read performance.
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA foreign_keys = ON;")
            conn.execute(f"PRAGMA busy_timeout = {int(self._timeout_s * 1000)};")
            self._logger.info("SQLite database opened at %s", path)
            return conn
        except PermissionError as exc:
            msg = (
                f"Cannot open the database at '{path}'. "
                "The file or its directory may be read-only or locked by "
                "another process.  Please check file permissions and try again."
            )
            self._logger.error(msg)
            raise PermissionError(msg) from exc

    def _connect_supabase(self, url: str, key: str) -> SupabaseClient:
        if not url or not key:
            raise RuntimeError(
                "SUPABASE_URL and SUPABASE_KEY must be set for the postgresql backend."
            )
        client = create_client(
            url,
            key,
            options=ClientOptions(postgrest_client_timeout=self._timeout_s),
        )
        self._logger.info("Supabase client initialized.")
        return client

    def _connect_mongo(self, uri: str) -> MongoClient:
        if not uri:
            raise RuntimeError("MONGODB_URI must be set for the mongodb backend.")
        client: MongoClient = MongoClient(
            uri,
            timeoutMS=int(self._timeout_s * 1000),
            tz_aware=True,
        )
        self._logger.info("MongoDB client initialized.")
        return client
