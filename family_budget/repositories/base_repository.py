"""
Base Repository.

Provides shared infrastructure for all repositories:
- DatabaseManager reference (SQLite, Supabase or MongoDB)
- Logger reference
- Convenience properties for accessing clients
- Commit handling that honours ``DatabaseManager.batch_write``
- Pagination bounds taken from ``AppConfig`` when one is injected
"""

from __future__ import annotations

import sqlite3
from typing import Optional

from pymongo.collection import Collection
from supabase import Client as SupabaseClient

from family_budget.config import AppConfig
from family_budget.database import DatabaseManager
from family_budget.logger import StructuredLogger
from family_budget.utils.validation import (
    DEFAULT_QUERY_LIMIT,
    MAX_QUERY_LIMIT,
    validate_limit,
)


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__.

    ``TABLE`` names the SQLite/PostgreSQL table and, equally, the MongoDB
    collection backing the entity.  ``ENTITY`` is the human-readable name
    used in error messages.
    """

    TABLE: str = ""
    ENTITY: str = ""

    def __init__(
        self,
        db: DatabaseManager,
        logger: StructuredLogger,
        config: Optional[AppConfig] = None,
    ) -> None:
        self._db = db
        self._logger = logger
        self._default_limit = config.DEFAULT_QUERY_LIMIT if config else DEFAULT_QUERY_LIMIT
        self._max_limit = config.MAX_QUERY_LIMIT if config else MAX_QUERY_LIMIT

    def _page(self, limit: Optional[int], offset: Optional[int]) -> tuple[int, int]:
        """``validate_limit`` bounded by the configured default and maximum."""
        return validate_limit(
            limit, offset, default=self._default_limit, maximum=self._max_limit,
        )

    @property
    def sqlite(self) -> sqlite3.Connection:
        """Returns the SQLite connection."""
        return self._db.sqlite

    @property
    def supabase(self) -> SupabaseClient:
        """Returns the Supabase client."""
        return self._db.supabase

    @property
    def collection(self) -> Collection:
        """Returns the MongoDB collection named by ``TABLE``."""
        return self._db.mongo[self.TABLE]

    def _commit(self) -> None:
        """Commit the SQLite transaction unless a batch is active.

        When :meth:`DatabaseManager.batch_write` is active, this is a
        no-op; the batch context manager issues a single commit (or
        rollback) when the ``with`` block exits.

        All repository code should call ``self._commit()`` instead of
        ``self.sqlite.commit()`` so that batch writes work transparently.
        """
        if not self._db.in_batch:
            self.sqlite.commit()
