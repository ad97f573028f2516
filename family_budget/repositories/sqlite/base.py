"""
Shared plumbing for the SQLite repositories.

Identifiers are stored as text, timestamps as fixed-width UTC text
(see :mod:`family_budget.utils.time_helpers`), booleans as ``0``/``1`` and
lists as JSON text.
"""

from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence, Union

from family_budget.errors import ConflictError
from family_budget.repositories.base_repository import BaseRepository
from family_budget.utils.time_helpers import to_db_timestamp

SQLParam = Union[str, int, float, None]


def sql_value(value: object) -> SQLParam:
    """Convert a model value into something ``sqlite3`` can bind."""
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return to_db_timestamp(value)
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (str, int, float)):
        return value
    return str(value)


class SQLiteRepository(BaseRepository):
    """Base for repositories backed by the embedded SQLite database."""

    def _fetch_one(self, sql: str, params: Sequence[object] = ()) -> Optional[sqlite3.Row]:
        return self.sqlite.execute(sql, [sql_value(p) for p in params]).fetchone()

    def _fetch_all(self, sql: str, params: Sequence[object] = ()) -> list[sqlite3.Row]:
        return self.sqlite.execute(sql, [sql_value(p) for p in params]).fetchall()

    def _scalar(self, sql: str, params: Sequence[object] = ()) -> float:
        """First column of the first row, ``0`` when it is ``NULL``."""
        row = self._fetch_one(sql, params)
        if row is None or row[0] is None:
            return 0
        return row[0]

    def _write(self, sql: str, params: Sequence[object] = (), detail: str = "") -> int:
        """Execute a write statement under the write lock and commit.

        Returns the number of affected rows.  A unique-constraint failure
        is rolled back and raised as :class:`ConflictError`; any other
        ``sqlite3`` error propagates unchanged.
        """
        with self._db.write_lock:
            try:
                cursor = self.sqlite.execute(sql, [sql_value(p) for p in params])
            except sqlite3.IntegrityError as exc:
                if not self._db.in_batch:
                    self.sqlite.rollback()
                if "UNIQUE constraint failed" in str(exc):
                    raise ConflictError(self.ENTITY, detail or str(exc)) from exc
                raise
            self._commit()
            return cursor.rowcount
