"""SQLite persistence for flashcard rows."""
from __future__ import annotations

import logging
import os
import sqlite3
from typing import Any, Iterable, Sequence

from .card_sql import CardSql, Statement

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when the card database cannot complete a statement."""


class StorageConflictError(StorageError):
    """Raised when a statement violates a table constraint."""


class CardRepository:
    def __init__(self, *, db_path: str, sql: CardSql, logger_instance=None) -> None:
        self.db_path = str(db_path or "").strip()
        if not self.db_path:
            raise ValueError("Card DB path is empty.")
        self.sql = sql
        self.logger = logger_instance or logger
        self._schema_ready = False

    @property
    def table_name(self) -> str:
        return self.sql.table_name

    def ensure_schema(self) -> None:
        """Create the card table when missing."""
        if self._schema_ready:
            return
        self._ensure_parent_dir()
        connection = self._connect()
        try:
            with connection:
                connection.execute(self.sql.create_table())
        except sqlite3.Error as exc:
            raise _storage_error("create table", exc) from exc
        finally:
            connection.close()
        self._schema_ready = True
        self.logger.debug("Card table ready: table=%s path=%s", self.table_name, self.db_path)

    def execute_batch(self, statements: Iterable[Statement]) -> int:
        """Run statements in one transaction; any failure rolls back all of them."""
        self.ensure_schema()
        executed = 0
        connection = self._connect()
        try:
            with connection:
                for sql, params in statements:
                    connection.execute(sql, params)
                    executed += 1
        except sqlite3.Error as exc:
            self.logger.error(
                "Card batch rolled back after %s statements: %s", executed, exc
            )
            raise _storage_error("batch", exc) from exc
        finally:
            connection.close()
        return executed

    def get_card(self, key_value: Any) -> dict[str, Any] | None:
        sql, params = self.sql.select_by_key(key_value)
        rows = self._query(sql, params)
        return rows[0] if rows else None

    def list_unexported(self) -> list[dict[str, Any]]:
        sql, params = self.sql.select_unexported()
        return self._query(sql, params)

    def mark_exported(self, key_values: Sequence[Any]) -> int:
        if not key_values:
            return 0
        self.ensure_schema()
        updated = 0
        connection = self._connect()
        try:
            with connection:
                for sql, params in self.sql.mark_exported(key_values):
                    cursor = connection.execute(sql, params)
                    updated += int(cursor.rowcount or 0)
        except sqlite3.Error as exc:
            raise _storage_error("mark exported", exc) from exc
        finally:
            connection.close()
        return updated

    def _query(self, sql: str, params: Sequence[Any]) -> list[dict[str, Any]]:
        self.ensure_schema()
        connection = self._connect()
        try:
            cursor = connection.execute(sql, params)
            return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as exc:
            raise _storage_error("query", exc) from exc
        finally:
            connection.close()

    def _connect(self) -> sqlite3.Connection:
        try:
            connection = sqlite3.connect(self.db_path)
        except sqlite3.Error as exc:
            raise _storage_error("connect", exc) from exc
        connection.row_factory = sqlite3.Row
        return connection

    def _ensure_parent_dir(self) -> None:
        parent = os.path.dirname(os.path.abspath(self.db_path))
        if parent:
            os.makedirs(parent, exist_ok=True)


def _storage_error(action: str, exc: sqlite3.Error) -> StorageError:
    if isinstance(exc, sqlite3.IntegrityError):
        return StorageConflictError(f"Constraint violation during {action}: {exc}")
    return StorageError(f"Card DB {action} failed: {exc}")
