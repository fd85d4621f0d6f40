"""Parameterized SQL statements generated from a card schema."""
from __future__ import annotations

from enum import Enum
from typing import Any, Sequence

from ..domain.schema import EXPORT_COLUMN, CardMetadata, FieldSpec, FieldTrait
from ..utils import quote_identifier

Statement = tuple[str, list[Any]]

# SQLite builds before 3.32 cap bound variables at 999.
MARK_EXPORTED_CHUNK_SIZE = 500


class ConflictPolicy(str, Enum):
    OVERWRITE = "overwrite"
    COALESCE = "coalesce"


class CardSql:
    def __init__(self, metadata: CardMetadata, table_name: str) -> None:
        if not str(table_name or "").strip():
            raise ValueError("Table name is empty.")
        self.metadata = metadata
        self.table_name = table_name.strip()
        self._table = quote_identifier(self.table_name)
        self._key = quote_identifier(metadata.key_field.name)
        self._export = quote_identifier(EXPORT_COLUMN)

    def create_table(self) -> str:
        definitions = [_column_definition(spec) for spec in self.metadata.fields]
        definitions.append(f"{self._export} BOOLEAN DEFAULT 0")
        body = ",\n  ".join(definitions)
        return f"CREATE TABLE IF NOT EXISTS {self._table} (\n  {body}\n)"

    def upsert(
        self,
        columns: Sequence[str],
        values: Sequence[Any],
        key_column: str,
        policy: ConflictPolicy = ConflictPolicy.OVERWRITE,
    ) -> Statement:
        if len(columns) != len(values):
            raise ValueError("Column and value counts differ.")
        if key_column not in columns:
            raise ValueError(f"Key column {key_column!r} is missing from the row.")
        for column in columns:
            if self.metadata.position(column) is None:
                raise ValueError(f"Unknown column: {column!r}")

        quoted = [quote_identifier(column) for column in columns]
        column_list = ", ".join([*quoted, self._export])
        placeholders = ", ".join(["?"] * len(columns) + ["0"])
        updates = [
            _conflict_assignment(quote_identifier(column), policy)
            for column in columns
            if column != key_column
        ]
        updates.append(_conflict_assignment(self._export, policy))
        sql = (
            f"INSERT INTO {self._table} ({column_list}) VALUES ({placeholders}) "
            f"ON CONFLICT({quote_identifier(key_column)}) DO UPDATE SET "
            + ", ".join(updates)
        )
        return sql, list(values)

    def select_by_key(self, key_value: Any) -> Statement:
        return (
            f"SELECT {self._select_columns()} FROM {self._table} WHERE {self._key} = ? LIMIT 1",
            [key_value],
        )

    def select_unexported(self) -> Statement:
        return (
            f"SELECT {self._select_columns()} FROM {self._table} "
            f"WHERE {self._export} = ? ORDER BY ROWID",
            [0],
        )

    def mark_exported(
        self,
        key_values: Sequence[Any],
        *,
        chunk_size: int = MARK_EXPORTED_CHUNK_SIZE,
    ) -> list[Statement]:
        statements: list[Statement] = []
        unique_keys = list(dict.fromkeys(key_values))
        size = max(1, int(chunk_size))
        for start in range(0, len(unique_keys), size):
            chunk = unique_keys[start : start + size]
            placeholders = ", ".join("?" for _ in chunk)
            statements.append(
                (
                    f"UPDATE {self._table} SET {self._export} = 1 "
                    f"WHERE {self._key} IN ({placeholders})",
                    list(chunk),
                )
            )
        return statements

    def _select_columns(self) -> str:
        names = [quote_identifier(spec.name) for spec in self.metadata.fields]
        names.append(self._export)
        return ", ".join(names)


def _column_definition(spec: FieldSpec) -> str:
    parts = [quote_identifier(spec.name), spec.type.sql_type]
    if spec.has(FieldTrait.PRIMARY_KEY):
        parts.append("PRIMARY KEY")
        if spec.is_auto_increment:
            parts.append("AUTOINCREMENT")
    if spec.has(FieldTrait.NOT_NULL):
        parts.append("NOT NULL")
    if (spec.has(FieldTrait.UNIQUE) or spec.is_key) and not spec.has(FieldTrait.PRIMARY_KEY):
        parts.append("UNIQUE")
    default = spec.column_default
    if default is not None:
        parts.append(f"DEFAULT {_sql_literal(default)}")
    return " ".join(parts)


def _conflict_assignment(quoted_column: str, policy: ConflictPolicy) -> str:
    if policy is ConflictPolicy.COALESCE:
        return f"{quoted_column} = COALESCE(excluded.{quoted_column}, {quoted_column})"
    return f"{quoted_column} = excluded.{quoted_column}"


def _sql_literal(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"
