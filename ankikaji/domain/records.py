"""Selection of schema columns from loosely-typed input records."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from .schema import CardMetadata

logger = logging.getLogger(__name__)


class RecordRejected(ValueError):
    """Raised when an input record cannot become a card row."""

    def __init__(self, reason: str, record: Mapping[str, Any] | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.record = dict(record or {})


@dataclass
class WorkingRecord:
    """Ordered column/text pairs for one card plus its natural key column."""

    key_column: str
    columns: list[str] = field(default_factory=list)
    values: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.columns)

    def __contains__(self, column: object) -> bool:
        return column in self.columns

    def get(self, column: str) -> str | None:
        try:
            return self.values[self.columns.index(column)]
        except ValueError:
            return None

    def append(self, column: str, value: str) -> None:
        self.columns.append(column)
        self.values.append(value)

    def replace(self, column: str, value: str) -> None:
        self.values[self.columns.index(column)] = value

    @property
    def key_value(self) -> str | None:
        return self.get(self.key_column)

    def copy(self) -> "WorkingRecord":
        return WorkingRecord(self.key_column, list(self.columns), list(self.values))

    def as_dict(self) -> dict[str, str]:
        return dict(zip(self.columns, self.values))


def normalize_record_value(value: object) -> str | None:
    """Render a parsed scalar as working-record text; None stays absent."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def extract_record(
    record: Mapping[str, Any],
    metadata: CardMetadata,
) -> WorkingRecord | None:
    """Pick the declared columns present in record, in declaration order.

    AutoIncrement fields are never read from input; their ids are assigned by
    the database. Returns None when a required field is missing or the natural
    key is not part of the result; the caller is expected to report and skip
    the record.
    """
    if not isinstance(record, Mapping):
        logger.debug("Rejected non-mapping record: %r", record)
        return None
    key_column: str | None = None
    columns: list[str] = []
    values: list[str] = []
    for spec in metadata.fields:
        if spec.is_auto_increment:
            continue
        value = normalize_record_value(record.get(spec.name))
        if value is None:
            if spec.is_required:
                logger.debug("Rejected record without required field %s: %r", spec.name, record)
                return None
            continue
        columns.append(spec.name)
        values.append(value)
        if spec.is_key:
            key_column = spec.name

    if key_column is None:
        logger.debug("Rejected record without key field: %r", record)
        return None
    if not values[columns.index(key_column)].strip():
        logger.debug("Rejected record with blank key field: %r", record)
        return None
    return WorkingRecord(key_column=key_column, columns=columns, values=values)


def bind_values(
    working: WorkingRecord,
    metadata: CardMetadata,
    *,
    blank_as_null: bool = False,
) -> list[str | int | None]:
    """Coerce working-record text into storage values, column by column.

    Raises RecordRejected when a value does not fit its declared type or a
    required column would be stored as NULL.
    """
    bound: list[str | int | None] = []
    for column, text in zip(working.columns, working.values):
        spec = metadata.get(column)
        if spec is None:
            raise RecordRejected(f"Unknown column {column!r}", working.as_dict())
        if (
            blank_as_null
            and column != working.key_column
            and not spec.is_required
            and not text.strip()
        ):
            bound.append(None)
            continue
        try:
            value = spec.type.coerce(text)
        except ValueError as exc:
            raise RecordRejected(f"Field {column!r}: {exc}", working.as_dict()) from exc
        if value is None and spec.is_required:
            raise RecordRejected(f"Field {column!r} is required", working.as_dict())
        bound.append(value)
    return bound
