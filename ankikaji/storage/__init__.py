"""Storage layer for the card database and card files."""

from .card_files import (
    load_card_metadata,
    read_card_records,
    render_export_row,
    write_export_file,
)
from .card_repository import CardRepository, StorageConflictError, StorageError
from .card_sql import CardSql, ConflictPolicy

__all__ = [
    "CardRepository",
    "CardSql",
    "ConflictPolicy",
    "StorageConflictError",
    "StorageError",
    "load_card_metadata",
    "read_card_records",
    "render_export_row",
    "write_export_file",
]
