"""Card import, lookup and export use cases."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from ..domain.derivation import Annotate, derive_fields
from ..domain.records import RecordRejected, bind_values, extract_record
from ..domain.schema import CardMetadata
from ..storage.card_files import read_card_records, write_export_file
from ..storage.card_repository import CardRepository
from ..storage.card_sql import ConflictPolicy, Statement


@dataclass
class ImportSummary:
    upserted: int = 0
    skipped: list[RecordRejected] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.upserted + len(self.skipped)


@dataclass(frozen=True)
class ExportSummary:
    path: str
    exported: int
    keys: list[str]


class CardService:
    def __init__(
        self,
        metadata: CardMetadata,
        repository: CardRepository,
        annotate: Annotate,
        logger,
    ) -> None:
        self.metadata = metadata
        self.repository = repository
        self.annotate = annotate
        self.logger = logger

    def build_statement(
        self,
        record: Mapping[str, Any],
        *,
        policy: ConflictPolicy = ConflictPolicy.OVERWRITE,
    ) -> Statement:
        """Turn one raw record into its upsert statement or raise RecordRejected."""
        working = extract_record(record, self.metadata)
        if working is None:
            raise RecordRejected("missing required or key field", record)
        derived = derive_fields(working, self.metadata, self.annotate, self.logger)
        if derived is None:
            raise RecordRejected("no columns left after derivation", record)
        try:
            values = bind_values(
                derived,
                self.metadata,
                blank_as_null=policy is ConflictPolicy.COALESCE,
            )
        except RecordRejected as exc:
            raise RecordRejected(exc.reason, record) from exc
        return self.repository.sql.upsert(derived.columns, values, derived.key_column, policy)

    def import_records(
        self,
        records: Iterable[Mapping[str, Any]],
        *,
        policy: ConflictPolicy = ConflictPolicy.OVERWRITE,
    ) -> ImportSummary:
        summary = ImportSummary()
        statements: list[Statement] = []
        for index, record in enumerate(records):
            try:
                statements.append(self.build_statement(record, policy=policy))
            except RecordRejected as exc:
                self.logger.warning("Skipped invalid record #%s (%s): %r", index, exc.reason, exc.record)
                summary.skipped.append(exc)
        if statements:
            summary.upserted = self.repository.execute_batch(statements)
        self.logger.info(
            "Import finished: upserted=%s skipped=%s policy=%s table=%s",
            summary.upserted,
            len(summary.skipped),
            policy.value,
            self.repository.table_name,
        )
        return summary

    def import_file(
        self,
        path: str,
        *,
        policy: ConflictPolicy = ConflictPolicy.OVERWRITE,
    ) -> ImportSummary:
        records = read_card_records(path)
        self.logger.debug("Read %s card records from %s", len(records), path)
        return self.import_records(records, policy=policy)

    def add_card(
        self,
        values: Mapping[str, Any],
        *,
        policy: ConflictPolicy = ConflictPolicy.OVERWRITE,
    ) -> dict[str, Any] | None:
        statement = self.build_statement(values, policy=policy)
        self.repository.execute_batch([statement])
        key_name = self.metadata.key_field.name
        self.logger.info("Upserted card: %s", values.get(key_name))
        return self.repository.get_card(values.get(key_name))

    def get_card(self, key_value: Any) -> dict[str, Any] | None:
        return self.repository.get_card(key_value)

    def export_cards(self, path: str, *, file_format: str = "csv") -> ExportSummary:
        """Write unexported cards to path, then flag them as exported.

        Rows are flagged only after the file is fully written and closed.
        """
        cards = self.repository.list_unexported()
        if not cards:
            self.logger.info("No new cards to export.")
            return ExportSummary(path=path, exported=0, keys=[])

        written = write_export_file(path, self.metadata.fields, cards, file_format=file_format)
        key_name = self.metadata.key_field.name
        keys = [card[key_name] for card in cards]
        self.repository.mark_exported(keys)
        self.logger.info("Exported %s cards to %s", written, path)
        return ExportSummary(path=path, exported=written, keys=[str(key) for key in keys])
