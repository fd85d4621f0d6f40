"""Template, record and export files for the card collection."""
from __future__ import annotations

import csv
import os
from typing import Any, Iterable, Iterator, Mapping, Sequence

import yaml

from ..domain.records import normalize_record_value
from ..domain.schema import CardMetadata, ConfigurationError, FieldSpec

EXPORT_DELIMITERS = {"csv": ",", "txt": "\t"}
_SEPARATOR_NAMES = {",": "Comma", "\t": "Tab"}
_FILE_HEADER_DIRECTIVES = frozenset(
    {
        "separator",
        "html",
        "tags",
        "columns",
        "notetype",
        "deck",
        "notetype column",
        "deck column",
        "tags column",
        "guid column",
        "if matches",
    }
)


def load_card_metadata(path: str) -> CardMetadata:
    """Parse a YAML card template into a validated schema."""
    target = str(path or "").strip()
    if not target:
        raise ConfigurationError("No card template path configured.")
    try:
        with open(target, "r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Card template not found: {target}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in card template {target}: {exc}") from exc
    except OSError as exc:
        raise ConfigurationError(f"Failed to read card template {target}: {exc}") from exc
    return CardMetadata.from_dict(payload)


def read_card_records(path: str) -> list[dict[str, str]]:
    """Read raw card records from a YAML list or a delimited table with a header."""
    target = str(path or "").strip()
    if not target:
        raise ValueError("No card records file selected.")
    extension = os.path.splitext(target)[1].lower()
    if extension in (".csv", ".tsv", ".txt"):
        delimiter = "," if extension == ".csv" else "\t"
        return _read_delimited_records(target, delimiter)
    return _read_yaml_records(target)


def _read_yaml_records(path: str) -> list[dict[str, str]]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ValueError(f"Card records in {path} must be a YAML list of mappings.")
    records: list[dict[str, str]] = []
    for index, item in enumerate(payload):
        if not isinstance(item, Mapping):
            raise ValueError(f"Card record #{index} in {path} is not a mapping.")
        records.append(_normalize_record(item))
    return records


def _strip_file_headers(lines: Iterable[str]) -> Iterator[str]:
    """Drop leading Anki `#name:value` lines; a `#columns:` line becomes the header row."""
    lines = iter(lines)
    for line in lines:
        name, separator, value = line[1:].partition(":") if line.startswith("#") else ("", "", "")
        directive = name.strip().lower()
        if not separator or directive not in _FILE_HEADER_DIRECTIVES:
            yield line
            break
        if directive == "columns":
            yield value
    yield from lines


def _read_delimited_records(path: str, delimiter: str) -> list[dict[str, str]]:
    with open(path, "r", newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(_strip_file_headers(handle), delimiter=delimiter)
        if reader.fieldnames is None:
            return []
        # Empty cells mean "not supplied" so optional fields stay absent.
        return [
            {
                str(key).strip(): value
                for key, value in row.items()
                if key is not None and value not in (None, "")
            }
            for row in reader
        ]


def _normalize_record(item: Mapping[Any, Any]) -> dict[str, str]:
    record: dict[str, str] = {}
    for key, value in item.items():
        text = normalize_record_value(value)
        if text is None:
            continue
        record[str(key)] = text
    return record


def export_fields(fields: Sequence[FieldSpec]) -> list[FieldSpec]:
    """Fields written to an export file; surrogate row ids stay in the DB."""
    return [spec for spec in fields if not spec.is_auto_increment]


def render_cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.hex()
    text = str(value).replace("\r\n", "\n").replace("\n", "<br>")
    while text.endswith("<br>"):
        text = text[: -len("<br>")]
    return text


def render_export_row(row: Mapping[str, Any], fields: Sequence[FieldSpec]) -> list[str]:
    return [render_cell(row.get(spec.name)) for spec in export_fields(fields)]


def write_export_file(
    path: str,
    fields: Sequence[FieldSpec],
    rows: Iterable[Mapping[str, Any]],
    *,
    file_format: str = "csv",
) -> int:
    """Write rows as an Anki-importable delimited file and return the row count."""
    normalized_format = str(file_format or "csv").strip().lower().lstrip(".")
    delimiter = EXPORT_DELIMITERS.get(normalized_format)
    if delimiter is None:
        raise ValueError(f"Unsupported export format: {file_format}")
    columns = [spec.name for spec in export_fields(fields)]
    rendered = [render_export_row(row, fields) for row in rows]

    parent = os.path.dirname(os.path.abspath(path))
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as handle:
        handle.write(f"#separator:{_SEPARATOR_NAMES[delimiter]}\n")
        handle.write("#html:true\n")
        writer = csv.writer(handle, delimiter=delimiter, lineterminator="\n")
        handle.write("#columns:")
        writer.writerow(columns)
        writer.writerows(rendered)
    return len(rendered)
