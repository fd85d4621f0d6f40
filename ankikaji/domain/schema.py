"""Declarative card schema: field declarations, traits and type mapping."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

from ..utils import parse_flag

EXPORT_COLUMN = "export"
# The export flag plus SQLite rowid aliases.
RESERVED_COLUMNS = frozenset({EXPORT_COLUMN, "rowid", "oid", "_rowid_"})


class ConfigurationError(ValueError):
    """Raised when a card template is missing or inconsistent."""


class FieldType(str, Enum):
    STRING = "String"
    TEXT = "Text"
    BOOLEAN = "Boolean"
    INTEGER = "Integer"

    @property
    def sql_type(self) -> str:
        return _SQL_TYPES[self]

    @classmethod
    def parse(cls, raw: object) -> "FieldType":
        if raw is None or raw == "":
            return cls.STRING
        value = str(raw).strip().lower()
        for member in cls:
            if member.value.lower() == value:
                return member
        raise ConfigurationError(f"Unknown field type: {raw}")

    def coerce(self, text: str | None) -> str | int | None:
        """Convert working-record text into the value bound for this column.

        Raises ValueError when the text does not fit the storage type.
        """
        if text is None:
            return None
        if self is FieldType.BOOLEAN:
            if not text.strip():
                return None
            flag = parse_flag(text)
            if flag is None:
                raise ValueError(f"expected a boolean, got {text!r}")
            return 1 if flag else 0
        if self is FieldType.INTEGER:
            stripped = text.strip()
            if not stripped:
                return None
            try:
                return int(stripped)
            except ValueError as exc:
                raise ValueError(f"expected an integer, got {text!r}") from exc
        return text


_SQL_TYPES = {
    FieldType.STRING: "VARCHAR",
    FieldType.TEXT: "TEXT",
    FieldType.BOOLEAN: "BOOLEAN",
    FieldType.INTEGER: "INTEGER",
}


class FieldTrait(str, Enum):
    PRIMARY_KEY = "PrimaryKey"
    AUTO_INCREMENT = "AutoIncrement"
    NOT_NULL = "NotNull"
    UNIQUE = "Unique"
    KEY = "Key"
    IS_IMAGE = "IsImage"

    @classmethod
    def parse(cls, raw: object) -> "FieldTrait":
        value = str(raw or "").strip().lower()
        for member in cls:
            if member.value.lower() == value:
                return member
        if value == "naturalkey":
            return cls.KEY
        raise ConfigurationError(f"Unknown field trait: {raw}")


class DerivationKind(str, Enum):
    AUTORUBY_OF = "AutorubyOf"
    TRUE_IF_EXISTS = "TrueIfExists"


@dataclass(frozen=True)
class Derivation:
    kind: DerivationKind
    source: str


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: FieldType = FieldType.STRING
    traits: frozenset[FieldTrait] = frozenset()
    derivation: Derivation | None = None
    default: Any = None

    def has(self, trait: FieldTrait) -> bool:
        return trait in self.traits

    @property
    def is_key(self) -> bool:
        return FieldTrait.KEY in self.traits

    @property
    def is_auto_increment(self) -> bool:
        return FieldTrait.AUTO_INCREMENT in self.traits

    @property
    def is_required(self) -> bool:
        return FieldTrait.NOT_NULL in self.traits and not self.is_auto_increment

    @property
    def is_image(self) -> bool:
        return FieldTrait.IS_IMAGE in self.traits

    @property
    def column_default(self) -> Any:
        """Default written into the column definition, if any."""
        if self.default is not None:
            return self.default
        if self.type is FieldType.BOOLEAN and not self.has(FieldTrait.PRIMARY_KEY):
            return 0
        return None


@dataclass(frozen=True)
class CardMetadata:
    """A validated, ordered card schema with a name index."""

    name: str
    fields: tuple[FieldSpec, ...]
    _positions: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        object.__setattr__(
            self,
            "_positions",
            {spec.name: index for index, spec in enumerate(self.fields)},
        )
        _validate(self)

    @property
    def key_field(self) -> FieldSpec:
        return next(spec for spec in self.fields if spec.is_key)

    @property
    def field_names(self) -> list[str]:
        return [spec.name for spec in self.fields]

    def position(self, name: str) -> int | None:
        return self._positions.get(name)

    def get(self, name: str) -> FieldSpec | None:
        index = self._positions.get(name)
        if index is None:
            return None
        return self.fields[index]

    @classmethod
    def from_dict(cls, payload: object) -> "CardMetadata":
        """Build a schema from a parsed template document."""
        if not isinstance(payload, Mapping):
            raise ConfigurationError("Card template must be a mapping with 'name' and 'fields'.")
        name = str(payload.get("name") or "").strip()
        if not name:
            raise ConfigurationError("Card template is missing a 'name'.")
        raw_fields = payload.get("fields")
        if not isinstance(raw_fields, list) or not raw_fields:
            raise ConfigurationError("Card template must declare a non-empty 'fields' list.")
        return cls(name=name, fields=tuple(_parse_field(item) for item in raw_fields))


def _parse_field(raw: object) -> FieldSpec:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Field declaration must be a mapping, got: {raw!r}")
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ConfigurationError(f"Field declaration is missing a name: {dict(raw)!r}")
    name = name.strip()
    field_type = FieldType.parse(raw.get("type"))
    traits: set[FieldTrait] = set()
    derivations: list[Derivation] = []
    raw_traits = raw.get("traits") or []
    if not isinstance(raw_traits, list):
        raise ConfigurationError(f"Traits of field {name!r} must be a list.")
    for item in raw_traits:
        if isinstance(item, Mapping):
            derivations.extend(_parse_derivation(name, item))
        else:
            traits.add(FieldTrait.parse(item))
    if len(derivations) > 1:
        raise ConfigurationError(f"Field {name!r} declares more than one derivation directive.")
    return FieldSpec(
        name=name,
        type=field_type,
        traits=frozenset(traits),
        derivation=derivations[0] if derivations else None,
        default=raw.get("default"),
    )


def _parse_derivation(name: str, item: Mapping) -> Iterable[Derivation]:
    for raw_kind, raw_source in item.items():
        kind = next(
            (member for member in DerivationKind if member.value.lower() == str(raw_kind).lower()),
            None,
        )
        if kind is None:
            raise ConfigurationError(f"Unknown derivation directive on field {name!r}: {raw_kind}")
        source = str(raw_source or "").strip()
        if not source:
            raise ConfigurationError(f"Derivation {kind.value} on field {name!r} has no source field.")
        yield Derivation(kind=kind, source=source)


def _validate(metadata: CardMetadata) -> None:
    fields: Sequence[FieldSpec] = metadata.fields
    if not fields:
        raise ConfigurationError(f"Card template {metadata.name!r} declares no fields.")
    seen: set[str] = set()
    for spec in fields:
        folded = spec.name.lower()
        if folded in RESERVED_COLUMNS:
            raise ConfigurationError(f"Field name {spec.name!r} is reserved.")
        if folded in seen:
            raise ConfigurationError(f"Duplicate field name: {spec.name!r}")
        seen.add(folded)

    keys = [spec for spec in fields if spec.is_key]
    if len(keys) != 1:
        raise ConfigurationError(
            f"Card template {metadata.name!r} must declare exactly one Key field, found {len(keys)}."
        )
    if keys[0].is_auto_increment:
        raise ConfigurationError(f"Key field {keys[0].name!r} cannot be AutoIncrement.")

    primary = [spec for spec in fields if spec.has(FieldTrait.PRIMARY_KEY)]
    if len(primary) > 1:
        raise ConfigurationError("Only one PrimaryKey field is supported.")
    for spec in fields:
        if spec.is_auto_increment and (
            not spec.has(FieldTrait.PRIMARY_KEY) or spec.type is not FieldType.INTEGER
        ):
            raise ConfigurationError(
                f"AutoIncrement field {spec.name!r} must be an Integer PrimaryKey."
            )
        if spec.derivation is None:
            continue
        source = spec.derivation.source
        if source == spec.name:
            raise ConfigurationError(f"Field {spec.name!r} cannot derive from itself.")
        if metadata.position(source) is None:
            raise ConfigurationError(
                f"Field {spec.name!r} derives from unknown field {source!r}."
            )
