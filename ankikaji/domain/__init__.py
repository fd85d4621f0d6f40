"""Domain logic for card schemas, record extraction and derived fields."""

from .derivation import AnnotationUnavailable, derive_fields, wrap_image
from .records import RecordRejected, WorkingRecord, bind_values, extract_record
from .schema import (
    CardMetadata,
    ConfigurationError,
    Derivation,
    DerivationKind,
    FieldSpec,
    FieldTrait,
    FieldType,
)

__all__ = [
    "AnnotationUnavailable",
    "CardMetadata",
    "ConfigurationError",
    "Derivation",
    "DerivationKind",
    "FieldSpec",
    "FieldTrait",
    "FieldType",
    "RecordRejected",
    "WorkingRecord",
    "bind_values",
    "derive_fields",
    "extract_record",
    "wrap_image",
]
