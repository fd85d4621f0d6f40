"""Derived card fields: image markup, furigana annotation and presence flags."""
from __future__ import annotations

import html
import logging
import re
from typing import Callable

from .records import WorkingRecord
from .schema import CardMetadata, DerivationKind, FieldSpec

logger = logging.getLogger(__name__)

Annotate = Callable[[str], str]

PRESENT_FLAG_VALUE = "1"
_IMAGE_TAG_RE = re.compile(r'^<img src="[^"]*">$')


class AnnotationUnavailable(RuntimeError):
    """Raised when the reading annotator cannot produce an annotation."""


def wrap_image(value: str) -> str:
    """Embed an image file name as an HTML img tag, once."""
    if _IMAGE_TAG_RE.match(value):
        return value
    return f'<img src="{html.escape(value, quote=True)}">'


def derive_fields(
    working: WorkingRecord,
    metadata: CardMetadata,
    annotate: Annotate,
    logger_instance=None,
) -> WorkingRecord | None:
    """Apply derivation rules in one left-to-right pass over the schema.

    Each field gets at most one rule. Explicit values always win over derived
    ones, and a derived field only sees sources that are already known when
    its declaration is reached. The input record is left untouched.
    """
    log = logger_instance or logger
    result = working.copy()
    for spec in metadata.fields:
        if spec.is_image:
            image = result.get(spec.name)
            if image is not None and image.strip():
                result.replace(spec.name, wrap_image(image))
            continue
        if spec.derivation is None or spec.name in result:
            continue
        value = _derive_value(spec, result, annotate, log)
        if value is not None:
            result.append(spec.name, value)

    if not result.columns:
        return None
    return result


def _derive_value(
    spec: FieldSpec,
    record: WorkingRecord,
    annotate: Annotate,
    log,
) -> str | None:
    derivation = spec.derivation
    source_value = record.get(derivation.source)
    if derivation.kind is DerivationKind.TRUE_IF_EXISTS:
        if source_value is not None and source_value.strip():
            return PRESENT_FLAG_VALUE
        return None

    if source_value is None:
        return None
    try:
        annotated = annotate(source_value)
    except AnnotationUnavailable as exc:
        log.warning("Skipping %s: annotation unavailable (%s)", spec.name, exc)
        return None
    if annotated == source_value:
        return None
    return annotated
