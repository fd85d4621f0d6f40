"""Application bootstrap assembly for schema, storage and annotation services."""
from __future__ import annotations

from dataclasses import dataclass

from ..config import AppConfig
from ..domain.derivation import Annotate
from ..domain.schema import CardMetadata
from ..integrations.furigana import MecabAnnotator
from ..storage.card_files import load_card_metadata
from ..storage.card_repository import CardRepository
from ..storage.card_sql import CardSql
from .card_service import CardService


@dataclass(frozen=True)
class AppServices:
    metadata: CardMetadata
    repository: CardRepository
    annotate: Annotate
    card_service: CardService


def _no_annotation(text: str) -> str:
    return text


def build_annotator(config: AppConfig, logger) -> Annotate:
    """Create the furigana annotator, or an identity when annotation is disabled."""
    if not config.annotation_enabled:
        logger.info("Furigana annotation disabled; reading fields are only taken from input.")
        return _no_annotation
    return MecabAnnotator(cache_size=config.annotation_cache_size, logger_instance=logger)


def initialize_app_services(
    *,
    config: AppConfig,
    logger,
    template_path: str | None = None,
    db_path: str | None = None,
    annotate: Annotate | None = None,
) -> AppServices:
    """Load the card template, prepare the table and return a typed service bundle."""
    resolved_template = template_path or config.template_path
    metadata = load_card_metadata(resolved_template)
    table_name = config.table_name or metadata.name
    logger.info(
        "Card template: %s (name=%s fields=%s key=%s)",
        resolved_template,
        metadata.name,
        len(metadata.fields),
        metadata.key_field.name,
    )

    repository = CardRepository(
        db_path=db_path or config.db_path,
        sql=CardSql(metadata, table_name),
        logger_instance=logger,
    )
    repository.ensure_schema()

    annotator = annotate or build_annotator(config, logger)
    card_service = CardService(metadata, repository, annotator, logger)
    return AppServices(
        metadata=metadata,
        repository=repository,
        annotate=annotator,
        card_service=card_service,
    )
