"""Application layer orchestration."""

from .bootstrap import AppServices, build_annotator, initialize_app_services
from .card_service import CardService, ExportSummary, ImportSummary

__all__ = [
    "AppServices",
    "CardService",
    "ExportSummary",
    "ImportSummary",
    "build_annotator",
    "initialize_app_services",
]
