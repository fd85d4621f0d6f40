"""Integrations for external services and libraries."""

from .furigana import MecabAnnotator, format_ruby, katakana_to_hiragana

__all__ = [
    "MecabAnnotator",
    "format_ruby",
    "katakana_to_hiragana",
]
