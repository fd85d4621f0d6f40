"""AnkiKaji: a template-driven Japanese flashcard collection."""

__version__ = "0.1.0"
