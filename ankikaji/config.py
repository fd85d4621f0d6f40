"""Configuration loading from environment variables."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime

from .utils import parse_flag, parse_int_env, resolve_path

EXPORT_FORMATS = ("csv", "txt")


@dataclass(frozen=True)
class AppConfig:
    log_level: str
    file_log_level: str
    log_dir: str
    log_file: str
    db_path: str
    table_name: str
    template_path: str
    cards_path: str
    export_path: str
    export_format: str = "csv"
    annotation_enabled: bool = True
    annotation_cache_size: int = 4096


def _env_flag(name: str, default: str = "0") -> bool:
    return bool(parse_flag(os.getenv(name, default)))


def load_config(command: str | None = None) -> AppConfig:
    """Read settings from the environment; command names the run's log file."""
    base_dir = os.getcwd()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    file_log_level = os.getenv("FILE_LOG_LEVEL", "DEBUG").upper()
    log_dir = resolve_path(os.getenv("LOG_DIR", "logs"), base_dir)
    os.makedirs(log_dir, exist_ok=True)
    log_prefix = f"ankikaji_{command}" if command else "ankikaji"
    log_file = os.path.join(
        log_dir, f"{log_prefix}_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}.log"
    )
    db_path = resolve_path(
        os.getenv("ANKIKAJI_DB", "data/ankikaji.sqlite3").strip(),
        base_dir,
    )
    table_name = os.getenv("ANKIKAJI_TABLE", "").strip()
    template_path = resolve_path(
        os.getenv("ANKIKAJI_TEMPLATE", "jp-template.yaml").strip(),
        base_dir,
    )
    cards_path = resolve_path(os.getenv("ANKIKAJI_CARDS", "cards.yaml").strip(), base_dir)
    export_path = resolve_path(
        os.getenv("ANKIKAJI_EXPORT_FILE", "export.csv").strip(),
        base_dir,
    )
    export_format = os.getenv("ANKIKAJI_EXPORT_FORMAT", "csv").strip().lower().lstrip(".")
    if export_format not in EXPORT_FORMATS:
        export_format = "csv"
    annotation_enabled = _env_flag("ANKIKAJI_ANNOTATION_ENABLED", "1")
    annotation_cache_size = parse_int_env(
        "ANKIKAJI_ANNOTATION_CACHE_SIZE",
        4096,
        min_value=0,
        max_value=100000,
    )
    return AppConfig(
        log_level=log_level,
        file_log_level=file_log_level,
        log_dir=log_dir,
        log_file=log_file,
        db_path=db_path,
        table_name=table_name,
        template_path=template_path,
        cards_path=cards_path,
        export_path=export_path,
        export_format=export_format,
        annotation_enabled=annotation_enabled,
        annotation_cache_size=annotation_cache_size,
    )
