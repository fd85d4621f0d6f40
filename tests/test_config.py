import os

from ankikaji.config import load_config
from ankikaji.utils import parse_flag, parse_int_env, quote_identifier, resolve_path


def test_resolve_path_handles_relative_and_absolute(tmp_path):
    base_dir = str(tmp_path)
    relative = "nested/file.txt"
    absolute = str(tmp_path / "absolute.txt")

    assert resolve_path(relative, base_dir) == os.path.join(base_dir, relative)
    assert resolve_path(absolute, base_dir) == absolute


def test_parse_int_env_applies_default_and_bounds(monkeypatch):
    monkeypatch.setenv("INT_ENV_TEST", "not-a-number")
    assert parse_int_env("INT_ENV_TEST", 7, min_value=1, max_value=10) == 7

    monkeypatch.setenv("INT_ENV_TEST", "100")
    assert parse_int_env("INT_ENV_TEST", 7, min_value=1, max_value=10) == 10

    monkeypatch.setenv("INT_ENV_TEST", "-5")
    assert parse_int_env("INT_ENV_TEST", 7, min_value=1, max_value=10) == 1


def test_parse_flag_and_quote_identifier():
    assert parse_flag(" Yes ") is True
    assert parse_flag("off") is False
    assert parse_flag("maybe") is None
    assert quote_identifier('a "b"') == '"a ""b"""'


def test_load_config_reads_env(monkeypatch, tmp_path):
    monkeypatch.setenv("LOG_LEVEL", "warning")
    monkeypatch.setenv("FILE_LOG_LEVEL", "error")
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("ANKIKAJI_DB", str(tmp_path / "db" / "cards.sqlite3"))
    monkeypatch.setenv("ANKIKAJI_TABLE", " vocab ")
    monkeypatch.setenv("ANKIKAJI_TEMPLATE", str(tmp_path / "template.yaml"))
    monkeypatch.setenv("ANKIKAJI_CARDS", str(tmp_path / "cards.csv"))
    monkeypatch.setenv("ANKIKAJI_EXPORT_FILE", str(tmp_path / "out.txt"))
    monkeypatch.setenv("ANKIKAJI_EXPORT_FORMAT", ".TXT")
    monkeypatch.setenv("ANKIKAJI_ANNOTATION_ENABLED", "no")
    monkeypatch.setenv("ANKIKAJI_ANNOTATION_CACHE_SIZE", "-3")  # below min -> clamped

    config = load_config()

    assert config.log_level == "WARNING"
    assert config.file_log_level == "ERROR"
    assert os.path.isdir(config.log_dir)
    assert os.path.dirname(config.log_file) == config.log_dir
    assert os.path.basename(config.log_file).startswith("ankikaji_")
    assert config.db_path == str(tmp_path / "db" / "cards.sqlite3")
    assert config.table_name == "vocab"
    assert config.template_path == str(tmp_path / "template.yaml")
    assert config.cards_path == str(tmp_path / "cards.csv")
    assert config.export_path == str(tmp_path / "out.txt")
    assert config.export_format == "txt"
    assert config.annotation_enabled is False
    assert config.annotation_cache_size == 0


def test_load_config_defaults_resolve_against_working_dir(monkeypatch, tmp_path):
    for name in (
        "ANKIKAJI_DB",
        "ANKIKAJI_TABLE",
        "ANKIKAJI_TEMPLATE",
        "ANKIKAJI_CARDS",
        "ANKIKAJI_EXPORT_FILE",
        "ANKIKAJI_ANNOTATION_ENABLED",
        "ANKIKAJI_ANNOTATION_CACHE_SIZE",
        "LOG_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ANKIKAJI_EXPORT_FORMAT", "xlsx")
    monkeypatch.chdir(tmp_path)

    config = load_config()

    assert config.db_path == os.path.join(str(tmp_path), "data/ankikaji.sqlite3")
    assert config.template_path == os.path.join(str(tmp_path), "jp-template.yaml")
    assert config.table_name == ""
    assert config.export_format == "csv"
    assert config.annotation_enabled is True
    assert config.annotation_cache_size == 4096
    assert (tmp_path / "logs").is_dir()


def test_load_config_names_log_file_after_command(monkeypatch, tmp_path):
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))

    config = load_config("import")

    assert os.path.basename(config.log_file).startswith("ankikaji_import_")
    assert config.log_file.endswith(".log")
