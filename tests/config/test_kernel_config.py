"""
Tests for asset_config: YAML loading, validation and the DATABASE_URL override.
"""

from __future__ import annotations

import logging
import textwrap

import pytest
import yaml

from asset_config import DATABASE_URL_ENV, get_active_config
from asset_config.loader import (
    load_yaml_file,
    log_level,
    parse_history,
    parse_kernel_config,
    parse_logging,
    parse_retry,
)
from asset_config.schema import LoggingConfig


@pytest.fixture(autouse=True)
def _no_database_url(monkeypatch):
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)


@pytest.fixture
def write_config(tmp_path):
    """Factory: write a YAML document to a temp file and return its path."""

    def _write(body: str):
        path = tmp_path / "kernel.yaml"
        path.write_text(textwrap.dedent(body))
        return path

    return _write


class TestDefaultConfig:
    """The shipped default configuration set."""

    def test_loads(self):
        config = get_active_config()

        assert config.config_id == "default"
        assert config.database.url == "sqlite:///inventory.db"
        assert config.retry.max_attempts == 3
        assert config.history.retention_days is None
        assert config.history.default_page_size == 20
        assert config.logging.level == "INFO"

    def test_database_url_from_environment(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "postgresql://kernel@localhost/inventory")

        config = get_active_config()

        assert config.database.url == "postgresql://kernel@localhost/inventory"
        assert config.database.pool_size == 10

    def test_blank_environment_value_ignored(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "   ")
        assert get_active_config().database.url == "sqlite:///inventory.db"

    def test_load_is_logged_without_url(self, captured_logs, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "postgresql://kernel:secret@db/inventory")

        get_active_config()

        record = next(r for r in captured_logs() if r["message"] == "config_loaded")
        assert record["config_id"] == "default"
        assert record["database_url_from_env"] is True
        assert "secret" not in str(record)


class TestCustomConfig:
    """Loading a user-supplied YAML file."""

    def test_minimal_file_uses_defaults(self, write_config):
        path = write_config("""
            config_id: school-district
            database:
              url: sqlite:///district.db
        """)

        config = get_active_config(path)

        assert config.config_id == "school-district"
        assert config.retry.base_delay_seconds == 1.0
        assert config.history.max_page_size == 200

    def test_overrides(self, write_config):
        path = write_config("""
            config_id: strict
            database:
              url: sqlite:///strict.db
              pool_size: 2
            retry:
              max_attempts: 5
              base_delay_seconds: 0.5
            history:
              retention_days: 365
              default_page_size: 50
            logging:
              level: debug
        """)

        config = get_active_config(path)

        assert config.database.pool_size == 2
        assert config.retry.max_attempts == 5
        assert config.history.retention_days == 365
        assert config.history.default_page_size == 50
        assert config.logging.level == "DEBUG"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_missing_database_section(self, write_config):
        with pytest.raises(KeyError):
            get_active_config(write_config("config_id: x\n"))

    def test_top_level_must_be_mapping(self, write_config):
        with pytest.raises(ValueError):
            load_yaml_file(write_config("- a\n- b\n"))

    def test_malformed_yaml(self, write_config):
        with pytest.raises(yaml.YAMLError):
            load_yaml_file(write_config("config_id: [unclosed\n"))


class TestValidation:
    """Value checks per section."""

    def test_empty_database_url(self):
        with pytest.raises(ValueError, match="database.url"):
            parse_kernel_config({"config_id": "x", "database": {"url": "  "}})

    @pytest.mark.parametrize(
        "section",
        [
            {"max_attempts": 0},
            {"max_attempts": "3"},
            {"max_attempts": True},
            {"base_delay_seconds": -0.1},
            {"backoff_factor": 0.5},
        ],
    )
    def test_invalid_retry(self, section):
        with pytest.raises(ValueError):
            parse_retry(section)

    @pytest.mark.parametrize(
        "section",
        [
            {"retention_days": 0},
            {"default_page_size": 0},
            {"default_page_size": 300, "max_page_size": 200},
        ],
    )
    def test_invalid_history(self, section):
        with pytest.raises(ValueError):
            parse_history(section)

    def test_invalid_log_level(self):
        with pytest.raises(ValueError, match="logging.level"):
            parse_logging({"level": "chatty"})

    def test_log_level_is_numeric(self):
        assert log_level(LoggingConfig(level="WARNING")) == logging.WARNING
