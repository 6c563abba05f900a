"""Tests for process configuration."""

import pytest

from clubdesk.loantracker.config import Config, get_config, reset_config


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    for name in ("CLUBDESK_DB_PATH", "CLUBDESK_LOG_LEVEL", "CLUBDESK_ACTOR"):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


class TestFromEnv:
    """Tests for loading configuration from the environment."""

    def test_defaults(self):
        config = Config.from_env()
        assert config.db_path.name == "clubdesk.db"
        assert config.log_level == "INFO"
        assert config.actor == "system"

    def test_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CLUBDESK_DB_PATH", str(tmp_path / "loans.db"))
        monkeypatch.setenv("CLUBDESK_LOG_LEVEL", "debug")
        monkeypatch.setenv("CLUBDESK_ACTOR", "quartermaster")
        config = Config.from_env()
        assert config.db_path == tmp_path / "loans.db"
        assert config.log_level == "DEBUG"
        assert config.actor == "quartermaster"

    def test_get_config_is_cached(self):
        assert get_config() is get_config()


class TestValidate:
    """Tests for configuration validation."""

    def test_valid(self, tmp_path):
        config = Config(db_path=tmp_path / "nested" / "loans.db", log_level="INFO", actor="system")
        assert config.validate() == []
        assert (tmp_path / "nested").exists()

    def test_unknown_log_level(self, tmp_path):
        config = Config(db_path=tmp_path / "loans.db", log_level="LOUD", actor="system")
        assert config.validate() == ["Unknown log level: LOUD"]
