"""Tests for configuration and logging setup."""

import pytest
import structlog

from recordkit import DatabaseConfig, configure_logging, configure_logging_from_config
from recordkit.config import CONFIG_FILENAME


@pytest.fixture(autouse=True)
def restore_structlog():
    yield
    structlog.reset_defaults()


class TestDatabaseConfig:
    """Tests for loading DatabaseConfig."""

    def test_defaults(self):
        """An empty config has no URL and INFO console logging."""
        config = DatabaseConfig()
        assert config.url is None
        assert config.echo is False
        assert config.log_level == "INFO"
        assert config.log_format == "console"

    def test_from_ini(self, tmp_path):
        """The [recordkit] section is read, unknown keys go to extra."""
        path = tmp_path / CONFIG_FILENAME
        path.write_text(
            "[recordkit]\n"
            "sqlalchemy.url = sqlite:///app.db\n"
            "echo = true\n"
            "log_level = debug\n"
            "log_format = json\n"
            "pool_size = 5\n"
        )
        config = DatabaseConfig.from_ini(path)
        assert config.url == "sqlite:///app.db"
        assert config.echo is True
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"
        assert config.extra == {"pool_size": "5"}

    def test_from_ini_missing_file(self, tmp_path):
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            DatabaseConfig.from_ini(tmp_path / "nope.ini")

    def test_from_ini_missing_section(self, tmp_path):
        """A file without the section raises ValueError."""
        path = tmp_path / CONFIG_FILENAME
        path.write_text("[other]\nkey = value\n")
        with pytest.raises(ValueError, match=r"\[recordkit\]"):
            DatabaseConfig.from_ini(path)

    def test_from_env(self):
        """Environment variables configure URL, echo and logging."""
        config = DatabaseConfig.from_env(
            {
                "RECORDKIT_DATABASE_URL": "sqlite:///env.db",
                "DATABASE_URL": "sqlite:///fallback.db",
                "RECORDKIT_ECHO": "yes",
                "RECORDKIT_LOG_LEVEL": "warning",
                "RECORDKIT_LOG_FORMAT": "json",
            }
        )
        assert config.url == "sqlite:///env.db"
        assert config.echo is True
        assert config.log_level == "WARNING"
        assert config.log_format == "json"

    def test_from_env_fallback_url(self):
        """DATABASE_URL is used when the specific variable is unset."""
        config = DatabaseConfig.from_env({"DATABASE_URL": "sqlite:///fallback.db"})
        assert config.url == "sqlite:///fallback.db"
        assert config.echo is False

    def test_auto_detect(self, tmp_path):
        """The config file is found in a parent directory."""
        (tmp_path / CONFIG_FILENAME).write_text("[recordkit]\nsqlalchemy.url = sqlite://\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        config = DatabaseConfig.auto_detect(nested)
        assert config is not None
        assert config.url == "sqlite://"

    def test_get_url(self):
        """Overrides win; no URL at all raises."""
        config = DatabaseConfig(url="sqlite:///a.db")
        assert config.get_url() == "sqlite:///a.db"
        assert config.get_url("sqlite:///b.db") == "sqlite:///b.db"
        with pytest.raises(ValueError):
            DatabaseConfig().get_url()


class TestLogging:
    """Tests for structlog configuration."""

    def test_json_output(self, capsys):
        """JSON format writes one object per event to stderr."""
        configure_logging("DEBUG", "json")
        structlog.get_logger("test").info("something_happened", answer=42)
        err = capsys.readouterr().err
        assert '"event": "something_happened"' in err
        assert '"answer": 42' in err
        assert '"level": "info"' in err
        assert '"timestamp"' in err

    def test_level_filters_events(self, capsys):
        """Events below the level are dropped."""
        configure_logging("WARNING", "json")
        logger = structlog.get_logger("test")
        logger.info("dropped")
        logger.warning("kept")
        err = capsys.readouterr().err
        assert "dropped" not in err
        assert "kept" in err

    def test_console_output(self, capsys):
        """Console format writes readable lines."""
        configure_logging("INFO")
        structlog.get_logger("test").info("hello_console")
        assert "hello_console" in capsys.readouterr().err

    def test_from_config(self, capsys):
        """A DatabaseConfig selects level and format."""
        configure_logging_from_config(DatabaseConfig(log_level="ERROR", log_format="json"))
        logger = structlog.get_logger("test")
        logger.warning("quiet")
        logger.error("loud")
        err = capsys.readouterr().err
        assert "quiet" not in err
        assert '"event": "loud"' in err
