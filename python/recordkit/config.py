"""Database and logging configuration."""

from __future__ import annotations

import configparser
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

CONFIG_FILENAME: Final[str] = "recordkit.ini"
SECTION: Final[str] = "recordkit"

_TRUE_VALUES: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})


@dataclass
class DatabaseConfig:
    """Connection and logging settings.

    Example recordkit.ini:
        [recordkit]
        sqlalchemy.url = sqlite:///app.db
        echo = false
        log_level = DEBUG
        log_format = json
    """

    url: str | None = None
    """Database connection URL (can be overridden)."""

    echo: bool = False
    """Whether SQLAlchemy logs every statement."""

    log_level: str = "INFO"
    """Minimum structlog level."""

    log_format: str = "console"
    """Renderer used by configure_logging: console or json."""

    extra: dict[str, Any] = field(default_factory=dict)
    """Additional configuration options."""

    @classmethod
    def from_ini(cls, path: Path | str) -> DatabaseConfig:
        """Load configuration from an ini file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the [recordkit] section is missing
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        config = configparser.ConfigParser()
        config.read(path)

        if SECTION not in config:
            raise ValueError(f"No [{SECTION}] section in {path}")

        section = config[SECTION]
        known_keys = {"sqlalchemy.url", "echo", "log_level", "log_format"}

        return cls(
            url=section.get("sqlalchemy.url"),
            echo=section.getboolean("echo", False),
            log_level=section.get("log_level", "INFO").upper(),
            log_format=section.get("log_format", "console"),
            extra={k: v for k, v in section.items() if k not in known_keys},
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DatabaseConfig:
        """Load configuration from environment variables.

        RECORDKIT_DATABASE_URL wins over DATABASE_URL.
        """
        env = os.environ if environ is None else environ
        return cls(
            url=env.get("RECORDKIT_DATABASE_URL") or env.get("DATABASE_URL"),
            echo=env.get("RECORDKIT_ECHO", "").lower() in _TRUE_VALUES,
            log_level=env.get("RECORDKIT_LOG_LEVEL", "INFO").upper(),
            log_format=env.get("RECORDKIT_LOG_FORMAT", "console"),
        )

    @classmethod
    def auto_detect(cls, start_path: Path | str | None = None) -> DatabaseConfig | None:
        """Find recordkit.ini by searching up from start_path (default: cwd)."""
        start_path = Path.cwd() if start_path is None else Path(start_path)

        current = start_path
        while current != current.parent:
            ini_path = current / CONFIG_FILENAME
            if ini_path.exists():
                return cls.from_ini(ini_path)
            current = current.parent

        return None

    def get_url(self, override: str | None = None) -> str:
        """Get the database URL.

        Raises:
            ValueError: If no URL is available
        """
        url = override or self.url
        if not url:
            raise ValueError("No database URL configured")
        return url
