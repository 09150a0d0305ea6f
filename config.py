"""
Content Store - Configuration

Centralized configuration for the storage layer.
Uses environment variables (and an optional ``.env`` file) with sensible
defaults.
"""
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from dotenv import load_dotenv
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from core.errors import ConfigError
from observability.logging import LoggingConfig

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger("contentstore.config")

DEFAULT_POOL_SIZE = 10


class Environment(Enum):
    """Deployment environments."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class StorageBackend(Enum):
    """Which store backs the repositories for this process."""
    COUCHDB = "couchdb"
    POSTGRES = "postgres"


def _env_int(name: str, default: int) -> int:
    """Integer from the environment; an unparsable value falls back to the default."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}, falling back to default {default}")
        return default
    if value < 1:
        logger.warning(f"Invalid {name}={raw!r}, falling back to default {default}")
        return default
    return value


@dataclass
class CouchDBConfig:
    """Document store connection settings."""
    url: str = field(default_factory=lambda: os.getenv("COUCHDB_URL", "http://localhost:5984"))
    username: str = field(default_factory=lambda: os.getenv("COUCHDB_USERNAME", "admin"))
    password: str = field(default_factory=lambda: os.getenv("COUCHDB_PASSWORD", "password"))
    database: str = field(default_factory=lambda: os.getenv("COUCHDB_DATABASE", "contentstore"))
    timeout: float = field(default_factory=lambda: float(os.getenv("COUCHDB_TIMEOUT", "30")))


@dataclass
class PostgresConfig:
    """
    Relational store connection settings.

    ``DATABASE_URL`` wins when set; otherwise the URL is assembled from the
    ``POSTGRES_*`` variables.
    """
    database_url_override: Optional[str] = field(
        default_factory=lambda: os.getenv("DATABASE_URL") or None
    )
    host: str = field(default_factory=lambda: os.getenv("POSTGRES_HOST", "localhost"))
    port: int = field(default_factory=lambda: int(os.getenv("POSTGRES_PORT", "5432")))
    database: str = field(default_factory=lambda: os.getenv("POSTGRES_DB", "app"))
    user: str = field(default_factory=lambda: os.getenv("POSTGRES_USER", "app"))
    password: str = field(default_factory=lambda: os.getenv("POSTGRES_PASSWORD", "app"))
    sslmode: str = field(default_factory=lambda: os.getenv("POSTGRES_SSLMODE", "disable"))

    # Connection pool settings
    pool_size: int = field(
        default_factory=lambda: _env_int("POSTGRES_MAX_CONNS", DEFAULT_POOL_SIZE)
    )
    max_overflow: int = field(default_factory=lambda: int(os.getenv("POSTGRES_MAX_OVERFLOW", "20")))
    pool_timeout: int = field(default_factory=lambda: int(os.getenv("POSTGRES_POOL_TIMEOUT", "30")))
    command_timeout: int = field(default_factory=lambda: int(os.getenv("POSTGRES_COMMAND_TIMEOUT", "60")))
    echo: bool = field(default_factory=lambda: os.getenv("POSTGRES_ECHO", "false").lower() == "true")

    @property
    def database_url(self) -> str:
        """Get PostgreSQL connection URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql://{quote(self.user, safe='')}:{quote(self.password, safe='')}"
            f"@{self.host}:{self.port}/{self.database}?sslmode={self.sslmode}"
        )


@dataclass
class Config:
    """Main configuration class combining all sub-configs."""
    env: Environment = field(default_factory=lambda: Environment(os.getenv("ENVIRONMENT", "development")))
    backend: StorageBackend = field(
        default_factory=lambda: StorageBackend(os.getenv("STORAGE_BACKEND", "couchdb").lower())
    )

    # Sub-configurations
    couchdb: CouchDBConfig = field(default_factory=CouchDBConfig)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.env == Environment.PRODUCTION

    def validate(self) -> List[str]:
        """
        Check the settings of the selected backend.

        Returns the list of problems; raises ConfigError in production when
        the list is not empty.
        """
        problems: List[str] = []
        if self.backend == StorageBackend.COUCHDB:
            if not self.couchdb.url.startswith(("http://", "https://")):
                problems.append(f"COUCHDB_URL must be an http(s) URL: {self.couchdb.url}")
            if not self.couchdb.database:
                problems.append("COUCHDB_DATABASE is empty")
            if self.couchdb.timeout <= 0:
                problems.append("COUCHDB_TIMEOUT must be positive")
        else:
            if not self.postgres.database_url.startswith(("postgres://", "postgresql")):
                problems.append("DATABASE_URL must be a postgresql:// URL")
            if self.postgres.max_overflow < 0:
                problems.append("POSTGRES_MAX_OVERFLOW must be >= 0")

        if problems and self.is_production:
            raise ConfigError("; ".join(problems), config_key="STORAGE_BACKEND")
        for problem in problems:
            logger.warning(problem)
        return problems

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary (excluding sensitive values)."""
        try:
            postgres_url = make_url(self.postgres.database_url).render_as_string(
                hide_password=True
            )
        except ArgumentError:
            postgres_url = "<invalid>"
        return {
            "env": self.env.value,
            "backend": self.backend.value,
            "couchdb": {
                "url": self.couchdb.url,
                "username": self.couchdb.username,
                "password": "***" if self.couchdb.password else "",
                "database": self.couchdb.database,
                "timeout": self.couchdb.timeout,
            },
            "postgres": {
                "url": postgres_url,
                "pool_size": self.postgres.pool_size,
                "max_overflow": self.postgres.max_overflow,
                "pool_timeout": self.postgres.pool_timeout,
            },
            "logging": {
                "level": self.logging.level,
                "json_format": self.logging.json_format,
            },
        }


# Singleton configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create configuration singleton."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config() -> Config:
    """Reload configuration from environment."""
    global _config
    load_dotenv(override=True)
    _config = Config()
    return _config
