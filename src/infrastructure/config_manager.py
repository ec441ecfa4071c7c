"""Configuration Manager for Storage and Language-Model Settings.

This module loads the console's database and language-model configuration
from environment variables (optionally seeded from a ``.env`` file) or from a
JSON file. Credentials are held as ``SecretStr`` so they never end up in
logs, reprs or error messages.

Architecture:
    - Infrastructure layer, isolated from the domain
    - Type-safe configuration using Pydantic models
    - Fail-fast validation when a config object is first requested

Environment Variables:
    - CONCIERGE_DB_TYPE: duckdb (default) or postgresql
    - CONCIERGE_DB_PATH: DuckDB file path (in-memory when unset)
    - CONCIERGE_DB_HOST / _PORT / _NAME / _USER / _PASSWORD / _SSL_MODE
    - CONCIERGE_DB_CONNECTION_STRING: Full PostgreSQL URL (secret)
    - CONCIERGE_DB_POOL_SIZE / CONCIERGE_DB_MAX_OVERFLOW
    - OPENAI_API_KEY: Language-model API key (secret)
    - CONCIERGE_OPENAI_MODEL / _TEMPERATURE / _TIMEOUT / _BASE_URL
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, quote_plus, unquote, urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

logger = logging.getLogger(__name__)

ENV_PREFIX = "CONCIERGE_"
SUPPORTED_DB_TYPES = ("duckdb", "postgresql")
DEFAULT_OPENAI_MODEL = "gpt-4o"
DEFAULT_OPENAI_TEMPERATURE = 0.1


class DatabaseConfig(BaseModel):
    """Database configuration with secret-safe credential fields.

    Parameters:
        db_type: Database type ('duckdb' or 'postgresql')
        db_path: DuckDB file path (None or ':memory:' for in-memory)
        host: PostgreSQL host
        port: PostgreSQL port
        database: PostgreSQL database name
        username: Database username
        password: Database password (SecretStr - never logged)
        connection_string: Full connection URL (SecretStr - never logged)
        ssl_mode: SSL mode for PostgreSQL (require, prefer, disable)
        pool_size: Connection pool size
        max_overflow: Extra pooled connections allowed beyond pool_size
    """

    db_type: str = Field("duckdb", description="Database type (duckdb, postgresql)")
    db_path: Optional[str] = Field(None, description="Path to database file (for DuckDB)")
    host: Optional[str] = Field(None, description="Database host")
    port: Optional[int] = Field(None, description="Database port")
    database: Optional[str] = Field(None, description="Database name")
    username: Optional[str] = Field(None, description="Database username")
    password: Optional[SecretStr] = Field(None, description="Database password (secret)")
    connection_string: Optional[SecretStr] = Field(None, description="Full connection string (secret)")
    ssl_mode: Optional[str] = Field(None, description="SSL mode (require, prefer, disable)")
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum connection pool overflow")

    @field_validator("db_type")
    @classmethod
    def validate_db_type(cls, v: str) -> str:
        """Validate database type."""
        if v.lower() not in SUPPORTED_DB_TYPES:
            raise ValueError(f"Unsupported database type: {v}. Supported: {list(SUPPORTED_DB_TYPES)}")
        return v.lower()

    @field_validator("db_path")
    @classmethod
    def validate_db_path(cls, v: Optional[str]) -> Optional[str]:
        """Require the parent directory of a DuckDB file to exist."""
        if v is None or v == ":memory:":
            return v
        db_path_obj = Path(v)
        if not db_path_obj.parent.exists():
            raise ValueError(f"Database directory does not exist: {db_path_obj.parent}")
        return str(db_path_obj)

    @staticmethod
    def _parse_postgresql_connection_string(conn_str: str) -> Dict[str, Any]:
        """Split a postgresql:// (or postgres://) URL into its components."""
        parsed = urlparse(conn_str)
        if parsed.scheme not in ("postgresql", "postgres"):
            raise ValueError(f"Unsupported connection string scheme: {parsed.scheme}")

        result: Dict[str, Any] = {
            "host": parsed.hostname,
            "port": parsed.port,
            "database": parsed.path.lstrip("/") if parsed.path else None,
            "username": unquote(parsed.username) if parsed.username else None,
            "password": unquote(parsed.password) if parsed.password else None,
        }
        query_params = parse_qs(parsed.query)
        if "sslmode" in query_params:
            result["ssl_mode"] = query_params["sslmode"][0]
        return result

    @model_validator(mode="after")
    def sync_connection_string_and_fields(self) -> "DatabaseConfig":
        """Keep the PostgreSQL connection string and individual fields in sync.

        A connection string always wins over individual fields; individual
        fields are used to build one when it is missing.
        """
        if self.db_type != "postgresql":
            return self

        if self.connection_string:
            try:
                parsed = self._parse_postgresql_connection_string(self.connection_string.get_secret_value())
            except ValueError as e:
                logger.warning(f"Failed to parse connection string, using as-is: {str(e)}")
                return self
            for field_name in ("host", "port", "database", "username", "ssl_mode"):
                if parsed.get(field_name):
                    setattr(self, field_name, parsed[field_name])
            if parsed.get("password"):
                self.password = SecretStr(parsed["password"])
        elif self.host and self.database:
            self.connection_string = SecretStr(self._build_url())

        return self

    def _build_url(self) -> str:
        password_part = f":{quote_plus(self.password.get_secret_value())}" if self.password else ""
        username_part = quote_plus(self.username) if self.username else ""
        ssl_part = f"?sslmode={self.ssl_mode}" if self.ssl_mode else ""
        return f"postgresql://{username_part}{password_part}@{self.host}:{self.port or 5432}/{self.database}{ssl_part}"

    def get_connection_string(self) -> str:
        """Return the DuckDB path or the PostgreSQL URL."""
        if self.db_type == "duckdb":
            return self.db_path or ":memory:"
        if self.connection_string:
            return self.connection_string.get_secret_value()
        if not (self.host and self.database):
            raise ValueError("postgresql requires host and database")
        return self._build_url()


class LanguageModelConfig(BaseModel):
    """Settings for the OpenAI chat-completions adapter.

    Parameters:
        api_key: OpenAI API key (SecretStr - never logged); smart update is
            refused with "OPENAI_API_KEY not configured" when missing
        model: Chat model name
        temperature: Sampling temperature (low, the output is a data diff)
        timeout: Client timeout in seconds (None keeps the client default)
        base_url: Alternative OpenAI-compatible endpoint
    """

    api_key: Optional[SecretStr] = Field(None, description="OpenAI API key (secret)")
    model: str = Field(DEFAULT_OPENAI_MODEL, description="Chat completions model")
    temperature: float = Field(DEFAULT_OPENAI_TEMPERATURE, ge=0.0, le=2.0)
    timeout: Optional[float] = Field(None, gt=0, description="Request timeout in seconds")
    base_url: Optional[str] = Field(None, description="Custom API base URL")

    def is_configured(self) -> bool:
        """Return True when an API key is available."""
        return bool(self.api_key and self.api_key.get_secret_value())


def _env(name: str) -> Optional[str]:
    value = os.getenv(f"{ENV_PREFIX}{name}")
    return value if value not in (None, "") else None


def _env_number(name: str, cast):
    value = _env(name)
    return cast(value) if value is not None else None


class ConfigManager:
    """Loads and validates configuration from the environment or a file.

    Example Usage:
        ```python
        config = ConfigManager.from_environment()
        db_config = config.get_database_config()
        llm_config = config.get_language_model_config()

        config = ConfigManager.from_file("concierge.json")
        ```
    """

    def __init__(self, config_data: Dict[str, Any]):
        """Initialize configuration manager.

        Parameters:
            config_data: Dictionary with optional "database" and
                "language_model" sections
        """
        self._config_data = config_data
        self._database_config: Optional[DatabaseConfig] = None
        self._language_model_config: Optional[LanguageModelConfig] = None

    @classmethod
    def from_environment(cls, env_file: Optional[str] = None) -> "ConfigManager":
        """Load configuration from environment variables.

        Parameters:
            env_file: Optional .env file; defaults to ``.env`` in the project
                root. Variables already set in the environment win.

        Returns:
            ConfigManager instance
        """
        env_path = Path(env_file) if env_file else Path(__file__).parent.parent.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.debug(f"Loaded environment variables from {env_path}")

        config_data = {
            "database": {
                "db_type": _env("DB_TYPE") or "duckdb",
                "db_path": _env("DB_PATH"),
                "host": _env("DB_HOST"),
                "port": _env_number("DB_PORT", int),
                "database": _env("DB_NAME"),
                "username": _env("DB_USER"),
                "password": _env("DB_PASSWORD"),
                "connection_string": _env("DB_CONNECTION_STRING"),
                "ssl_mode": _env("DB_SSL_MODE"),
                "pool_size": _env_number("DB_POOL_SIZE", int),
                "max_overflow": _env_number("DB_MAX_OVERFLOW", int),
            },
            "language_model": {
                "api_key": os.getenv("OPENAI_API_KEY") or None,
                "model": _env("OPENAI_MODEL"),
                "temperature": _env_number("OPENAI_TEMPERATURE", float),
                "timeout": _env_number("OPENAI_TIMEOUT", float),
                "base_url": _env("OPENAI_BASE_URL"),
            },
        }
        return cls(config_data)

    @classmethod
    def from_file(cls, config_path: str) -> "ConfigManager":
        """Load configuration from a JSON file.

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is not valid JSON
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        if config_file.stat().st_mode & 0o077 != 0:
            logger.warning(
                f"Configuration file has overly permissive permissions: {config_path}. "
                "Consider setting to 600 for credential files."
            )

        try:
            with open(config_file, "r", encoding="utf-8") as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {str(e)}")

        return cls(config_data)

    @staticmethod
    def _present(section: Dict[str, Any]) -> Dict[str, Any]:
        # Unset values fall back to the model defaults
        return {key: value for key, value in section.items() if value is not None}

    def get_database_config(self) -> DatabaseConfig:
        """Return the validated database configuration."""
        if self._database_config is None:
            self._database_config = DatabaseConfig(**self._present(self._config_data.get("database", {})))
        return self._database_config

    def get_language_model_config(self) -> LanguageModelConfig:
        """Return the validated language-model configuration."""
        if self._language_model_config is None:
            self._language_model_config = LanguageModelConfig(
                **self._present(self._config_data.get("language_model", {}))
            )
        return self._language_model_config

    def get(self, key: str, default: Any = None) -> Any:
        """Get a raw configuration value by dotted key (e.g. "database.host")."""
        value: Any = self._config_data
        for part in key.split("."):
            if not isinstance(value, dict):
                return default
            value = value.get(part)
        return value if value is not None else default


# ============================================================================
# Convenience Functions
# ============================================================================

def get_database_config() -> DatabaseConfig:
    """Database configuration from the environment (DuckDB in-memory by default)."""
    return ConfigManager.from_environment().get_database_config()


def get_language_model_config() -> LanguageModelConfig:
    """Language-model configuration from the environment."""
    return ConfigManager.from_environment().get_language_model_config()
