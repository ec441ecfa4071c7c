"""Application Settings and Configuration.

This module provides application-wide settings that combine configuration
from the configuration manager with application-specific defaults.
"""

import os
from typing import Optional

from src.infrastructure.config_manager import (
    ConfigManager,
    DatabaseConfig,
    LanguageModelConfig,
)

# Application metadata
APP_NAME = "Concierge Ops"
APP_VERSION = "1.0.0"

# Largest accepted CSV upload (operator spreadsheets are small)
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024


class Settings:
    """Application settings loaded from configuration manager and environment.

    Database and language-model configuration are loaded lazily on first
    access so that importing the module never fails on a bad environment.
    """

    def __init__(self):
        """Initialize settings from the environment."""
        self._config_manager: Optional[ConfigManager] = None

        self.app_name = os.getenv("CONCIERGE_APP_NAME", APP_NAME)
        self.max_upload_bytes = int(os.getenv("CONCIERGE_MAX_UPLOAD_BYTES", str(DEFAULT_MAX_UPLOAD_BYTES)))

        # Logging
        self.log_level = os.getenv("CONCIERGE_LOG_LEVEL", "INFO")
        self.log_json = os.getenv("CONCIERGE_LOG_JSON", "false").lower() == "true"

        # API server
        self.api_host = os.getenv("CONCIERGE_API_HOST", "127.0.0.1")
        self.api_port = int(os.getenv("CONCIERGE_API_PORT", "8000"))
        self.cors_origins = [
            origin.strip()
            for origin in os.getenv("CONCIERGE_CORS_ORIGINS", "http://localhost:3000").split(",")
            if origin.strip()
        ]

    @property
    def config_manager(self) -> ConfigManager:
        """Get configuration manager instance."""
        if self._config_manager is None:
            self._config_manager = ConfigManager.from_environment()
        return self._config_manager

    @property
    def db_config(self) -> DatabaseConfig:
        """Database configuration (validated on first access)."""
        return self.config_manager.get_database_config()

    @property
    def llm_config(self) -> LanguageModelConfig:
        """Language-model configuration (validated on first access)."""
        return self.config_manager.get_language_model_config()

    def get_connection_string(self) -> str:
        """Get database connection string (DuckDB path or PostgreSQL URL)."""
        return self.db_config.get_connection_string()


# Global settings instance
settings = Settings()
