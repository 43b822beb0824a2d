"""
Application configuration.

Loads settings from environment variables (prefix ``WEBSTUDIO_``) with
sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from webstudio.core.models import DEFAULT_TRANSLATION_SOURCES


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="WEBSTUDIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # ==========================================================================
    # API Server
    # ==========================================================================

    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # ==========================================================================
    # Content
    # ==========================================================================

    default_language: str = "en"
    languages: str = "en,de,fr,es"

    # Ordered source lists offered by the translation view. A
    # TRANSLATION_SOURCES global setting overrides this at load time.
    translation_sources: str = ",".join(DEFAULT_TRANSLATION_SOURCES)

    # ==========================================================================
    # Storage
    # ==========================================================================

    storage_backend: str = "memory"  # memory | json
    data_dir: str = "./data"
    seed_dir: str = ""  # YAML seed files loaded at startup (optional)

    # ==========================================================================
    # Persistence outbox
    # ==========================================================================

    outbox_queue: str = "persistence"
    outbox_max_attempts: int = 3
    outbox_backoff_min: float = 1.0
    outbox_backoff_max: float = 10.0
    outbox_poll_interval: float = 0.5

    # ==========================================================================
    # Optional Services
    # ==========================================================================

    sentry_dsn: str = ""

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def languages_list(self) -> list[str]:
        return [lang.strip() for lang in self.languages.split(",") if lang.strip()]

    @property
    def translation_sources_list(self) -> list[str]:
        return [s.strip() for s in self.translation_sources.split(",") if s.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
