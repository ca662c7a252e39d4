"""Application Settings - Environment-based configuration.

Uses Pydantic Settings for validation and type coercion.
Production requires an API key when authentication is enabled.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from puppet_expressions.config.constants import ENGINE


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        protected_namespaces=("settings_",),
    )

    # API Configuration
    api_host: str = Field(default="127.0.0.1", description="API bind host")
    api_port: int = Field(default=8082, ge=1024, le=65535, description="API port")
    log_level: Literal["DEBUG", "INFO", "WARN", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment name"
    )

    # Authentication
    api_key: str | None = Field(
        default=None,
        description="API key for command endpoints (required in production)",
    )
    auth_enabled: bool = Field(
        default=True,
        description="Enable API authentication (skipped in development if no key)",
    )

    # Engine Configuration
    default_fade_ms: int = Field(
        default=ENGINE.DEFAULT_FADE_MS,
        ge=0,
        le=ENGINE.MAX_FADE_MS,
        description="Fade duration used when a command gives none",
    )
    target_fps: int = Field(
        default=ENGINE.TARGET_FPS,
        ge=1,
        le=240,
        description="Frame driver tick rate",
    )
    frame_driver_enabled: bool = Field(
        default=True,
        description="Tick the engine on the event loop (off when a host drives frames)",
    )
    model_path: str | None = Field(
        default=None,
        description="Model file or descriptor to load at startup",
    )
    ready_timeout_s: float = Field(
        default=ENGINE.READY_TIMEOUT_S,
        gt=0,
        le=120,
        description="Bounded wait for a model before commands give up",
    )

    # Observability
    metrics_enabled: bool = Field(default=True, description="Enable Prometheus metrics")

    def model_post_init(self, __context) -> None:
        """Validate conditional requirements after model creation."""
        if self.environment == "production" and self.auth_enabled and not self.api_key:
            raise ValueError(
                "api_key is required when auth_enabled=true in production environment"
            )

    @property
    def frame_interval_s(self) -> float:
        """Seconds between frame driver ticks."""
        return 1.0 / self.target_fps


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
