"""
Configuration settings for flashdeck.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from flashdeck.review.scheduler import SM2Config
    from flashdeck.review.session_manager import SessionConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    data_dir: Path = Field(
        default=Path.home() / ".flashdeck",
        description="Directory holding the local key-value database",
    )
    database_name: str = Field(
        default="flashdeck.db",
        description="SQLite file name inside data_dir",
    )
    load_timeout_ms: int = Field(
        default=3000,
        description="Deadline for the initial card load before falling back to defaults",
    )

    # ========================================
    # Session Assembly
    # ========================================
    new_cards_limit: int = Field(
        default=20,
        description="Maximum never-reviewed cards per session",
    )
    review_cards_limit: int = Field(
        default=30,
        description="Maximum review cards per session (plus unused new-card quota)",
    )
    review_horizon_days: int = Field(
        default=7,
        description="Look-ahead window for padding a session with soon-due cards",
    )

    # ========================================
    # SM-2
    # ========================================
    short_interval_minutes: int = Field(
        default=10,
        description="Retry delay after a failed review",
    )
    initial_ease_factor: float = Field(
        default=2.5,
        description="Ease factor assigned to new cards",
    )
    minimum_ease_factor: float = Field(
        default=1.3,
        description="Lower bound for the ease factor",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    @property
    def database_path(self) -> Path:
        return self.data_dir / self.database_name

    def get_sm2_config(self) -> SM2Config:
        """Build the SM-2 configuration from these settings."""
        from flashdeck.review.scheduler import SM2Config

        return SM2Config(
            initial_ease_factor=self.initial_ease_factor,
            minimum_ease_factor=self.minimum_ease_factor,
            short_interval_minutes=self.short_interval_minutes,
        )

    def get_session_config(self) -> SessionConfig:
        """Build the session assembly configuration from these settings."""
        from flashdeck.review.session_manager import SessionConfig

        return SessionConfig(
            new_cards_limit=self.new_cards_limit,
            review_cards_limit=self.review_cards_limit,
            review_horizon_days=self.review_horizon_days,
            load_timeout_ms=self.load_timeout_ms,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
