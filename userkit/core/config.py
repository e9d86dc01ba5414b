"""
Application configuration management using Pydantic Settings.
All settings can be overridden via environment variables.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "userkit"
    VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/users.db"

    @property
    def is_sqlite(self) -> bool:
        """Check if using SQLite database."""
        return self.DATABASE_URL.startswith("sqlite")

    # Credentials
    PASSWORD_HASH_ROUNDS: int = 12
    PASSWORD_MIN_LENGTH: int = 6
    PASSWORD_MAX_LENGTH: int = 32

    @field_validator("PASSWORD_HASH_ROUNDS", mode="after")
    @classmethod
    def validate_hash_rounds(cls, v: int) -> int:
        """Bcrypt only accepts cost factors between 4 and 31."""
        if not 4 <= v <= 31:
            raise ValueError(f"PASSWORD_HASH_ROUNDS must be between 4 and 31, got {v}")
        return v

    # Tokens
    TOKEN_EXPIRE_HOURS: float = 2

    @field_validator("TOKEN_EXPIRE_HOURS", mode="after")
    @classmethod
    def validate_token_expiry(cls, v: float) -> float:
        """Token validity window must be positive."""
        if v <= 0:
            raise ValueError("TOKEN_EXPIRE_HOURS must be positive")
        return v


settings = Settings()
