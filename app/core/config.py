"""Application configuration using pydantic-settings."""

import secrets
from functools import lru_cache
from typing import Literal

from cryptography.fernet import Fernet
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application environment
    env: Literal["dev", "test", "staging", "prod"] = "dev"

    # Database (unset outside prod selects the in-memory storage)
    database_url: str | None = None

    # Security
    jwt_secret: str | None = None
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 24 * 60
    session_ttl_hours: int = 24
    bcrypt_rounds: int = 12
    max_login_attempts: int = 5
    lockout_minutes: int = 30

    # Field-level encryption (Fernet key)
    encryption_key: str | None = None

    # GDPR
    data_retention_days: int = 2555

    # Rate limiting (requests per client IP)
    rate_limit_enabled: bool = True
    rate_limit_login_per_minute: int = 5
    rate_limit_register_per_minute: int = 5
    rate_limit_bookings_per_hour: int = 10

    # Logging
    log_level: str = "INFO"

    # Database initialization
    init_db_on_startup: bool = False

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 5000
    cors_origins: list[str] = ["http://localhost:5000", "http://localhost:3000"]

    @model_validator(mode="after")
    def check_required_secrets(self) -> "Settings":
        """Require real secrets in production, generate throwaway ones elsewhere."""
        if self.env == "prod":
            missing = [
                name
                for name, value in (
                    ("DATABASE_URL", self.database_url),
                    ("JWT_SECRET", self.jwt_secret),
                    ("ENCRYPTION_KEY", self.encryption_key),
                )
                if not value
            ]
            if missing:
                raise ValueError(
                    f"Missing required environment variables: {', '.join(missing)}"
                )
        if not self.jwt_secret:
            self.jwt_secret = secrets.token_hex(64)
        if not self.encryption_key:
            self.encryption_key = Fernet.generate_key().decode()
        return self

    @property
    def use_database(self) -> bool:
        """Check if a persistent database is configured."""
        return bool(self.database_url)

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode."""
        return self.env == "dev"

    @property
    def is_prod(self) -> bool:
        """Check if running in production mode."""
        return self.env == "prod"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
