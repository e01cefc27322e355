"""Configuration management for taskgate."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/taskgate.db", description="Path to the SQLite database file")

    # Session tokens are issued by the identity layer and only verified here
    secret_key: str = Field(default="dev-secret-change-me", description="Secret used to verify signed session tokens")
    session_max_age_seconds: int = Field(default=86400, description="Maximum accepted age of a session token")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name")

    # Real-time Configuration
    realtime_queue_size: int = Field(
        default=100, description="Maximum undelivered events buffered per live connection before it is dropped"
    )

    @property
    def is_production(self) -> bool:
        """Whether the service runs in production."""
        return self.environment == "production"

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_CREATED: int = 201
    HTTP_BAD_REQUEST: int = 400
    HTTP_FORBIDDEN: int = 403
    HTTP_NOT_FOUND: int = 404
    HTTP_SERVER_ERROR: int = 500

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 100  # Default pagination limit for list queries
    NOTIFICATIONS_PAGE_SIZE: int = 20
    MAX_NOTIFICATIONS_PAGE_SIZE: int = 100
    VERIFICATIONS_PAGE_SIZE: int = 20
    MAX_VERIFICATIONS_PAGE_SIZE: int = 100

    # Real-time channel prefixes
    USER_CHANNEL_PREFIX: str = "user-"
    WORKSPACE_CHANNEL_PREFIX: str = "workspace-"

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
