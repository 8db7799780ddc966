"""
Pydantic Settings configuration for popbox.

Loads configuration from POPBOX_* environment variables (or a .env file)
for the command-line interface. Library code takes explicit arguments.
"""

from functools import lru_cache

from pydantic import Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from popbox.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Mail server settings
    # Only hostname characters allowed
    host: str = Field(..., pattern=r"^[a-zA-Z0-9.-]+$")
    port: int = Field(995, ge=1, le=65535)
    user: str = Field(..., min_length=1)
    password: SecretStr = Field(...)

    # Applies to both the TLS handshake and the server greeting
    connect_timeout: float = Field(30.0, ge=1, le=300)

    # Drain settings
    drain_limit: int | None = Field(None, ge=1)
    maildir_path: str | None = Field(None)

    # Logging settings
    log_format: str = Field("console", pattern=r"^(console|json)$")
    debug: bool = Field(False)

    model_config = SettingsConfigDict(
        env_prefix="POPBOX_", env_file=".env", env_file_encoding="utf-8"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure only one Settings instance is created,
    avoiding repeated environment variable parsing.

    Raises:
        ConfigurationError: If a variable is missing or invalid.
    """
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as e:
        fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in e.errors())
        raise ConfigurationError(f"invalid settings: {fields}") from e
